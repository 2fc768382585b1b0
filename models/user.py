"""
User model and data access functions.
Handles staff authentication, creation, and Flask-Login integration.
"""

from werkzeug.security import generate_password_hash, check_password_hash
from database import get_db


class User:
    """
    User class for Flask-Login integration.
    Wraps database row dictionary with required Flask-Login properties.
    """

    def __init__(self, user_dict):
        """
        Initialize User from database row.

        Args:
            user_dict: Dictionary with user data from database
        """
        self.id = user_dict['id']
        self.username = user_dict['username']
        self.full_name = user_dict['full_name']
        self.role = user_dict['role']
        self.active = user_dict['active']
        self.created_at = user_dict['created_at']
        self.last_login = user_dict.get('last_login')

    @property
    def is_authenticated(self):
        """Required by Flask-Login."""
        return True

    @property
    def is_active(self):
        """Required by Flask-Login."""
        return self.active == 1

    @property
    def is_anonymous(self):
        """Required by Flask-Login."""
        return False

    def get_id(self):
        """Required by Flask-Login. Returns user ID as unicode string."""
        return str(self.id)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'username': self.username,
            'fullName': self.full_name,
            'role': self.role,
        }


def get_user_by_id(user_id: int) -> dict:
    """
    Get user by ID.

    Args:
        user_id: User ID

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE id = ?', (user_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_user_by_username(username: str) -> dict:
    """
    Get user by username.

    Args:
        username: Username to search for

    Returns:
        User dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM users WHERE username = ?', (username,))
    row = cursor.fetchone()
    return dict(row) if row else None


def create_user(username: str, password: str, full_name: str = None, role: str = 'ADMIN') -> int:
    """
    Create new staff user.

    Args:
        username: Unique username
        password: Plain text password (will be hashed)
        full_name: Full name
        role: Role name (see utils.permissions.Role)

    Returns:
        New user ID

    Raises:
        ValueError: If the username is taken
    """
    if get_user_by_username(username):
        raise ValueError(f'Username {username} already exists')

    db = get_db()
    cursor = db.cursor()

    password_hash = generate_password_hash(password)

    cursor.execute('''
        INSERT INTO users (username, password_hash, full_name, role)
        VALUES (?, ?, ?, ?)
    ''', (username, password_hash, full_name, role))

    db.commit()
    return cursor.lastrowid


def check_password(user_dict: dict, password: str) -> bool:
    """
    Verify a password against the stored hash.

    Args:
        user_dict: User row as dict
        password: Plain text password

    Returns:
        True if password matches
    """
    return check_password_hash(user_dict['password_hash'], password)


def update_last_login(user_id: int) -> None:
    """Record a successful login."""
    db = get_db()
    db.execute('UPDATE users SET last_login = CURRENT_TIMESTAMP WHERE id = ?', (user_id,))
    db.commit()
