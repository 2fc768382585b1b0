"""
Role capabilities.
Decides server-side what each staff role may do with bookings.
"""

from enum import Enum


class Role(str, Enum):
    SUPER_ADMIN = 'SUPER_ADMIN'
    OWNER = 'OWNER'
    ADMIN = 'ADMIN'
    INSTRUCTOR = 'INSTRUCTOR'
    GUEST = 'GUEST'


VIEW = 'bookings.view'
MANAGE = 'bookings.manage'
CREATE_CONFIRMED = 'bookings.create_confirmed'
DISCOUNT = 'bookings.discount'
PAYMENT = 'bookings.payment'

CAPABILITIES = {
    Role.SUPER_ADMIN: {VIEW, MANAGE, CREATE_CONFIRMED, DISCOUNT, PAYMENT},
    Role.OWNER: {VIEW, MANAGE, CREATE_CONFIRMED, DISCOUNT, PAYMENT},
    Role.ADMIN: {VIEW, MANAGE, CREATE_CONFIRMED, PAYMENT},
    Role.INSTRUCTOR: {VIEW, MANAGE, PAYMENT},
    Role.GUEST: set(),
}


def get_role(user) -> Role:
    """Role of a Flask-Login user; anonymous users are guests."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return Role.GUEST
    try:
        return Role(user.role)
    except ValueError:
        return Role.GUEST


def has_capability(user, capability: str) -> bool:
    """
    Check if user has a specific capability.

    Args:
        user: User object (Flask-Login) or None
        capability: Capability code (e.g. 'bookings.manage')

    Returns:
        True if the user's role grants the capability
    """
    return capability in CAPABILITIES[get_role(user)]


def get_capabilities(user) -> list:
    """Sorted capability codes of a user."""
    return sorted(CAPABILITIES[get_role(user)])
