"""
Resource data access functions.
Bookable physical assets (SPA complexes, bath units, the quad fleet) and
their per-subtype capacity bounds.
"""

from database import get_db
from .catalog import Category, parse_enum
from .exceptions import NotFoundError, ValidationError


def get_all_resources(category: str = None, active_only: bool = True) -> list:
    """
    Get resources, optionally filtered by category.

    Args:
        category: 'spa', 'bath' or 'quad' (optional)
        active_only: If True, skip retired resources

    Returns:
        List of resource dicts ordered by display_order
    """
    db = get_db()
    cursor = db.cursor()

    query = 'SELECT * FROM resources WHERE 1=1'
    params = []

    if category:
        query += ' AND category = ?'
        params.append(parse_enum(Category, category, 'category').value)

    if active_only:
        query += ' AND active = 1'

    query += ' ORDER BY display_order, code'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def get_resource_by_id(resource_id: int) -> dict:
    """
    Get resource by ID.

    Args:
        resource_id: Resource ID

    Returns:
        Resource dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM resources WHERE id = ?', (resource_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_resource_by_code(code: str) -> dict:
    """
    Get resource by its unique code (e.g. 'SPA1').

    Args:
        code: Resource code

    Returns:
        Resource dict or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM resources WHERE code = ?', (code,))
    row = cursor.fetchone()
    return dict(row) if row else None


def require_resource(code: str) -> dict:
    """
    Get an active resource by code or fail.

    Raises:
        NotFoundError: If missing or retired
    """
    resource = get_resource_by_code(code) if code else None
    if not resource or not resource['active']:
        raise NotFoundError(f'Ресурс {code} не найден', resource=code)
    return resource


def get_capacity(resource_id: int, subtype: str) -> dict:
    """
    Get guest bounds for a subtype on a resource.

    Args:
        resource_id: Resource ID
        subtype: Subtype value

    Returns:
        dict with min_guests/max_guests, or None if the resource does not
        offer the subtype
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT min_guests, max_guests FROM resource_capacities
        WHERE resource_id = ? AND subtype = ?
    ''', (resource_id, subtype))
    row = cursor.fetchone()
    return dict(row) if row else None


def get_capacities(resource_id: int) -> dict:
    """All capacity bounds of a resource as {subtype: {min_guests, max_guests}}."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT subtype, min_guests, max_guests FROM resource_capacities
        WHERE resource_id = ?
        ORDER BY id
    ''', (resource_id,))
    return {
        row['subtype']: {'min_guests': row['min_guests'], 'max_guests': row['max_guests']}
        for row in cursor.fetchall()
    }


def validate_guest_count(resource: dict, subtype: str, guest_count) -> None:
    """
    Check that guest_count fits the bounds of subtype on resource.

    Raises:
        ValidationError: If the subtype is not offered or the count is out of bounds
    """
    capacity = get_capacity(resource['id'], subtype)
    if capacity is None:
        raise ValidationError(
            f'Услуга {subtype} недоступна для {resource["code"]}', field='subtype'
        )

    if isinstance(guest_count, bool) or not isinstance(guest_count, int):
        raise ValidationError('Количество гостей должно быть целым числом', field='guestCount')

    if not capacity['min_guests'] <= guest_count <= capacity['max_guests']:
        raise ValidationError(
            f'Количество гостей для {resource["code"]} ({subtype}): '
            f'от {capacity["min_guests"]} до {capacity["max_guests"]}',
            field='guestCount',
            min_guests=capacity['min_guests'],
            max_guests=capacity['max_guests']
        )
