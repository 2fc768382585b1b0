"""
Booking read queries.
Lookups, listings, ticket numbers, and history used by the write paths
and the API.
"""

import json

from database import get_db
from .catalog import BookingStatus, Category, RELEASING_STATUSES, parse_enum
from .exceptions import NotFoundError


BOOKING_SELECT = '''
    SELECT b.*, r.code as resource_code, r.category as resource_category,
           r.title as resource_title
    FROM bookings b
    JOIN resources r ON b.resource_id = r.id
'''


def _row_to_booking(row) -> dict:
    booking = dict(row)
    booking['add_ons'] = json.loads(booking.get('add_ons') or '{}')
    return booking


# =============================================================================
# TICKET NUMBER GENERATION
# =============================================================================

def generate_ticket_number(booking_date: str, cursor) -> str:
    """
    Generate the next ticket number for a booking date.

    Format: YYMMDDNN where NN is the daily sequence (01, 02, ... 100, ...).
    Must run inside the reserving transaction so the sequence cannot be
    handed out twice.

    Args:
        booking_date: Booking date (YYYY-MM-DD)
        cursor: Cursor of the active write transaction

    Returns:
        str: Ticket number
    """
    date_prefix = booking_date[2:4] + booking_date[5:7] + booking_date[8:10]

    cursor.execute('''
        SELECT MAX(CAST(SUBSTR(ticket_number, 7) AS INTEGER)) as max_seq
        FROM bookings
        WHERE ticket_number LIKE ?
    ''', (f'{date_prefix}%',))

    result = cursor.fetchone()
    next_seq = (result['max_seq'] or 0) + 1
    return f'{date_prefix}{next_seq:02d}'


# =============================================================================
# READ
# =============================================================================

def get_booking_by_id(booking_id: int) -> dict:
    """
    Get booking by ID with resource info.

    Args:
        booking_id: Booking ID

    Returns:
        Booking dict (add_ons decoded) or None if not found
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute(BOOKING_SELECT + ' WHERE b.id = ?', (booking_id,))
    row = cursor.fetchone()
    return _row_to_booking(row) if row else None


def require_booking(booking_id: int) -> dict:
    """
    Get booking by ID or fail.

    Raises:
        NotFoundError: If the booking does not exist
    """
    booking = get_booking_by_id(booking_id)
    if not booking:
        raise NotFoundError('Бронирование не найдено', booking_id=booking_id)
    return booking


def get_booking_by_ticket(ticket_number: str) -> dict:
    """Get booking by ticket number."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute(BOOKING_SELECT + ' WHERE b.ticket_number = ?', (ticket_number,))
    row = cursor.fetchone()
    return _row_to_booking(row) if row else None


def get_occupying_bookings(cursor, resource_id: int, booking_date: str,
                           exclude_booking_id: int = None) -> list:
    """
    Get bookings that still occupy their interval on a resource and date.

    Args:
        cursor: Cursor to read with (caller owns the transaction)
        resource_id: Resource ID
        booking_date: Date (YYYY-MM-DD)
        exclude_booking_id: Booking to leave out (re-validation of itself)

    Returns:
        list: Booking rows ordered by start time
    """
    releasing = [status.value for status in RELEASING_STATUSES]
    placeholders = ','.join('?' * len(releasing))

    query = f'''
        SELECT id, ticket_number, start_time, end_time, subtype, guest_count, status
        FROM bookings
        WHERE resource_id = ?
          AND booking_date = ?
          AND status NOT IN ({placeholders})
    '''
    params = [resource_id, booking_date] + releasing

    if exclude_booking_id:
        query += ' AND id != ?'
        params.append(exclude_booking_id)

    query += ' ORDER BY start_time'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def count_pending_for_phone(cursor, phone: str) -> int:
    """Count pending_call bookings held by a phone number."""
    cursor.execute('''
        SELECT COUNT(*) as pending FROM bookings
        WHERE customer_phone = ? AND status = ?
    ''', (phone, BookingStatus.PENDING_CALL.value))
    return cursor.fetchone()['pending']


def get_bookings_filtered(
    booking_date: str = None,
    status: str = None,
    category: str = None,
    resource_code: str = None,
    phone: str = None,
    limit: int = 200
) -> list:
    """
    List bookings with optional filters.

    Args:
        booking_date: Exact date (YYYY-MM-DD)
        status: Status value
        category: 'spa', 'bath' or 'quad'
        resource_code: Resource code
        phone: Normalized customer phone
        limit: Maximum rows

    Returns:
        list: Booking dicts ordered by date and start time
    """
    db = get_db()
    cursor = db.cursor()

    query = BOOKING_SELECT + ' WHERE 1=1'
    params = []

    if booking_date:
        query += ' AND b.booking_date = ?'
        params.append(booking_date)

    if status:
        query += ' AND b.status = ?'
        params.append(parse_enum(BookingStatus, status, 'status').value)

    if category:
        query += ' AND r.category = ?'
        params.append(parse_enum(Category, category, 'category').value)

    if resource_code:
        query += ' AND r.code = ?'
        params.append(resource_code)

    if phone:
        query += ' AND b.customer_phone = ?'
        params.append(phone)

    query += ' ORDER BY b.booking_date, b.start_time, r.display_order LIMIT ?'
    params.append(limit)

    cursor.execute(query, params)
    return [_row_to_booking(row) for row in cursor.fetchall()]


def get_booking_history(booking_id: int) -> list:
    """
    Get the audit trail of a booking.

    Args:
        booking_id: Booking ID

    Returns:
        list: History entries, oldest first
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT * FROM booking_history
        WHERE booking_id = ?
        ORDER BY id
    ''', (booking_id,))
    return [dict(r) for r in cursor.fetchall()]


def record_history(cursor, booking_id: int, action: str, from_status: str = None,
                   to_status: str = None, changed_by: str = None, notes: str = '') -> None:
    """Append an audit entry inside the caller's transaction."""
    cursor.execute('''
        INSERT INTO booking_history
        (booking_id, action, from_status, to_status, changed_by, notes)
        VALUES (?, ?, ?, ?, ?, ?)
    ''', (booking_id, action, from_status, to_status, changed_by or 'system', notes))


def bump_availability_version(cursor, resource_id: int, booking_date: str) -> None:
    """
    Mark availability of a resource/date as changed.

    Runs in the same transaction as the booking write so cached reads can
    never observe the new bookings with the old version.
    """
    cursor.execute('''
        INSERT INTO availability_versions (resource_id, booking_date, version)
        VALUES (?, ?, 1)
        ON CONFLICT(resource_id, booking_date) DO UPDATE SET version = version + 1
    ''', (resource_id, booking_date))
