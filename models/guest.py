"""
Guest profile statistics.
Profiles are keyed by normalized phone number and recalculated from the
bookings table after every booking write.
"""

import logging

from database import get_db

logger = logging.getLogger(__name__)


def get_guest_by_phone(phone: str) -> dict:
    """
    Get guest profile by normalized phone.

    Args:
        phone: Normalized phone ('+<digits>')

    Returns:
        Guest dict or None if the phone never booked
    """
    db = get_db()
    cursor = db.cursor()
    cursor.execute('SELECT * FROM guests WHERE phone = ?', (phone,))
    row = cursor.fetchone()
    return dict(row) if row else None


def update_guest_statistics(phone: str, full_name: str = None) -> bool:
    """
    Recalculate guest statistics from bookings.

    Calculates:
    - total_bookings: Bookings excluding cancelled/no-show/expired
    - completed: Bookings marked completed
    - no_shows: Bookings marked no_show
    - cancellations: Bookings cancelled
    - last_visit: Most recent completed booking date

    Statistics are a side effect of booking writes; a failure here is
    logged and never undoes the booking itself.

    Args:
        phone: Normalized phone
        full_name: Latest name the guest gave (optional)

    Returns:
        bool: Success status
    """
    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('''
            SELECT
                SUM(CASE WHEN status NOT IN ('cancelled', 'no_show', 'expired') THEN 1 ELSE 0 END) as total,
                SUM(CASE WHEN status = 'completed' THEN 1 ELSE 0 END) as completed,
                SUM(CASE WHEN status = 'no_show' THEN 1 ELSE 0 END) as no_shows,
                SUM(CASE WHEN status = 'cancelled' THEN 1 ELSE 0 END) as cancellations,
                MAX(CASE WHEN status = 'completed' THEN booking_date END) as last_visit
            FROM bookings
            WHERE customer_phone = ?
        ''', (phone,))
        stats = cursor.fetchone()

        cursor.execute('''
            INSERT INTO guests (phone, full_name, total_bookings, completed,
                                no_shows, cancellations, last_visit, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(phone) DO UPDATE SET
                full_name = COALESCE(excluded.full_name, guests.full_name),
                total_bookings = excluded.total_bookings,
                completed = excluded.completed,
                no_shows = excluded.no_shows,
                cancellations = excluded.cancellations,
                last_visit = excluded.last_visit,
                updated_at = CURRENT_TIMESTAMP
        ''', (
            phone, full_name,
            stats['total'] or 0, stats['completed'] or 0,
            stats['no_shows'] or 0, stats['cancellations'] or 0,
            stats['last_visit']
        ))

        db.commit()
        return True

    except Exception:
        db.rollback()
        logger.warning('Guest statistics update failed for %s', phone, exc_info=True)
        return False
