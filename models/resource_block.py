"""
Resource blocks.
Days and hours staff close a resource for (instructor off, maintenance).
A block without start_time closes the whole day; one without end_time
lasts until closing.
"""

import logging

from database import get_db
from utils.datetime_helpers import parse_date, time_to_minutes
from utils.validators import validate_time_format, sanitize_input
from .booking_queries import bump_availability_version
from .exceptions import BlockedIntervalError, NotFoundError, ValidationError
from .resource import get_resource_by_id, require_resource

logger = logging.getLogger(__name__)


# =============================================================================
# READ
# =============================================================================

def get_blocks(cursor, resource_id: int, block_date: str) -> list:
    """Blocks of a resource on a date, in the caller's transaction."""
    cursor.execute('''
        SELECT * FROM resource_blocks
        WHERE resource_id = ? AND block_date = ?
        ORDER BY start_time
    ''', (resource_id, block_date))
    return [dict(row) for row in cursor.fetchall()]


def block_intervals(resource: dict, blocks: list) -> list:
    """
    Closed intervals of the day in minutes.

    Returns:
        list: [(start, end), ...]
    """
    open_minutes = time_to_minutes(resource['open_time'])
    close_minutes = time_to_minutes(resource['close_time'])

    intervals = []
    for block in blocks:
        if not block['start_time']:
            intervals.append((open_minutes, close_minutes))
            continue
        end = time_to_minutes(block['end_time']) if block['end_time'] else close_minutes
        intervals.append((time_to_minutes(block['start_time']), end))
    return intervals


def ensure_not_blocked(cursor, resource: dict, booking_date: str, start: int, end: int) -> None:
    """
    Reject an interval that touches a closed day or hour.

    Raises:
        BlockedIntervalError: If any block overlaps [start, end)
    """
    for block in get_blocks(cursor, resource['id'], booking_date):
        block_start, block_end = block_intervals(resource, [block])[0]
        if start < block_end and block_start < end:
            raise BlockedIntervalError(
                block['reason'] or 'Это время закрыто для бронирования',
                resource=resource['code'], date=booking_date,
                block_id=block['id']
            )


def list_blocks(resource_code: str = None, date_from: str = None, date_to: str = None) -> list:
    """
    List blocks, optionally filtered by resource and date range.

    Returns:
        list: Block dicts with resource_code
    """
    db = get_db()
    cursor = db.cursor()

    query = '''
        SELECT rb.*, r.code as resource_code
        FROM resource_blocks rb
        JOIN resources r ON rb.resource_id = r.id
        WHERE 1=1
    '''
    params = []

    if resource_code:
        query += ' AND r.code = ?'
        params.append(resource_code)

    if date_from:
        query += ' AND rb.block_date >= ?'
        params.append(date_from)

    if date_to:
        query += ' AND rb.block_date <= ?'
        params.append(date_to)

    query += ' ORDER BY rb.block_date, rb.start_time, r.display_order'

    cursor.execute(query, params)
    return [dict(row) for row in cursor.fetchall()]


def get_block_by_id(block_id: int) -> dict:
    """Get block by ID or None."""
    db = get_db()
    cursor = db.cursor()
    cursor.execute('''
        SELECT rb.*, r.code as resource_code
        FROM resource_blocks rb
        JOIN resources r ON rb.resource_id = r.id
        WHERE rb.id = ?
    ''', (block_id,))
    row = cursor.fetchone()
    return dict(row) if row else None


# =============================================================================
# WRITE
# =============================================================================

def _validate_block_times(resource: dict, start_time, end_time) -> None:
    if start_time is None and end_time is not None:
        raise ValidationError('Укажите время начала закрытия', field='startTime')

    for field, value in (('startTime', start_time), ('endTime', end_time)):
        if value is not None and not validate_time_format(value):
            raise ValidationError('Время должно быть в формате HH:MM', field=field)

    if start_time is None:
        return

    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time) if end_time else time_to_minutes(resource['close_time'])
    if start >= end:
        raise ValidationError('Время окончания должно быть позже начала', field='endTime')


def add_block(resource_code: str, block_date, start_time: str = None, end_time: str = None,
              reason: str = '', created_by: str = None) -> dict:
    """
    Close a resource for a whole day or part of it.

    Bookings already holding the time stay as they are; staff call those
    guests themselves.

    Args:
        resource_code: Resource code (e.g. 'QUADS')
        block_date: 'YYYY-MM-DD'
        start_time: 'HH:MM' or None for the whole day
        end_time: 'HH:MM' or None for "until closing"
        reason: Shown to guests who try to book the time
        created_by: Staff username

    Returns:
        dict: Created block

    Raises:
        ValidationError: Bad date or times
        NotFoundError: Unknown resource
    """
    try:
        day = parse_date(block_date)
    except (TypeError, ValueError):
        raise ValidationError('Дата должна быть в формате YYYY-MM-DD', field='date')

    start_time = start_time or None
    end_time = end_time or None
    resource = require_resource(resource_code)
    _validate_block_times(resource, start_time, end_time)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        cursor.execute('''
            INSERT INTO resource_blocks
            (resource_id, block_date, start_time, end_time, reason, created_by)
            VALUES (?, ?, ?, ?, ?, ?)
        ''', (resource['id'], day.isoformat(), start_time, end_time,
              sanitize_input(reason, 200) or None, created_by))
        block_id = cursor.lastrowid

        bump_availability_version(cursor, resource['id'], day.isoformat())

        db.commit()

    except Exception:
        db.rollback()
        raise

    logger.info('%s closed on %s %s-%s by %s', resource['code'], day.isoformat(),
                start_time or 'open', end_time or 'close', created_by)
    return get_block_by_id(block_id)


def remove_block(block_id: int, removed_by: str = None) -> None:
    """
    Reopen a closed day or hour.

    Raises:
        NotFoundError: If the block does not exist
    """
    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        cursor.execute('SELECT * FROM resource_blocks WHERE id = ?', (block_id,))
        block = cursor.fetchone()
        if not block:
            raise NotFoundError('Закрытие не найдено', block_id=block_id)

        cursor.execute('DELETE FROM resource_blocks WHERE id = ?', (block_id,))
        bump_availability_version(cursor, block['resource_id'], block['block_date'])

        db.commit()

    except Exception:
        db.rollback()
        raise

    resource = get_resource_by_id(block['resource_id'])
    logger.info('%s reopened on %s by %s', resource['code'], block['block_date'], removed_by)
