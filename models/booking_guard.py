"""
Conflict guard.

Check-and-insert of booking intervals as one atomic step. Every booking
write that can occupy an interval goes through here under SQLite's
single-writer lock (BEGIN IMMEDIATE), so two overlapping bookings on the
same resource can never both commit. The one exception is a shared ride:
bookings with the same interval and subtype on a quad fleet ride together
while their units fit the fleet.
"""

import logging

from database import get_db
from utils.datetime_helpers import time_to_minutes
from .booking_queries import (
    generate_ticket_number, get_occupying_bookings,
    record_history, bump_availability_version
)
from .catalog import CATEGORY_RULES, Category
from .exceptions import ConflictError, InvalidIntervalError
from .resource_block import ensure_not_blocked

logger = logging.getLogger(__name__)


# Columns a caller may set on a new booking
BOOKING_FIELDS = (
    'duration_minutes', 'subtype', 'guest_count', 'add_ons',
    'price_base', 'price_extra_hours', 'price_add_ons',
    'discount_percent', 'discount_amount', 'price_total',
    'customer_name', 'customer_phone', 'customer_external_id', 'comment',
    'status', 'source', 'hold_until', 'joined_group', 'created_by',
)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int, buffer: int = 0) -> bool:
    """
    Half-open interval overlap with a turnaround buffer.

    [start_a, end_a) and [start_b, end_b) conflict iff
    start_a < end_b + buffer and start_b < end_a + buffer.
    With buffer 0, back-to-back intervals do not conflict.
    """
    return start_a < end_b + buffer and start_b < end_a + buffer


def validate_interval(resource: dict, start_time: str, end_time: str) -> tuple:
    """
    Check that an interval can ever be booked on a resource.

    Args:
        resource: Resource dict
        start_time: 'HH:MM'
        end_time: 'HH:MM'

    Returns:
        tuple: (start, end) in minutes since midnight

    Raises:
        InvalidIntervalError: Malformed, reversed, outside operating hours,
            or not aligned to the resource's slot grid
    """
    try:
        start = time_to_minutes(start_time)
        end = time_to_minutes(end_time)
    except (TypeError, ValueError):
        raise InvalidIntervalError('Некорректное время', start_time=start_time, end_time=end_time)

    if start >= end:
        raise InvalidIntervalError(
            'Время окончания должно быть позже начала',
            start_time=start_time, end_time=end_time
        )

    open_minutes = time_to_minutes(resource['open_time'])
    close_minutes = time_to_minutes(resource['close_time'])
    if start < open_minutes or end > close_minutes:
        raise InvalidIntervalError(
            f'{resource["code"]} работает с {resource["open_time"]} до {resource["close_time"]}',
            start_time=start_time, end_time=end_time
        )

    if (start - open_minutes) % resource['granularity_minutes']:
        raise InvalidIntervalError(
            f'Начало должно совпадать с сеткой {resource["granularity_minutes"]} мин',
            start_time=start_time
        )

    return start, end


def group_capacity_for(resource: dict) -> int:
    """Units a shared ride holds on a resource, or None if bookings never share."""
    return CATEGORY_RULES[Category(resource['category'])].group_capacity


def split_ride(resource: dict, bookings: list, start: int, end: int, subtype: str = None) -> tuple:
    """
    Separate bookings riding together with [start, end) from the rest.

    A ride is the bookings with exactly the same interval and subtype on a
    resource whose category shares rides. Elsewhere nothing rides together.

    Returns:
        tuple: (ride, others)
    """
    if not subtype or not group_capacity_for(resource):
        return [], list(bookings)

    ride, others = [], []
    for booking in bookings:
        same_ride = (
            booking['subtype'] == subtype
            and time_to_minutes(booking['start_time']) == start
            and time_to_minutes(booking['end_time']) == end
        )
        (ride if same_ride else others).append(booking)
    return ride, others


def find_conflicts(cursor, resource: dict, booking_date: str, start: int, end: int,
                   exclude_booking_id: int = None) -> list:
    """
    Find bookings that collide with [start, end) on a resource/date.

    Bookings in a releasing status are ignored. The resource's buffer is
    applied on both sides. Shared rides are not resolved here, see
    ensure_interval_free.

    Args:
        cursor: Cursor inside the caller's transaction
        resource: Resource dict
        booking_date: Date (YYYY-MM-DD)
        start: Start in minutes
        end: End in minutes
        exclude_booking_id: Booking to ignore (re-validation of itself)

    Returns:
        list: Conflicting booking rows
    """
    buffer = resource.get('buffer_minutes') or 0
    occupying = get_occupying_bookings(cursor, resource['id'], booking_date, exclude_booking_id)

    return [
        booking for booking in occupying
        if intervals_overlap(
            start, end,
            time_to_minutes(booking['start_time']), time_to_minutes(booking['end_time']),
            buffer
        )
    ]


def ensure_interval_free(cursor, resource: dict, booking_date: str, start_time: str,
                         end_time: str, exclude_booking_id: int = None,
                         subtype: str = None, guest_count: int = 0) -> list:
    """
    Re-validate an interval inside the caller's write transaction.

    With a subtype on a shared-ride resource, bookings of the same ride do
    not conflict as long as their units plus guest_count fit the ride.

    Returns:
        list: Bookings of the ride being joined (empty for a new ride)

    Raises:
        BlockedIntervalError: Staff closed part of the interval
        ConflictError: Another occupying booking overlaps, or the ride is full
    """
    start = time_to_minutes(start_time)
    end = time_to_minutes(end_time)

    ensure_not_blocked(cursor, resource, booking_date, start, end)

    conflicts = find_conflicts(cursor, resource, booking_date, start, end, exclude_booking_id)
    ride, others = split_ride(resource, conflicts, start, end, subtype)

    if ride and not others:
        capacity = group_capacity_for(resource)
        taken = sum(booking['guest_count'] for booking in ride)
        if taken + (guest_count or 0) <= capacity:
            return ride

        logger.info('Ride %s %s on %s is full (%d of %d)', booking_date, start_time,
                    resource['code'], taken, capacity)
        raise ConflictError(
            f'В этом заезде осталось мест: {capacity - taken}',
            resource=resource['code'], date=booking_date,
            start_time=start_time, end_time=end_time,
            available_quads=capacity - taken
        )

    if conflicts:
        logger.info('Interval %s %s-%s on %s is taken by %s', booking_date, start_time,
                    end_time, resource['code'], [c['ticket_number'] for c in conflicts])
        raise ConflictError(
            'Это время только что заняли. Обновите доступность и выберите другое',
            resource=resource['code'], date=booking_date,
            start_time=start_time, end_time=end_time
        )

    return []


def try_reserve(
    resource: dict,
    booking_date: str,
    start_time: str,
    end_time: str,
    fields: dict,
    precheck=None,
    join_fields: dict = None
) -> tuple:
    """
    Atomically verify an interval is free and insert the booking.

    The overlap check, ticket numbering, insert, history entry and
    availability version bump all happen in one BEGIN IMMEDIATE
    transaction.

    Args:
        resource: Resource dict
        booking_date: Date (YYYY-MM-DD)
        start_time: 'HH:MM'
        end_time: 'HH:MM'
        fields: Column values from BOOKING_FIELDS
        precheck: Optional callable(cursor) run inside the transaction
            before the overlap check; raises to abort
        join_fields: Column values that replace fields when the booking
            joins a ride already on the books

    Returns:
        tuple: (booking_id, ticket_number)

    Raises:
        InvalidIntervalError: Interval can never be booked (no store access)
        BlockedIntervalError: Staff closed part of the interval
        ConflictError: Interval overlaps an occupying booking
    """
    validate_interval(resource, start_time, end_time)

    unknown = (set(fields) | set(join_fields or {})) - set(BOOKING_FIELDS)
    if unknown:
        raise ValueError(f'Unknown booking fields: {sorted(unknown)}')

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        if precheck:
            precheck(cursor)

        ride = ensure_interval_free(
            cursor, resource, booking_date, start_time, end_time,
            subtype=fields.get('subtype'), guest_count=fields.get('guest_count') or 0
        )
        if ride:
            fields = {**fields, 'joined_group': 1, **(join_fields or {})}

        ticket_number = generate_ticket_number(booking_date, cursor)

        columns = ['ticket_number', 'resource_id', 'booking_date', 'start_time', 'end_time']
        values = [ticket_number, resource['id'], booking_date, start_time, end_time]
        for column in BOOKING_FIELDS:
            if column in fields:
                columns.append(column)
                values.append(fields[column])

        placeholders = ', '.join('?' * len(values))
        cursor.execute(f'''
            INSERT INTO bookings ({', '.join(columns)}, created_at, updated_at)
            VALUES ({placeholders}, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
        ''', values)

        booking_id = cursor.lastrowid

        notes = f'{resource["code"]} {booking_date} {start_time}-{end_time}'
        if ride:
            notes += f', заезд с {", ".join(b["ticket_number"] for b in ride)}'
        record_history(
            cursor, booking_id, 'created',
            to_status=fields.get('status'),
            changed_by=fields.get('created_by'),
            notes=notes
        )
        bump_availability_version(cursor, resource['id'], booking_date)

        db.commit()

        logger.info('Reserved %s %s %s-%s as %s', resource['code'], booking_date,
                    start_time, end_time, ticket_number)
        return booking_id, ticket_number

    except Exception:
        db.rollback()
        raise
