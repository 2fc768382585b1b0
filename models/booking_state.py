"""
Booking state management functions.
Handles status transitions, payment closing, discounts, and hold expiry.

Every write re-reads the booking inside a BEGIN IMMEDIATE transaction and
updates it with a compare-and-set on the status it read, so two staff
members acting on the same booking cannot both succeed.
"""

import logging

from database import get_db
from utils.datetime_helpers import get_now, format_timestamp, time_to_minutes
from .booking_guard import ensure_interval_free
from .booking_queries import get_booking_by_id, record_history, bump_availability_version
from .catalog import BookingStatus, PaymentMethod, TERMINAL_STATUSES, parse_enum
from .exceptions import IllegalTransitionError, NotFoundError
from .guest import update_guest_statistics
from .pricing import reprice, validate_discount_percent
from .resource import get_resource_by_id

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

VALID_TRANSITIONS = {
    BookingStatus.PENDING_CALL: {
        BookingStatus.CONFIRMED,
        BookingStatus.CANCELLED,
        BookingStatus.EXPIRED,
    },
    BookingStatus.CONFIRMED: {
        BookingStatus.CANCELLED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    },
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
    BookingStatus.NO_SHOW: set(),
    BookingStatus.EXPIRED: set(),
}

STATUS_LABELS = {
    BookingStatus.PENDING_CALL: 'Ожидает звонка',
    BookingStatus.CONFIRMED: 'Подтверждено',
    BookingStatus.COMPLETED: 'Завершено',
    BookingStatus.CANCELLED: 'Отменено',
    BookingStatus.NO_SHOW: 'Неявка',
    BookingStatus.EXPIRED: 'Истекло',
}


# =============================================================================
# TRANSITION TABLE
# =============================================================================

def get_valid_transitions() -> dict:
    """Full transition matrix as {status: [allowed next statuses]}."""
    return {
        status.value: sorted(target.value for target in targets)
        for status, targets in VALID_TRANSITIONS.items()
    }


def get_allowed_transitions(status) -> list:
    """Statuses reachable from status in one step."""
    status = parse_enum(BookingStatus, status, 'status')
    return sorted(target.value for target in VALID_TRANSITIONS[status])


def validate_transition(current_status, new_status) -> None:
    """
    Check a status change against the transition table.

    Raises:
        IllegalTransitionError: If the pair is not in the table
    """
    current = BookingStatus(current_status)
    new = BookingStatus(new_status)
    if new not in VALID_TRANSITIONS[current]:
        logger.warning('Illegal transition %s -> %s', current.value, new.value)
        raise IllegalTransitionError(
            f'Переход {STATUS_LABELS[current]} -> {STATUS_LABELS[new]} невозможен',
            from_status=current.value,
            to_status=new.value,
            allowed=get_allowed_transitions(current)
        )


# =============================================================================
# STATE TRANSITIONS
# =============================================================================

def _load_for_update(cursor, booking_id: int) -> dict:
    cursor.execute('SELECT * FROM bookings WHERE id = ?', (booking_id,))
    row = cursor.fetchone()
    if not row:
        raise NotFoundError('Бронирование не найдено', booking_id=booking_id)
    return dict(row)


def _require_started(booking: dict, now) -> None:
    """Completion and no-show are only decided on the day, once the slot began."""
    today = now.date().isoformat()
    started = now.hour * 60 + now.minute >= time_to_minutes(booking['start_time'])
    if booking['booking_date'] != today or not started:
        raise IllegalTransitionError(
            'Отметить можно только в день бронирования после его начала',
            booking_date=booking['booking_date'],
            start_time=booking['start_time']
        )


def _change_status(
    booking_id: int,
    new_status: BookingStatus,
    changed_by: str,
    notes: str = '',
    check=None
) -> dict:
    """
    Apply one status transition.

    Behavior:
    1. Re-reads status inside BEGIN IMMEDIATE
    2. Validates against VALID_TRANSITIONS
    3. Runs the optional check(cursor, booking)
    4. Updates with compare-and-set on the read status
    5. Records history and bumps the availability version
    6. Refreshes guest statistics after commit

    Returns:
        dict: Updated booking
    """
    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        booking = _load_for_update(cursor, booking_id)
        old_status = booking['status']
        validate_transition(old_status, new_status)

        if check:
            check(cursor, booking)

        cursor.execute('''
            UPDATE bookings
            SET status = ?,
                hold_until = NULL,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND status = ?
        ''', (new_status.value, booking_id, old_status))

        if cursor.rowcount != 1:
            raise IllegalTransitionError(
                'Статус бронирования изменился, обновите данные',
                from_status=old_status, to_status=new_status.value
            )

        record_history(cursor, booking_id, 'status', old_status, new_status.value, changed_by, notes)
        bump_availability_version(cursor, booking['resource_id'], booking['booking_date'])

        db.commit()

    except Exception:
        db.rollback()
        raise

    logger.info('Booking %s: %s -> %s by %s', booking['ticket_number'], old_status,
                new_status.value, changed_by)

    update_guest_statistics(booking['customer_phone'])

    return get_booking_by_id(booking_id)


def accept_booking(booking_id: int, changed_by: str, notes: str = '') -> dict:
    """
    Confirm a pending booking after the staff call.

    The interval is re-validated by the conflict guard inside the same
    transaction, excluding the booking itself.

    Raises:
        IllegalTransitionError: Not pending_call
        ConflictError: Another booking now occupies the interval
    """
    def check(cursor, booking):
        resource = get_resource_by_id(booking['resource_id'])
        ensure_interval_free(
            cursor, resource, booking['booking_date'],
            booking['start_time'], booking['end_time'],
            exclude_booking_id=booking['id'],
            subtype=booking['subtype'], guest_count=booking['guest_count']
        )

    return _change_status(booking_id, BookingStatus.CONFIRMED, changed_by, notes, check)


def cancel_booking(booking_id: int, changed_by: str, notes: str = '') -> dict:
    """Cancel a pending or confirmed booking. Frees the interval immediately."""
    return _change_status(booking_id, BookingStatus.CANCELLED, changed_by, notes)


def complete_booking(booking_id: int, changed_by: str, notes: str = '', now=None) -> dict:
    """Mark a confirmed booking as completed (same day, at or after start)."""
    now = now or get_now()
    return _change_status(
        booking_id, BookingStatus.COMPLETED, changed_by, notes,
        lambda cursor, booking: _require_started(booking, now)
    )


def mark_no_show(booking_id: int, changed_by: str, notes: str = '', now=None) -> dict:
    """Mark a confirmed booking as no-show (same day, at or after start)."""
    now = now or get_now()
    return _change_status(
        booking_id, BookingStatus.NO_SHOW, changed_by, notes,
        lambda cursor, booking: _require_started(booking, now)
    )


def expire_stale_bookings(now=None) -> list:
    """
    Expire pending bookings whose hold window has elapsed.

    Args:
        now: Current local datetime

    Returns:
        list: Ticket numbers that were expired
    """
    now = now or get_now()
    cutoff = format_timestamp(now)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        cursor.execute('''
            SELECT id, ticket_number, resource_id, booking_date, customer_phone
            FROM bookings
            WHERE status = ?
              AND hold_until IS NOT NULL
              AND hold_until <= ?
            ORDER BY id
        ''', (BookingStatus.PENDING_CALL.value, cutoff))
        stale = [dict(row) for row in cursor.fetchall()]

        for booking in stale:
            cursor.execute('''
                UPDATE bookings
                SET status = ?, hold_until = NULL, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status = ?
            ''', (BookingStatus.EXPIRED.value, booking['id'], BookingStatus.PENDING_CALL.value))
            record_history(
                cursor, booking['id'], 'status',
                BookingStatus.PENDING_CALL.value, BookingStatus.EXPIRED.value,
                'system', 'Истекло время ожидания звонка'
            )
            bump_availability_version(cursor, booking['resource_id'], booking['booking_date'])

        db.commit()

    except Exception:
        db.rollback()
        raise

    for phone in {booking['customer_phone'] for booking in stale}:
        update_guest_statistics(phone)

    if stale:
        logger.info('Expired %d stale holds', len(stale))
    return [booking['ticket_number'] for booking in stale]


# =============================================================================
# PAYMENT & DISCOUNT
# =============================================================================

def close_payment(booking_id: int, method, changed_by: str, now=None) -> dict:
    """
    Record how a confirmed booking was paid.

    Not a status change: the booking stays confirmed.

    Raises:
        ValidationError: Unknown payment method
        IllegalTransitionError: Not confirmed or already paid
    """
    method = parse_enum(PaymentMethod, method, 'method')
    paid_at = format_timestamp(now or get_now())

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        booking = _load_for_update(cursor, booking_id)
        if booking['status'] != BookingStatus.CONFIRMED.value or booking['paid_at']:
            raise IllegalTransitionError(
                'Оплату можно закрыть только у подтвержденного неоплаченного бронирования',
                status=booking['status'], paid_at=booking['paid_at']
            )

        cursor.execute('''
            UPDATE bookings
            SET payment_method = ?, paid_at = ?, updated_at = CURRENT_TIMESTAMP
            WHERE id = ? AND paid_at IS NULL
        ''', (method.value, paid_at, booking_id))

        record_history(cursor, booking_id, 'payment', changed_by=changed_by,
                       notes=f'{method.value}: {booking["price_total"]} BYN')

        db.commit()

    except Exception:
        db.rollback()
        raise

    return get_booking_by_id(booking_id)


def apply_discount(booking_id: int, discount_percent, changed_by: str) -> dict:
    """
    Re-price a non-terminal booking with a new discount.

    Raises:
        ValidationError: Discount outside [0, 100]
        IllegalTransitionError: Booking is already terminal
    """
    discount_percent = validate_discount_percent(discount_percent)

    db = get_db()
    cursor = db.cursor()

    try:
        cursor.execute('BEGIN IMMEDIATE')

        booking = _load_for_update(cursor, booking_id)
        if BookingStatus(booking['status']) in TERMINAL_STATUSES:
            raise IllegalTransitionError(
                'Скидку нельзя изменить у завершенного бронирования',
                status=booking['status']
            )

        price = reprice(booking, discount_percent)

        cursor.execute('''
            UPDATE bookings
            SET discount_percent = ?,
                discount_amount = ?,
                price_total = ?,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
        ''', (price['discount_percent'], price['discount_amount'], price['total'], booking_id))

        record_history(
            cursor, booking_id, 'discount', changed_by=changed_by,
            notes=f'{booking["discount_percent"]}% -> {price["discount_percent"]}%, '
                  f'итого {price["total"]} BYN'
        )

        db.commit()

    except Exception:
        db.rollback()
        raise

    logger.info('Booking %s discount set to %s%% by %s', booking['ticket_number'],
                discount_percent, changed_by)
    return get_booking_by_id(booking_id)
