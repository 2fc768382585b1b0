"""
Booking creation.
Validates a booking request, prices it, and hands the interval to the
conflict guard.
"""

import json
import logging
from datetime import timedelta

from flask import current_app

from utils.datetime_helpers import get_now, parse_date, time_to_minutes, minutes_to_time, format_timestamp
from utils.validators import validate_phone, normalize_phone, validate_time_format, sanitize_input
from .availability import lead_hours_for
from .booking_guard import try_reserve, validate_interval
from .booking_queries import count_pending_for_phone, get_booking_by_id
from .catalog import (
    BookingStatus, Category, Subtype, CATEGORY_RULES, SUBTYPE_RULES,
    GROUP_JOIN_DISCOUNT_PERCENT, parse_enum
)
from .exceptions import ValidationError, TooManyPendingError
from .guest import update_guest_statistics
from .pricing import compute_price, validate_discount_percent
from .resource import require_resource, validate_guest_count
from .slots import generate_slots

logger = logging.getLogger(__name__)

SOURCE_GUEST = 'guest'
SOURCE_STAFF = 'staff'


def _resolve_duration(subtype: Subtype, data: dict) -> int:
    """Duration in minutes from durationMinutes/durationHours or the subtype default."""
    rule = SUBTYPE_RULES[subtype]
    minutes = data.get('duration_minutes')
    hours = data.get('duration_hours')

    if minutes is None and hours is not None:
        if isinstance(hours, bool) or not isinstance(hours, (int, float)):
            raise ValidationError('Продолжительность должна быть числом', field='durationHours')
        minutes = hours * 60
        if minutes != int(minutes):
            raise ValidationError('Продолжительность должна быть целым числом минут',
                                  field='durationHours')
        minutes = int(minutes)

    if minutes is None:
        if len(rule.durations) == 1:
            return rule.durations[0]
        raise ValidationError('Укажите продолжительность', field='durationHours')

    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise ValidationError('Продолжительность должна быть целым числом минут',
                              field='durationMinutes')

    max_minutes = CATEGORY_RULES[rule.category].max_duration_minutes
    if minutes not in rule.durations or minutes > max_minutes:
        allowed = ', '.join(str(d) for d in rule.durations)
        raise ValidationError(
            f'Недопустимая продолжительность {minutes} мин. Допустимо: {allowed}',
            field='durationMinutes', allowed=list(rule.durations)
        )
    return minutes


def create_booking(
    data: dict,
    created_by: str = None,
    source: str = SOURCE_GUEST,
    allow_confirmed: bool = False,
    now=None
) -> dict:
    """
    Create a booking.

    Flow:
    1. Validate the request shape (no store access)
    2. Check resource, subtype, capacity and lead time
    3. Compute the price
    4. Reserve atomically (pending limit + blocks + overlap check + insert);
       a quad booking matching a ride already on the books joins it at
       the join discount
    5. Refresh guest statistics

    Args:
        data: {
            resource, subtype, date, start_time, duration_minutes or
            duration_hours, guest_count, add_ons, customer_name,
            customer_phone, customer_external_id, comment,
            discount_percent, status
        }
        created_by: Username (staff) or None for guests
        source: 'guest' or 'staff'
        allow_confirmed: Staff may create directly as confirmed
        now: Current local datetime (default: now in the resort timezone)

    Returns:
        dict: Created booking

    Raises:
        ValidationError: Bad input, capacity, duration or lead time
        InvalidIntervalError: Interval outside hours or off the slot grid
        BlockedIntervalError: Staff closed the day or time
        ConflictError: Interval just taken, or the ride is full
        TooManyPendingError: Phone already holds the maximum pending requests
        NotFoundError: Unknown resource
    """
    now = now or get_now()

    # ---- Shape validation (before any store access)
    booking_date = data.get('date')
    try:
        day = parse_date(booking_date)
    except (TypeError, ValueError):
        raise ValidationError('Дата должна быть в формате YYYY-MM-DD', field='date')
    if day < now.date():
        raise ValidationError('Нельзя забронировать прошедшую дату', field='date')

    start_time = data.get('start_time')
    if not validate_time_format(start_time):
        raise ValidationError('Время начала должно быть в формате HH:MM', field='startTime')

    subtype = parse_enum(Subtype, data.get('subtype'), 'subtype')
    duration = _resolve_duration(subtype, data)
    end_minutes = time_to_minutes(start_time) + duration
    if end_minutes >= 24 * 60:
        raise ValidationError('Бронирование не может переходить на следующий день',
                              field='durationMinutes')
    end_time = minutes_to_time(end_minutes)

    guest_count = data.get('guest_count')
    if isinstance(guest_count, bool) or not isinstance(guest_count, int) or guest_count < 1:
        raise ValidationError('Количество гостей должно быть положительным целым числом',
                              field='guestCount')

    customer_name = sanitize_input(data.get('customer_name'), 120)
    if not customer_name:
        raise ValidationError('Укажите имя', field='customer.fullName')
    phone = data.get('customer_phone')
    if not validate_phone(phone):
        raise ValidationError('Некорректный номер телефона', field='customer.phone')
    phone = normalize_phone(phone)

    discount_percent = validate_discount_percent(data.get('discount_percent') or 0)

    status = BookingStatus.PENDING_CALL
    requested_status = data.get('status')
    if requested_status:
        status = parse_enum(BookingStatus, requested_status, 'status')
        if status not in (BookingStatus.PENDING_CALL, BookingStatus.CONFIRMED):
            raise ValidationError('Новое бронирование может быть только pending_call или confirmed',
                                  field='status')
        if status == BookingStatus.CONFIRMED and not allow_confirmed:
            raise ValidationError('Нет права создавать подтвержденные бронирования', field='status')

    # ---- Resource rules
    resource = require_resource(data.get('resource'))
    category = Category(resource['category'])
    if SUBTYPE_RULES[subtype].category != category:
        raise ValidationError(
            f'Услуга {subtype.value} недоступна для {resource["code"]}', field='subtype'
        )

    validate_interval(resource, start_time, end_time)

    lead_hours = lead_hours_for(category) if source == SOURCE_GUEST else 0
    slots = generate_slots(resource, day, now=now, lead_hours=lead_hours)
    if start_time not in slots:
        raise ValidationError(
            f'Бронирование на сегодня возможно не ранее чем за {lead_hours} ч.'
            if lead_hours else 'Время начала уже прошло',
            field='startTime', lead_hours=lead_hours
        )

    validate_guest_count(resource, subtype.value, guest_count)

    price = compute_price(
        subtype, guest_count, duration / 60,
        add_ons=data.get('add_ons'),
        discount_percent=discount_percent
    )

    hold_until = None
    if source == SOURCE_GUEST and status == BookingStatus.PENDING_CALL:
        hold_minutes = current_app.config.get('PENDING_HOLD_MINUTES', 120)
        hold_until = format_timestamp(now + timedelta(minutes=hold_minutes))

    fields = {
        'duration_minutes': duration,
        'subtype': subtype.value,
        'guest_count': guest_count,
        'add_ons': json.dumps(price['add_ons'], sort_keys=True),
        'price_base': price['base'],
        'price_extra_hours': price['extra_hours_cost'],
        'price_add_ons': price['add_ons_cost'],
        'discount_percent': price['discount_percent'],
        'discount_amount': price['discount_amount'],
        'price_total': price['total'],
        'customer_name': customer_name,
        'customer_phone': phone,
        'customer_external_id': sanitize_input(data.get('customer_external_id'), 64) or None,
        'comment': sanitize_input(data.get('comment'), 1000) or None,
        'status': status.value,
        'source': source,
        'hold_until': hold_until,
        'created_by': created_by or SOURCE_GUEST,
    }

    join_fields = None
    if CATEGORY_RULES[category].group_capacity:
        # Priced up front; the guard applies it only if a ride already exists
        join_price = compute_price(
            subtype, guest_count, duration / 60,
            add_ons=data.get('add_ons'),
            discount_percent=max(discount_percent, GROUP_JOIN_DISCOUNT_PERCENT)
        )
        join_fields = {
            'discount_percent': join_price['discount_percent'],
            'discount_amount': join_price['discount_amount'],
            'price_total': join_price['total'],
        }

    precheck = None
    if source == SOURCE_GUEST:
        max_pending = current_app.config.get('MAX_PENDING_PER_PHONE', 3)

        def precheck(cursor):
            if count_pending_for_phone(cursor, phone) >= max_pending:
                raise TooManyPendingError(
                    f'С этого номера уже есть {max_pending} неподтвержденных заявки',
                    max_pending=max_pending
                )

    booking_id, ticket_number = try_reserve(
        resource, day.isoformat(), start_time, end_time, fields,
        precheck=precheck, join_fields=join_fields
    )

    update_guest_statistics(phone, customer_name)

    logger.info('Booking %s created by %s (%s)', ticket_number, fields['created_by'], status.value)
    return get_booking_by_id(booking_id)
