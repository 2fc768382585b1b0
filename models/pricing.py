"""
Pricing calculator.

Pure functions: the price of a booking depends only on the arguments, never
on the clock or the database. Money is integer BYN.
"""

import json
import math
from decimal import Decimal, ROUND_HALF_UP

from .catalog import (
    AddOn, Subtype, SUBTYPE_RULES, ADD_ON_PRICES, EXTRA_HOUR_PRICE, parse_enum
)
from .exceptions import ValidationError


def round_half_up(value) -> int:
    """Round to the nearest currency unit, halves away from zero."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def validate_discount_percent(value) -> float:
    """
    Check a discount percentage.

    Out-of-range values are rejected, never clamped, so the owner sees
    the mistake instead of a silently different price.

    Args:
        value: Raw value from the caller

    Returns:
        The value as int or float

    Raises:
        ValidationError: If not a number or outside [0, 100]
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError('Скидка должна быть числом от 0 до 100%', field='discountPercent')
    if math.isnan(value) or value < 0 or value > 100:
        raise ValidationError('Скидка должна быть от 0 до 100%', field='discountPercent')
    return value


def normalize_add_ons(add_ons) -> dict:
    """
    Normalize requested add-ons to {AddOn: quantity}.

    Accepts a mapping of key to bool or non-negative int, or a list of keys.
    Keys that are not in the catalog are dropped so older clients and newer
    servers stay compatible.

    Raises:
        ValidationError: On negative or non-numeric quantities
    """
    if not add_ons:
        return {}

    if isinstance(add_ons, (list, tuple)):
        add_ons = {key: 1 for key in add_ons}
    elif not isinstance(add_ons, dict):
        raise ValidationError('Дополнительные услуги должны быть объектом или списком', field='addOns')

    normalized = {}
    for key, quantity in add_ons.items():
        try:
            add_on = AddOn(key)
        except ValueError:
            continue

        if isinstance(quantity, bool):
            quantity = int(quantity)
        elif not isinstance(quantity, int):
            raise ValidationError(f'Неверное количество для {key}', field='addOns')
        if quantity < 0:
            raise ValidationError(f'Количество для {key} не может быть отрицательным', field='addOns')

        if quantity:
            normalized[add_on] = normalized.get(add_on, 0) + quantity

    return normalized


def compute_price(
    subtype,
    guest_count: int,
    duration_hours,
    add_ons=None,
    discount_percent=0,
    rules: dict = None,
    add_on_prices: dict = None,
    extra_hour_price: int = EXTRA_HOUR_PRICE
) -> dict:
    """
    Compute the price breakdown of a booking.

    Rules:
    - Base comes from the subtype table; the higher base applies only when
      guest_count is strictly above the threshold.
    - Per-unit subtypes (quads) multiply the base by guest_count.
    - Hours beyond the included duration are billed at extra_hour_price.
    - Add-ons not sold in the subtype's category cost nothing.
    - Discount is a percentage of the subtotal, rounded half-up.

    Args:
        subtype: Subtype member or its string value
        guest_count: Guests (quads for quad rides)
        duration_hours: Booked duration in hours
        add_ons: Mapping or list of add-on keys
        discount_percent: 0..100
        rules: Override for SUBTYPE_RULES
        add_on_prices: Override for ADD_ON_PRICES
        extra_hour_price: Price per hour beyond the included duration

    Returns:
        dict: {
            'subtype', 'base', 'extra_hours', 'extra_hours_cost',
            'add_ons', 'add_ons_cost', 'subtotal',
            'discount_percent', 'discount_amount', 'total'
        }

    Raises:
        ValidationError: On unknown subtype, bad counts, or bad discount
    """
    rules = rules or SUBTYPE_RULES
    add_on_prices = add_on_prices or ADD_ON_PRICES

    subtype = parse_enum(Subtype, subtype, 'subtype')
    rule = rules[subtype]

    if isinstance(guest_count, bool) or not isinstance(guest_count, int) or guest_count < 1:
        raise ValidationError('Количество гостей должно быть положительным целым числом', field='guestCount')
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, (int, float)) or duration_hours <= 0:
        raise ValidationError('Продолжительность должна быть положительной', field='durationHours')
    discount_percent = validate_discount_percent(discount_percent)
    requested = normalize_add_ons(add_ons)

    # Base price with guest threshold
    unit_price = rule.base_price
    if rule.guest_threshold is not None and guest_count > rule.guest_threshold:
        unit_price = rule.higher_price
    base = unit_price * guest_count if rule.per_unit else unit_price

    # Extra hours beyond the included duration
    extra_hours = 0
    if rule.included_hours is not None:
        extra_hours = max(0, duration_hours - rule.included_hours)
    extra_hours_cost = round_half_up(extra_hours * extra_hour_price)

    # Add-ons priced for this category only
    category_prices = add_on_prices.get(rule.category, {})
    billed_add_ons = {}
    add_ons_cost = 0
    for add_on, quantity in requested.items():
        if add_on not in category_prices:
            continue
        billed_add_ons[add_on.value] = quantity
        add_ons_cost += category_prices[add_on] * quantity

    subtotal = base + extra_hours_cost + add_ons_cost
    discount_amount = round_half_up(Decimal(subtotal) * Decimal(str(discount_percent)) / 100)
    total = subtotal - discount_amount

    return {
        'subtype': subtype.value,
        'base': base,
        'extra_hours': extra_hours,
        'extra_hours_cost': extra_hours_cost,
        'add_ons': billed_add_ons,
        'add_ons_cost': add_ons_cost,
        'subtotal': subtotal,
        'discount_percent': discount_percent,
        'discount_amount': discount_amount,
        'total': total,
    }


def reprice(booking: dict, discount_percent) -> dict:
    """
    Rebuild the price of a stored booking with a new discount.

    Args:
        booking: Booking row as dict
        discount_percent: New discount percentage

    Returns:
        dict: Breakdown as returned by compute_price
    """
    add_ons = booking.get('add_ons') or '{}'
    if isinstance(add_ons, str):
        add_ons = json.loads(add_ons)

    return compute_price(
        subtype=booking['subtype'],
        guest_count=booking['guest_count'],
        duration_hours=booking['duration_minutes'] / 60,
        add_ons=add_ons,
        discount_percent=discount_percent
    )
