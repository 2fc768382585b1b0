"""
Closed catalog of booking categories, subtypes, add-ons and their rules.

Every table here is keyed by an enum rather than a free string, so a key
that is not listed cannot reach the pricing or validation code. Values are
plain defaults; callers that need other numbers pass their own tables.
"""

from collections import namedtuple
from enum import Enum


class Category(str, Enum):
    SPA = 'spa'
    BATH = 'bath'
    QUAD = 'quad'


class Subtype(str, Enum):
    # SPA complexes
    BATH_ONLY = 'bath_only'
    TUB_ONLY = 'tub_only'
    TERRACE_ONLY = 'terrace_only'
    BATH_WITH_TUB = 'bath_with_tub'
    # Bath units
    BATH = 'bath'
    # Quad rides (guest count = number of quads)
    QUAD_SHORT = 'quad_short'
    QUAD_LONG = 'quad_long'


class AddOn(str, Enum):
    GRILL = 'grill'
    CHARCOAL = 'charcoal'
    TUB_SMALL = 'tub_small'
    TUB_LARGE = 'tub_large'


class PaymentMethod(str, Enum):
    ERIP = 'erip'
    CASH = 'cash'


class BookingStatus(str, Enum):
    PENDING_CALL = 'pending_call'
    CONFIRMED = 'confirmed'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'
    NO_SHOW = 'no_show'
    EXPIRED = 'expired'


TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.NO_SHOW,
    BookingStatus.EXPIRED,
})

# Bookings in these states no longer occupy their interval; a no-show keeps it
RELEASING_STATUSES = frozenset({
    BookingStatus.CANCELLED,
    BookingStatus.EXPIRED,
})


SubtypeRule = namedtuple('SubtypeRule', [
    'category',
    'base_price',
    'guest_threshold',    # higher_price applies when guests > threshold
    'higher_price',
    'included_hours',     # None: duration never billed as extra hours
    'per_unit',           # base price is multiplied by guest count
    'durations',          # allowed durations in minutes
])

CategoryRule = namedtuple('CategoryRule', [
    'min_lead_hours',
    'max_duration_minutes',
    'group_capacity',     # None: one booking per interval; else units shared by a ride
])


HOUR_DURATIONS = (180, 240, 300)

SUBTYPE_RULES = {
    Subtype.BATH_ONLY: SubtypeRule(Category.SPA, 150, None, None, 3, False, HOUR_DURATIONS),
    Subtype.TERRACE_ONLY: SubtypeRule(Category.SPA, 90, None, None, 3, False, HOUR_DURATIONS),
    Subtype.TUB_ONLY: SubtypeRule(Category.SPA, 150, 4, 180, 3, False, HOUR_DURATIONS),
    Subtype.BATH_WITH_TUB: SubtypeRule(Category.SPA, 300, 9, 330, 3, False, HOUR_DURATIONS),
    Subtype.BATH: SubtypeRule(Category.BATH, 150, None, None, 3, False, HOUR_DURATIONS),
    Subtype.QUAD_SHORT: SubtypeRule(Category.QUAD, 50, None, None, None, True, (30,)),
    Subtype.QUAD_LONG: SubtypeRule(Category.QUAD, 80, None, None, None, True, (60,)),
}

CATEGORY_RULES = {
    Category.SPA: CategoryRule(min_lead_hours=3, max_duration_minutes=300, group_capacity=None),
    Category.BATH: CategoryRule(min_lead_hours=2, max_duration_minutes=300, group_capacity=None),
    # Riders starting together on the same route share the fleet of 4 quads
    Category.QUAD: CategoryRule(min_lead_hours=2, max_duration_minutes=60, group_capacity=4),
}

# Discount for joining a ride someone else already booked
GROUP_JOIN_DISCOUNT_PERCENT = 5

EXTRA_HOUR_PRICE = 30

ADD_ON_PRICES = {
    Category.SPA: {
        AddOn.GRILL: 15,
        AddOn.CHARCOAL: 15,
    },
    Category.BATH: {
        AddOn.GRILL: 10,
        AddOn.CHARCOAL: 15,
        AddOn.TUB_SMALL: 150,
        AddOn.TUB_LARGE: 180,
    },
    Category.QUAD: {},
}


def parse_enum(enum_cls, value, field: str):
    """
    Convert a raw request value into an enum member.

    Raises:
        ValidationError: If the value is not one of the members
    """
    from .exceptions import ValidationError

    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationError(
            f'Недопустимое значение {field}: {value!r}. Допустимо: {allowed}',
            field=field
        )


def subtypes_for(category: Category) -> list:
    """Subtypes sold in a category, in declaration order."""
    return [subtype for subtype, rule in SUBTYPE_RULES.items() if rule.category == category]


def min_duration_minutes(category: Category) -> int:
    """Shortest bookable duration across all subtypes of a category."""
    return min(min(SUBTYPE_RULES[s].durations) for s in subtypes_for(category))


def durations_for(category: Category) -> list:
    """Every bookable duration of a category in minutes, ascending."""
    cap = CATEGORY_RULES[category].max_duration_minutes
    return sorted({
        duration
        for subtype in subtypes_for(category)
        for duration in SUBTYPE_RULES[subtype].durations
        if duration <= cap
    })
