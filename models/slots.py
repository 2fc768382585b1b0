"""
Slot generation.

Candidate start times for one resource on one date, derived from the
resource's operating hours and granularity. No database access.
"""

from datetime import date, datetime

from utils.datetime_helpers import time_to_minutes, minutes_to_time, minutes_of_day
from .catalog import Category, min_duration_minutes


class SlotSequence:
    """
    Lazy, finite, restartable sequence of slot start times ('HH:MM').

    Each iteration starts from the opening time again, so the same object
    can be consumed any number of times with identical results.
    """

    def __init__(self, first_start: int, last_start: int, step: int, earliest: int = 0):
        self.first_start = first_start
        self.last_start = last_start
        self.step = step
        self.earliest = earliest

    def iter_minutes(self):
        start = self.first_start
        while start <= self.last_start:
            if start >= self.earliest:
                yield start
            start += self.step

    def __iter__(self):
        return (minutes_to_time(start) for start in self.iter_minutes())

    def __len__(self):
        return sum(1 for _ in self.iter_minutes())

    def __contains__(self, start_time):
        if isinstance(start_time, str):
            try:
                start_time = time_to_minutes(start_time)
            except ValueError:
                return False
        return any(start == start_time for start in self.iter_minutes())

    def __eq__(self, other):
        if not isinstance(other, SlotSequence):
            return NotImplemented
        return list(self.iter_minutes()) == list(other.iter_minutes())

    def __repr__(self):
        return f'SlotSequence({list(self)!r})'


EMPTY = SlotSequence(0, -1, 1)


def generate_slots(
    resource: dict,
    booking_date: date,
    now: datetime = None,
    lead_hours: int = 0,
    min_duration: int = None
) -> SlotSequence:
    """
    Generate candidate start times for a resource on a date.

    Starts run from the opening time up to closing time minus the shortest
    bookable duration, at the resource's granularity. When booking_date is
    today (per now), starts earlier than now + lead_hours are left out
    entirely; past dates produce no slots.

    Args:
        resource: Resource dict (open_time, close_time, granularity_minutes, category)
        booking_date: Date to generate for
        now: Current local datetime (None: no lead-time filtering)
        lead_hours: Minimum notice for same-day bookings
        min_duration: Shortest duration in minutes (default: category minimum)

    Returns:
        SlotSequence
    """
    if min_duration is None:
        min_duration = min_duration_minutes(Category(resource['category']))

    open_minutes = time_to_minutes(resource['open_time'])
    close_minutes = time_to_minutes(resource['close_time'])
    step = resource['granularity_minutes']

    earliest = 0
    if now is not None:
        today = now.date()
        if booking_date < today:
            return EMPTY
        if booking_date == today:
            earliest = minutes_of_day(now) + lead_hours * 60

    return SlotSequence(open_minutes, close_minutes - min_duration, step, earliest)
