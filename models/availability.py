"""
Availability resolver.

Per-slot availability, maximum bookable duration, and calendar overview.
All reads for one call happen inside one read transaction, so the answer
reflects a single committed state even while bookings are being written.
"""

import copy
import threading
from datetime import date, timedelta

from flask import current_app

from database import read_snapshot
from utils.datetime_helpers import parse_date, time_to_minutes, minutes_to_time
from .booking_guard import intervals_overlap
from .booking_queries import get_occupying_bookings
from .catalog import (
    CATEGORY_RULES, GROUP_JOIN_DISCOUNT_PERCENT, Category, parse_enum,
    durations_for, min_duration_minutes
)
from .exceptions import ValidationError
from .resource import get_all_resources
from .resource_block import block_intervals, get_blocks
from .slots import generate_slots


# =============================================================================
# CACHE
# =============================================================================

class AvailabilityCache:
    """
    Resolved slot lists keyed by query parameters.

    Each entry remembers the availability version it was computed at; a
    lookup only hits when the stored version matches the version read in
    the caller's snapshot. Writers bump the version in their own
    transaction, so entries are invalidated by events, never by time.
    """

    def __init__(self, max_entries: int = 2048):
        self.max_entries = max_entries
        self._entries = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key, version):
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] == version:
                self.hits += 1
                return entry[1]
            self.misses += 1
            return None

    def put(self, key, version, slots) -> None:
        with self._lock:
            if len(self._entries) >= self.max_entries:
                self._entries.clear()
            self._entries[key] = (version, slots)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self):
        return len(self._entries)


def get_cache() -> AvailabilityCache:
    """Availability cache of the current app."""
    cache = current_app.extensions.get('availability_cache')
    if cache is None:
        cache = current_app.extensions.setdefault('availability_cache', AvailabilityCache())
    return cache


# =============================================================================
# HELPERS
# =============================================================================

def lead_hours_for(category) -> int:
    """Minimum same-day notice for a category (config overrides defaults)."""
    category = Category(category)
    configured = current_app.config.get('MIN_LEAD_HOURS') or {}
    return configured.get(category.value, CATEGORY_RULES[category].min_lead_hours)


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    try:
        return parse_date(value)
    except (TypeError, ValueError):
        raise ValidationError('Дата должна быть в формате YYYY-MM-DD', field='date')


def _read_version(db, resource_id: int, booking_date: str) -> int:
    row = db.execute('''
        SELECT version FROM availability_versions
        WHERE resource_id = ? AND booking_date = ?
    ''', (resource_id, booking_date)).fetchone()
    return row['version'] if row else 0


def _hours(minutes: int):
    """Whole hours where they divide evenly (half an hour for short rides)."""
    return minutes // 60 if minutes % 60 == 0 else minutes / 60


def _snap_duration(durations: list, gap: int) -> int:
    """Longest bookable duration that fits a gap, 0 if none does."""
    return max((d for d in durations if d <= gap), default=0)


def _ride_at(resource: dict, start: int, booked: list, closed: list) -> dict:
    """
    The ride starting at start, if one is on the books and can take riders.

    Returns:
        dict: {subtype, booked_quads, available_quads, duration_minutes,
               join_discount_percent} or None
    """
    ride = [b for b in booked if b['start'] == start]
    if not ride:
        return None

    buffer = resource.get('buffer_minutes') or 0
    first = ride[0]
    end = first['end']
    capacity = CATEGORY_RULES[Category(resource['category'])].group_capacity
    taken = sum(b['guest_count'] for b in ride if b['subtype'] == first['subtype'] and b['end'] == end)

    others = [
        b for b in booked
        if not (b['start'] == start and b['end'] == end and b['subtype'] == first['subtype'])
    ]
    cut_off = any(
        intervals_overlap(start, end, b['start'], b['end'], buffer) for b in others
    ) or any(start < c_end and c_start < end for c_start, c_end in closed)

    return {
        'subtype': first['subtype'],
        'booked_quads': taken,
        'available_quads': 0 if cut_off else max(capacity - taken, 0),
        'duration_minutes': end - start,
        'join_discount_percent': GROUP_JOIN_DISCOUNT_PERCENT,
    }


def _resolve_slots(resource: dict, booking_date: str, slots, booked: list, blocks: list) -> list:
    """Availability and maximum duration for each slot start."""
    category = Category(resource['category'])
    min_duration = min_duration_minutes(category)
    durations = durations_for(category)
    max_allowed = CATEGORY_RULES[category].max_duration_minutes
    capacity = CATEGORY_RULES[category].group_capacity
    close_minutes = time_to_minutes(resource['close_time'])
    buffer = resource.get('buffer_minutes') or 0

    intervals = [
        {
            'start': time_to_minutes(b['start_time']),
            'end': time_to_minutes(b['end_time']),
            'subtype': b['subtype'],
            'guest_count': b['guest_count'],
        }
        for b in booked
    ]
    closed = block_intervals(resource, blocks)

    resolved = []
    for start in slots.iter_minutes():
        end = start + min_duration
        free = not any(
            intervals_overlap(start, end, b['start'], b['end'], buffer) for b in intervals
        ) and not any(start < c_end and c_start < end for c_start, c_end in closed)

        max_minutes = 0
        if free:
            # Longest run until closing, the category cap, the next booking or block
            limit = min(close_minutes, start + max_allowed)
            for b in intervals:
                if b['start'] >= start:
                    limit = min(limit, b['start'] - buffer)
            for c_start, _ in closed:
                if c_start >= start:
                    limit = min(limit, c_start)
            max_minutes = _snap_duration(durations, limit - start)

        slot = {
            'resource': resource['code'],
            'date': booking_date,
            'start_time': minutes_to_time(start),
            'end_time': minutes_to_time(end),
            'available': max_minutes > 0,
            'max_duration': _hours(max_minutes),
            'max_duration_minutes': max_minutes,
        }

        if capacity:
            ride = None if free else _ride_at(resource, start, intervals, closed)
            slot['ride'] = ride
            slot['available_quads'] = capacity if max_minutes else 0
            if ride and ride['available_quads']:
                # Only joining the ride is possible here
                slot['available'] = True
                slot['available_quads'] = ride['available_quads']
                slot['max_duration_minutes'] = ride['duration_minutes']
                slot['max_duration'] = _hours(ride['duration_minutes'])

        resolved.append(slot)

    return resolved


def _resolve_in_snapshot(db, resource: dict, day: date, now) -> list:
    booking_date = day.isoformat()
    slots = generate_slots(
        resource, day, now=now,
        lead_hours=lead_hours_for(resource['category']) if now is not None else 0
    )

    cache = get_cache()
    key = (resource['id'], booking_date, slots.earliest, slots.last_start)
    version = _read_version(db, resource['id'], booking_date)

    cached = cache.get(key, version)
    if cached is not None:
        return copy.deepcopy(cached)

    cursor = db.cursor()
    booked = get_occupying_bookings(cursor, resource['id'], booking_date)
    blocks = get_blocks(cursor, resource['id'], booking_date)
    resolved = _resolve_slots(resource, booking_date, slots, booked, blocks)
    cache.put(key, version, resolved)
    return copy.deepcopy(resolved)


# =============================================================================
# RESOLVERS
# =============================================================================

def resolve_availability(resource: dict, booking_date, now=None) -> list:
    """
    Resolve slot availability for one resource on one date.

    Args:
        resource: Resource dict
        booking_date: date or 'YYYY-MM-DD'
        now: Current local datetime; same-day starts inside the lead time
            are omitted (None: no lead-time filtering)

    Returns:
        list: [{resource, date, start_time, end_time, available,
                max_duration, max_duration_minutes}, ...]; quad slots also
                carry available_quads and the ride starting there, if any
    """
    day = _as_date(booking_date)
    with read_snapshot() as db:
        return _resolve_in_snapshot(db, resource, day, now)


def resolve_category_availability(category, booking_date, now=None) -> list:
    """
    Resolve availability for every active resource of a category.

    Returns:
        list: [{'resource': resource dict, 'slots': [...]}, ...]
    """
    category = parse_enum(Category, category, 'category')
    day = _as_date(booking_date)

    with read_snapshot() as db:
        return [
            {'resource': resource, 'slots': _resolve_in_snapshot(db, resource, day, now)}
            for resource in get_all_resources(category.value)
        ]


def resolve_calendar(category, date_from, date_to, now=None) -> list:
    """
    Calendar overview of a category over a date range (inclusive).

    A date is fully booked when no slot of any resource in the category is
    available (including days with no slots left at all). It has bookings
    when some, but not all, slots are taken.

    Args:
        category: 'spa', 'bath' or 'quad'
        date_from: First date (date or 'YYYY-MM-DD')
        date_to: Last date (date or 'YYYY-MM-DD')
        now: Current local datetime

    Returns:
        list: [{date, has_bookings, fully_booked}, ...]

    Raises:
        ValidationError: If the range is reversed
    """
    category = parse_enum(Category, category, 'category')
    first = _as_date(date_from)
    last = _as_date(date_to)
    if last < first:
        raise ValidationError('Дата окончания раньше даты начала', field='date_to')

    calendar = []
    with read_snapshot() as db:
        resources = get_all_resources(category.value)
        day = first
        while day <= last:
            slots = []
            for resource in resources:
                slots.extend(_resolve_in_snapshot(db, resource, day, now))

            taken = sum(1 for slot in slots if not slot['available'])
            fully_booked = taken == len(slots)
            calendar.append({
                'date': day.isoformat(),
                'has_bookings': 0 < taken < len(slots),
                'fully_booked': fully_booked,
            })
            day += timedelta(days=1)

    return calendar
