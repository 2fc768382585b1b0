"""
Tests for the availability resolver and its cache.
"""

from datetime import datetime, timedelta

import pytest

from conftest import NOW, TODAY, LATER, TZ
from models.exceptions import ValidationError


def _slots(app, code, day, now=NOW):
    from models.availability import resolve_availability
    from models.resource import get_resource_by_code

    with app.app_context():
        return resolve_availability(get_resource_by_code(code), day, now=now)


def _by_start(slots):
    return {slot['start_time']: slot for slot in slots}


class TestResolveAvailability:

    def test_empty_day(self, app):
        slots = _slots(app, 'SPA1', LATER)
        assert len(slots) == 10
        first = slots[0]
        assert first['start_time'] == '10:00'
        assert first['end_time'] == '13:00'
        assert first['available'] is True
        assert first['max_duration'] == 5
        assert first['max_duration_minutes'] == 300

    def test_max_duration_capped_by_closing(self, app):
        slots = _by_start(_slots(app, 'SPA1', LATER))
        assert slots['18:00']['max_duration'] == 4
        assert slots['19:00']['max_duration'] == 3

    def test_booked_interval_marks_slots_taken(self, app, make_booking):
        make_booking(start_time='14:00', duration_hours=4)   # 14:00-18:00
        slots = _by_start(_slots(app, 'SPA1', LATER))

        # A 3 hour stay from 12:00 would run into 14:00
        assert slots['11:00']['available'] is True
        assert slots['12:00']['available'] is False
        for start in ('14:00', '15:00', '16:00', '17:00'):
            assert slots[start]['available'] is False
            assert slots[start]['max_duration'] == 0
        assert slots['18:00']['available'] is True

    def test_max_duration_stops_at_next_booking(self, app, make_booking):
        make_booking(start_time='15:00')   # 15:00-18:00
        slots = _by_start(_slots(app, 'SPA1', LATER))

        assert slots['10:00']['max_duration'] == 5
        assert slots['11:00']['max_duration'] == 4
        assert slots['11:00']['max_duration_minutes'] == 240
        assert slots['12:00']['max_duration'] == 3

    def test_max_duration_never_overlaps(self, app, make_booking):
        from utils.datetime_helpers import time_to_minutes

        make_booking(start_time='13:00')
        make_booking(start_time='19:00', customer_phone='+375291110000')

        for slot in _slots(app, 'SPA1', LATER):
            if not slot['available']:
                continue
            start = time_to_minutes(slot['start_time'])
            end = start + slot['max_duration_minutes']
            for booked in ((780, 960), (1140, 1320)):
                assert end <= booked[0] or start >= booked[1]

    def test_quad_buffer_shortens_gap(self, app, make_booking):
        quad = {'resource': 'QUADS', 'subtype': 'quad_long', 'duration_hours': 1, 'guest_count': 1}
        make_booking(start_time='11:00', **quad)   # 11:00-12:00, +15 min turnaround
        slots = _by_start(_slots(app, 'QUADS', LATER))

        assert slots['10:00']['available'] is True
        # 45 free minutes fit only the 30 minute ride
        assert slots['10:00']['max_duration_minutes'] == 30
        assert slots['10:00']['max_duration'] == 0.5
        assert slots['10:30']['available'] is False
        assert slots['12:00']['available'] is False
        assert slots['12:30']['available'] is True

    def test_last_quad_slot_offers_short_ride(self, app):
        slots = _by_start(_slots(app, 'QUADS', LATER))

        assert slots['18:00']['max_duration_minutes'] == 60
        assert slots['18:00']['max_duration'] == 1
        assert slots['18:30']['available'] is True
        assert slots['18:30']['max_duration_minutes'] == 30
        assert slots['18:30']['max_duration'] == 0.5
        assert slots['18:30']['available_quads'] == 4

    def test_ride_slot_offers_remaining_quads(self, app, make_booking):
        quad = {'resource': 'QUADS', 'subtype': 'quad_long', 'duration_hours': None, 'guest_count': 3}
        make_booking(start_time='11:00', **quad)
        slots = _by_start(_slots(app, 'QUADS', LATER))

        ride = slots['11:00']['ride']
        assert slots['11:00']['available'] is True
        assert slots['11:00']['available_quads'] == 1
        assert slots['11:00']['max_duration_minutes'] == 60
        assert ride['subtype'] == 'quad_long'
        assert ride['booked_quads'] == 3
        assert ride['join_discount_percent'] == 5

        assert slots['11:30']['available'] is False
        assert slots['11:30']['ride'] is None
        assert slots['11:30']['available_quads'] == 0

    def test_full_ride_slot_is_taken(self, app, make_booking):
        quad = {'resource': 'QUADS', 'subtype': 'quad_short', 'duration_hours': None, 'guest_count': 4}
        make_booking(start_time='11:00', **quad)
        slot = _by_start(_slots(app, 'QUADS', LATER))['11:00']

        assert slot['available'] is False
        assert slot['available_quads'] == 0
        assert slot['ride']['available_quads'] == 0

    def test_spa_slots_have_no_ride_fields(self, app):
        slot = _slots(app, 'SPA1', LATER)[0]
        assert 'ride' not in slot
        assert 'available_quads' not in slot

    def test_lead_time_excludes_same_day_slots(self, app):
        now = datetime(2030, 6, 10, 11, 0, tzinfo=TZ)
        slots = _slots(app, 'SPA1', TODAY, now=now)
        assert slots[0]['start_time'] == '14:00'

        bath = _slots(app, 'B1', TODAY, now=now)
        assert bath[0]['start_time'] == '13:00'

    def test_lead_time_from_config(self, app):
        app.config['MIN_LEAD_HOURS'] = {'spa': 5, 'bath': 2, 'quad': 2}
        now = datetime(2030, 6, 10, 11, 0, tzinfo=TZ)
        assert _slots(app, 'SPA1', TODAY, now=now)[0]['start_time'] == '16:00'

    def test_cancelled_and_expired_do_not_block(self, app, make_booking):
        from models.booking import cancel_booking, expire_stale_bookings

        cancelled = make_booking(start_time='10:00')
        make_booking(start_time='14:00', customer_phone='+375291110000')
        with app.app_context():
            cancel_booking(cancelled['id'], 'admin')
            expire_stale_bookings(now=NOW + timedelta(hours=3))

        assert all(slot['available'] for slot in _slots(app, 'SPA1', LATER))

    def test_invalid_date(self, app):
        with pytest.raises(ValidationError):
            _slots(app, 'SPA1', '12/06/2030')


class TestIdempotentReads:

    def test_repeated_reads_identical(self, app, make_booking):
        make_booking(start_time='14:00')
        assert _slots(app, 'SPA1', LATER) == _slots(app, 'SPA1', LATER)

    def test_second_read_served_from_cache(self, app):
        from models.availability import get_cache

        _slots(app, 'SPA1', LATER)
        _slots(app, 'SPA1', LATER)
        with app.app_context():
            cache = get_cache()
            assert cache.hits == 1
            assert cache.misses == 1

    def test_write_invalidates_cache(self, app, make_booking):
        before = _by_start(_slots(app, 'SPA1', LATER))
        assert before['14:00']['available'] is True

        make_booking(start_time='14:00')

        after = _by_start(_slots(app, 'SPA1', LATER))
        assert after['14:00']['available'] is False

    def test_cancellation_invalidates_cache(self, app, make_booking):
        from models.booking import cancel_booking

        booking = make_booking(start_time='14:00')
        assert _by_start(_slots(app, 'SPA1', LATER))['14:00']['available'] is False

        with app.app_context():
            cancel_booking(booking['id'], 'admin')

        assert _by_start(_slots(app, 'SPA1', LATER))['14:00']['available'] is True

    def test_callers_cannot_corrupt_cache(self, app):
        slots = _slots(app, 'SPA1', LATER)
        slots[0]['available'] = False
        assert _slots(app, 'SPA1', LATER)[0]['available'] is True


class TestCategoryAvailability:

    def test_all_resources_of_category(self, app):
        from models.availability import resolve_category_availability

        with app.app_context():
            resolved = resolve_category_availability('spa', LATER, now=NOW)
        assert [entry['resource']['code'] for entry in resolved] == ['SPA1', 'SPA2']
        assert all(len(entry['slots']) == 10 for entry in resolved)

    def test_unknown_category(self, app):
        from models.availability import resolve_category_availability

        with app.app_context():
            with pytest.raises(ValidationError):
                resolve_category_availability('sauna', LATER)


class TestCalendar:

    def _calendar(self, app, date_from, date_to, now=NOW, category='spa'):
        from models.availability import resolve_calendar

        with app.app_context():
            return {day['date']: day for day in resolve_calendar(category, date_from, date_to, now=now)}

    def test_free_days(self, app):
        calendar = self._calendar(app, '2030-06-11', '2030-06-13')
        assert list(calendar) == ['2030-06-11', '2030-06-12', '2030-06-13']
        assert not any(day['has_bookings'] or day['fully_booked'] for day in calendar.values())

    def test_partially_booked(self, app, make_booking):
        make_booking(start_time='14:00')
        day = self._calendar(app, LATER, LATER)[LATER]
        assert day['has_bookings'] is True
        assert day['fully_booked'] is False

    def test_one_resource_full_is_not_fully_booked(self, app, make_booking):
        staff = {'source': 'staff', 'created_by': 'admin'}
        make_booking(start_time='10:00', duration_hours=5, **staff)
        make_booking(start_time='15:00', duration_hours=5, **staff)
        assert all(not slot['available'] for slot in _slots(app, 'SPA1', LATER))

        day = self._calendar(app, LATER, LATER)[LATER]
        assert day['fully_booked'] is False
        assert day['has_bookings'] is True

    def test_fully_booked_across_all_resources(self, app, make_booking):
        staff = {'source': 'staff', 'created_by': 'admin'}
        for code in ('SPA1', 'SPA2'):
            make_booking(resource=code, start_time='10:00', duration_hours=5, **staff)
            make_booking(resource=code, start_time='15:00', duration_hours=5, **staff)

        day = self._calendar(app, LATER, LATER)[LATER]
        assert day['fully_booked'] is True
        assert day['has_bookings'] is False

    def test_past_days_are_fully_booked(self, app):
        calendar = self._calendar(app, '2030-06-08', '2030-06-09')
        assert all(day['fully_booked'] for day in calendar.values())

    def test_reversed_range(self, app):
        with pytest.raises(ValidationError):
            self._calendar(app, '2030-06-13', '2030-06-11')
