"""
Tests for the conflict guard: overlap rules, interval validation and
atomic reservation under concurrent writers.
"""

import threading

import pytest

from conftest import NOW, LATER
from models.exceptions import ConflictError, InvalidIntervalError
from models.booking_guard import intervals_overlap, validate_interval


SPA = {
    'id': 1, 'code': 'SPA1', 'category': 'spa', 'open_time': '10:00', 'close_time': '22:00',
    'granularity_minutes': 60, 'buffer_minutes': 0,
}


class TestIntervalsOverlap:

    def test_disjoint(self):
        assert not intervals_overlap(600, 780, 840, 1020)

    def test_adjacent_do_not_conflict_without_buffer(self):
        assert not intervals_overlap(600, 780, 780, 960)
        assert not intervals_overlap(780, 960, 600, 780)

    def test_partial_overlap(self):
        assert intervals_overlap(600, 780, 720, 900)
        assert intervals_overlap(720, 900, 600, 780)

    def test_containment(self):
        assert intervals_overlap(600, 900, 660, 720)

    def test_buffer_blocks_back_to_back(self):
        assert intervals_overlap(600, 630, 630, 660, buffer=15)
        assert intervals_overlap(630, 660, 600, 630, buffer=15)
        assert not intervals_overlap(600, 630, 645, 675, buffer=15)


class TestValidateInterval:

    def test_valid(self):
        assert validate_interval(SPA, '14:00', '17:00') == (840, 1020)

    @pytest.mark.parametrize('start,end', [
        ('17:00', '14:00'),   # reversed
        ('14:00', '14:00'),   # empty
        ('09:00', '12:00'),   # before opening
        ('20:00', '23:00'),   # after closing
        ('14:30', '17:30'),   # off the hourly grid
        ('25:00', '26:00'),   # not a time
    ])
    def test_invalid(self, start, end):
        with pytest.raises(InvalidIntervalError) as exc:
            validate_interval(SPA, start, end)
        assert exc.value.retryable is False
        assert exc.value.http_status == 400


class TestTryReserve:

    def test_overlapping_booking_rejected(self, make_booking):
        make_booking(start_time='14:00')

        with pytest.raises(ConflictError) as exc:
            make_booking(start_time='15:00', customer_phone='+375291110000')
        assert exc.value.retryable is True
        assert exc.value.http_status == 409

    def test_back_to_back_allowed(self, make_booking):
        first = make_booking(start_time='11:00')
        second = make_booking(start_time='14:00', customer_phone='+375291110000')
        assert first['end_time'] == second['start_time']

    def test_other_resource_unaffected(self, make_booking):
        make_booking(resource='SPA1', start_time='14:00')
        booking = make_booking(resource='SPA2', start_time='14:00', customer_phone='+375291110000')
        assert booking['resource_code'] == 'SPA2'

    def test_quad_buffer(self, make_booking):
        quad = {'resource': 'QUADS', 'subtype': 'quad_short', 'duration_hours': None, 'guest_count': 2}
        make_booking(start_time='10:00', **quad)

        # 10:30 falls inside the instructor's 15 minute turnaround
        with pytest.raises(ConflictError):
            make_booking(start_time='10:30', customer_phone='+375291110000', **quad)

        booking = make_booking(start_time='11:00', customer_phone='+375291110000', **quad)
        assert booking['end_time'] == '11:30'

    def test_cancelled_booking_frees_interval(self, app, make_booking):
        from models.booking import cancel_booking

        booking = make_booking(start_time='14:00')
        with app.app_context():
            cancel_booking(booking['id'], 'admin')

        replacement = make_booking(start_time='14:00', customer_phone='+375291110000')
        assert replacement['status'] == 'pending_call'

    def test_ticket_numbers_follow_booking_date(self, make_booking):
        first = make_booking(start_time='10:00')
        second = make_booking(start_time='14:00', customer_phone='+375291110000')
        assert first['ticket_number'] == '30061201'
        assert second['ticket_number'] == '30061202'

    def test_conflict_leaves_no_partial_write(self, app, make_booking):
        from database import get_db

        make_booking(start_time='14:00')
        with pytest.raises(ConflictError):
            make_booking(start_time='13:00', customer_phone='+375291110000')

        with app.app_context():
            db = get_db()
            assert db.execute('SELECT COUNT(*) FROM bookings').fetchone()[0] == 1
            assert db.execute('SELECT COUNT(*) FROM booking_history').fetchone()[0] == 1
            version = db.execute('SELECT version FROM availability_versions').fetchone()[0]
            assert version == 1


class TestConcurrentReservations:

    def test_only_one_of_many_concurrent_writers_wins(self, app, booking_data):
        from models.booking import create_booking

        attempts = 8
        barrier = threading.Barrier(attempts)
        results = []
        lock = threading.Lock()

        def attempt(index):
            with app.app_context():
                barrier.wait()
                try:
                    create_booking(
                        booking_data(start_time='15:00', customer_phone=f'+37529000000{index}'),
                        created_by='admin', source='staff', allow_confirmed=True, now=NOW
                    )
                    outcome = 'reserved'
                except ConflictError:
                    outcome = 'conflict'
                except Exception as e:
                    outcome = repr(e)
                with lock:
                    results.append(outcome)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(results) == ['conflict'] * (attempts - 1) + ['reserved']

        with app.app_context():
            from models.booking import get_bookings_filtered
            assert len(get_bookings_filtered(booking_date=LATER)) == 1

    def test_overlapping_but_distinct_intervals_race(self, app, booking_data):
        from models.booking import create_booking

        starts = ['12:00', '13:00', '14:00', '15:00']
        barrier = threading.Barrier(len(starts))
        reserved = []
        lock = threading.Lock()

        def attempt(index, start):
            with app.app_context():
                barrier.wait()
                try:
                    booking = create_booking(
                        booking_data(start_time=start, customer_phone=f'+37529100000{index}'),
                        created_by='admin', source='staff', now=NOW
                    )
                    with lock:
                        reserved.append(booking)
                except ConflictError:
                    pass

        threads = [threading.Thread(target=attempt, args=(i, s)) for i, s in enumerate(starts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert reserved
        intervals = sorted((b['start_time'], b['end_time']) for b in reserved)
        for (_, prev_end), (next_start, _) in zip(intervals, intervals[1:]):
            assert prev_end <= next_start


class TestSharedRides:

    RIDE = {'resource': 'QUADS', 'subtype': 'quad_long', 'duration_hours': None, 'start_time': '11:00'}

    def test_same_ride_shares_the_fleet(self, make_booking):
        first = make_booking(guest_count=2, **self.RIDE)
        second = make_booking(guest_count=2, customer_phone='+375291110000', **self.RIDE)

        assert first['joined_group'] == 0
        assert first['price_total'] == 160
        assert second['joined_group'] == 1
        assert second['discount_percent'] == 5
        assert second['price_total'] == 152

    def test_full_ride_rejects_more_quads(self, make_booking):
        make_booking(guest_count=3, **self.RIDE)

        with pytest.raises(ConflictError) as exc:
            make_booking(guest_count=2, customer_phone='+375291110000', **self.RIDE)
        assert exc.value.details['available_quads'] == 1

        last = make_booking(guest_count=1, customer_phone='+375291110000', **self.RIDE)
        assert last['joined_group'] == 1

    def test_other_route_at_same_start_conflicts(self, make_booking):
        make_booking(guest_count=1, **self.RIDE)

        with pytest.raises(ConflictError):
            make_booking(resource='QUADS', subtype='quad_short', duration_hours=None,
                         start_time='11:00', guest_count=1, customer_phone='+375291110000')

    def test_overlapping_start_does_not_join(self, make_booking):
        make_booking(guest_count=1, **self.RIDE)

        with pytest.raises(ConflictError):
            make_booking(guest_count=1, customer_phone='+375291110000',
                         **dict(self.RIDE, start_time='11:30'))

    def test_owner_discount_above_join_discount_is_kept(self, make_booking):
        make_booking(guest_count=1, **self.RIDE)
        joined = make_booking(guest_count=1, customer_phone='+375291110000', discount_percent=10,
                              source='staff', created_by='owner', **self.RIDE)

        assert joined['joined_group'] == 1
        assert joined['discount_percent'] == 10
        assert joined['price_total'] == 72

    def test_spa_bookings_never_share(self, make_booking):
        make_booking(start_time='14:00', guest_count=2)
        with pytest.raises(ConflictError):
            make_booking(start_time='14:00', guest_count=2, customer_phone='+375291110000')

    def test_accept_rechecks_ride_capacity(self, app, make_booking):
        from models.booking import accept_booking

        first = make_booking(guest_count=2, **self.RIDE)
        second = make_booking(guest_count=2, customer_phone='+375291110000', **self.RIDE)

        with app.app_context():
            assert accept_booking(first['id'], 'instructor')['status'] == 'confirmed'
            assert accept_booking(second['id'], 'instructor')['status'] == 'confirmed'

    def test_concurrent_joiners_never_exceed_fleet(self, app, booking_data):
        from models.booking import create_booking, get_bookings_filtered

        attempts = 4
        barrier = threading.Barrier(attempts)
        results = []
        lock = threading.Lock()

        def attempt(index):
            with app.app_context():
                barrier.wait()
                try:
                    create_booking(
                        booking_data(guest_count=2, customer_phone=f'+37529200000{index}',
                                     **self.RIDE),
                        now=NOW
                    )
                    outcome = 'reserved'
                except ConflictError:
                    outcome = 'conflict'
                except Exception as e:
                    outcome = repr(e)
                with lock:
                    results.append(outcome)

        threads = [threading.Thread(target=attempt, args=(i,)) for i in range(attempts)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)

        assert sorted(results) == ['conflict', 'conflict', 'reserved', 'reserved']

        with app.app_context():
            ride = get_bookings_filtered(booking_date=LATER, resource_code='QUADS')
            assert sum(b['guest_count'] for b in ride) == 4
