"""
Tests for booking status transitions.

Validates the VALID_TRANSITIONS matrix, the side effects of each
transition (history, availability, guest statistics), payment closing,
discounts and hold expiry.
"""

from datetime import timedelta

import pytest

from conftest import NOW, TODAY
from models.exceptions import (
    ConflictError, IllegalTransitionError, NotFoundError, ValidationError
)

ALL_STATUSES = ['pending_call', 'confirmed', 'completed', 'cancelled', 'no_show', 'expired']
LEGAL = {
    ('pending_call', 'confirmed'),
    ('pending_call', 'cancelled'),
    ('pending_call', 'expired'),
    ('confirmed', 'cancelled'),
    ('confirmed', 'completed'),
    ('confirmed', 'no_show'),
}


class TestTransitionMatrix:

    @pytest.mark.parametrize('current', ALL_STATUSES)
    @pytest.mark.parametrize('new', ALL_STATUSES)
    def test_validate_transition(self, current, new):
        from models.booking_state import validate_transition

        if (current, new) in LEGAL:
            validate_transition(current, new)
        else:
            with pytest.raises(IllegalTransitionError):
                validate_transition(current, new)

    def test_terminal_states_have_no_exits(self):
        from models.booking_state import get_allowed_transitions

        for status in ('completed', 'cancelled', 'no_show', 'expired'):
            assert get_allowed_transitions(status) == []

    def test_matrix_shape(self):
        from models.booking_state import get_valid_transitions

        matrix = get_valid_transitions()
        assert set(matrix) == set(ALL_STATUSES)
        assert matrix['pending_call'] == ['cancelled', 'confirmed', 'expired']
        assert matrix['confirmed'] == ['cancelled', 'completed', 'no_show']


class TestAccept:

    def test_accept_pending(self, app, make_booking):
        from models.booking import accept_booking, get_booking_history

        booking = make_booking()
        assert booking['status'] == 'pending_call'
        assert booking['hold_until'] is not None

        with app.app_context():
            accepted = accept_booking(booking['id'], 'admin', 'позвонили')
            history = get_booking_history(booking['id'])

        assert accepted['status'] == 'confirmed'
        assert accepted['hold_until'] is None
        assert [(h['action'], h['to_status']) for h in history] == [
            ('created', 'pending_call'), ('status', 'confirmed')
        ]
        assert history[1]['changed_by'] == 'admin'
        assert history[1]['from_status'] == 'pending_call'

    def test_accept_twice_is_illegal(self, app, make_booking):
        from models.booking import accept_booking

        booking = make_booking()
        with app.app_context():
            accept_booking(booking['id'], 'admin')
            with pytest.raises(IllegalTransitionError):
                accept_booking(booking['id'], 'admin')

    def test_accept_revalidates_interval(self, app, make_booking):
        from database import get_db
        from models.booking import accept_booking, get_booking_by_id

        first = make_booking(start_time='14:00')
        make_booking(start_time='17:00', customer_phone='+375291110000')

        # Stretch the first booking over the second behind the guard's back
        with app.app_context():
            db = get_db()
            db.execute("UPDATE bookings SET end_time = '18:00' WHERE id = ?", (first['id'],))
            db.commit()

            with pytest.raises(ConflictError):
                accept_booking(first['id'], 'admin')
            assert get_booking_by_id(first['id'])['status'] == 'pending_call'

    def test_unknown_booking(self, app):
        from models.booking import accept_booking

        with app.app_context():
            with pytest.raises(NotFoundError):
                accept_booking(9999, 'admin')


class TestCancel:

    def test_cancel_pending_and_confirmed(self, app, make_booking):
        from models.booking import accept_booking, cancel_booking

        pending = make_booking(start_time='10:00')
        confirmed = make_booking(start_time='14:00', customer_phone='+375291110000')

        with app.app_context():
            accept_booking(confirmed['id'], 'admin')
            assert cancel_booking(pending['id'], 'admin')['status'] == 'cancelled'
            assert cancel_booking(confirmed['id'], 'admin')['status'] == 'cancelled'

    def test_cancel_is_irreversible(self, app, make_booking):
        from models.booking import accept_booking, cancel_booking

        booking = make_booking()
        with app.app_context():
            cancel_booking(booking['id'], 'admin')
            with pytest.raises(IllegalTransitionError):
                cancel_booking(booking['id'], 'admin')
            with pytest.raises(IllegalTransitionError):
                accept_booking(booking['id'], 'admin')

    def test_cancel_updates_guest_statistics(self, app, make_booking):
        from models.booking import cancel_booking
        from models.guest import get_guest_by_phone

        booking = make_booking()
        with app.app_context():
            assert get_guest_by_phone('+375291234567')['total_bookings'] == 1
            cancel_booking(booking['id'], 'admin')
            guest = get_guest_by_phone('+375291234567')

        assert guest['total_bookings'] == 0
        assert guest['cancellations'] == 1
        assert guest['full_name'] == 'Иван Петров'


class TestCompleteAndNoShow:

    def _confirmed_today(self, app, make_booking, start_time='10:00', **overrides):
        from models.booking import accept_booking

        booking = make_booking(date=TODAY, start_time=start_time, source='staff',
                               created_by='admin', **overrides)
        with app.app_context():
            return accept_booking(booking['id'], 'admin')

    def test_complete_after_start(self, app, make_booking):
        from models.booking import complete_booking
        from models.guest import get_guest_by_phone

        booking = self._confirmed_today(app, make_booking)
        with app.app_context():
            done = complete_booking(booking['id'], 'admin', now=NOW.replace(hour=13))
            guest = get_guest_by_phone('+375291234567')

        assert done['status'] == 'completed'
        assert guest['completed'] == 1
        assert guest['last_visit'] == TODAY

    def test_complete_before_start_rejected(self, app, make_booking):
        from models.booking import complete_booking

        booking = self._confirmed_today(app, make_booking, start_time='14:00')
        with app.app_context():
            with pytest.raises(IllegalTransitionError):
                complete_booking(booking['id'], 'admin', now=NOW.replace(hour=13, minute=59))

    def test_complete_on_other_day_rejected(self, app, make_booking):
        from models.booking import complete_booking

        booking = self._confirmed_today(app, make_booking)
        with app.app_context():
            with pytest.raises(IllegalTransitionError):
                complete_booking(booking['id'], 'admin', now=NOW + timedelta(days=1))

    def test_complete_requires_confirmed(self, app, make_booking):
        from models.booking import complete_booking

        booking = make_booking(date=TODAY, start_time='10:00', source='staff', created_by='admin')
        with app.app_context():
            with pytest.raises(IllegalTransitionError):
                complete_booking(booking['id'], 'admin', now=NOW.replace(hour=11))

    def test_no_show_keeps_interval(self, app, make_booking):
        from models.booking import mark_no_show, resolve_availability
        from models.guest import get_guest_by_phone
        from models.resource import get_resource_by_code

        booking = self._confirmed_today(app, make_booking)
        with app.app_context():
            result = mark_no_show(booking['id'], 'admin', now=NOW.replace(hour=10, minute=30))
            slots = {s['start_time']: s for s in resolve_availability(get_resource_by_code('SPA1'), TODAY)}
            guest = get_guest_by_phone('+375291234567')

        assert result['status'] == 'no_show'
        assert slots['10:00']['available'] is False
        assert slots['12:00']['available'] is False
        assert slots['13:00']['available'] is True
        assert guest['no_shows'] == 1

    def test_no_show_interval_cannot_be_rebooked(self, app, make_booking):
        from models.booking import mark_no_show
        from models.booking_guard import try_reserve
        from models.resource import get_resource_by_code

        booking = self._confirmed_today(app, make_booking, start_time='14:00')
        with app.app_context():
            mark_no_show(booking['id'], 'admin', now=NOW.replace(hour=14, minute=5))
            with pytest.raises(ConflictError):
                try_reserve(
                    get_resource_by_code('SPA1'), TODAY, '14:00', '17:00',
                    {'duration_minutes': 180, 'subtype': 'bath_only', 'guest_count': 2,
                     'status': 'pending_call',
                     'customer_name': 'Анна', 'customer_phone': '+375291110000'}
                )

    def test_completed_still_occupies(self, app, make_booking):
        from models.booking import complete_booking, resolve_availability
        from models.resource import get_resource_by_code

        booking = self._confirmed_today(app, make_booking)
        with app.app_context():
            complete_booking(booking['id'], 'admin', now=NOW.replace(hour=13))
            slots = {s['start_time']: s for s in resolve_availability(get_resource_by_code('SPA1'), TODAY)}

        assert slots['10:00']['available'] is False


class TestExpireHolds:

    def test_expires_only_overdue_holds(self, app, make_booking):
        from models.booking import expire_stale_bookings, get_booking_by_id

        early = make_booking(start_time='10:00')
        late = make_booking(start_time='14:00', customer_phone='+375291110000',
                            now=NOW + timedelta(hours=1))

        with app.app_context():
            expired = expire_stale_bookings(now=NOW + timedelta(minutes=150))
            assert expired == [early['ticket_number']]
            assert get_booking_by_id(early['id'])['status'] == 'expired'
            assert get_booking_by_id(late['id'])['status'] == 'pending_call'

    def test_confirmed_and_staff_bookings_never_expire(self, app, make_booking):
        from models.booking import accept_booking, expire_stale_bookings

        guest = make_booking(start_time='10:00')
        make_booking(start_time='14:00', source='staff', created_by='admin',
                     customer_phone='+375291110000')

        with app.app_context():
            accept_booking(guest['id'], 'admin')
            assert expire_stale_bookings(now=NOW + timedelta(days=1)) == []

    def test_hold_window_from_config(self, app, make_booking):
        app.config['PENDING_HOLD_MINUTES'] = 30
        booking = make_booking()
        assert booking['hold_until'] == '2030-06-10 08:30:00'


class TestClosePayment:

    def test_close_payment_on_confirmed(self, app, make_booking):
        from models.booking import accept_booking, close_payment

        booking = make_booking()
        with app.app_context():
            accept_booking(booking['id'], 'admin')
            paid = close_payment(booking['id'], 'erip', 'admin', now=NOW)

        assert paid['status'] == 'confirmed'
        assert paid['payment_method'] == 'erip'
        assert paid['paid_at'] == '2030-06-10 08:00:00'

    def test_close_payment_twice_rejected(self, app, make_booking):
        from models.booking import accept_booking, close_payment

        booking = make_booking()
        with app.app_context():
            accept_booking(booking['id'], 'admin')
            close_payment(booking['id'], 'cash', 'admin')
            with pytest.raises(IllegalTransitionError):
                close_payment(booking['id'], 'erip', 'admin')

    def test_close_payment_on_pending_rejected(self, app, make_booking):
        from models.booking import close_payment

        booking = make_booking()
        with app.app_context():
            with pytest.raises(IllegalTransitionError):
                close_payment(booking['id'], 'cash', 'admin')

    def test_unknown_method(self, app, make_booking):
        from models.booking import close_payment

        booking = make_booking()
        with app.app_context():
            with pytest.raises(ValidationError):
                close_payment(booking['id'], 'card', 'admin')


class TestApplyDiscount:

    def test_discount_reprices(self, app, make_booking):
        from models.booking import apply_discount, get_booking_history

        booking = make_booking(subtype='bath_with_tub', guest_count=10, duration_hours=4,
                               add_ons={'grill': True, 'charcoal': 2})
        assert booking['price_total'] == 405

        with app.app_context():
            discounted = apply_discount(booking['id'], 10, 'owner')
            history = get_booking_history(booking['id'])

        assert discounted['discount_percent'] == 10
        assert discounted['discount_amount'] == 41
        assert discounted['price_total'] == 364
        assert history[-1]['action'] == 'discount'

    def test_discount_out_of_range(self, app, make_booking):
        from models.booking import apply_discount

        booking = make_booking()
        with app.app_context():
            for bad in (-5, 101, 'half'):
                with pytest.raises(ValidationError):
                    apply_discount(booking['id'], bad, 'owner')

    def test_discount_on_terminal_booking(self, app, make_booking):
        from models.booking import apply_discount, cancel_booking

        booking = make_booking()
        with app.app_context():
            cancel_booking(booking['id'], 'admin')
            with pytest.raises(IllegalTransitionError):
                apply_discount(booking['id'], 10, 'owner')
