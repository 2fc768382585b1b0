"""
Booking API routes: creation, staff listing, status transitions,
payment closing and owner discounts.
"""

from flask import request, current_app
from flask_login import current_user

from models.booking import (
    SOURCE_GUEST, SOURCE_STAFF,
    create_booking, require_booking, get_booking_by_ticket, get_bookings_filtered,
    get_booking_history,
    get_valid_transitions, accept_booking, cancel_booking, complete_booking,
    mark_no_show, close_payment, apply_discount
)
from models.exceptions import NotFoundError
from utils.api_response import api_success, api_error
from utils.decorators import capability_required
from utils.messages import MESSAGES
from utils.permissions import has_capability, MANAGE, VIEW, CREATE_CONFIRMED, DISCOUNT, PAYMENT
from utils.rate_limit import enforce_guest_request_limit
from utils.validators import validate_phone, normalize_phone
from blueprints.api.serializers import (
    serialize_booking, serialize_public_booking, serialize_history,
    parse_booking_request, json_body
)


def _notes():
    payload = request.get_json(silent=True)
    if isinstance(payload, dict):
        return str(payload.get('notes') or payload.get('reason') or '')[:500]
    return ''


def register_routes(bp):
    """Register booking API routes on the blueprint."""

    # ============================================================================
    # CREATE
    # ============================================================================

    @bp.route('/bookings', methods=['POST'])
    def booking_create():
        """
        Create a booking.

        Guests create pending_call requests that wait for a staff call.
        Staff may create confirmed bookings and owners may set a discount.

        Request JSON:
        {
            "resource": "SPA1",
            "subtype": "bath_with_tub",
            "date": "2026-10-20",
            "startTime": "14:00",
            "durationHours": 4,
            "guestCount": 6,
            "addOns": {"grill": true},
            "customer": {"fullName": "...", "phone": "+375291234567", "externalId": "..."},
            "comment": "..."
        }
        """
        is_staff = has_capability(current_user, MANAGE)
        if not is_staff:
            enforce_guest_request_limit()

        payload, error = json_body(request)
        if error:
            return error

        data = parse_booking_request(payload)

        if data['discount_percent'] and not has_capability(current_user, DISCOUNT):
            return api_error(MESSAGES['forbidden'], status=403, code='forbidden')
        if data['status'] and not is_staff:
            return api_error(MESSAGES['forbidden'], status=403, code='forbidden')

        booking = create_booking(
            data,
            created_by=current_user.username if is_staff else None,
            source=SOURCE_STAFF if is_staff else SOURCE_GUEST,
            allow_confirmed=has_capability(current_user, CREATE_CONFIRMED)
        )

        if is_staff:
            message_key = 'booking_created_confirmed' if booking['status'] == 'confirmed' else 'booking_created'
            return api_success(
                data=serialize_booking(booking),
                message=MESSAGES[message_key].format(ticket=booking['ticket_number']),
                status=201
            )

        return api_success(
            data=serialize_public_booking(booking),
            message=MESSAGES['booking_created'].format(ticket=booking['ticket_number']),
            status=201
        )

    # ============================================================================
    # READ
    # ============================================================================

    @bp.route('/bookings')
    @capability_required(VIEW)
    def booking_list():
        """
        List bookings.

        Query params:
            date: YYYY-MM-DD
            status: booking status
            category: 'spa' | 'bath' | 'quad'
            resource: resource code
            phone: guest phone (any format)
        """
        phone = request.args.get('phone')
        bookings = get_bookings_filtered(
            booking_date=request.args.get('date'),
            status=request.args.get('status'),
            category=request.args.get('category'),
            resource_code=request.args.get('resource'),
            phone=normalize_phone(phone) if validate_phone(phone) else None
        )
        return api_success(data=[serialize_booking(b) for b in bookings])

    @bp.route('/bookings/transitions')
    @capability_required(VIEW)
    def booking_transitions():
        """Status transition matrix."""
        return api_success(data=get_valid_transitions())

    @bp.route('/bookings/<int:booking_id>')
    @capability_required(VIEW)
    def booking_detail(booking_id):
        """Get booking details."""
        return api_success(data=serialize_booking(require_booking(booking_id)))

    @bp.route('/bookings/ticket/<ticket_number>')
    @capability_required(VIEW)
    def booking_by_ticket(ticket_number):
        """Look a booking up by the ticket number the guest names on the phone."""
        booking = get_booking_by_ticket(ticket_number.strip())
        if not booking:
            raise NotFoundError('Бронирование не найдено', ticket_number=ticket_number)
        return api_success(data=serialize_booking(booking))

    @bp.route('/bookings/<int:booking_id>/history')
    @capability_required(VIEW)
    def booking_history(booking_id):
        """Audit trail of a booking."""
        require_booking(booking_id)
        return api_success(data=[serialize_history(e) for e in get_booking_history(booking_id)])

    # ============================================================================
    # STATUS TRANSITIONS
    # ============================================================================

    @bp.route('/bookings/<int:booking_id>/accept', methods=['POST'])
    @capability_required(MANAGE)
    def booking_accept(booking_id):
        """pending_call -> confirmed (re-validated against overlaps)."""
        booking = accept_booking(booking_id, current_user.username, _notes())
        return api_success(data=serialize_booking(booking), message=MESSAGES['booking_accepted'])

    @bp.route('/bookings/<int:booking_id>/cancel', methods=['POST'])
    @capability_required(MANAGE)
    def booking_cancel(booking_id):
        """pending_call | confirmed -> cancelled."""
        booking = cancel_booking(booking_id, current_user.username, _notes())
        current_app.logger.info('Booking %s cancelled by %s', booking['ticket_number'],
                                current_user.username)
        return api_success(data=serialize_booking(booking), message=MESSAGES['booking_cancelled'])

    @bp.route('/bookings/<int:booking_id>/complete', methods=['POST'])
    @capability_required(MANAGE)
    def booking_complete(booking_id):
        """confirmed -> completed."""
        booking = complete_booking(booking_id, current_user.username, _notes())
        return api_success(data=serialize_booking(booking), message=MESSAGES['booking_completed'])

    @bp.route('/bookings/<int:booking_id>/no-show', methods=['POST'])
    @capability_required(MANAGE)
    def booking_no_show(booking_id):
        """confirmed -> no_show."""
        booking = mark_no_show(booking_id, current_user.username, _notes())
        return api_success(data=serialize_booking(booking), message=MESSAGES['booking_no_show'])

    # ============================================================================
    # PAYMENT & DISCOUNT
    # ============================================================================

    @bp.route('/bookings/<int:booking_id>/close-payment', methods=['POST'])
    @capability_required(PAYMENT)
    def booking_close_payment(booking_id):
        """
        Record payment of a confirmed booking.

        Request JSON: {"method": "erip" | "cash"}
        """
        data, error = json_body(request)
        if error:
            return error

        booking = close_payment(booking_id, data.get('method'), current_user.username)
        return api_success(data=serialize_booking(booking), message=MESSAGES['payment_closed'])

    @bp.route('/bookings/<int:booking_id>/discount', methods=['POST'])
    @capability_required(DISCOUNT)
    def booking_discount(booking_id):
        """
        Re-price a booking with an owner discount.

        Request JSON: {"discountPercent": 0..100}
        """
        data, error = json_body(request)
        if error:
            return error

        booking = apply_discount(booking_id, data.get('discountPercent'), current_user.username)
        return api_success(data=serialize_booking(booking), message=MESSAGES['discount_applied'])
