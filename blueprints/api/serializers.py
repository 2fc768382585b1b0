"""
JSON shapes of the booking API.
Models work with snake_case dicts; the wire format is camelCase.
"""

from utils.api_response import api_error
from utils.messages import MESSAGES


def serialize_resource(resource: dict, capacities: dict) -> dict:
    return {
        'code': resource['code'],
        'category': resource['category'],
        'title': resource['title'],
        'openTime': resource['open_time'],
        'closeTime': resource['close_time'],
        'granularityMinutes': resource['granularity_minutes'],
        'bufferMinutes': resource['buffer_minutes'],
        'subtypes': {
            subtype: {'minGuests': bounds['min_guests'], 'maxGuests': bounds['max_guests']}
            for subtype, bounds in capacities.items()
        },
    }


def serialize_slot(slot: dict) -> dict:
    data = {
        'resource': slot['resource'],
        'date': slot['date'],
        'startTime': slot['start_time'],
        'endTime': slot['end_time'],
        'available': slot['available'],
        'maxDuration': slot['max_duration'],
        'maxDurationMinutes': slot['max_duration_minutes'],
    }
    if 'available_quads' in slot:
        ride = slot['ride']
        data['availableQuads'] = slot['available_quads']
        data['ride'] = ride and {
            'subtype': ride['subtype'],
            'bookedQuads': ride['booked_quads'],
            'availableQuads': ride['available_quads'],
            'durationMinutes': ride['duration_minutes'],
            'joinDiscountPercent': ride['join_discount_percent'],
        }
    return data


def serialize_block(block: dict) -> dict:
    return {
        'id': block['id'],
        'resource': block['resource_code'],
        'date': block['block_date'],
        'startTime': block['start_time'],
        'endTime': block['end_time'],
        'wholeDay': block['start_time'] is None,
        'reason': block['reason'],
        'createdBy': block['created_by'],
        'createdAt': block['created_at'],
    }


def serialize_calendar_day(day: dict) -> dict:
    return {
        'date': day['date'],
        'hasBookings': day['has_bookings'],
        'fullyBooked': day['fully_booked'],
    }


def serialize_price(price: dict) -> dict:
    return {
        'subtype': price['subtype'],
        'base': price['base'],
        'extraHours': price['extra_hours'],
        'extraHoursCost': price['extra_hours_cost'],
        'addOns': price['add_ons'],
        'addOnsCost': price['add_ons_cost'],
        'subtotal': price['subtotal'],
        'discountPercent': price['discount_percent'],
        'discountAmount': price['discount_amount'],
        'total': price['total'],
    }


def serialize_booking(booking: dict) -> dict:
    return {
        'id': booking['id'],
        'ticketNumber': booking['ticket_number'],
        'resource': booking['resource_code'],
        'category': booking['resource_category'],
        'date': booking['booking_date'],
        'startTime': booking['start_time'],
        'endTime': booking['end_time'],
        'durationMinutes': booking['duration_minutes'],
        'subtype': booking['subtype'],
        'guestCount': booking['guest_count'],
        'addOns': booking['add_ons'],
        'price': {
            'base': booking['price_base'],
            'extraHoursCost': booking['price_extra_hours'],
            'addOnsCost': booking['price_add_ons'],
            'subtotal': booking['price_base'] + booking['price_extra_hours'] + booking['price_add_ons'],
            'discountPercent': booking['discount_percent'],
            'discountAmount': booking['discount_amount'],
            'total': booking['price_total'],
        },
        'customer': {
            'fullName': booking['customer_name'],
            'phone': booking['customer_phone'],
            'externalId': booking['customer_external_id'],
        },
        'comment': booking['comment'],
        'status': booking['status'],
        'source': booking['source'],
        'payment': {
            'method': booking['payment_method'],
            'paidAt': booking['paid_at'],
        },
        'holdUntil': booking['hold_until'],
        'joinedGroup': bool(booking['joined_group']),
        'createdBy': booking['created_by'],
        'createdAt': booking['created_at'],
        'updatedAt': booking['updated_at'],
    }


def serialize_public_booking(booking: dict) -> dict:
    """What a guest sees after submitting a request."""
    return {
        'ticketNumber': booking['ticket_number'],
        'resource': booking['resource_code'],
        'date': booking['booking_date'],
        'startTime': booking['start_time'],
        'endTime': booking['end_time'],
        'status': booking['status'],
        'total': booking['price_total'],
        'joinedGroup': bool(booking['joined_group']),
        'holdUntil': booking['hold_until'],
    }


def serialize_history(entry: dict) -> dict:
    return {
        'action': entry['action'],
        'fromStatus': entry['from_status'],
        'toStatus': entry['to_status'],
        'changedBy': entry['changed_by'],
        'notes': entry['notes'],
        'createdAt': entry['created_at'],
    }


def parse_booking_request(payload: dict) -> dict:
    """Booking request body to the keyword shape create_booking expects."""
    customer = payload.get('customer') or {}
    if not isinstance(customer, dict):
        customer = {}

    return {
        'resource': payload.get('resource'),
        'subtype': payload.get('subtype'),
        'date': payload.get('date'),
        'start_time': payload.get('startTime'),
        'duration_hours': payload.get('durationHours'),
        'duration_minutes': payload.get('durationMinutes'),
        'guest_count': payload.get('guestCount'),
        'add_ons': payload.get('addOns'),
        'customer_name': customer.get('fullName'),
        'customer_phone': customer.get('phone'),
        'customer_external_id': customer.get('externalId'),
        'comment': payload.get('comment'),
        'discount_percent': payload.get('discountPercent'),
        'status': payload.get('status'),
    }


def json_body(request):
    """
    Parsed JSON object of a request.

    Returns:
        tuple: (payload, None) or (None, error response)
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return None, api_error(MESSAGES['json_required'], status=400, code='validation_error')
    return payload, None
