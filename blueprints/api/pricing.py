"""
Pricing API endpoints for real-time price previews.
"""

from flask import request

from models.catalog import SUBTYPE_RULES, Subtype, parse_enum
from models.pricing import compute_price
from models.exceptions import ValidationError
from utils.api_response import api_success
from blueprints.api.serializers import serialize_price, json_body


def register_routes(bp):
    """Register pricing API routes on the blueprint."""

    @bp.route('/pricing/quote', methods=['POST'])
    def pricing_quote():
        """
        Price preview for a prospective booking.

        Request JSON:
        {
            "subtype": "bath_with_tub",
            "guestCount": 10,
            "durationHours": 4,
            "addOns": {"grill": true, "charcoal": 2},
            "discountPercent": 0
        }

        Response JSON:
        {
            "success": true,
            "data": {"base": 330, "extraHoursCost": 30, "addOnsCost": 45,
                     "subtotal": 405, "discountPercent": 0,
                     "discountAmount": 0, "total": 405, ...}
        }
        """
        data, error = json_body(request)
        if error:
            return error

        duration_hours = data.get('durationHours')
        if duration_hours is None and data.get('durationMinutes') is not None:
            minutes = data['durationMinutes']
            if isinstance(minutes, bool) or not isinstance(minutes, (int, float)):
                raise ValidationError('Продолжительность должна быть числом', field='durationMinutes')
            duration_hours = minutes / 60
        if duration_hours is None:
            # Shortest bookable duration of the subtype
            subtype = parse_enum(Subtype, data.get('subtype'), 'subtype')
            duration_hours = min(SUBTYPE_RULES[subtype].durations) / 60

        price = compute_price(
            subtype=data.get('subtype'),
            guest_count=data.get('guestCount'),
            duration_hours=duration_hours,
            add_ons=data.get('addOns'),
            discount_percent=data.get('discountPercent', 0) or 0
        )

        return api_success(data=serialize_price(price))
