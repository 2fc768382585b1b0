"""
Resource and availability API endpoints.
Public: the guest booking pages read these before submitting a request.
"""

from datetime import timedelta

from flask import request, current_app

from models.availability import resolve_category_availability, resolve_calendar
from models.catalog import Category, parse_enum
from models.exceptions import ValidationError
from models.resource import get_all_resources, get_capacities
from utils.api_response import api_success
from utils.datetime_helpers import get_now, parse_date
from utils.messages import MESSAGES
from blueprints.api.serializers import serialize_resource, serialize_slot, serialize_calendar_day


def _date_arg(name: str, default):
    value = request.args.get(name)
    if not value:
        return default
    try:
        return parse_date(value)
    except ValueError:
        raise ValidationError(MESSAGES['invalid_date'], field=name)


def register_routes(bp):
    """Register resource and availability routes on the blueprint."""

    @bp.route('/resources')
    def list_resources():
        """
        List active resources with their capacity bounds.

        Query params:
            category: 'spa' | 'bath' | 'quad' (optional)
        """
        resources = get_all_resources(category=request.args.get('category'))
        return api_success(data=[
            serialize_resource(resource, get_capacities(resource['id']))
            for resource in resources
        ])

    @bp.route('/resources/<category>/availability')
    def category_availability(category):
        """
        Slot availability of every resource in a category for one date.

        Query params:
            date: YYYY-MM-DD (default: today)

        Response JSON:
        {
            "success": true,
            "data": {
                "category": "spa",
                "date": "2026-10-20",
                "resources": [
                    {"code": "SPA1", "slots": [
                        {"startTime": "10:00", "endTime": "13:00", "available": true,
                         "maxDuration": 5, "maxDurationMinutes": 300, ...}
                    ]}
                ]
            }
        }
        """
        category = parse_enum(Category, category, 'category')
        now = get_now()
        day = _date_arg('date', now.date())

        resolved = resolve_category_availability(category, day, now=now)

        return api_success(data={
            'category': category.value,
            'date': day.isoformat(),
            'resources': [
                {
                    'code': entry['resource']['code'],
                    'title': entry['resource']['title'],
                    'slots': [serialize_slot(slot) for slot in entry['slots']],
                }
                for entry in resolved
            ],
        })

    @bp.route('/resources/<category>/calendar-availability')
    def calendar_availability(category):
        """
        Calendar overview of a category.

        Query params:
            date_from: YYYY-MM-DD (default: today)
            date_to: YYYY-MM-DD (default: date_from + CALENDAR_DEFAULT_DAYS)
        """
        category = parse_enum(Category, category, 'category')
        now = get_now()

        date_from = _date_arg('date_from', now.date())
        default_days = current_app.config.get('CALENDAR_DEFAULT_DAYS', 30)
        date_to = _date_arg('date_to', date_from + timedelta(days=default_days))

        max_days = current_app.config.get('CALENDAR_MAX_DAYS', 92)
        if (date_to - date_from).days > max_days:
            raise ValidationError(MESSAGES['range_too_long'].format(days=max_days), field='date_to')

        calendar = resolve_calendar(category, date_from, date_to, now=now)

        return api_success(data=[serialize_calendar_day(day) for day in calendar])
