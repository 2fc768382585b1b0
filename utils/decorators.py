"""
Route decorators for authentication and authorization.
Provides capability-based access control for API routes.
"""

from functools import wraps

from flask_login import current_user

from utils.api_response import api_error
from utils.messages import MESSAGES
from utils.permissions import has_capability


def capability_required(capability: str):
    """
    Decorator to require a capability for a route.

    Anonymous callers get 401, authenticated users without the capability
    get 403; both as JSON error envelopes.

    Usage:
        @bp.route('/bookings/<int:booking_id>/accept', methods=['POST'])
        @capability_required('bookings.manage')
        def accept(booking_id):
            ...

    Args:
        capability: Capability code required (e.g., 'bookings.view')

    Returns:
        Decorator function
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return api_error(MESSAGES['login_required'], status=401, code='unauthorized')

            if not has_capability(current_user, capability):
                return api_error(MESSAGES['forbidden'], status=403, code='forbidden')

            return func(*args, **kwargs)
        return wrapper
    return decorator


__all__ = ['capability_required']
