"""
Booking data access functions.
Creation, reads, status transitions and availability for bookings.

This module re-exports the split modules so callers import from one place:
- booking_crud.py: Booking creation
- booking_queries.py: Lookups, listings, ticket numbers and history
- booking_guard.py: Atomic check-and-insert of booking intervals and shared rides
- booking_state.py: Status transitions, payment, discount, hold expiry
- availability.py: Slot availability and calendar overview
"""

# =============================================================================
# RE-EXPORTS
# =============================================================================

# Creation
from .booking_crud import (
    SOURCE_GUEST,
    SOURCE_STAFF,
    create_booking,
)

# Reads
from .booking_queries import (
    generate_ticket_number,
    get_booking_by_id,
    get_booking_by_ticket,
    require_booking,
    get_bookings_filtered,
    get_booking_history,
)

# Conflict guard
from .booking_guard import (
    intervals_overlap,
    validate_interval,
    find_conflicts,
    split_ride,
    ensure_interval_free,
    try_reserve,
)

# State management
from .booking_state import (
    VALID_TRANSITIONS,
    STATUS_LABELS,
    get_valid_transitions,
    get_allowed_transitions,
    validate_transition,
    accept_booking,
    cancel_booking,
    complete_booking,
    mark_no_show,
    expire_stale_bookings,
    close_payment,
    apply_discount,
)

# Availability
from .availability import (
    AvailabilityCache,
    lead_hours_for,
    resolve_availability,
    resolve_category_availability,
    resolve_calendar,
)
