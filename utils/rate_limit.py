"""
Per-address request window for unauthenticated booking requests.

Every attempt counts, whether or not it ends in a booking. The window
lives in the worker process, so each gunicorn worker keeps its own count.
"""

import threading
import time
from collections import defaultdict, deque

from flask import current_app, request

from models.exceptions import TooManyRequestsError

WINDOW_SECONDS = 3600


class RequestWindow:
    """Sliding window of request timestamps keyed by client address."""

    def __init__(self, window_seconds: int = WINDOW_SECONDS, clock=time.monotonic):
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits = defaultdict(deque)
        self._lock = threading.Lock()

    def hit(self, key: str, limit: int) -> bool:
        """
        Record one request for a key.

        Returns:
            bool: False if the key already used up its limit (not recorded)
        """
        now = self._clock()
        cutoff = now - self.window_seconds

        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= cutoff:
                hits.popleft()
            if len(hits) >= limit:
                return False
            hits.append(now)
            return True

    def reset(self) -> None:
        with self._lock:
            self._hits.clear()


def get_request_window() -> RequestWindow:
    """Guest request window of the current app."""
    window = current_app.extensions.get('guest_request_window')
    if window is None:
        window = current_app.extensions.setdefault('guest_request_window', RequestWindow())
    return window


def enforce_guest_request_limit() -> None:
    """
    Count a guest booking request against its address.

    Raises:
        TooManyRequestsError: Address exceeded MAX_GUEST_REQUESTS_PER_HOUR
    """
    limit = current_app.config.get('MAX_GUEST_REQUESTS_PER_HOUR', 10)
    address = request.remote_addr or 'unknown'

    if not get_request_window().hit(address, limit):
        current_app.logger.warning('Booking request limit reached for %s', address)
        raise TooManyRequestsError(
            'Слишком много запросов. Попробуйте позже',
            max_requests=limit
        )
