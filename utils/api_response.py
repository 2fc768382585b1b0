"""
Standardized API response helpers.

Provides consistent JSON response format across all API endpoints:

    Success:  {"success": true, "data": {...}, "message": "..."}
    Error:    {"success": false, "error": "...", "code": "...", "retryable": false}

Usage:
    from utils.api_response import api_success, api_error

    return api_success(data={'id': 1}, message='Бронирование создано', status=201)
    return api_error('Некорректные данные', status=400)
"""

from flask import jsonify
from typing import Any


def api_success(
    data: Any = None,
    message: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Optional payload to include as 'data' key.
        message: Optional success message.
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields to include in the response.

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error(error: str, status: int = 400, code: str = None,
              retryable: bool = False, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Human-readable error message.
        status: HTTP status code (default 400).
        code: Machine-readable error code.
        retryable: Whether repeating the request may succeed.
        **extra_fields: Additional top-level fields (e.g., details).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error, 'retryable': retryable}

    if code:
        response['code'] = code

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def booking_error_response(error) -> tuple:
    """Turn a BookingError into its JSON error response."""
    return api_error(error.message, status=error.http_status, **error.to_dict())
