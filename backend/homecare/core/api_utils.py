"""
Common API utilities for consistent response formatting across all controllers.
"""

from datetime import date, datetime
from typing import Any, Optional

from flask import jsonify, request


def api_response(
    success: bool, message: str, data: Optional[Any] = None, status_code: int = 200
) -> tuple:
    """
    Standardized API response format for all endpoints.

    Args:
        success: Whether the operation was successful
        message: Human-readable message about the operation
        data: Optional data payload
        status_code: HTTP status code

    Returns:
        Tuple of (json_response, status_code)
    """
    response = {"success": success, "message": message}

    if data is not None:
        response["data"] = data

    return jsonify(response), status_code


def parse_date_arg(name: str, default: Optional[date] = None) -> Optional[date]:
    """
    Read an ISO ``YYYY-MM-DD`` date from the query string.

    Raises:
        ValueError: the argument is present but not a valid date.
    """
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return default
    return datetime.strptime(raw.strip(), "%Y-%m-%d").date()
