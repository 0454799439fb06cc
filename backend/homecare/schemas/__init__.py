"""
Schemas package - Data Transfer Objects.

This package contains DTOs that define the API contracts
following SOLID principles.
"""

from .dtos import (
    AnalyticsResponse,
    CalendarEventResponse,
    ErrorResponse,
    NotificationResponse,
    ObligationResponse,
    ReconciliationResponse,
    StatsResponse,
)

__all__ = [
    # Calendar DTOs
    "CalendarEventResponse",
    "NotificationResponse",
    "ObligationResponse",
    # Billing DTOs
    "ReconciliationResponse",
    "StatsResponse",
    "AnalyticsResponse",
    # Common DTOs
    "ErrorResponse",
]
