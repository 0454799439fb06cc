"""
Centralized configuration module for application-wide settings.

This module provides centralized configuration for timezone handling and
for the thresholds used when turning payment obligations into calendar
notifications, ensuring consistency across all date operations.
"""

import os
import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from environment variable.

    Returns:
        ZoneInfo: Application timezone (defaults to UTC if not configured)

    Environment Variables:
        TZ: Timezone identifier (e.g., 'Africa/Tunis', 'UTC')
            Default: 'UTC' (safe fallback)
            Production: Should be set to 'Africa/Tunis'
    """
    # Default to UTC when TZ is not set to keep deterministic behavior in tests
    tz_name = os.getenv("TZ", "UTC")

    try:
        tz = ZoneInfo(tz_name)
        return tz
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


# Global timezone instance - initialized once at import time
APP_TZ = get_app_timezone()


def today_local() -> date:
    """Return today's date in the application timezone.

    Only the HTTP/CLI boundary calls this; the core always receives an
    explicit ``as_of`` date.
    """
    return datetime.now(APP_TZ).date()


def log_timezone_config():
    """
    Log the active timezone configuration.

    Should be called during application startup to provide visibility
    into the timezone being used for date operations.
    """
    logger.info(
        "Timezone configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "tz_env_var": os.getenv("TZ", "UTC"),
            }
        },
    )


# ===========================
# Notification Thresholds
# ===========================


def _get_positive_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(
            f"Invalid integer '{raw}' for {name}. Falling back to {default}.",
            extra={"context": {"setting": name}},
        )
        return default
    if value < 0:
        logger.warning(
            f"Negative value '{raw}' for {name}. Falling back to {default}.",
            extra={"context": {"setting": name}},
        )
        return default
    return value


def get_due_soon_days() -> int:
    """
    Number of days before a due date at which an obligation is reported as
    due soon.

    Environment Variables:
        NOTIFICATION_DUE_SOON_DAYS: Default 3
    """
    return _get_positive_int("NOTIFICATION_DUE_SOON_DAYS", 3)


def get_urgent_after_days() -> int:
    """
    Number of days past the due date after which an overdue obligation is
    escalated to urgent.

    Environment Variables:
        NOTIFICATION_URGENT_AFTER_DAYS: Default 30
    """
    return _get_positive_int("NOTIFICATION_URGENT_AFTER_DAYS", 30)


def get_rental_ending_window_days() -> int:
    """
    Look-ahead window used to remind staff that a rental is about to end.

    Environment Variables:
        RENTAL_ENDING_WINDOW_DAYS: Default 7
    """
    return _get_positive_int("RENTAL_ENDING_WINDOW_DAYS", 7)


def get_calendar_window_days() -> int:
    """
    Default number of days of appointments fetched for one calendar pass.

    Environment Variables:
        CALENDAR_WINDOW_DAYS: Default 30
    """
    return _get_positive_int("CALENDAR_WINDOW_DAYS", 30)


DUE_SOON_DAYS = get_due_soon_days()
URGENT_AFTER_DAYS = get_urgent_after_days()
RENTAL_ENDING_WINDOW_DAYS = get_rental_ending_window_days()
CALENDAR_WINDOW_DAYS = get_calendar_window_days()


def log_notification_config():
    """Log the active notification thresholds."""
    logger.info(
        "Notification thresholds initialized",
        extra={
            "context": {
                "due_soon_days": DUE_SOON_DAYS,
                "urgent_after_days": URGENT_AFTER_DAYS,
                "rental_ending_window_days": RENTAL_ENDING_WINDOW_DAYS,
                "calendar_window_days": CALENDAR_WINDOW_DAYS,
            }
        },
    )


# ===========================
# Authentication Seam Configuration
# ===========================


def get_trusted_actor_headers() -> bool:
    """
    Get whether actor identity headers set by the upstream auth service are
    trusted.

    Environment Variables:
        TRUSTED_ACTOR_HEADERS: Whether to accept X-Actor-Id / X-Actor-Role
            Default: 'false' (only enable behind a gateway that strips client-sent
            actor headers)

    Truthy values: "true", "1", "yes" (case-insensitive)
    """
    flag_str = os.getenv("TRUSTED_ACTOR_HEADERS", "false")
    trusted = flag_str.strip().lower() in ("true", "1", "yes")

    if not trusted:
        logger.warning(
            "Actor headers are NOT trusted - every API request will be rejected",
            extra={"context": {"TRUSTED_ACTOR_HEADERS": flag_str}},
        )

    return trusted


TRUSTED_ACTOR_HEADERS = get_trusted_actor_headers()
