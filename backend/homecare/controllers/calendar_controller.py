"""
Calendar Controller - SOLID compliant HTTP handlers
Single Responsibility: Translate billing calendar, notification, stats and
reconciliation requests into snapshot service calls
"""

import logging

from flask import Blueprint, request
from flask_login import current_user, login_required

from homecare.core import config
from homecare.core.api_utils import api_response, parse_date_arg
from homecare.core.auth import ROLE_ADMINISTRATOR, require_role
from homecare.core.exceptions import (
    IngestionError,
    InvariantViolation,
    UnknownTransactionKind,
)
from homecare.db.session import SessionLocal
from homecare.domain.entities import TransactionKind
from homecare.repositories.record_store import SqlAlchemyRecordStore
from homecare.schemas.dtos import (
    AnalyticsResponse,
    CalendarEventResponse,
    ErrorResponse,
    NotificationResponse,
    ObligationResponse,
    ReconciliationResponse,
    StatsResponse,
)
from homecare.services.snapshot_service import SnapshotService

logger = logging.getLogger(__name__)

# Create Blueprint
calendar_bp = Blueprint("calendar", __name__, url_prefix="/api")


def _get_snapshot_service(db) -> SnapshotService:
    """
    Dependency injection for the snapshot service.
    Follows Dependency Inversion Principle.

    Returns:
        Snapshot service reading through the SQLAlchemy record store
    """
    return SnapshotService(SqlAlchemyRecordStore(db))


def _as_of():
    """Reference date from ``?as_of=``, defaulting to today in APP_TZ."""
    return parse_date_arg("as_of", default=config.today_local())


def _bad_date_response():
    return api_response(False, "Invalid date. Use YYYY-MM-DD", status_code=400)


def _transaction_kind(kind: str) -> TransactionKind:
    try:
        return TransactionKind(kind.lower())
    except ValueError:
        raise UnknownTransactionKind(f"Unknown transaction kind: {kind}")


@calendar_bp.errorhandler(InvariantViolation)
def handle_invariant_violation(error: InvariantViolation):
    logger.warning(
        "Data quality issue blocked a billing computation",
        extra={"context": {"entity_id": error.entity_id, "detail": error.message}},
    )
    return api_response(
        False,
        f"Invalid data on {error.entity_id}: {error.message}",
        data=ErrorResponse.data_quality(error.entity_id, error.message).to_dict(),
        status_code=422,
    )


@calendar_bp.errorhandler(IngestionError)
def handle_ingestion_error(error: IngestionError):
    logger.warning(
        "Stored record rejected at ingestion",
        extra={"context": {"entity_id": error.entity_id, "errors": error.errors}},
    )
    return api_response(
        False,
        f"Malformed stored record {error.entity_id}",
        data=ErrorResponse.data_quality(
            error.entity_id, "malformed stored record", error.errors
        ).to_dict(),
        status_code=422,
    )


@calendar_bp.errorhandler(UnknownTransactionKind)
def handle_unknown_kind(error: UnknownTransactionKind):
    return api_response(False, str(error), status_code=404)


@calendar_bp.route("/calendar", methods=["GET"])
@login_required
def get_calendar():
    """
    Calendar events and notifications for one refresh pass.

    Query Parameters:
        as_of (str): Reference date YYYY-MM-DD (optional, defaults to today)
        days (int): Appointment window around as_of (optional)

    Returns:
        JSON response with events and notifications
    """
    try:
        as_of = _as_of()
    except ValueError:
        return _bad_date_response()

    days = request.args.get("days")
    window_days = None
    if days not in (None, ""):
        if not days.isdigit():
            return api_response(
                False, "days must be a non-negative integer", status_code=400
            )
        window_days = int(days)

    with SessionLocal() as db:
        service = _get_snapshot_service(db)
        snapshot = service.load_snapshot(as_of, window_days=window_days)
        result = service.build_calendar(snapshot)

    logger.info(
        "Calendar served",
        extra={
            "context": {
                "actor_id": current_user.id,
                "as_of": as_of.isoformat(),
                "events": len(result.events),
            }
        },
    )
    return api_response(
        True,
        "Calendar loaded",
        data={
            "as_of": as_of.isoformat(),
            "events": [CalendarEventResponse.from_domain(e).to_dict() for e in result.events],
            "notifications": [
                NotificationResponse.from_domain(n).to_dict()
                for n in result.notifications
            ],
        },
    )


@calendar_bp.route("/notifications", methods=["GET"])
@login_required
def get_notifications():
    """Notification bar content at ``as_of``."""
    try:
        as_of = _as_of()
    except ValueError:
        return _bad_date_response()

    with SessionLocal() as db:
        service = _get_snapshot_service(db)
        result = service.build_calendar(service.load_snapshot(as_of))

    notifications = [
        NotificationResponse.from_domain(n).to_dict() for n in result.notifications
    ]
    return api_response(
        True,
        "Notifications loaded",
        data={"notifications": notifications, "count": len(notifications)},
    )


@calendar_bp.route("/stats", methods=["GET"])
@login_required
def get_stats():
    """Dashboard counters at ``as_of``."""
    try:
        as_of = _as_of()
    except ValueError:
        return _bad_date_response()

    with SessionLocal() as db:
        service = _get_snapshot_service(db)
        summary = service.build_stats(service.load_snapshot(as_of))

    return api_response(
        True, "Stats loaded", data=StatsResponse.from_domain(summary).to_dict()
    )


@calendar_bp.route("/analytics", methods=["GET"])
@login_required
@require_role(ROLE_ADMINISTRATOR)
def get_analytics():
    """Revenue analytics; administrators only."""
    try:
        as_of = _as_of()
    except ValueError:
        return _bad_date_response()

    with SessionLocal() as db:
        service = _get_snapshot_service(db)
        analytics = service.build_analytics(service.load_snapshot(as_of))

    return api_response(
        True,
        "Analytics loaded",
        data=AnalyticsResponse.from_domain(analytics).to_dict(),
    )


@calendar_bp.route("/transactions/<kind>/<transaction_id>/reconciliation")
@login_required
def get_reconciliation(kind: str, transaction_id: str):
    """Paid and outstanding amounts of one sale or rental."""
    transaction_kind = _transaction_kind(kind)

    with SessionLocal() as db:
        result = _get_snapshot_service(db).reconcile(transaction_kind, transaction_id)

    if result is None:
        return api_response(
            False, f"{transaction_kind.value} {transaction_id} not found", status_code=404
        )
    return api_response(
        True,
        "Reconciliation computed",
        data=ReconciliationResponse.from_domain(result).to_dict(),
    )


@calendar_bp.route("/transactions/<kind>/<transaction_id>/obligations")
@login_required
def get_obligations(kind: str, transaction_id: str):
    """Obligations one sale or rental currently implies at ``as_of``."""
    transaction_kind = _transaction_kind(kind)
    try:
        as_of = _as_of()
    except ValueError:
        return _bad_date_response()

    with SessionLocal() as db:
        obligations = _get_snapshot_service(db).obligations(
            transaction_kind, transaction_id, as_of
        )

    if obligations is None:
        return api_response(
            False, f"{transaction_kind.value} {transaction_id} not found", status_code=404
        )
    return api_response(
        True,
        "Obligations derived",
        data={
            "as_of": as_of.isoformat(),
            "obligations": [
                ObligationResponse.from_domain(o).to_dict() for o in obligations
            ],
        },
    )
