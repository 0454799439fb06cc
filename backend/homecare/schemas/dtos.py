"""
Data Transfer Objects (DTOs) for the billing API.

Following SOLID principles:
- Single Responsibility: Each schema describes one response contract
- Open/Closed: Schemas can be extended without modification

Money leaves the API as strings so no precision is lost in JSON.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


def _money(value) -> Optional[str]:
    return None if value is None else str(value)


@dataclass
class CalendarEventResponse:
    """DTO for calendar event API responses."""

    id: str
    title: str
    kind: str
    due_date: str
    source_entity_id: str
    source_entity_type: str
    is_overdue: bool
    status: str
    patient_name: Optional[str]
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_domain(cls, event) -> "CalendarEventResponse":
        """Create response from domain entity."""
        return cls(
            id=event.id,
            title=event.title,
            kind=event.kind.value,
            due_date=event.due_date.isoformat(),
            source_entity_id=event.source_entity_id,
            source_entity_type=event.source_entity_type,
            is_overdue=event.is_overdue,
            status=event.status,
            patient_name=event.patient_name,
            details=dict(event.details),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class NotificationResponse:
    """DTO for notification API responses."""

    id: str
    title: str
    message: str
    type: str
    date: str
    entity_type: str
    entity_id: str
    patient_name: Optional[str]

    @classmethod
    def from_domain(cls, notification) -> "NotificationResponse":
        return cls(
            id=notification.id,
            title=notification.title,
            message=notification.message,
            type=notification.type.value,
            date=notification.date.isoformat(),
            entity_type=notification.entity_type,
            entity_id=notification.entity_id,
            patient_name=notification.patient_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ObligationResponse:
    source_entity_id: str
    source_entity_type: str
    kind: str
    due_date: str
    description: str
    is_overdue: bool
    patient_name: Optional[str]
    transaction_id: Optional[str]
    amount: Optional[str]

    @classmethod
    def from_domain(cls, obligation) -> "ObligationResponse":
        return cls(
            source_entity_id=obligation.source_entity_id,
            source_entity_type=obligation.source_entity_type,
            kind=obligation.kind.value,
            due_date=obligation.due_date.isoformat(),
            description=obligation.description,
            is_overdue=obligation.is_overdue,
            patient_name=obligation.patient_name,
            transaction_id=obligation.transaction_id,
            amount=_money(obligation.amount),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ReconciliationResponse:
    """DTO for the payment summary of one sale or rental."""

    total_due: str
    total_paid: str
    outstanding: str
    is_overpaid: bool
    by_instrument: Dict[str, str]
    pending_claims: str
    scheduled_remainders: str
    anomalies: List[Dict[str, str]]

    @classmethod
    def from_domain(cls, result) -> "ReconciliationResponse":
        return cls(
            total_due=_money(result.total_due),
            total_paid=_money(result.total_paid),
            outstanding=_money(result.outstanding),
            is_overpaid=result.is_overpaid,
            by_instrument={
                kind.value: _money(amount)
                for kind, amount in result.by_instrument.items()
            },
            pending_claims=_money(result.pending_claims),
            scheduled_remainders=_money(result.scheduled_remainders),
            anomalies=[
                {"entity_id": a.entity_id, "message": a.message}
                for a in result.anomalies
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class StatsResponse:
    appointments: int
    rentals: int
    sales: int
    diagnostics: int
    overdue_payments: int

    @classmethod
    def from_domain(cls, summary) -> "StatsResponse":
        return cls(
            appointments=summary.appointments,
            rentals=summary.rentals,
            sales=summary.sales,
            diagnostics=summary.diagnostics,
            overdue_payments=summary.overdue_payments,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class AnalyticsResponse:
    """DTO for the administrator revenue dashboard."""

    total_revenue: str
    sales_revenue: str
    rental_revenue: str
    outstanding_total: str
    active_rentals: int
    total_patients: int
    new_patients_this_month: int
    monthly: List[Dict[str, str]]
    by_instrument: Dict[str, str]

    @classmethod
    def from_domain(cls, analytics) -> "AnalyticsResponse":
        return cls(
            total_revenue=_money(analytics.total_revenue),
            sales_revenue=_money(analytics.sales_revenue),
            rental_revenue=_money(analytics.rental_revenue),
            outstanding_total=_money(analytics.outstanding_total),
            active_rentals=analytics.active_rentals,
            total_patients=analytics.total_patients,
            new_patients_this_month=analytics.new_patients_this_month,
            monthly=[
                {
                    "month": m.month.strftime("%Y-%m"),
                    "sales": _money(m.sales),
                    "rentals": _money(m.rentals),
                    "total": _money(m.total),
                }
                for m in analytics.monthly
            ],
            by_instrument={
                kind.value: _money(amount)
                for kind, amount in analytics.by_instrument.items()
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ErrorResponse:
    """DTO for error responses."""

    error: str
    message: str
    entity_id: Optional[str] = None
    details: List[str] = field(default_factory=list)

    @classmethod
    def data_quality(cls, entity_id: Optional[str], message: str, details=None):
        return cls(
            error="DataQualityError",
            message=message,
            entity_id=entity_id,
            details=list(details or []),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
