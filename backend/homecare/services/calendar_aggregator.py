"""
Calendar aggregator - merges obligations and appointments into one ordered
event stream and the notification list shown in the notification bar.

Notification ids are derived from the source id and obligation kind, so a
notification dismissed on the client keeps the same id on the next refresh.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from homecare.core import config
from homecare.domain.entities import (
    Appointment,
    CalendarEvent,
    Diagnostic,
    Notification,
    NotificationType,
    Obligation,
    ObligationKind,
    Transaction,
)

from .obligations import (
    appointment_obligation,
    derive_diagnostic_obligations,
    derive_obligations,
)

logger = logging.getLogger(__name__)

_TITLES = {
    ObligationKind.CASH_REMAINDER: "Cash remainder due",
    ObligationKind.CNAM_FOLLOW_UP: "CNAM follow-up",
    ObligationKind.PROMISSORY_NOTE_DUE: "Promissory note due",
    ObligationKind.RENTAL_RETURN: "Rental not returned",
    ObligationKind.RENTAL_ENDING: "Rental ending soon",
    ObligationKind.APPOINTMENT: "Appointment",
    ObligationKind.DIAGNOSTIC_FOLLOW_UP: "Severe diagnostic follow-up",
}

# Kinds that always produce a reminder, whatever their distance from as_of.
_REMINDER_KINDS = (ObligationKind.APPOINTMENT, ObligationKind.RENTAL_ENDING)


@dataclass(frozen=True)
class AggregationResult:
    events: Tuple[CalendarEvent, ...] = ()
    notifications: Tuple[Notification, ...] = ()


def stable_id(source_entity_id: str, kind: ObligationKind) -> str:
    """Deterministic identifier for a (source, kind) pair."""
    digest = hashlib.sha1(f"{source_entity_id}|{kind.value}".encode("utf-8"))
    return digest.hexdigest()[:16]


def _sort_key(obligation: Obligation):
    return (
        obligation.due_date,
        obligation.source_entity_type,
        obligation.source_entity_id,
        obligation.kind.value,
    )


def _deduplicate(obligations: Iterable[Obligation]) -> List[Obligation]:
    """Keep one obligation per (source, kind): the most overdue one."""
    kept: Dict[Tuple[str, ObligationKind], Obligation] = {}
    for obligation in obligations:
        key = (obligation.source_entity_id, obligation.kind)
        current = kept.get(key)
        if current is None:
            kept[key] = obligation
            continue
        logger.warning(
            "Duplicate obligation for the same source and kind",
            extra={
                "context": {
                    "source_entity_id": obligation.source_entity_id,
                    "kind": obligation.kind.value,
                }
            },
        )
        if (obligation.is_overdue, -obligation.due_date.toordinal()) > (
            current.is_overdue,
            -current.due_date.toordinal(),
        ):
            kept[key] = obligation
    return sorted(kept.values(), key=_sort_key)


def classify(obligation: Obligation, as_of: date) -> Optional[NotificationType]:
    """
    Notification type for an obligation at ``as_of``, or None when it is too
    far away to notify about.
    """
    if obligation.kind in _REMINDER_KINDS:
        return NotificationType.REMINDER
    if obligation.is_overdue:
        if (as_of - obligation.due_date).days > config.URGENT_AFTER_DAYS:
            return NotificationType.URGENT
        return NotificationType.OVERDUE
    if (obligation.due_date - as_of).days <= config.DUE_SOON_DAYS:
        return NotificationType.DUE_SOON
    return None


def _status(obligation: Obligation, as_of: date) -> str:
    if obligation.is_overdue:
        return "OVERDUE"
    if obligation.due_date == as_of:
        return "TODAY"
    if obligation.due_date < as_of:
        return "PAST"
    return "UPCOMING"


def _to_event(obligation: Obligation, as_of: date) -> CalendarEvent:
    title = _TITLES[obligation.kind]
    if obligation.patient_name:
        title = f"{title}: {obligation.patient_name}"
    details = {"description": obligation.description}
    if obligation.transaction_id:
        details["transaction_id"] = obligation.transaction_id
    if obligation.amount is not None:
        details["amount"] = str(obligation.amount)
    return CalendarEvent(
        id=stable_id(obligation.source_entity_id, obligation.kind),
        title=title,
        kind=obligation.kind,
        due_date=obligation.due_date,
        source_entity_id=obligation.source_entity_id,
        source_entity_type=obligation.source_entity_type,
        is_overdue=obligation.is_overdue,
        status=_status(obligation, as_of),
        patient_name=obligation.patient_name,
        details=details,
    )


def _message(obligation: Obligation, kind: NotificationType, as_of: date) -> str:
    if kind in (NotificationType.OVERDUE, NotificationType.URGENT):
        days = (as_of - obligation.due_date).days
        plural = "s" if days > 1 else ""
        return f"{obligation.description} ({days} day{plural} late)"
    return obligation.description


def _to_notification(
    obligation: Obligation, kind: NotificationType, as_of: date
) -> Notification:
    return Notification(
        id=stable_id(obligation.source_entity_id, obligation.kind),
        title=_TITLES[obligation.kind],
        message=_message(obligation, kind, as_of),
        type=kind,
        date=obligation.due_date,
        entity_type=obligation.source_entity_type,
        entity_id=obligation.source_entity_id,
        patient_name=obligation.patient_name,
    )


def collect_obligations(
    transactions: Iterable[Transaction],
    appointments: Iterable[Appointment],
    as_of: date,
    diagnostics: Iterable[Diagnostic] = (),
) -> List[Obligation]:
    """All obligations of one pass, unsorted and not yet deduplicated."""
    obligations: List[Obligation] = []
    for transaction in transactions:
        obligations.extend(derive_obligations(transaction, as_of))
    for appointment in appointments:
        obligation = appointment_obligation(appointment)
        if obligation is not None:
            obligations.append(obligation)
    for diagnostic in diagnostics:
        obligations.extend(derive_diagnostic_obligations(diagnostic, as_of))
    return obligations


def aggregate(
    transactions: Iterable[Transaction],
    appointments: Iterable[Appointment],
    as_of: date,
    diagnostics: Iterable[Diagnostic] = (),
) -> AggregationResult:
    """
    Build the calendar and notification list for one refresh pass.

    Args:
        transactions: sales and rentals of the snapshot
        appointments: appointments of the snapshot's window
        as_of: reference date of the pass
        diagnostics: diagnostics, for severe-result follow-ups

    Returns:
        AggregationResult with events sorted by due date, then source type and
        id, and notifications in the same order.
    """
    obligations = _deduplicate(
        collect_obligations(transactions, appointments, as_of, diagnostics)
    )

    events: List[CalendarEvent] = []
    notifications: List[Notification] = []
    for obligation in obligations:
        events.append(_to_event(obligation, as_of))
        kind = classify(obligation, as_of)
        if kind is not None:
            notifications.append(_to_notification(obligation, kind, as_of))

    logger.info(
        "Calendar aggregated",
        extra={
            "context": {
                "as_of": as_of.isoformat(),
                "events": len(events),
                "notifications": len(notifications),
            }
        },
    )
    return AggregationResult(events=tuple(events), notifications=tuple(notifications))
