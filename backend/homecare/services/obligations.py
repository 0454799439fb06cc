"""
Obligation deriver - turns payment and return state into dated follow-ups.

Obligations are recomputed from the current state of their source on every
pass and never stored, so an approved CNAM claim or a returned rental simply
stops producing one. The reference date is always passed in.
"""

import logging
from datetime import date, timedelta
from typing import List, Optional

from homecare.core import config
from homecare.domain.entities import (
    Appointment,
    AppointmentStatus,
    Diagnostic,
    Obligation,
    ObligationKind,
    Rental,
    ReturnStatus,
    Transaction,
)
from homecare.domain.payments import (
    ZERO,
    Cash,
    NationalInsuranceClaim,
    PaymentInstrument,
    PromissoryNote,
)

logger = logging.getLogger(__name__)

DIAGNOSTIC_FOLLOW_UP_DELAY = timedelta(days=7)


def _who(transaction: Transaction) -> str:
    return transaction.patient_name or f"{transaction.kind.value} {transaction.id}"


def _payment_obligation(
    key: str,
    payment: PaymentInstrument,
    transaction: Transaction,
    as_of: date,
) -> Optional[Obligation]:
    """Obligation for a single payment, or None when it does not qualify."""
    who = _who(transaction)

    if isinstance(payment, Cash):
        if payment.remainder <= ZERO:
            return None
        if payment.remainder_due_date is None:
            # A remainder without a due date cannot be scheduled.
            logger.debug(
                "Cash remainder has no due date, no obligation derived",
                extra={"context": {"payment": key, "transaction_id": transaction.id}},
            )
            return None
        return Obligation(
            source_entity_id=key,
            source_entity_type="payment",
            kind=ObligationKind.CASH_REMAINDER,
            due_date=payment.remainder_due_date,
            description=f"Remaining {payment.remainder} TND to collect from {who}",
            is_overdue=payment.remainder_due_date < as_of,
            patient_name=transaction.patient_name,
            transaction_id=transaction.id,
            amount=payment.remainder,
        )

    if isinstance(payment, NationalInsuranceClaim):
        if not payment.is_pending or payment.follow_up_date is None:
            return None
        return Obligation(
            source_entity_id=key,
            source_entity_type="payment",
            kind=ObligationKind.CNAM_FOLLOW_UP,
            due_date=payment.follow_up_date,
            description=f"Check CNAM claim status for {who} ({payment.amount} TND)",
            is_overdue=payment.follow_up_date < as_of,
            patient_name=transaction.patient_name,
            transaction_id=transaction.id,
            amount=payment.amount,
        )

    if isinstance(payment, PromissoryNote):
        return Obligation(
            source_entity_id=key,
            source_entity_type="payment",
            kind=ObligationKind.PROMISSORY_NOTE_DUE,
            due_date=payment.due_date,
            description=f"Promissory note of {payment.amount} TND due for {who}",
            is_overdue=payment.due_date < as_of,
            patient_name=transaction.patient_name,
            transaction_id=transaction.id,
            amount=payment.amount,
        )

    return None


def _rental_obligation(rental: Rental, as_of: date) -> Optional[Obligation]:
    if rental.return_status != ReturnStatus.NOT_RETURNED:
        return None
    if rental.date_range is None or rental.date_range.end is None:
        return None

    end = rental.date_range.end
    who = _who(rental)

    if end < as_of:
        return Obligation(
            source_entity_id=f"rental-{rental.id}",
            source_entity_type="rental",
            kind=ObligationKind.RENTAL_RETURN,
            due_date=end,
            description=f"Equipment rented to {who} was due back on {end.isoformat()}",
            is_overdue=True,
            patient_name=rental.patient_name,
            transaction_id=rental.id,
        )

    if end <= as_of + timedelta(days=config.RENTAL_ENDING_WINDOW_DAYS):
        return Obligation(
            source_entity_id=f"rental-{rental.id}",
            source_entity_type="rental",
            kind=ObligationKind.RENTAL_ENDING,
            due_date=end,
            description=f"Rental for {who} ends on {end.isoformat()}",
            is_overdue=False,
            patient_name=rental.patient_name,
            transaction_id=rental.id,
        )

    return None


def derive_obligations(transaction: Transaction, as_of: date) -> List[Obligation]:
    """
    Derive every obligation a sale or rental currently implies.

    One obligation per qualifying payment (line-level or shared) plus, for a
    rental still out, one return obligation. Order is not significant; the
    aggregator sorts.

    Raises:
        InvariantViolation: the transaction's data breaks an invariant.
    """
    transaction.check_invariants()

    if transaction.is_cancelled:
        return []

    obligations: List[Obligation] = []
    for key, payment in transaction.iter_payments():
        obligation = _payment_obligation(key, payment, transaction, as_of)
        if obligation is not None:
            obligations.append(obligation)

    if isinstance(transaction, Rental):
        rental_obligation = _rental_obligation(transaction, as_of)
        if rental_obligation is not None:
            obligations.append(rental_obligation)

    return obligations


def appointment_obligation(appointment: Appointment) -> Optional[Obligation]:
    """Calendar obligation for an appointment; cancelled ones produce none."""
    if appointment.status == AppointmentStatus.CANCELLED:
        return None
    who = appointment.patient_name or "patient"
    label = appointment.appointment_type or "Appointment"
    return Obligation(
        source_entity_id=f"appointment-{appointment.id}",
        source_entity_type="appointment",
        kind=ObligationKind.APPOINTMENT,
        due_date=appointment.scheduled_at.date(),
        description=f"{label} with {who} at {appointment.scheduled_at:%H:%M}",
        is_overdue=False,
        patient_name=appointment.patient_name,
        transaction_id=appointment.rental_id or appointment.sale_id,
    )


def derive_diagnostic_obligations(
    diagnostic: Diagnostic, as_of: date
) -> List[Obligation]:
    """Severe diagnostics call for a follow-up visit one week later."""
    if diagnostic.severity != "severe":
        return []
    due = diagnostic.date + DIAGNOSTIC_FOLLOW_UP_DELAY
    who = diagnostic.patient_name or "patient"
    return [
        Obligation(
            source_entity_id=f"diagnostic-{diagnostic.id}",
            source_entity_type="diagnostic",
            kind=ObligationKind.DIAGNOSTIC_FOLLOW_UP,
            due_date=due,
            description=(
                f"Follow up with {who} - IAH {diagnostic.iah_result} "
                f"({diagnostic.severity})"
            ),
            is_overdue=due < as_of,
            patient_name=diagnostic.patient_name,
        )
    ]
