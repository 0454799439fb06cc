"""
Reconciliation engine - paid and outstanding amounts for a set of lines.

Summing every payment's amount is wrong for this business: cash entries are
often only partly paid upfront, and CNAM claims are worth nothing until the
insurer approves them. Each instrument therefore contributes its own
``recognized_amount()`` to the paid total, while ``by_instrument`` keeps the
nominal amounts for display.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from homecare.domain.entities import Transaction
from homecare.domain.lines import BillableGroup, BillableLine, iter_line_payments
from homecare.domain.payments import (
    ZERO,
    Cash,
    InstrumentKind,
    NationalInsuranceClaim,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstrumentAnomaly:
    """Suspicious but representable payment data, surfaced for review."""

    entity_id: str
    message: str


@dataclass(frozen=True)
class ReconciliationResult:
    total_due: Decimal = ZERO
    total_paid: Decimal = ZERO
    outstanding: Decimal = ZERO
    by_instrument: Dict[InstrumentKind, Decimal] = field(default_factory=dict)
    pending_claims: Decimal = ZERO
    scheduled_remainders: Decimal = ZERO
    anomalies: Tuple[InstrumentAnomaly, ...] = ()

    @property
    def is_overpaid(self) -> bool:
        return self.outstanding < ZERO

    @property
    def is_settled(self) -> bool:
        return self.outstanding <= ZERO


def reconcile(
    lines: Iterable[BillableLine], groups: Iterable[BillableGroup] = ()
) -> ReconciliationResult:
    """
    Compute amount due, amount recognized as paid and outstanding balance.

    Args:
        lines: standalone billable lines
        groups: groups of lines with optional shared payments

    Returns:
        ReconciliationResult with a signed ``outstanding`` (negative means
        overpaid) and nominal totals per instrument kind.

    Raises:
        InvariantViolation: a line or payment breaks its data invariants.
    """
    lines = tuple(lines)
    groups = tuple(groups)

    for line in lines:
        line.check_invariants()
    for group in groups:
        group.check_invariants()

    total_due = sum((line.total_price for line in lines), ZERO)
    total_due += sum((group.total_price for group in groups), ZERO)

    total_paid = ZERO
    pending_claims = ZERO
    scheduled_remainders = ZERO
    by_instrument: Dict[InstrumentKind, Decimal] = {}
    anomalies: List[InstrumentAnomaly] = []

    for key, payment in iter_line_payments(lines, groups):
        total_paid += payment.recognized_amount()
        by_instrument[payment.kind] = (
            by_instrument.get(payment.kind, ZERO) + payment.amount
        )

        if isinstance(payment, NationalInsuranceClaim) and payment.is_pending:
            pending_claims += payment.amount
        elif isinstance(payment, Cash):
            if payment.remainder > ZERO:
                scheduled_remainders += payment.remainder
            elif payment.has_negative_remainder:
                anomalies.append(
                    InstrumentAnomaly(
                        key,
                        f"upfront {payment.upfront} exceeds cash total "
                        f"{payment.total} (remainder {payment.remainder})",
                    )
                )

    for anomaly in anomalies:
        logger.warning(
            "Cash payment upfront exceeds its total",
            extra={"context": {"entity_id": anomaly.entity_id, "detail": anomaly.message}},
        )

    return ReconciliationResult(
        total_due=total_due,
        total_paid=total_paid,
        outstanding=total_due - total_paid,
        by_instrument=by_instrument,
        pending_claims=pending_claims,
        scheduled_remainders=scheduled_remainders,
        anomalies=tuple(anomalies),
    )


def reconcile_transaction(transaction: Transaction) -> ReconciliationResult:
    """Reconcile a sale or rental using its own lines and groups."""
    result = reconcile(transaction.lines, transaction.groups)
    logger.debug(
        "Transaction reconciled",
        extra={
            "context": {
                "transaction_id": transaction.id,
                "kind": transaction.kind.value,
                "total_due": str(result.total_due),
                "total_paid": str(result.total_paid),
                "outstanding": str(result.outstanding),
            }
        },
    )
    return result
