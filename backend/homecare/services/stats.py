"""
Stats reducer - dashboard counters and revenue analytics.

``reduce_analytics`` is the one place where reconciliation figures meet the
calendar pipeline: revenue is the sum of what each transaction has actually
been paid, under the same accrual rules as the reconciliation screen.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from homecare.domain.entities import (
    CalendarEvent,
    Diagnostic,
    ObligationKind,
    Patient,
    Rental,
    Sale,
    Transaction,
)
from homecare.domain.payments import ZERO, InstrumentKind

from .reconciliation import reconcile_transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatsSummary:
    appointments: int = 0
    rentals: int = 0
    sales: int = 0
    diagnostics: int = 0
    overdue_payments: int = 0


@dataclass(frozen=True)
class MonthlyRevenue:
    month: date
    sales: Decimal = ZERO
    rentals: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return self.sales + self.rentals


@dataclass(frozen=True)
class RevenueAnalytics:
    total_revenue: Decimal = ZERO
    sales_revenue: Decimal = ZERO
    rental_revenue: Decimal = ZERO
    outstanding_total: Decimal = ZERO
    active_rentals: int = 0
    total_patients: int = 0
    new_patients_this_month: int = 0
    monthly: Tuple[MonthlyRevenue, ...] = ()
    by_instrument: Dict[InstrumentKind, Decimal] = field(default_factory=dict)


def reduce_stats(
    events: Iterable[CalendarEvent],
    transactions: Iterable[Transaction],
    diagnostics: Iterable[Diagnostic] = (),
) -> StatsSummary:
    """Fold one pass's events and transactions into dashboard counters."""
    events = list(events)
    transactions = list(transactions)
    return StatsSummary(
        appointments=sum(1 for e in events if e.kind == ObligationKind.APPOINTMENT),
        rentals=sum(1 for t in transactions if isinstance(t, Rental)),
        sales=sum(1 for t in transactions if isinstance(t, Sale)),
        diagnostics=len(list(diagnostics)),
        overdue_payments=sum(1 for e in events if e.is_overdue),
    )


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _shift_month(month: date, offset: int) -> date:
    index = month.year * 12 + (month.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def reduce_analytics(
    transactions: Iterable[Transaction],
    patients: Iterable[Patient],
    as_of: date,
    months: int = 6,
) -> RevenueAnalytics:
    """
    Revenue and patient analytics for the admin dashboard.

    Args:
        transactions: sales and rentals to analyse
        patients: all known patients
        as_of: reference date; "this month" and the monthly window end here
        months: number of calendar months in the revenue history

    Returns:
        RevenueAnalytics. Cancelled transactions contribute nothing.
    """
    current_month = _month_start(as_of)
    window = [_shift_month(current_month, -i) for i in range(months - 1, -1, -1)]
    buckets: Dict[date, Dict[str, Decimal]] = {
        month: {"sales": ZERO, "rentals": ZERO} for month in window
    }

    sales_revenue = ZERO
    rental_revenue = ZERO
    outstanding_total = ZERO
    by_instrument: Dict[InstrumentKind, Decimal] = {}
    active_rentals = 0

    for transaction in transactions:
        if transaction.is_cancelled:
            continue
        result = reconcile_transaction(transaction)
        bucket_name = "rentals" if isinstance(transaction, Rental) else "sales"

        if isinstance(transaction, Rental):
            rental_revenue += result.total_paid
            if transaction.is_out:
                active_rentals += 1
        else:
            sales_revenue += result.total_paid

        outstanding_total += result.outstanding
        for kind, amount in result.by_instrument.items():
            by_instrument[kind] = by_instrument.get(kind, ZERO) + amount

        reference = transaction.reference_date
        if reference is not None:
            month = _month_start(reference)
            if month in buckets:
                buckets[month][bucket_name] += result.total_paid

    patients = list(patients)
    new_patients = sum(
        1
        for p in patients
        if p.created_at is not None
        and current_month <= p.created_at.date() <= as_of
    )

    monthly: List[MonthlyRevenue] = [
        MonthlyRevenue(month=m, sales=buckets[m]["sales"], rentals=buckets[m]["rentals"])
        for m in window
    ]

    analytics = RevenueAnalytics(
        total_revenue=sales_revenue + rental_revenue,
        sales_revenue=sales_revenue,
        rental_revenue=rental_revenue,
        outstanding_total=outstanding_total,
        active_rentals=active_rentals,
        total_patients=len(patients),
        new_patients_this_month=new_patients,
        monthly=tuple(monthly),
        by_instrument=by_instrument,
    )
    logger.info(
        "Revenue analytics computed",
        extra={
            "context": {
                "as_of": as_of.isoformat(),
                "total_revenue": str(analytics.total_revenue),
                "active_rentals": active_rentals,
            }
        },
    )
    return analytics
