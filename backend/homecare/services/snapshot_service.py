"""
Snapshot service following SOLID principles.

Fetches everything one refresh needs from the record store in a single step,
freezes it into a ``RecordSnapshot`` and runs the pure pipeline over it. A
new refresh builds a new snapshot; nothing is cached between calls.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple

from homecare.core import config
from homecare.core.logging_config import log_performance
from homecare.domain.entities import (
    Appointment,
    Diagnostic,
    Patient,
    Rental,
    Sale,
    Transaction,
    TransactionKind,
)
from homecare.domain.interfaces import IRecordStore
from homecare.domain.lines import DateRange

from .calendar_aggregator import AggregationResult, aggregate
from .obligations import derive_obligations
from .reconciliation import ReconciliationResult, reconcile_transaction
from .stats import RevenueAnalytics, StatsSummary, reduce_analytics, reduce_stats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RecordSnapshot:
    """Immutable view of the record store for one aggregation pass."""

    as_of: date
    sales: Tuple[Sale, ...] = ()
    rentals: Tuple[Rental, ...] = ()
    appointments: Tuple[Appointment, ...] = ()
    diagnostics: Tuple[Diagnostic, ...] = ()
    patients: Tuple[Patient, ...] = ()
    fetched_at: Optional[datetime] = None

    @property
    def transactions(self) -> Tuple[Transaction, ...]:
        return self.sales + self.rentals


class SnapshotService:
    """Application service for calendar, notification and dashboard use-cases.

    This service demonstrates:
    - Single Responsibility: Runs the billing pipeline over one snapshot
    - Dependency Inversion: Depends on the record store interface
    """

    def __init__(self, record_store: IRecordStore):
        self.record_store = record_store

    def load_snapshot(
        self, as_of: date, window_days: Optional[int] = None
    ) -> RecordSnapshot:
        """Fetch sales, rentals, patients and the appointment window once.

        Appointments and diagnostics are restricted to ``as_of - window_days``
        through ``as_of + window_days``.
        """
        window_days = (
            config.CALENDAR_WINDOW_DAYS if window_days is None else window_days
        )
        window = DateRange(
            start=as_of - timedelta(days=window_days),
            end=as_of + timedelta(days=window_days),
        )

        start = time.time()
        sales = self.record_store.fetch_transactions(TransactionKind.SALE)
        rentals = self.record_store.fetch_transactions(TransactionKind.RENTAL)
        appointments = self.record_store.fetch_appointments(window)
        diagnostics = self.record_store.fetch_diagnostics(window)
        patients = self.record_store.fetch_patients()
        log_performance(
            "load_snapshot",
            (time.time() - start) * 1000,
            sales=len(sales),
            rentals=len(rentals),
            appointments=len(appointments),
        )

        return RecordSnapshot(
            as_of=as_of,
            sales=tuple(sales),
            rentals=tuple(rentals),
            appointments=tuple(appointments),
            diagnostics=tuple(diagnostics),
            patients=tuple(patients),
            fetched_at=datetime.now(timezone.utc),
        )

    def build_calendar(self, snapshot: RecordSnapshot) -> AggregationResult:
        return aggregate(
            snapshot.transactions,
            snapshot.appointments,
            snapshot.as_of,
            diagnostics=snapshot.diagnostics,
        )

    def build_stats(
        self, snapshot: RecordSnapshot, calendar: Optional[AggregationResult] = None
    ) -> StatsSummary:
        calendar = calendar or self.build_calendar(snapshot)
        return reduce_stats(
            calendar.events, snapshot.transactions, snapshot.diagnostics
        )

    def build_analytics(self, snapshot: RecordSnapshot) -> RevenueAnalytics:
        return reduce_analytics(
            snapshot.transactions, snapshot.patients, snapshot.as_of
        )

    def get_transaction(
        self, kind: TransactionKind, transaction_id: str
    ) -> Optional[Transaction]:
        matches = self.record_store.fetch_transactions(
            kind, {"transaction_id": transaction_id}
        )
        return matches[0] if matches else None

    def reconcile(
        self, kind: TransactionKind, transaction_id: str
    ) -> Optional[ReconciliationResult]:
        transaction = self.get_transaction(kind, transaction_id)
        if transaction is None:
            return None
        return reconcile_transaction(transaction)

    def obligations(self, kind: TransactionKind, transaction_id: str, as_of: date):
        transaction = self.get_transaction(kind, transaction_id)
        if transaction is None:
            return None
        return derive_obligations(transaction, as_of)
