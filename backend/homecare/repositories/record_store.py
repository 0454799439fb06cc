"""Record store implementation following SOLID principles.

Reads patients, sales, rentals, appointments and diagnostics through
SQLAlchemy and maps them to domain values. Payment and item rows go through
the ingestion validators, so malformed stored data surfaces here as an
``IngestionError`` instead of reaching the billing core.
"""

import logging
from datetime import datetime, time
from typing import Any, Dict, List, Optional

from homecare.core.exceptions import IngestionError, UnknownTransactionKind
from homecare.core.validation import get_validator, to_payment_instrument
from homecare.db.base import Appointment as DbAppointment
from homecare.db.base import BillableGroup as DbBillableGroup
from homecare.db.base import BillableItem as DbBillableItem
from homecare.db.base import Diagnostic as DbDiagnostic
from homecare.db.base import Patient as DbPatient
from homecare.db.base import Rental as DbRental
from homecare.db.base import Sale as DbSale
from homecare.domain.entities import (
    Appointment,
    AppointmentStatus,
    Diagnostic,
    Patient,
    Rental,
    ReturnStatus,
    Sale,
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from homecare.domain.interfaces import IRecordStore
from homecare.domain.lines import BillableGroup, BillableLine, DateRange

logger = logging.getLogger(__name__)


def _date_range(start, end) -> Optional[DateRange]:
    if start is None:
        return None
    return DateRange(start=start, end=end)


def _stored_enum(enum_cls, value, entity_id: str, field: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise IngestionError(entity_id, [f"{field}: unknown value {value!r}"])


class SqlAlchemyRecordStore(IRecordStore):
    """Read-only record store backed by a SQLAlchemy session."""

    def __init__(self, db_session) -> None:
        self.db = db_session
        self._item_validator = get_validator("item")

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def fetch_transactions(
        self, kind: TransactionKind, filters: Optional[Dict[str, Any]] = None
    ) -> List[Transaction]:
        filters = filters or {}
        try:
            kind = TransactionKind(kind)
        except ValueError:
            raise UnknownTransactionKind(f"Unknown transaction kind: {kind}")

        model = DbSale if kind == TransactionKind.SALE else DbRental
        query = self.db.query(model)
        if filters.get("transaction_id") is not None:
            query = query.filter(model.id == str(filters["transaction_id"]))
        if filters.get("patient_id") is not None:
            query = query.filter(model.patient_id == str(filters["patient_id"]))
        if filters.get("status") is not None:
            query = query.filter(model.status == str(filters["status"]).upper())

        if kind == TransactionKind.SALE:
            rows = query.order_by(DbSale.sale_date, DbSale.id).all()
            return [self._sale_to_domain(row) for row in rows]
        rows = query.order_by(DbRental.start_date, DbRental.id).all()
        return [self._rental_to_domain(row) for row in rows]

    def _sale_to_domain(self, row: DbSale) -> Sale:
        return Sale(
            id=row.id,
            patient=self._patient_to_domain(row.patient),
            status=_stored_enum(TransactionStatus, row.status, row.id, "status"),
            lines=[self._item_to_domain(item) for item in row.items],
            groups=[self._group_to_domain(group) for group in row.groups],
            notes=row.notes,
            sale_date=row.sale_date,
        )

    def _rental_to_domain(self, row: DbRental) -> Rental:
        return Rental(
            id=row.id,
            patient=self._patient_to_domain(row.patient),
            status=_stored_enum(TransactionStatus, row.status, row.id, "status"),
            lines=[self._item_to_domain(item) for item in row.items],
            groups=[self._group_to_domain(group) for group in row.groups],
            notes=row.notes,
            date_range=DateRange(start=row.start_date, end=row.end_date),
            return_status=_stored_enum(
                ReturnStatus, row.return_status, row.id, "return_status"
            ),
            actual_return_date=row.actual_return_date,
            contract_number=row.contract_number,
        )

    def _item_to_domain(self, row: DbBillableItem) -> BillableLine:
        result = self._item_validator.validate(
            {
                "id": row.id,
                "kind": row.kind,
                "name": row.name,
                "unit_price": row.unit_price,
                "quantity": row.quantity,
                "total_price": row.total_price,
            }
        )
        if not result.is_valid:
            raise IngestionError(row.id, result.errors)

        return BillableLine(
            id=row.id,
            date_range=_date_range(row.start_date, row.end_date),
            payments=[to_payment_instrument(p.to_record()) for p in row.payments],
            **result.cleaned_data,
        )

    def _group_to_domain(self, row: DbBillableGroup) -> BillableGroup:
        return BillableGroup(
            id=row.id,
            name=row.name or "",
            items=[self._item_to_domain(item) for item in row.items],
            shared_payments=[
                to_payment_instrument(p.to_record()) for p in row.payments
            ],
            date_range=_date_range(row.start_date, row.end_date),
        )

    # ------------------------------------------------------------------
    # Appointments, diagnostics, patients
    # ------------------------------------------------------------------

    def fetch_appointments(
        self, date_range: Optional[DateRange] = None
    ) -> List[Appointment]:
        query = self.db.query(DbAppointment)
        if date_range is not None:
            query = query.filter(
                DbAppointment.scheduled_at
                >= datetime.combine(date_range.start, time.min)
            )
            if date_range.end is not None:
                query = query.filter(
                    DbAppointment.scheduled_at
                    <= datetime.combine(date_range.end, time.max)
                )
        rows = query.order_by(DbAppointment.scheduled_at, DbAppointment.id).all()
        return [self._appointment_to_domain(row) for row in rows]

    def _appointment_to_domain(self, row: DbAppointment) -> Appointment:
        return Appointment(
            id=row.id,
            scheduled_at=row.scheduled_at,
            patient=self._patient_to_domain(row.patient),
            appointment_type=row.appointment_type or "",
            status=_stored_enum(AppointmentStatus, row.status, row.id, "status"),
            notes=row.notes,
            rental_id=row.rental_id,
            sale_id=row.sale_id,
        )

    def fetch_diagnostics(
        self, date_range: Optional[DateRange] = None
    ) -> List[Diagnostic]:
        query = self.db.query(DbDiagnostic)
        if date_range is not None:
            query = query.filter(DbDiagnostic.diagnostic_date >= date_range.start)
            if date_range.end is not None:
                query = query.filter(DbDiagnostic.diagnostic_date <= date_range.end)
        rows = query.order_by(DbDiagnostic.diagnostic_date, DbDiagnostic.id).all()
        return [
            Diagnostic(
                id=row.id,
                date=row.diagnostic_date,
                patient=self._patient_to_domain(row.patient),
                polygraph=row.polygraph or "",
                iah_result=row.iah_result or 0.0,
                id_result=row.id_result or 0.0,
                remarks=row.remarks,
            )
            for row in rows
        ]

    def fetch_patients(self) -> List[Patient]:
        rows = self.db.query(DbPatient).order_by(DbPatient.full_name).all()
        return [self._patient_to_domain(row) for row in rows]

    def _patient_to_domain(self, row: Optional[DbPatient]) -> Optional[Patient]:
        if row is None:
            return None
        return Patient(
            id=row.id,
            full_name=row.full_name,
            phone=row.phone or "",
            region=row.region or "",
            created_at=row.created_at,
        )
