from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .session import Base


class Patient(Base):
    """Patient model for database persistence"""

    __tablename__ = "patients"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    region: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    def __repr__(self):
        return f"<Patient(id={self.id}, full_name='{self.full_name}')>"


class Sale(Base):
    """Sale of devices and accessories to a patient"""

    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    patient_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("patients.id"), nullable=True, index=True
    )
    sale_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="PENDING"
    )  # PENDING, COMPLETED, CANCELLED
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped[Optional["Patient"]] = relationship("Patient")
    items: Mapped[List["BillableItem"]] = relationship(
        "BillableItem",
        primaryjoin="and_(Sale.id == BillableItem.sale_id, "
        "BillableItem.group_id.is_(None))",
        order_by="BillableItem.id",
        viewonly=True,
    )
    groups: Mapped[List["BillableGroup"]] = relationship(
        "BillableGroup", order_by="BillableGroup.id", viewonly=True
    )

    def __repr__(self):
        return f"<Sale(id={self.id}, sale_date={self.sale_date}, status={self.status})>"


class Rental(Base):
    """Rental of equipment over a date range"""

    __tablename__ = "rentals"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    patient_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("patients.id"), nullable=True, index=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")
    return_status: Mapped[str] = mapped_column(
        String(30), nullable=False, default="NOT_RETURNED"
    )  # NOT_RETURNED, RETURNED, PARTIALLY_RETURNED, DAMAGED
    actual_return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    contract_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped[Optional["Patient"]] = relationship("Patient")
    items: Mapped[List["BillableItem"]] = relationship(
        "BillableItem",
        primaryjoin="and_(Rental.id == BillableItem.rental_id, "
        "BillableItem.group_id.is_(None))",
        order_by="BillableItem.id",
        viewonly=True,
    )
    groups: Mapped[List["BillableGroup"]] = relationship(
        "BillableGroup", order_by="BillableGroup.id", viewonly=True
    )

    def __repr__(self):
        return (
            f"<Rental(id={self.id}, start_date={self.start_date}, "
            f"end_date={self.end_date}, return_status={self.return_status})>"
        )


class BillableGroup(Base):
    """Devices and accessories settled together by shared payments"""

    __tablename__ = "billable_groups"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sale_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("sales.id"), nullable=True, index=True
    )
    rental_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("rentals.id"), nullable=True, index=True
    )
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    items: Mapped[List["BillableItem"]] = relationship(
        "BillableItem", order_by="BillableItem.id", viewonly=True
    )
    payments: Mapped[List["Payment"]] = relationship(
        "Payment", order_by="Payment.position", viewonly=True
    )

    def __repr__(self):
        return f"<BillableGroup(id={self.id}, name='{self.name}')>"


class BillableItem(Base):
    """A device or accessory line of a sale or rental"""

    __tablename__ = "billable_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)  # DEVICE, ACCESSORY
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    total_price: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    sale_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("sales.id"), nullable=True, index=True
    )
    rental_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("rentals.id"), nullable=True, index=True
    )
    group_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("billable_groups.id"), nullable=True, index=True
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment", order_by="Payment.position", viewonly=True
    )

    def __repr__(self):
        return (
            f"<BillableItem(id={self.id}, kind={self.kind}, "
            f"quantity={self.quantity}, total_price={self.total_price})>"
        )


class Payment(Base):
    """One payment entry as recorded by the front office.

    ``method`` decides which of the optional columns are meaningful. Rows are
    attached either to an item or to a group (shared payment).
    """

    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    method: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )  # CASH, CHEQUE, VIREMENT, MONDAT, TRAITE, CNAM
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    cheque_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    cheque_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    traite_due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    cnam_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    cnam_follow_up_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    cash_total: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    cash_upfront: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    cash_remaining: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    cash_remaining_due_date: Mapped[Optional[date]] = mapped_column(
        Date, nullable=True
    )

    item_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("billable_items.id"), nullable=True, index=True
    )
    group_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("billable_groups.id"), nullable=True, index=True
    )

    def to_record(self) -> dict:
        """Flat dict consumed by the payment ingestion validator."""
        return {
            "id": self.id,
            "method": self.method,
            "amount": self.amount,
            "payment_date": self.payment_date,
            "notes": self.notes,
            "cheque_number": self.cheque_number,
            "cheque_date": self.cheque_date,
            "traite_due_date": self.traite_due_date,
            "cnam_status": self.cnam_status,
            "cnam_follow_up_date": self.cnam_follow_up_date,
            "cash_total": self.cash_total,
            "cash_upfront": self.cash_upfront,
            "cash_remaining": self.cash_remaining,
            "cash_remaining_due_date": self.cash_remaining_due_date,
        }

    def __repr__(self):
        return f"<Payment(id={self.id}, method={self.method}, amount={self.amount})>"


class Appointment(Base):
    """Scheduled visit to a patient"""

    __tablename__ = "appointments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    patient_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("patients.id"), nullable=True, index=True
    )
    scheduled_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=False), nullable=False, index=True
    )
    appointment_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="SCHEDULED"
    )  # SCHEDULED, CONFIRMED, COMPLETED, CANCELLED
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rental_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("rentals.id"), nullable=True
    )
    sale_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("sales.id"), nullable=True
    )

    patient: Mapped[Optional["Patient"]] = relationship("Patient")

    def __repr__(self):
        return (
            f"<Appointment(id={self.id}, scheduled_at={self.scheduled_at}, "
            f"status={self.status})>"
        )


class Diagnostic(Base):
    """Polygraphy result"""

    __tablename__ = "diagnostics"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    patient_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("patients.id"), nullable=True, index=True
    )
    diagnostic_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    polygraph: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    iah_result: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    id_result: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    patient: Mapped[Optional["Patient"]] = relationship("Patient")

    def __repr__(self):
        return (
            f"<Diagnostic(id={self.id}, diagnostic_date={self.diagnostic_date}, "
            f"iah_result={self.iah_result})>"
        )
