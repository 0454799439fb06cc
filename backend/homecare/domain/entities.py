"""
Domain entities - Pure business logic, no framework dependencies.

Following SOLID principles:
- Single Responsibility: Each entity represents one business concept
- Open/Closed: Entities can be extended without modification

Transactions are value snapshots of what the record store holds; the engine
never mutates them.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple

from homecare.core.exceptions import InvariantViolation

from .lines import BillableGroup, BillableLine, DateRange, iter_line_payments
from .payments import PaymentInstrument


class TransactionKind(str, Enum):
    SALE = "sale"
    RENTAL = "rental"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ReturnStatus(str, Enum):
    NOT_RETURNED = "NOT_RETURNED"
    RETURNED = "RETURNED"
    PARTIALLY_RETURNED = "PARTIALLY_RETURNED"
    DAMAGED = "DAMAGED"


class AppointmentStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Patient:
    """Domain entity representing a Patient."""

    id: str
    full_name: str = ""
    phone: str = ""
    region: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class Transaction:
    """Common shape of sales and rentals: lines, groups and a status."""

    id: str = ""
    patient: Optional[Patient] = None
    status: TransactionStatus = TransactionStatus.PENDING
    lines: Tuple[BillableLine, ...] = field(default_factory=tuple)
    groups: Tuple[BillableGroup, ...] = field(default_factory=tuple)
    notes: Optional[str] = None

    kind = None  # type: Optional[TransactionKind]

    def __post_init__(self):
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "groups", tuple(self.groups))

    @property
    def patient_name(self) -> Optional[str]:
        return self.patient.full_name if self.patient else None

    @property
    def is_cancelled(self) -> bool:
        return self.status == TransactionStatus.CANCELLED

    @property
    def reference_date(self) -> Optional[date]:
        """Date used to bucket the transaction in revenue reports."""
        return None

    def all_lines(self) -> Iterator[BillableLine]:
        yield from self.lines
        for group in self.groups:
            yield from group.items

    def iter_payments(self) -> Iterator[Tuple[str, PaymentInstrument]]:
        """Yield transaction-scoped ``(key, payment)`` pairs."""
        for key, payment in iter_line_payments(self.lines, self.groups):
            yield f"{self.kind.value}-{self.id}/{key}", payment

    def check_invariants(self) -> None:
        for line in self.lines:
            line.check_invariants()
        for group in self.groups:
            group.check_invariants()


@dataclass(frozen=True)
class Sale(Transaction):
    sale_date: Optional[date] = None

    kind = TransactionKind.SALE

    @property
    def reference_date(self) -> Optional[date]:
        return self.sale_date


@dataclass(frozen=True)
class Rental(Transaction):
    date_range: Optional[DateRange] = None
    return_status: ReturnStatus = ReturnStatus.NOT_RETURNED
    actual_return_date: Optional[date] = None
    contract_number: Optional[str] = None

    kind = TransactionKind.RENTAL

    @property
    def reference_date(self) -> Optional[date]:
        return self.date_range.start if self.date_range else None

    @property
    def is_out(self) -> bool:
        """Equipment still with the patient."""
        return self.return_status == ReturnStatus.NOT_RETURNED and not self.is_cancelled

    def check_invariants(self) -> None:
        super().check_invariants()
        if (
            self.return_status == ReturnStatus.NOT_RETURNED
            and self.actual_return_date is not None
        ):
            raise InvariantViolation(
                self.id, "actual return date set on a rental that is not returned"
            )
        if (
            self.date_range is not None
            and self.date_range.end is not None
            and self.date_range.end < self.date_range.start
        ):
            raise InvariantViolation(self.id, "rental ends before it starts")


@dataclass(frozen=True)
class Appointment:
    """Domain entity for a scheduled patient visit."""

    id: str
    scheduled_at: datetime
    patient: Optional[Patient] = None
    appointment_type: str = ""
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    rental_id: Optional[str] = None
    sale_id: Optional[str] = None

    @property
    def patient_name(self) -> Optional[str]:
        return self.patient.full_name if self.patient else None


IAH_MODERATE_THRESHOLD = 15
IAH_SEVERE_THRESHOLD = 30


@dataclass(frozen=True)
class Diagnostic:
    """Sleep-study (polygraphy) result for a patient."""

    id: str
    date: date
    patient: Optional[Patient] = None
    polygraph: str = ""
    iah_result: float = 0.0
    id_result: float = 0.0
    remarks: Optional[str] = None

    @property
    def severity(self) -> str:
        if self.iah_result < IAH_MODERATE_THRESHOLD:
            return "negative"
        if self.iah_result < IAH_SEVERE_THRESHOLD:
            return "moderate"
        return "severe"

    @property
    def patient_name(self) -> Optional[str]:
        return self.patient.full_name if self.patient else None


class ObligationKind(str, Enum):
    CASH_REMAINDER = "cash_remainder"
    CNAM_FOLLOW_UP = "cnam_follow_up"
    PROMISSORY_NOTE_DUE = "promissory_note_due"
    RENTAL_RETURN = "rental_return"
    RENTAL_ENDING = "rental_ending"
    APPOINTMENT = "appointment"
    DIAGNOSTIC_FOLLOW_UP = "diagnostic_follow_up"


@dataclass(frozen=True)
class Obligation:
    """A derived, never-persisted action tied to a source record."""

    source_entity_id: str
    source_entity_type: str
    kind: ObligationKind
    due_date: date
    description: str
    is_overdue: bool
    patient_name: Optional[str] = None
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None


class NotificationType(str, Enum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    REMINDER = "reminder"
    URGENT = "urgent"


@dataclass(frozen=True)
class CalendarEvent:
    """
    Domain entity representing a calendar event.
    Pure business logic, no external dependencies.
    """

    id: str
    title: str
    kind: ObligationKind
    due_date: date
    source_entity_id: str
    source_entity_type: str
    is_overdue: bool = False
    status: str = ""
    patient_name: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass(frozen=True)
class Notification:
    id: str
    title: str
    message: str
    type: NotificationType
    date: date
    entity_type: str
    entity_id: str
    patient_name: Optional[str] = None
