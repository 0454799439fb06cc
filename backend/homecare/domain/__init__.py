"""
Domain package - Pure business logic layer.

This package contains:
- payments.py: Payment instrument variants and their accrual rules
- lines.py: Billable lines and groups
- entities.py: Transactions, appointments, diagnostics and derived values
- interfaces.py: Record store contracts

Following SOLID principles:
- Single Responsibility: Each module has one purpose
- Open/Closed: Extensible without modification
- Dependency Inversion: Interfaces define contracts
"""

from .entities import (
    Appointment,
    AppointmentStatus,
    CalendarEvent,
    Diagnostic,
    Notification,
    NotificationType,
    Obligation,
    ObligationKind,
    Patient,
    Rental,
    ReturnStatus,
    Sale,
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from .interfaces import (
    IAppointmentReader,
    IDiagnosticReader,
    IPatientReader,
    IRecordStore,
    ITransactionReader,
)
from .lines import BillableGroup, BillableLine, DateRange, LineKind
from .payments import (
    BankTransfer,
    Cash,
    Cheque,
    ClaimStatus,
    InstrumentKind,
    NationalInsuranceClaim,
    PaymentInstrument,
    PostalOrder,
    PromissoryNote,
)

__all__ = [
    # Payment instruments
    "PaymentInstrument",
    "InstrumentKind",
    "ClaimStatus",
    "Cash",
    "Cheque",
    "BankTransfer",
    "PostalOrder",
    "PromissoryNote",
    "NationalInsuranceClaim",
    # Lines
    "BillableLine",
    "BillableGroup",
    "DateRange",
    "LineKind",
    # Entities
    "Patient",
    "Transaction",
    "TransactionKind",
    "TransactionStatus",
    "Sale",
    "Rental",
    "ReturnStatus",
    "Appointment",
    "AppointmentStatus",
    "Diagnostic",
    "Obligation",
    "ObligationKind",
    "CalendarEvent",
    "Notification",
    "NotificationType",
    # Record store interfaces
    "ITransactionReader",
    "IAppointmentReader",
    "IDiagnosticReader",
    "IPatientReader",
    "IRecordStore",
]
