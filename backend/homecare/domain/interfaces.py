"""
Abstract interfaces for the record store following Interface Segregation Principle.

The billing core only reads. These contracts describe what it needs from
whatever persists patients, sales, rentals, appointments and diagnostics,
enabling dependency injection and easier testing.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from .entities import Appointment, Diagnostic, Patient, Transaction, TransactionKind
from .lines import DateRange


class ITransactionReader(ABC):
    """Interface for sale/rental read operations."""

    @abstractmethod
    def fetch_transactions(
        self, kind: TransactionKind, filters: Optional[Dict[str, Any]] = None
    ) -> List[Transaction]:
        """Fetch sales or rentals, already validated into domain values.

        Supported filters: ``patient_id``, ``status``, ``transaction_id``.
        """
        pass


class IAppointmentReader(ABC):
    """Interface for appointment read operations."""

    @abstractmethod
    def fetch_appointments(
        self, date_range: Optional[DateRange] = None
    ) -> List[Appointment]:
        """Fetch appointments, optionally restricted to a date range."""
        pass


class IDiagnosticReader(ABC):
    """Interface for diagnostic read operations."""

    @abstractmethod
    def fetch_diagnostics(
        self, date_range: Optional[DateRange] = None
    ) -> List[Diagnostic]:
        """Fetch diagnostics, optionally restricted to a date range."""
        pass


class IPatientReader(ABC):
    """Interface for patient read operations."""

    @abstractmethod
    def fetch_patients(self) -> List[Patient]:
        """Fetch all patients."""
        pass


class IRecordStore(
    ITransactionReader, IAppointmentReader, IDiagnosticReader, IPatientReader
):
    """Complete read contract consumed by the snapshot service."""

    pass
