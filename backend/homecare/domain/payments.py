"""
Payment instruments - Pure business logic, no framework dependencies.

A payment entry is one of a closed set of variants. Each variant only carries
the fields that make sense for its method and owns its accrual rule, so the
reconciliation engine never reads a cheque number off a cash payment.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from homecare.core.exceptions import InvariantViolation

ZERO = Decimal("0")


def to_money(value: Any) -> Decimal:
    """Coerce an int/str/float/Decimal into a two-place Decimal."""
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(str(value))
    else:
        amount = Decimal(value)
    return amount.quantize(Decimal("0.01"))


class InstrumentKind(str, Enum):
    CASH = "cash"
    CHEQUE = "cheque"
    BANK_TRANSFER = "bank_transfer"
    POSTAL_ORDER = "postal_order"
    PROMISSORY_NOTE = "promissory_note"
    NATIONAL_INSURANCE = "national_insurance"


class ClaimStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


@dataclass(frozen=True)
class PaymentInstrument:
    """Shared envelope for every payment variant.

    ``amount`` is the nominal value attributed to the entry. For cash it is the
    total price being financed, not the upfront portion.
    """

    amount: Decimal = ZERO
    id: Optional[str] = None
    recorded_date: Optional[date] = None
    notes: Optional[str] = None

    kind = None  # type: Optional[InstrumentKind]

    def __post_init__(self):
        object.__setattr__(self, "amount", to_money(self.amount))

    def recognized_amount(self) -> Decimal:
        """Portion of ``amount`` that counts as paid."""
        return self.amount

    def check_invariants(self, entity_id: Optional[str] = None) -> None:
        if self.amount < ZERO:
            raise InvariantViolation(
                self.id or entity_id, f"{self.kind.value} amount cannot be negative"
            )


@dataclass(frozen=True)
class Cash(PaymentInstrument):
    """Cash paid partly upfront, with the rest expected at a later date.

    ``amount`` defaults to ``total`` when omitted.
    """

    amount: Optional[Decimal] = None
    total: Decimal = ZERO
    upfront: Decimal = ZERO
    remainder: Optional[Decimal] = None
    remainder_due_date: Optional[date] = None

    kind = InstrumentKind.CASH

    def __post_init__(self):
        object.__setattr__(self, "total", to_money(self.total))
        object.__setattr__(self, "upfront", to_money(self.upfront))
        if self.amount is None:
            object.__setattr__(self, "amount", self.total)
        super().__post_init__()
        if self.remainder is None:
            object.__setattr__(self, "remainder", self.total - self.upfront)
        else:
            object.__setattr__(self, "remainder", to_money(self.remainder))

    def recognized_amount(self) -> Decimal:
        # Only the upfront part is money received; the remainder is a promise.
        return self.upfront

    def check_invariants(self, entity_id: Optional[str] = None) -> None:
        super().check_invariants(entity_id)
        ref = self.id or entity_id
        if self.amount != self.total:
            raise InvariantViolation(
                ref,
                f"cash amount {self.amount} must equal financed total {self.total}",
            )
        if self.upfront + self.remainder != self.amount:
            raise InvariantViolation(
                ref,
                f"cash upfront {self.upfront} + remainder {self.remainder} "
                f"does not equal amount {self.amount}",
            )

    @property
    def has_negative_remainder(self) -> bool:
        return self.remainder < ZERO


@dataclass(frozen=True)
class Cheque(PaymentInstrument):
    number: str = ""
    issue_date: Optional[date] = None

    kind = InstrumentKind.CHEQUE


@dataclass(frozen=True)
class BankTransfer(PaymentInstrument):
    kind = InstrumentKind.BANK_TRANSFER


@dataclass(frozen=True)
class PostalOrder(PaymentInstrument):
    kind = InstrumentKind.POSTAL_ORDER


@dataclass(frozen=True)
class PromissoryNote(PaymentInstrument):
    """A "traite": a note payable on a fixed due date."""

    due_date: Optional[date] = None

    kind = InstrumentKind.PROMISSORY_NOTE

    def check_invariants(self, entity_id: Optional[str] = None) -> None:
        super().check_invariants(entity_id)
        if self.due_date is None:
            raise InvariantViolation(
                self.id or entity_id, "promissory note requires a due date"
            )


@dataclass(frozen=True)
class NationalInsuranceClaim(PaymentInstrument):
    """CNAM claim; only honored once the insurer approves it."""

    status: ClaimStatus = ClaimStatus.PENDING
    follow_up_date: Optional[date] = None

    kind = InstrumentKind.NATIONAL_INSURANCE

    @property
    def is_pending(self) -> bool:
        return self.status == ClaimStatus.PENDING

    def recognized_amount(self) -> Decimal:
        if self.is_pending:
            return ZERO
        return self.amount


INSTRUMENT_TYPES = (
    Cash,
    Cheque,
    BankTransfer,
    PostalOrder,
    PromissoryNote,
    NationalInsuranceClaim,
)
