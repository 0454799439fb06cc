"""
Billable lines and groups - priced items and the payments attached to them.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterator, Optional, Tuple

from homecare.core.exceptions import InvariantViolation

from .payments import ZERO, PaymentInstrument, to_money


class LineKind(str, Enum):
    DEVICE = "device"
    ACCESSORY = "accessory"


@dataclass(frozen=True)
class DateRange:
    """Inclusive date span; ``end`` is None for open-ended rentals."""

    start: date
    end: Optional[date] = None

    def contains(self, day: date) -> bool:
        if day < self.start:
            return False
        return self.end is None or day <= self.end

    @property
    def days(self) -> Optional[int]:
        if self.end is None:
            return None
        return (self.end - self.start).days + 1


@dataclass(frozen=True)
class BillableLine:
    """A priced device or accessory with its own payments."""

    id: str
    kind: LineKind
    unit_price: Decimal
    quantity: int = 1
    total_price: Optional[Decimal] = None
    name: str = ""
    date_range: Optional[DateRange] = None
    payments: Tuple[PaymentInstrument, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "unit_price", to_money(self.unit_price))
        if self.total_price is None:
            object.__setattr__(
                self, "total_price", to_money(self.unit_price * self.quantity)
            )
        else:
            object.__setattr__(self, "total_price", to_money(self.total_price))
        object.__setattr__(self, "payments", tuple(self.payments))

    def check_invariants(self) -> None:
        if self.quantity < 1:
            raise InvariantViolation(self.id, "quantity must be at least 1")
        if self.kind == LineKind.DEVICE and self.quantity != 1:
            raise InvariantViolation(self.id, "device lines always have quantity 1")
        if self.unit_price < ZERO:
            raise InvariantViolation(self.id, "unit price cannot be negative")
        expected = to_money(self.unit_price * self.quantity)
        if self.total_price != expected:
            raise InvariantViolation(
                self.id,
                f"total price {self.total_price} != unit price {self.unit_price} "
                f"x quantity {self.quantity}",
            )
        if (
            self.date_range is not None
            and self.date_range.end is not None
            and self.date_range.end < self.date_range.start
        ):
            raise InvariantViolation(self.id, "date range ends before it starts")
        for index, payment in enumerate(self.payments):
            payment.check_invariants(f"{self.id}/payment-{index}")


@dataclass(frozen=True)
class BillableGroup:
    """Several lines settled together by ``shared_payments``.

    Used when one payment covers a device and its accessories at once.
    """

    id: str
    name: str = ""
    items: Tuple[BillableLine, ...] = field(default_factory=tuple)
    shared_payments: Tuple[PaymentInstrument, ...] = field(default_factory=tuple)
    date_range: Optional[DateRange] = None

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "shared_payments", tuple(self.shared_payments))

    @property
    def total_price(self) -> Decimal:
        return sum((item.total_price for item in self.items), ZERO)

    def check_invariants(self) -> None:
        for item in self.items:
            item.check_invariants()
        for index, payment in enumerate(self.shared_payments):
            payment.check_invariants(f"{self.id}/shared-{index}")


def iter_line_payments(
    lines, groups
) -> Iterator[Tuple[str, PaymentInstrument]]:
    """Yield ``(location_key, payment)`` for every payment, line-level or shared.

    Keys are stable for unchanged input: the payment's own id when it has one,
    otherwise its position under the owning line or group.
    """
    for line in lines:
        for index, payment in enumerate(line.payments):
            yield payment.id or f"line-{line.id}/payment-{index}", payment
    for group in groups:
        for line in group.items:
            for index, payment in enumerate(line.payments):
                yield payment.id or f"line-{line.id}/payment-{index}", payment
        for index, payment in enumerate(group.shared_payments):
            yield payment.id or f"group-{group.id}/shared-{index}", payment
