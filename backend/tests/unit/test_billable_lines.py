"""
Unit tests for billable lines, groups and transactions.
"""

from datetime import date
from decimal import Decimal

import pytest

from homecare.core.exceptions import InvariantViolation
from homecare.domain.entities import ReturnStatus, TransactionKind
from homecare.domain.lines import BillableLine, DateRange, LineKind, iter_line_payments
from homecare.domain.payments import Cash
from tests.factories.billing_factories import (
    accessory,
    cheque,
    device,
    group,
    make_diagnostic,
    make_rental,
    make_sale,
    transfer,
)


@pytest.mark.domain
class TestBillableLine:
    def test_total_price_defaults_to_unit_times_quantity(self):
        line = accessory(price="12.50", quantity=4)

        assert line.total_price == Decimal("50.00")

    def test_inconsistent_total_rejected(self):
        line = BillableLine(
            id="a-9",
            kind=LineKind.ACCESSORY,
            unit_price=Decimal("10"),
            quantity=2,
            total_price=Decimal("25"),
        )

        with pytest.raises(InvariantViolation) as exc_info:
            line.check_invariants()

        assert exc_info.value.entity_id == "a-9"

    def test_device_quantity_is_one(self):
        line = BillableLine(
            id="d-9", kind=LineKind.DEVICE, unit_price=Decimal("100"), quantity=2
        )

        with pytest.raises(InvariantViolation, match="quantity 1"):
            line.check_invariants()

    def test_zero_quantity_rejected(self):
        with pytest.raises(InvariantViolation):
            accessory(quantity=0).check_invariants()

    def test_reversed_date_range_rejected(self):
        line = device(date_range=DateRange(date(2024, 6, 10), date(2024, 6, 1)))

        with pytest.raises(InvariantViolation):
            line.check_invariants()

    def test_payment_errors_carry_location(self):
        bad_cash = Cash(
            amount=Decimal("100"),
            total=Decimal("100"),
            upfront=Decimal("40"),
            remainder=Decimal("1"),
        )
        line = device("d-3", payments=[bad_cash])

        with pytest.raises(InvariantViolation) as exc_info:
            line.check_invariants()

        assert exc_info.value.entity_id == "d-3/payment-0"


@pytest.mark.domain
class TestDateRange:
    def test_contains_is_inclusive(self):
        span = DateRange(date(2024, 6, 1), date(2024, 6, 3))

        assert span.contains(date(2024, 6, 1))
        assert span.contains(date(2024, 6, 3))
        assert not span.contains(date(2024, 6, 4))
        assert span.days == 3

    def test_open_range(self):
        span = DateRange(date(2024, 6, 1))

        assert span.contains(date(2030, 1, 1))
        assert span.days is None


@pytest.mark.domain
class TestPaymentLocations:
    def test_keys_cover_line_grouped_and_shared_payments(self):
        lines = [device("d-1", payments=[transfer(10), cheque(5)])]
        groups = [
            group(
                "g-1",
                items=[accessory("a-1", payments=[transfer(1)])],
                shared=[transfer(2)],
            )
        ]

        keys = [key for key, _ in iter_line_payments(lines, groups)]

        assert keys == [
            "line-d-1/payment-0",
            "line-d-1/payment-1",
            "line-a-1/payment-0",
            "group-g-1/shared-0",
        ]

    def test_payment_id_used_when_present(self):
        lines = [device("d-1", payments=[transfer(10, id="pay-77")])]

        assert [k for k, _ in iter_line_payments(lines, [])] == ["pay-77"]

    def test_transaction_keys_are_scoped(self):
        line = device("d-1", payments=[transfer(10)])
        sale = make_sale("s-1", lines=[line])
        rental = make_rental("s-1", lines=[line])

        sale_keys = [k for k, _ in sale.iter_payments()]
        rental_keys = [k for k, _ in rental.iter_payments()]

        assert sale_keys == ["sale-s-1/line-d-1/payment-0"]
        assert rental_keys == ["rental-s-1/line-d-1/payment-0"]
        assert sale.kind == TransactionKind.SALE

    def test_all_lines_includes_grouped_items(self):
        sale = make_sale(
            lines=[device("d-1")], groups=[group(items=[accessory("a-1"), accessory("a-2")])]
        )

        assert [line.id for line in sale.all_lines()] == ["d-1", "a-1", "a-2"]


@pytest.mark.domain
class TestRentalInvariants:
    def test_return_date_requires_returned_status(self):
        rental = make_rental(actual_return_date=date(2024, 6, 1))

        with pytest.raises(InvariantViolation, match="not returned"):
            rental.check_invariants()

    def test_returned_rental_may_have_return_date(self):
        rental = make_rental(
            return_status=ReturnStatus.RETURNED, actual_return_date=date(2024, 6, 1)
        )

        rental.check_invariants()
        assert not rental.is_out


@pytest.mark.domain
class TestDiagnosticSeverity:
    @pytest.mark.parametrize(
        "iah, expected",
        [(5, "negative"), (15, "moderate"), (29.9, "moderate"), (30, "severe")],
    )
    def test_thresholds(self, iah, expected):
        assert make_diagnostic(iah=iah).severity == expected
