"""
Unit tests for the reconciliation engine.

This module tests:
- Accrual rules across line-level and shared payments
- Signed outstanding balances (overpayment is surfaced)
- Invariant violations and cash anomalies
"""

import logging
from datetime import date, timedelta
from decimal import Decimal

import pytest

from homecare.core.exceptions import InvariantViolation
from homecare.domain.lines import BillableLine, LineKind
from homecare.domain.payments import Cash, InstrumentKind
from homecare.services.reconciliation import reconcile, reconcile_transaction
from tests.factories.billing_factories import (
    accessory,
    cash,
    cheque,
    cnam,
    device,
    group,
    make_sale,
    postal_order,
    traite,
    transfer,
)

TODAY = date(2024, 6, 15)


@pytest.mark.services
@pytest.mark.reconciliation
class TestReconcileScenarios:
    def test_cash_counts_upfront_only(self):
        """A 500 line paid 300 upfront leaves 200 outstanding."""
        line = device(
            "d-1",
            price="500",
            payments=[cash(500, 300, due=TODAY + timedelta(days=10))],
        )

        result = reconcile([line], [])

        assert result.total_due == Decimal("500.00")
        assert result.total_paid == Decimal("300.00")
        assert result.outstanding == Decimal("200.00")
        assert result.scheduled_remainders == Decimal("200.00")
        assert result.by_instrument == {InstrumentKind.CASH: Decimal("500.00")}

    def test_pending_claim_left_outstanding(self):
        line = device(
            "d-1",
            price="150",
            payments=[cnam(150, pending=True, follow_up=TODAY + timedelta(days=5))],
        )

        result = reconcile([line], [])

        assert result.total_paid == Decimal("0")
        assert result.outstanding == Decimal("150.00")
        assert result.pending_claims == Decimal("150.00")
        assert result.by_instrument[InstrumentKind.NATIONAL_INSURANCE] == Decimal(
            "150.00"
        )

    def test_approved_claim_counts_as_paid(self):
        line = device("d-1", price="150", payments=[cnam(150, pending=False)])

        result = reconcile([line])

        assert result.total_paid == Decimal("150.00")
        assert result.is_settled
        assert result.pending_claims == Decimal("0")

    def test_mixed_instruments_with_shared_payments(self):
        lines = [device("d-1", price="1000", payments=[cheque(400), traite(100, TODAY)])]
        groups = [
            group(
                "g-1",
                items=[accessory("a-1", price="50", quantity=2), device("d-2", price="300")],
                shared=[transfer(200), postal_order(50), cash(150, 100)],
            )
        ]

        result = reconcile(lines, groups)

        assert result.total_due == Decimal("1400.00")
        # 400 + 100 + 200 + 50 + 100 (cash upfront)
        assert result.total_paid == Decimal("850.00")
        assert result.outstanding == Decimal("550.00")
        assert result.by_instrument[InstrumentKind.CASH] == Decimal("150.00")
        assert result.by_instrument[InstrumentKind.CHEQUE] == Decimal("400.00")


@pytest.mark.services
@pytest.mark.reconciliation
class TestReconcileProperties:
    def test_empty_input_is_all_zero(self):
        result = reconcile([], [])

        assert result.total_due == 0
        assert result.total_paid == 0
        assert result.outstanding == 0
        assert result.by_instrument == {}
        assert result.anomalies == ()

    def test_unpaid_lines_are_fully_outstanding(self):
        lines = [device("d-1", price="250"), accessory("a-1", price="10", quantity=3)]

        result = reconcile(lines, [])

        assert result.total_paid == 0
        assert result.outstanding == result.total_due == Decimal("280.00")

    def test_total_due_ignores_payment_content(self):
        lines = [
            device("d-1", price="100", payments=[transfer(1000)]),
            accessory("a-1", price="20", quantity=2, payments=[cnam(5)]),
        ]

        result = reconcile(lines, [])

        assert result.total_due == sum(line.total_price for line in lines)

    def test_overpayment_is_negative_not_clamped(self):
        line = device("d-1", price="100", payments=[transfer(130)])

        result = reconcile([line])

        assert result.outstanding == Decimal("-30.00")
        assert result.is_overpaid

    def test_inputs_are_not_mutated(self):
        line = device("d-1", price="100", payments=[transfer(30)])
        before = line

        reconcile([line])

        assert line == before
        assert line.payments == (transfer(30),)


@pytest.mark.services
@pytest.mark.reconciliation
class TestReconcileErrors:
    def test_rejects_cash_breaking_its_invariant(self):
        bad = Cash(
            amount=Decimal("500"),
            total=Decimal("500"),
            upfront=Decimal("300"),
            remainder=Decimal("150"),
        )
        line = device("d-1", price="500", payments=[bad])

        with pytest.raises(InvariantViolation) as exc_info:
            reconcile([line])

        assert exc_info.value.entity_id == "d-1/payment-0"

    def test_rejects_inconsistent_line_total(self):
        line = BillableLine(
            id="a-1",
            kind=LineKind.ACCESSORY,
            unit_price=Decimal("10"),
            quantity=3,
            total_price=Decimal("20"),
        )

        with pytest.raises(InvariantViolation):
            reconcile([line])

    def test_rejects_grouped_line_errors(self):
        bad_device = BillableLine(
            id="d-7", kind=LineKind.DEVICE, unit_price=Decimal("10"), quantity=3
        )

        with pytest.raises(InvariantViolation) as exc_info:
            reconcile([], [group("g-1", items=[bad_device])])

        assert exc_info.value.entity_id == "d-7"

    def test_negative_cash_remainder_is_surfaced(self, caplog):
        line = device("d-1", price="100", payments=[cash(100, 120)])

        with caplog.at_level(logging.WARNING, logger="homecare.services.reconciliation"):
            result = reconcile([line])

        assert result.total_paid == Decimal("120.00")
        assert result.outstanding == Decimal("-20.00")
        assert result.scheduled_remainders == Decimal("0")
        assert len(result.anomalies) == 1
        assert result.anomalies[0].entity_id == "line-d-1/payment-0"
        assert "exceeds" in caplog.text


@pytest.mark.services
class TestReconcileTransaction:
    def test_uses_transaction_lines_and_groups(self):
        sale = make_sale(
            lines=[device("d-1", price="200", payments=[transfer(50)])],
            groups=[group(items=[accessory("a-1", price="30")], shared=[transfer(30)])],
        )

        result = reconcile_transaction(sale)

        assert result.total_due == Decimal("230.00")
        assert result.total_paid == Decimal("80.00")
        assert result.outstanding == Decimal("150.00")
