"""
Unit tests for the obligation deriver.

This module tests:
- Payment-driven obligations (cash remainder, CNAM follow-up, promissory note)
- Rental return and rental-ending obligations
- Appointment and diagnostic follow-up obligations
"""

from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest

from homecare.core import config
from homecare.core.exceptions import InvariantViolation
from homecare.domain.entities import (
    AppointmentStatus,
    ObligationKind,
    ReturnStatus,
    TransactionStatus,
)
from homecare.domain.lines import BillableLine, LineKind
from homecare.services.obligations import (
    appointment_obligation,
    derive_diagnostic_obligations,
    derive_obligations,
)
from tests.factories.billing_factories import (
    cash,
    cheque,
    cnam,
    device,
    group,
    make_appointment,
    make_diagnostic,
    make_rental,
    make_sale,
    traite,
    transfer,
)

TODAY = date(2024, 6, 15)


@pytest.mark.services
class TestPaymentObligations:
    def test_overdue_cash_remainder(self):
        """Remainder due on day +10, checked on day +15."""
        sale = make_sale(
            lines=[
                device(
                    "d-1",
                    price="500",
                    payments=[cash(500, 300, due=TODAY + timedelta(days=10))],
                )
            ]
        )

        obligations = derive_obligations(sale, TODAY + timedelta(days=15))

        assert len(obligations) == 1
        obligation = obligations[0]
        assert obligation.kind == ObligationKind.CASH_REMAINDER
        assert obligation.is_overdue is True
        assert obligation.amount == Decimal("200.00")
        assert obligation.due_date == TODAY + timedelta(days=10)
        assert obligation.source_entity_id == "sale-s-1/line-d-1/payment-0"
        assert obligation.transaction_id == "s-1"

    def test_pending_claim_follow_up_not_overdue(self):
        sale = make_sale(
            lines=[
                device(
                    "d-1",
                    price="150",
                    payments=[cnam(150, follow_up=TODAY + timedelta(days=5))],
                )
            ]
        )

        obligations = derive_obligations(sale, TODAY)

        assert [o.kind for o in obligations] == [ObligationKind.CNAM_FOLLOW_UP]
        assert obligations[0].is_overdue is False

    def test_approved_claim_needs_no_follow_up(self):
        sale = make_sale(
            lines=[device(payments=[cnam(150, pending=False, follow_up=TODAY)])]
        )

        assert derive_obligations(sale, TODAY) == []

    def test_promissory_note_due(self):
        sale = make_sale(lines=[device(payments=[traite(300, TODAY - timedelta(days=1))])])

        obligations = derive_obligations(sale, TODAY)

        assert obligations[0].kind == ObligationKind.PROMISSORY_NOTE_DUE
        assert obligations[0].is_overdue is True

    def test_due_today_is_not_overdue(self):
        sale = make_sale(lines=[device(payments=[traite(300, TODAY)])])

        assert derive_obligations(sale, TODAY)[0].is_overdue is False

    def test_remainder_without_due_date_yields_nothing(self):
        sale = make_sale(lines=[device(price="500", payments=[cash(500, 300)])])

        assert derive_obligations(sale, TODAY) == []

    def test_settled_cash_yields_nothing(self):
        sale = make_sale(
            lines=[device(price="500", payments=[cash(500, 500, due=TODAY)])]
        )

        assert derive_obligations(sale, TODAY) == []

    def test_recorded_instruments_yield_nothing(self):
        sale = make_sale(lines=[device(payments=[cheque(500), transfer(500)])])

        assert derive_obligations(sale, TODAY) == []

    def test_one_obligation_per_qualifying_instrument(self):
        due = TODAY + timedelta(days=2)
        sale = make_sale(
            lines=[device("d-1", payments=[traite(100, due), traite(100, due)])],
            groups=[group("g-1", items=[device("d-2")], shared=[cnam(50, follow_up=due)])],
        )

        obligations = derive_obligations(sale, TODAY)

        assert len(obligations) == 3
        assert len({o.source_entity_id for o in obligations}) == 3

    def test_cancelled_sale_yields_nothing(self):
        sale = make_sale(
            lines=[device(payments=[traite(300, TODAY)])],
            status=TransactionStatus.CANCELLED,
        )

        assert derive_obligations(sale, TODAY) == []

    def test_invalid_transaction_raises(self):
        bad_line = BillableLine(
            id="d-1", kind=LineKind.DEVICE, unit_price=Decimal("10"), quantity=2
        )

        with pytest.raises(InvariantViolation):
            derive_obligations(make_sale(lines=[bad_line]), TODAY)


@pytest.mark.services
class TestRentalObligations:
    def test_rental_past_end_is_overdue_return(self):
        rental = make_rental(end=TODAY - timedelta(days=1))

        obligations = derive_obligations(rental, TODAY)

        assert len(obligations) == 1
        assert obligations[0].kind == ObligationKind.RENTAL_RETURN
        assert obligations[0].is_overdue is True
        assert obligations[0].source_entity_id == "rental-r-1"

    def test_return_obligation_regardless_of_payments(self):
        rental = make_rental(
            end=TODAY - timedelta(days=1),
            lines=[device(price="100", payments=[transfer(100)])],
        )

        kinds = [o.kind for o in derive_obligations(rental, TODAY)]

        assert kinds == [ObligationKind.RENTAL_RETURN]

    def test_returned_rental_has_no_obligation(self):
        rental = make_rental(
            end=TODAY - timedelta(days=10), return_status=ReturnStatus.RETURNED
        )

        assert derive_obligations(rental, TODAY) == []

    def test_rental_ending_within_window(self):
        rental = make_rental(end=TODAY + timedelta(days=3))

        obligations = derive_obligations(rental, TODAY)

        assert [o.kind for o in obligations] == [ObligationKind.RENTAL_ENDING]
        assert obligations[0].is_overdue is False

    def test_rental_ending_today_is_a_reminder(self):
        obligations = derive_obligations(make_rental(end=TODAY), TODAY)

        assert [o.kind for o in obligations] == [ObligationKind.RENTAL_ENDING]

    def test_rental_ending_beyond_window(self, monkeypatch):
        monkeypatch.setattr(config, "RENTAL_ENDING_WINDOW_DAYS", 7)
        rental = make_rental(end=TODAY + timedelta(days=8))

        assert derive_obligations(rental, TODAY) == []

    def test_open_ended_rental(self):
        assert derive_obligations(make_rental(end=None), TODAY) == []


@pytest.mark.services
class TestAppointmentAndDiagnosticObligations:
    def test_appointment_obligation(self):
        appointment = make_appointment(scheduled_at=datetime(2024, 6, 20, 9, 0))

        obligation = appointment_obligation(appointment)

        assert obligation.kind == ObligationKind.APPOINTMENT
        assert obligation.due_date == date(2024, 6, 20)
        assert obligation.source_entity_id == "appointment-ap-1"
        assert obligation.is_overdue is False
        assert "09:00" in obligation.description

    def test_cancelled_appointment(self):
        appointment = make_appointment(status=AppointmentStatus.CANCELLED)

        assert appointment_obligation(appointment) is None

    def test_severe_diagnostic_follow_up(self):
        diagnostic = make_diagnostic(day=date(2024, 6, 1), iah=42)

        obligations = derive_diagnostic_obligations(diagnostic, TODAY)

        assert len(obligations) == 1
        assert obligations[0].kind == ObligationKind.DIAGNOSTIC_FOLLOW_UP
        assert obligations[0].due_date == date(2024, 6, 8)
        assert obligations[0].is_overdue is True

    def test_moderate_diagnostic_has_no_follow_up(self):
        assert derive_diagnostic_obligations(make_diagnostic(iah=20), TODAY) == []
