"""
Unit tests for the calendar aggregator.

This module tests:
- Event ordering and stable identifiers
- Notification classification (overdue, due soon, reminder, urgent)
- Deduplication of obligations sharing a source and kind
"""

import logging
from datetime import date, datetime, timedelta

import pytest

from homecare.core import config
from homecare.domain.entities import (
    AppointmentStatus,
    NotificationType,
    Obligation,
    ObligationKind,
)
from homecare.services.calendar_aggregator import (
    _deduplicate,
    aggregate,
    classify,
    stable_id,
)
from tests.factories.billing_factories import (
    cash,
    cnam,
    device,
    group,
    make_appointment,
    make_diagnostic,
    make_rental,
    make_sale,
    traite,
)

TODAY = date(2024, 6, 15)


def _obligation(due, overdue=False, kind=ObligationKind.PROMISSORY_NOTE_DUE, source="x-1"):
    return Obligation(
        source_entity_id=source,
        source_entity_type="payment",
        kind=kind,
        due_date=due,
        description="test obligation",
        is_overdue=overdue,
    )


@pytest.mark.services
@pytest.mark.calendar
class TestStableIds:
    def test_same_source_and_kind_give_same_id(self):
        first = stable_id("sale-s-1/line-d-1/payment-0", ObligationKind.CASH_REMAINDER)
        second = stable_id("sale-s-1/line-d-1/payment-0", ObligationKind.CASH_REMAINDER)

        assert first == second
        assert len(first) == 16

    def test_kind_changes_id(self):
        assert stable_id("rental-r-1", ObligationKind.RENTAL_RETURN) != stable_id(
            "rental-r-1", ObligationKind.RENTAL_ENDING
        )

    def test_repeated_passes_are_identical(self):
        sale = make_sale(lines=[device(payments=[traite(100, TODAY + timedelta(days=1))])])

        first = aggregate([sale], [], TODAY)
        second = aggregate([sale], [], TODAY)

        assert [n.id for n in first.notifications] == [n.id for n in second.notifications]
        assert first.events == second.events


@pytest.mark.services
@pytest.mark.calendar
class TestClassification:
    def test_due_soon_within_window(self, monkeypatch):
        monkeypatch.setattr(config, "DUE_SOON_DAYS", 3)

        assert classify(_obligation(TODAY + timedelta(days=3)), TODAY) == NotificationType.DUE_SOON
        assert classify(_obligation(TODAY), TODAY) == NotificationType.DUE_SOON

    def test_beyond_window_is_not_notified(self, monkeypatch):
        monkeypatch.setattr(config, "DUE_SOON_DAYS", 3)

        assert classify(_obligation(TODAY + timedelta(days=4)), TODAY) is None

    def test_overdue(self):
        obligation = _obligation(TODAY - timedelta(days=2), overdue=True)

        assert classify(obligation, TODAY) == NotificationType.OVERDUE

    def test_long_overdue_becomes_urgent(self, monkeypatch):
        monkeypatch.setattr(config, "URGENT_AFTER_DAYS", 10)

        recent = _obligation(TODAY - timedelta(days=10), overdue=True)
        old = _obligation(TODAY - timedelta(days=11), overdue=True)

        assert classify(recent, TODAY) == NotificationType.OVERDUE
        assert classify(old, TODAY) == NotificationType.URGENT

    def test_appointment_is_always_a_reminder(self):
        far = _obligation(TODAY + timedelta(days=25), kind=ObligationKind.APPOINTMENT)

        assert classify(far, TODAY) == NotificationType.REMINDER

    def test_rental_ending_is_a_reminder(self):
        ending = _obligation(TODAY + timedelta(days=5), kind=ObligationKind.RENTAL_ENDING)

        assert classify(ending, TODAY) == NotificationType.REMINDER

    def test_due_soon_turns_overdue_as_time_passes(self):
        """The same instrument moves from due soon to overdue, never back."""
        due = TODAY + timedelta(days=2)
        sale = make_sale(lines=[device(payments=[traite(100, due)])])

        before = aggregate([sale], [], TODAY).notifications
        after = aggregate([sale], [], due + timedelta(days=1)).notifications

        assert [n.type for n in before] == [NotificationType.DUE_SOON]
        assert [n.type for n in after] == [NotificationType.OVERDUE]
        assert before[0].id == after[0].id


@pytest.mark.services
@pytest.mark.calendar
class TestAggregate:
    def test_notification_per_qualifying_instrument(self):
        """Two transactions, three instruments needing attention."""
        sale = make_sale(
            "s-1",
            lines=[
                device(
                    "d-1",
                    price="500",
                    payments=[cash(500, 300, due=TODAY - timedelta(days=5))],
                )
            ],
            groups=[
                group(
                    "g-1",
                    items=[device("d-2", price="200")],
                    shared=[cnam(200, follow_up=TODAY + timedelta(days=1))],
                )
            ],
        )
        rental = make_rental("r-1", end=TODAY + timedelta(days=30), lines=[
            device("d-3", price="80", payments=[traite(80, TODAY + timedelta(days=2))])
        ])

        result = aggregate([sale, rental], [], TODAY)

        assert len(result.notifications) == 3
        assert len({n.id for n in result.notifications}) == 3
        assert [n.type for n in result.notifications] == [
            NotificationType.OVERDUE,
            NotificationType.DUE_SOON,
            NotificationType.DUE_SOON,
        ]

    def test_events_are_sorted(self):
        sale = make_sale(
            lines=[
                device("d-1", payments=[traite(10, TODAY + timedelta(days=9))]),
                device("d-2", payments=[traite(10, TODAY + timedelta(days=1))]),
            ]
        )
        appointment = make_appointment(scheduled_at=datetime(2024, 6, 18, 9, 0))

        result = aggregate([sale], [appointment], TODAY)

        due_dates = [event.due_date for event in result.events]
        assert due_dates == sorted(due_dates)
        assert [e.kind for e in result.events] == [
            ObligationKind.PROMISSORY_NOTE_DUE,
            ObligationKind.APPOINTMENT,
            ObligationKind.PROMISSORY_NOTE_DUE,
        ]

    def test_far_obligation_is_an_event_but_not_a_notification(self):
        sale = make_sale(lines=[device(payments=[traite(10, TODAY + timedelta(days=20))])])

        result = aggregate([sale], [], TODAY)

        assert len(result.events) == 1
        assert result.events[0].status == "UPCOMING"
        assert result.notifications == ()

    def test_appointments_and_diagnostics_join_the_stream(self):
        appointments = [
            make_appointment("ap-1", scheduled_at=datetime(2024, 7, 10, 14, 0)),
            make_appointment("ap-2", status=AppointmentStatus.CANCELLED),
        ]
        diagnostics = [make_diagnostic("dg-1", day=date(2024, 6, 12), iah=40)]

        result = aggregate([], appointments, TODAY, diagnostics)

        kinds = {event.kind for event in result.events}
        assert kinds == {ObligationKind.APPOINTMENT, ObligationKind.DIAGNOSTIC_FOLLOW_UP}
        types = {n.entity_id: n.type for n in result.notifications}
        assert types["appointment-ap-1"] == NotificationType.REMINDER
        assert "appointment-ap-2" not in types

    def test_overdue_message_counts_days(self):
        sale = make_sale(lines=[device(payments=[traite(10, TODAY - timedelta(days=4))])])

        notification = aggregate([sale], [], TODAY).notifications[0]

        assert notification.message.endswith("(4 days late)")
        assert notification.title == "Promissory note due"

    def test_empty_input(self):
        result = aggregate([], [], TODAY)

        assert result.events == ()
        assert result.notifications == ()


@pytest.mark.services
@pytest.mark.calendar
class TestDeduplication:
    def test_keeps_most_overdue(self, caplog):
        newer = _obligation(TODAY - timedelta(days=1), overdue=True)
        older = _obligation(TODAY - timedelta(days=8), overdue=True)
        upcoming = _obligation(TODAY + timedelta(days=1))

        with caplog.at_level(logging.WARNING, logger="homecare.services.calendar_aggregator"):
            kept = _deduplicate([upcoming, newer, older])

        assert kept == [older]
        assert "Duplicate obligation" in caplog.text

    def test_distinct_kinds_are_kept(self):
        return_due = _obligation(TODAY, kind=ObligationKind.RENTAL_RETURN, source="rental-r-1")
        ending = _obligation(TODAY, kind=ObligationKind.RENTAL_ENDING, source="rental-r-1")

        assert len(_deduplicate([return_due, ending])) == 2
