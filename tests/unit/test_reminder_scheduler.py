"""Unit tests for automated reminder scheduling."""

from datetime import datetime, timedelta

import pytest

from contract_engine.business.lifecycle_codes import ContractLifecycleState as S, TradeType
from contract_engine.business.workflow_codes import (
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    RecipientType,
)
from contract_engine.services.policy_loader import UnknownTradeTypeError
from contract_engine.services.reminder_scheduler import (
    cancel_notification,
    days_until_due,
    mark_failed,
    mark_sent,
    suppress_already_scheduled,
)


BUYER = "Shree Cotton Mills"
SELLER = "Rajkot Ginning Co"


@pytest.mark.unit
class TestDaysUntilDue:
    """Test cases for due-day arithmetic."""

    def test_rounds_partial_days_up(self, base_time):
        assert days_until_due(base_time + timedelta(days=2, hours=1), base_time) == 3

    def test_due_now_is_zero(self, base_time):
        assert days_until_due(base_time, base_time) == 0

    def test_overdue_is_negative(self, base_time):
        assert days_until_due(base_time - timedelta(days=2), base_time) == -2

    def test_naive_datetimes_are_utc(self, base_time):
        naive_due = datetime(2025, 8, 20, 10, 0, 0)

        assert days_until_due(naive_due, base_time) == 3

    def test_uses_current_time(self, frozen_time, base_time):
        assert days_until_due(base_time + timedelta(days=1)) == 1


@pytest.mark.unit
class TestGenerateAutomatedReminders:
    """Test cases for reminder generation per lifecycle state."""

    def test_every_satisfied_threshold_fires(self, reminder_scheduler, frozen_time, base_time):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.CCI, S.AWAITING_QUALITY_PASSING, base_time, BUYER, SELLER
        )

        assert len(notifications) == 3
        assert [n.threshold_days for n in notifications] == [3, 1, 0]
        assert all(n.type == NotificationType.QUALITY_CHECK_REQUIRED for n in notifications)
        assert all(n.recipient == BUYER for n in notifications)
        assert all(n.recipient_type == RecipientType.BOTH_PARTIES for n in notifications)
        assert all(n.scheduled_at == base_time for n in notifications)

    def test_payment_reminder_goes_to_buyer(self, reminder_scheduler, base_time):
        [notification] = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.NORMAL, S.AWAITING_PAYMENT, base_time + timedelta(days=5),
            BUYER, SELLER, now=base_time,
        )

        assert notification.id.startswith("ntf_")
        assert notification.type == NotificationType.PAYMENT_DUE
        assert notification.recipient == BUYER
        assert notification.recipient_type == RecipientType.BUYER
        assert notification.channels == (
            NotificationChannel.CHAT, NotificationChannel.EMAIL, NotificationChannel.DASHBOARD
        )
        assert notification.status == NotificationStatus.SCHEDULED
        assert notification.threshold_days == 7
        assert notification.days_until_due == 5
        assert notification.message == "Payment for contract sc-1 is due in 5 days."

    def test_delivery_reminder_goes_to_seller(self, reminder_scheduler, base_time):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.NORMAL, S.AWAITING_DELIVERY, base_time + timedelta(days=2),
            BUYER, SELLER, now=base_time,
        )

        assert [n.threshold_days for n in notifications] == [7, 3]
        assert all(n.recipient == SELLER for n in notifications)
        assert all(n.recipient_type == RecipientType.SELLER for n in notifications)
        assert notifications[0].channels == (NotificationChannel.CHAT, NotificationChannel.DASHBOARD)

    def test_quality_passed_triggers_delivery_reminders(self, reminder_scheduler, base_time):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.CCI, S.QUALITY_PASSED, base_time, BUYER, SELLER, now=base_time
        )

        assert len(notifications) == 3
        assert all(n.type == NotificationType.DELIVERY_PENDING for n in notifications)
        assert notifications[-1].message == "Delivery for contract sc-1 is due today."

    def test_overdue_message(self, reminder_scheduler, base_time):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.NORMAL, S.AWAITING_PAYMENT, base_time - timedelta(days=1),
            BUYER, SELLER, now=base_time,
        )

        assert len(notifications) == 3
        assert notifications[0].message == "Payment for contract sc-1 is overdue by 1 day."

    def test_nothing_due_yet(self, reminder_scheduler, base_time):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.NORMAL, S.AWAITING_PAYMENT, base_time + timedelta(days=30),
            BUYER, SELLER, now=base_time,
        )

        assert notifications == []

    def test_quality_reminders_need_quality_passing(self, reminder_scheduler, base_time):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.NORMAL, S.AWAITING_QUALITY_PASSING, base_time, BUYER, SELLER, now=base_time
        )

        assert notifications == []

    @pytest.mark.parametrize("state", [S.DRAFT, S.ACTIVE, S.PAID, S.DISPUTED, None])
    def test_other_states_schedule_nothing(self, reminder_scheduler, base_time, state):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.CCI, state, base_time, BUYER, SELLER, now=base_time
        )

        assert notifications == []

    def test_status_labels_are_accepted(self, reminder_scheduler, base_time):
        notifications = reminder_scheduler.generate_automated_reminders(
            "sc-1", TradeType.NORMAL, "Awaiting Payment", base_time, BUYER, SELLER, now=base_time
        )

        assert len(notifications) == 3

    def test_unknown_trade_type(self, reminder_scheduler, base_time):
        with pytest.raises(UnknownTradeTypeError):
            reminder_scheduler.generate_automated_reminders(
                "sc-1", "Barter Trade", S.AWAITING_PAYMENT, base_time, BUYER, SELLER, now=base_time
            )


@pytest.mark.unit
class TestReminderDedupe:
    """Test cases for suppressing thresholds already handled."""

    def test_second_run_is_suppressed(self, reminder_scheduler, base_time):
        args = ("sc-1", TradeType.CCI, S.AWAITING_PAYMENT, base_time, BUYER, SELLER)
        first = reminder_scheduler.generate_automated_reminders(*args, now=base_time)
        second = reminder_scheduler.generate_automated_reminders(*args, now=base_time)

        assert len(second) == 3
        assert suppress_already_scheduled(second, first) == []

    def test_only_new_thresholds_survive(self, reminder_scheduler, base_time):
        due = base_time + timedelta(days=2)
        args = ("sc-1", TradeType.CCI, S.AWAITING_PAYMENT, due, BUYER, SELLER)
        earlier = reminder_scheduler.generate_automated_reminders(*args, now=base_time - timedelta(days=3))
        today = reminder_scheduler.generate_automated_reminders(*args, now=base_time)

        fresh = suppress_already_scheduled(today, earlier)

        assert [n.threshold_days for n in earlier] == [5]
        assert [n.threshold_days for n in fresh] == [2]

    def test_failed_and_cancelled_history_does_not_suppress(self, reminder_scheduler, base_time):
        args = ("sc-1", TradeType.CCI, S.AWAITING_PAYMENT, base_time, BUYER, SELLER)
        first = reminder_scheduler.generate_automated_reminders(*args, now=base_time)
        history = [mark_failed(first[0]), cancel_notification(first[1]), mark_sent(first[2])]
        again = reminder_scheduler.generate_automated_reminders(*args, now=base_time)

        fresh = suppress_already_scheduled(again, history)

        assert [n.threshold_days for n in fresh] == [5, 2]


@pytest.mark.unit
class TestNotificationStatus:
    """Test cases for settling scheduled reminders."""

    @pytest.fixture
    def reminder(self, reminder_scheduler, base_time):
        args = ("sc-1", TradeType.CCI, S.AWAITING_PAYMENT, base_time, BUYER, SELLER)
        return reminder_scheduler.generate_automated_reminders(*args, now=base_time)[0]

    @pytest.mark.parametrize("settle,status", [
        (mark_sent, NotificationStatus.SENT),
        (mark_failed, NotificationStatus.FAILED),
        (cancel_notification, NotificationStatus.CANCELLED),
    ])
    def test_scheduled_reminder_settles(self, reminder, settle, status):
        settled = settle(reminder)

        assert settled.status == status
        assert reminder.status == NotificationStatus.SCHEDULED

    @pytest.mark.parametrize("settle", [mark_sent, mark_failed, cancel_notification])
    def test_cancelled_reminder_cannot_change(self, reminder, settle):
        cancelled = cancel_notification(reminder)

        with pytest.raises(ValueError):
            settle(cancelled)

    def test_sent_reminder_cannot_fail_afterwards(self, reminder):
        with pytest.raises(ValueError):
            mark_failed(mark_sent(reminder))
