# ==== AUTOMATED REMINDER SCHEDULER ==== #

"""
Automated reminder scheduling from trade-type thresholds.

Given a contract's current lifecycle state and a due date, the scheduler emits
the notifications that are due now. Every threshold is checked on its own: a
contract at zero days against thresholds [3, 1, 0] satisfies all three and
yields three notifications in one call. Repeated calls are not deduplicated
here; ``suppress_already_scheduled`` lets the calling layer drop thresholds it
has already scheduled or sent.
"""

import math
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from contract_engine.business.lifecycle_codes import ContractLifecycleState, resolve_lifecycle_state
from contract_engine.business.workflow_codes import (
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    RecipientType,
)
from contract_engine.observability.logging import get_logger
from contract_engine.observability.metrics import reminders_scheduled_total
from contract_engine.schemas.lifecycle import TradeTypeConfig
from contract_engine.schemas.notification import AutomatedNotification
from contract_engine.services.policy_loader import get_trade_type_config, get_trade_type_configs


logger = get_logger(__name__)


SECONDS_PER_DAY = 86400

PAYMENT_CHANNELS = (NotificationChannel.CHAT, NotificationChannel.EMAIL, NotificationChannel.DASHBOARD)
DELIVERY_CHANNELS = (NotificationChannel.CHAT, NotificationChannel.DASHBOARD)
QUALITY_CHANNELS = (NotificationChannel.CHAT, NotificationChannel.DASHBOARD)

DELIVERY_REMINDER_STATES = frozenset({
    ContractLifecycleState.AWAITING_DELIVERY,
    ContractLifecycleState.QUALITY_PASSED,
})

# Statuses that count as "already handled" for dedupe
_SUPPRESSING_STATUSES = frozenset({NotificationStatus.SCHEDULED, NotificationStatus.SENT})


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def days_until_due(due_date: datetime, now: Optional[datetime] = None) -> int:
    """
    Whole days until ``due_date``, rounded up.

    Naive datetimes are treated as UTC. Overdue dates give zero or negative
    values.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    delta = _as_utc(due_date) - now
    return math.ceil(delta.total_seconds() / SECONDS_PER_DAY)


def _describe_due(days: int) -> str:
    if days > 1:
        return f"due in {days} days"
    if days == 1:
        return "due tomorrow"
    if days == 0:
        return "due today"
    return f"overdue by {abs(days)} day{'s' if abs(days) != 1 else ''}"


class ReminderScheduler:
    """
    Derives due reminders from trade-type configuration.

    Holds only the injected configuration; every call is a pure function of
    its arguments and the supplied (or current) time.
    """

    def __init__(self, trade_type_configs: Optional[Dict[str, TradeTypeConfig]] = None):
        self._configs = trade_type_configs

    @property
    def trade_type_configs(self) -> Dict[str, TradeTypeConfig]:
        if self._configs is None:
            return get_trade_type_configs()
        return self._configs

    def generate_automated_reminders(
        self,
        contract_id: str,
        trade_type: str,
        current_state: Optional[ContractLifecycleState | str],
        due_date: datetime,
        buyer: str,
        seller: str,
        now: Optional[datetime] = None
    ) -> List[AutomatedNotification]:
        """
        Notifications due for a contract in its current state.

        AWAITING_PAYMENT reminds the buyer (PAYMENT_DUE); AWAITING_DELIVERY and
        QUALITY_PASSED remind the seller (DELIVERY_PENDING); AWAITING_QUALITY_PASSING
        reminds both parties through the buyer (QUALITY_CHECK_REQUIRED) when the
        trade type requires quality passing. One notification is emitted per
        threshold with ``days_until_due <= threshold``.

        Args:
            contract_id (str): Contract identifier
            trade_type (str): Trade type name (raises UnknownTradeTypeError)
            current_state (Optional[ContractLifecycleState | str]): Current state
            due_date (datetime): Due date of the pending obligation
            buyer (str): Buyer recipient
            seller (str): Seller recipient
            now (Optional[datetime]): Evaluation time; defaults to now (UTC)

        Returns:
            List[AutomatedNotification]: SCHEDULED notifications, possibly empty
        """
        config = get_trade_type_config(trade_type, self.trade_type_configs)
        state = resolve_lifecycle_state(current_state)
        now = _as_utc(now or datetime.now(timezone.utc))
        days = days_until_due(due_date, now)

        if state == ContractLifecycleState.AWAITING_PAYMENT:
            plan = (
                NotificationType.PAYMENT_DUE, buyer, RecipientType.BUYER,
                PAYMENT_CHANNELS, config.payment_due_days,
            )
        elif state in DELIVERY_REMINDER_STATES:
            plan = (
                NotificationType.DELIVERY_PENDING, seller, RecipientType.SELLER,
                DELIVERY_CHANNELS, config.delivery_reminder_days,
            )
        elif state == ContractLifecycleState.AWAITING_QUALITY_PASSING and config.requires_quality_passing:
            plan = (
                NotificationType.QUALITY_CHECK_REQUIRED, buyer, RecipientType.BOTH_PARTIES,
                QUALITY_CHANNELS, config.quality_check_days,
            )
        else:
            return []

        notification_type, recipient, recipient_type, channels, thresholds = plan
        notifications = [
            self._build(contract_id, notification_type, recipient, recipient_type,
                        channels, threshold, days, now)
            for threshold in thresholds
            if days <= threshold
        ]

        if notifications:
            reminders_scheduled_total.labels(
                notification_type=notification_type.value
            ).inc(len(notifications))
            logger.info(
                "Automated reminders scheduled",
                contract_id=contract_id,
                notification_type=notification_type.value,
                days_until_due=days,
                count=len(notifications),
            )

        return notifications

    @staticmethod
    def _build(
        contract_id: str,
        notification_type: NotificationType,
        recipient: str,
        recipient_type: RecipientType,
        channels: Tuple[NotificationChannel, ...],
        threshold: int,
        days: int,
        now: datetime
    ) -> AutomatedNotification:
        due = _describe_due(days)
        if notification_type == NotificationType.PAYMENT_DUE:
            message = f"Payment for contract {contract_id} is {due}."
        elif notification_type == NotificationType.DELIVERY_PENDING:
            message = f"Delivery for contract {contract_id} is {due}."
        elif notification_type == NotificationType.QUALITY_CHECK_REQUIRED:
            message = f"Quality passing for contract {contract_id} is {due}."
        else:
            raise ValueError(f"Unhandled notification type: {notification_type}")

        return AutomatedNotification(
            id=f"ntf_{uuid.uuid4().hex[:16]}",
            contract_id=contract_id,
            type=notification_type,
            recipient=recipient,
            recipient_type=recipient_type,
            channels=channels,
            message=message,
            scheduled_at=now,
            status=NotificationStatus.SCHEDULED,
            threshold_days=threshold,
            days_until_due=days,
        )


# ==== DEDUPE ==== #


def suppress_already_scheduled(
    notifications: Sequence[AutomatedNotification],
    history: Iterable[AutomatedNotification]
) -> List[AutomatedNotification]:
    """
    Drop notifications whose threshold was already scheduled or sent.

    Matching is on (contract, type, threshold). FAILED and CANCELLED history
    entries do not suppress, so a failed reminder is scheduled again.
    """
    seen = {
        (n.contract_id, n.type, n.threshold_days)
        for n in history
        if n.status in _SUPPRESSING_STATUSES
    }
    return [
        n for n in notifications
        if (n.contract_id, n.type, n.threshold_days) not in seen
    ]


# ==== DELIVERY STATUS ==== #


def _settle(notification: AutomatedNotification, status: NotificationStatus) -> AutomatedNotification:
    """
    Move a scheduled reminder to its final status.

    Raises:
        ValueError: If the reminder is no longer SCHEDULED
    """
    if notification.status != NotificationStatus.SCHEDULED:
        raise ValueError(
            f"Notification {notification.id} is {notification.status.value}, only scheduled reminders can change"
        )
    return notification.model_copy(update={"status": status})


def mark_sent(notification: AutomatedNotification) -> AutomatedNotification:
    return _settle(notification, NotificationStatus.SENT)


def mark_failed(notification: AutomatedNotification) -> AutomatedNotification:
    return _settle(notification, NotificationStatus.FAILED)


def cancel_notification(notification: AutomatedNotification) -> AutomatedNotification:
    return _settle(notification, NotificationStatus.CANCELLED)


# ==== CONVENIENCE FUNCTIONS ==== #


_scheduler: Optional[ReminderScheduler] = None


def get_reminder_scheduler() -> ReminderScheduler:
    """Get global reminder scheduler using the configured trade types."""
    global _scheduler
    if _scheduler is None:
        _scheduler = ReminderScheduler()
    return _scheduler


def generate_automated_reminders(
    contract_id: str,
    trade_type: str,
    current_state: Optional[ContractLifecycleState | str],
    due_date: datetime,
    buyer: str,
    seller: str
) -> List[AutomatedNotification]:
    """Reminders due now for a contract under the configured trade types."""
    return get_reminder_scheduler().generate_automated_reminders(
        contract_id, trade_type, current_state, due_date, buyer, seller
    )
