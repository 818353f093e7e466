"""Schema for automated notification intents."""

from datetime import datetime
from typing import Optional, Tuple

from contract_engine.business.workflow_codes import (
    NotificationChannel,
    NotificationStatus,
    NotificationType,
    RecipientType,
)
from contract_engine.schemas.base import EngineModel


class AutomatedNotification(EngineModel):
    """
    Notification the delivery layer should send.

    The engine only schedules; SENT/FAILED are recorded by whoever
    dispatches over the requested channels.
    """

    id: str
    contract_id: str
    type: NotificationType
    recipient: str
    recipient_type: RecipientType
    channels: Tuple[NotificationChannel, ...]
    message: str
    scheduled_at: datetime
    status: NotificationStatus = NotificationStatus.SCHEDULED
    threshold_days: Optional[int] = None
    days_until_due: Optional[int] = None
