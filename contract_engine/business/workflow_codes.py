# ==== OVERRIDE, ESCALATION AND NOTIFICATION CODES ==== #

"""
Status vocabularies for overrides, escalations and automated notifications.

Status progressions:
    Override:      PENDING → APPROVED | REJECTED (both terminal)
    Escalation:    OPEN → IN_PROGRESS → RESOLVED → CLOSED
    Notification:  SCHEDULED → SENT | FAILED | CANCELLED
"""

from enum import Enum
from typing import Dict

from contract_engine.business.rule_codes import RuleSeverity


# ==== OVERRIDES ==== #


class OverrideStatus(str, Enum):
    """Override request status."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# ==== ESCALATIONS ==== #


class EscalationType(str, Enum):
    """Why an escalation was raised."""

    EXCEPTION = "EXCEPTION"
    APPROVAL_REQUIRED = "APPROVAL_REQUIRED"
    MANUAL_REVIEW = "MANUAL_REVIEW"


class EscalationSeverity(str, Enum):
    """Escalation severity levels for prioritization."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class EscalationStatus(str, Enum):
    """Escalation resolution progress."""

    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


OPEN_ESCALATION_STATUSES = frozenset({EscalationStatus.OPEN, EscalationStatus.IN_PROGRESS})
RESOLVED_ESCALATION_STATUSES = frozenset({EscalationStatus.RESOLVED, EscalationStatus.CLOSED})

# CRITICAL is reserved for manually raised escalations
RULE_SEVERITY_TO_ESCALATION: Dict[RuleSeverity, EscalationSeverity] = {
    RuleSeverity.ERROR: EscalationSeverity.HIGH,
    RuleSeverity.WARNING: EscalationSeverity.MEDIUM,
    RuleSeverity.INFO: EscalationSeverity.LOW,
}


# ==== NOTIFICATIONS ==== #


class NotificationType(str, Enum):
    """Automated reminder categories."""

    PAYMENT_DUE = "PAYMENT_DUE"
    DELIVERY_PENDING = "DELIVERY_PENDING"
    QUALITY_CHECK_REQUIRED = "QUALITY_CHECK_REQUIRED"


class RecipientType(str, Enum):
    """Party a notification addresses."""

    BUYER = "BUYER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"
    BOTH_PARTIES = "BOTH_PARTIES"


class NotificationChannel(str, Enum):
    """Delivery channels requested for a notification."""

    CHAT = "CHAT"
    EMAIL = "EMAIL"
    SMS = "SMS"
    WHATSAPP = "WHATSAPP"
    DASHBOARD = "DASHBOARD"


class NotificationStatus(str, Enum):
    """Notification delivery status, owned by the delivery layer after scheduling."""

    SCHEDULED = "SCHEDULED"
    SENT = "SENT"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"
