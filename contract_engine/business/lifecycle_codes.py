# ==== CONTRACT LIFECYCLE CODES ==== #

"""
Lifecycle states and trade types for sales contracts.

Workflow states are ordered per trade type by ``TradeTypeConfig.workflow_steps``.
Branch states sit outside every workflow and are only entered or left by an
explicit decision of the calling application.
"""

from enum import Enum
from typing import Optional


# ==== ENUMERATION DEFINITIONS ==== #


class ContractLifecycleState(str, Enum):
    """Closed set of contract lifecycle phases."""

    DRAFT = "DRAFT"
    PENDING_VALIDATION = "PENDING_VALIDATION"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    APPROVED = "APPROVED"
    ACTIVE = "ACTIVE"
    PENDING_EXECUTION = "PENDING_EXECUTION"
    IN_EXECUTION = "IN_EXECUTION"
    AWAITING_QUALITY_PASSING = "AWAITING_QUALITY_PASSING"
    QUALITY_PASSED = "QUALITY_PASSED"
    AWAITING_DELIVERY = "AWAITING_DELIVERY"
    DELIVERED = "DELIVERED"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"
    RECONCILED = "RECONCILED"
    COMPLETED = "COMPLETED"
    DISPUTED = "DISPUTED"
    CANCELLED = "CANCELLED"
    AMENDED = "AMENDED"


class TriggeredBy(str, Enum):
    """Origin of a lifecycle event."""

    SYSTEM = "SYSTEM"
    USER = "USER"


class TradeType:
    """Names of the trade types shipped with the default configuration."""

    NORMAL = "Normal Trade"
    CCI = "CCI Trade"


# ==== STATE GROUPS ==== #


BRANCH_STATES = frozenset({
    ContractLifecycleState.VALIDATION_FAILED,
    ContractLifecycleState.DISPUTED,
    ContractLifecycleState.CANCELLED,
    ContractLifecycleState.AMENDED,
})

RECONCILED_STATES = frozenset({
    ContractLifecycleState.RECONCILED,
    ContractLifecycleState.COMPLETED,
})


def resolve_lifecycle_state(status: Optional[str]) -> Optional[ContractLifecycleState]:
    """
    Map a contract status string to a lifecycle state.

    Accepts enum values ("PENDING_APPROVAL") as well as the display labels used
    by contract management ("Pending Approval", "Active"). Labels without a
    lifecycle counterpart ("Carried Forward", "Rejected") map to None.

    Args:
        status (Optional[str]): Status string from a contract snapshot

    Returns:
        Optional[ContractLifecycleState]: Matching state, or None
    """
    if isinstance(status, ContractLifecycleState):
        return status
    if not status:
        return None

    normalized = status.strip().upper().replace(" ", "_").replace("-", "_")
    try:
        return ContractLifecycleState(normalized)
    except ValueError:
        return None
