"""Schemas for trade-type workflow configuration and lifecycle events."""

from datetime import datetime
from typing import Dict, Optional, Tuple, Union

from pydantic import Field, field_validator

from contract_engine.business.lifecycle_codes import ContractLifecycleState, TriggeredBy
from contract_engine.schemas.base import EngineModel


class TradeTypeConfig(EngineModel):
    """
    Per-trade-type workflow and reminder configuration.

    ``workflow_steps`` is the canonical ordered path for the trade type;
    "next state" is purely positional within it. Reminder day lists hold
    thresholds in days before the due date.
    """

    trade_type: str = Field(min_length=1)
    requires_quality_passing: bool = False
    requires_emd_payment: bool = False
    payment_due_days: Tuple[int, ...] = ()
    delivery_reminder_days: Tuple[int, ...] = ()
    quality_check_days: Tuple[int, ...] = ()
    workflow_steps: Tuple[ContractLifecycleState, ...]

    @field_validator("workflow_steps")
    @classmethod
    def _steps_are_a_strict_order(cls, steps):
        if not steps:
            raise ValueError("workflow_steps must not be empty")
        if len(set(steps)) != len(steps):
            raise ValueError("workflow_steps must not repeat a state")
        return steps


class LifecycleEvent(EngineModel):
    """Append-only record of one lifecycle state change."""

    id: str
    contract_id: str
    timestamp: datetime
    from_state: Optional[ContractLifecycleState] = None
    to_state: ContractLifecycleState
    triggered_by: TriggeredBy
    actor: str
    reason: str
    automated: bool = False
    overridden: Optional[bool] = None
    metadata: Dict[str, Union[str, int, float, bool]] = {}
