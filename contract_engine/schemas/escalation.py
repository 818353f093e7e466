"""Schemas for escalations routed to a responsible role."""

from datetime import datetime
from typing import Optional

from contract_engine.business.workflow_codes import (
    EscalationSeverity,
    EscalationStatus,
    EscalationType,
)
from contract_engine.schemas.base import EngineModel


class EscalationDraft(EngineModel):
    """Escalation content before it is raised (no id, timestamp or status)."""

    contract_id: str
    type: EscalationType
    severity: EscalationSeverity
    description: str
    escalated_to: str
    rule_id: Optional[str] = None


class Escalation(EscalationDraft):
    """Raised escalation tracked until resolution."""

    id: str
    escalated_at: datetime
    status: EscalationStatus = EscalationStatus.OPEN
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution: Optional[str] = None


class EscalationSummary(EngineModel):
    """Counts shown on a role's escalation board."""

    role: str
    total_open: int
    critical: int
    high: int
    resolved: int
