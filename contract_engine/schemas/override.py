"""Schema for manual override requests."""

from datetime import datetime
from typing import Optional

from contract_engine.business.workflow_codes import OverrideStatus
from contract_engine.schemas.base import EngineModel


class OverrideRequest(EngineModel):
    """Logged request to bypass a blocking rule for one contract."""

    id: str
    contract_id: str
    rule_id: str
    rule_name: str
    requested_by: str
    requested_at: datetime
    reason: str
    status: OverrideStatus = OverrideStatus.PENDING
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
