# ==== MANUAL OVERRIDE SERVICE ==== #

"""
Manual override requests for blocking business rules.

An override is a logged request to bypass a BLOCK rule for one contract.
Requests start PENDING and end APPROVED or REJECTED. This module records the
decision only; it does not deduplicate requests or guard repeated approvals,
and applying an approved override on the next evaluation pass is done by the
caller through ``apply_approved_overrides``.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence, Set

from contract_engine.business.rule_codes import RuleAction
from contract_engine.business.workflow_codes import OverrideStatus
from contract_engine.observability.logging import get_logger, log_business_event
from contract_engine.observability.metrics import override_decisions_total
from contract_engine.schemas.override import OverrideRequest
from contract_engine.schemas.rules import RuleEvaluationResult


logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ==== REQUEST CONSTRUCTION ==== #


def create_override_request(
    contract_id: str,
    rule_id: str,
    rule_name: str,
    requested_by: str,
    reason: str,
    business_justification: Optional[str] = None,
    at: Optional[datetime] = None
) -> OverrideRequest:
    """
    Build a PENDING override request.

    Args:
        contract_id (str): Contract the override applies to
        rule_id (str): Blocking rule to bypass
        rule_name (str): Rule name for display
        requested_by (str): Requesting actor, recorded as given
        reason (str): Why the override is needed
        business_justification (Optional[str]): Appended to the reason
        at (Optional[datetime]): Request time; defaults to now (UTC)

    Returns:
        OverrideRequest: New PENDING request
    """
    full_reason = reason
    if business_justification:
        full_reason = f"{reason}\n\nBusiness Justification: {business_justification}"

    request = OverrideRequest(
        id=f"ovr_{uuid.uuid4().hex[:16]}",
        contract_id=contract_id,
        rule_id=rule_id,
        rule_name=rule_name,
        requested_by=requested_by,
        requested_at=at or _now(),
        reason=full_reason,
        status=OverrideStatus.PENDING,
    )

    override_decisions_total.labels(status=OverrideStatus.PENDING.value).inc()
    log_business_event(
        "override_requested",
        contract_id,
        override_id=request.id,
        rule_id=rule_id,
        requested_by=requested_by,
    )
    return request


# ==== DECISIONS ==== #


def approve_override_request(
    request: OverrideRequest,
    approved_by: str,
    at: Optional[datetime] = None
) -> OverrideRequest:
    """Return the request APPROVED by ``approved_by``."""
    approved = request.model_copy(update={
        "status": OverrideStatus.APPROVED,
        "approved_by": approved_by,
        "approved_at": at or _now(),
    })

    override_decisions_total.labels(status=OverrideStatus.APPROVED.value).inc()
    log_business_event(
        "override_approved",
        request.contract_id,
        override_id=request.id,
        rule_id=request.rule_id,
        approved_by=approved_by,
    )
    return approved


def reject_override_request(request: OverrideRequest, rejection_reason: str) -> OverrideRequest:
    """
    Return the request REJECTED with a reason.

    Raises:
        ValueError: If the rejection reason is blank
    """
    if not rejection_reason or not rejection_reason.strip():
        raise ValueError("A rejection reason is required to reject an override")

    rejected = request.model_copy(update={
        "status": OverrideStatus.REJECTED,
        "rejection_reason": rejection_reason.strip(),
    })

    override_decisions_total.labels(status=OverrideStatus.REJECTED.value).inc()
    log_business_event(
        "override_rejected",
        request.contract_id,
        override_id=request.id,
        rule_id=request.rule_id,
    )
    return rejected


# ==== QUERIES ==== #


def pending_overrides(overrides: Iterable[OverrideRequest]) -> List[OverrideRequest]:
    return [o for o in overrides if o.status == OverrideStatus.PENDING]


def approved_rule_ids(overrides: Iterable[OverrideRequest], contract_id: str) -> Set[str]:
    """Rule ids with an APPROVED override for the contract."""
    return {
        o.rule_id for o in overrides
        if o.contract_id == contract_id and o.status == OverrideStatus.APPROVED
    }


def apply_approved_overrides(
    results: Sequence[RuleEvaluationResult],
    overrides: Iterable[OverrideRequest],
    contract_id: str
) -> List[RuleEvaluationResult]:
    """
    Re-mark failing BLOCK results whose rule has an approved override.

    Args:
        results (Sequence[RuleEvaluationResult]): Fresh evaluator output
        overrides (Iterable[OverrideRequest]): Known overrides
        contract_id (str): Contract the results belong to

    Returns:
        List[RuleEvaluationResult]: Results with overridden BLOCK rules passing
    """
    bypassed = approved_rule_ids(overrides, contract_id)
    if not bypassed:
        return list(results)

    applied = []
    for result in results:
        if not result.passed and result.action == RuleAction.BLOCK and result.rule_id in bypassed:
            logger.info(
                "Approved override applied",
                contract_id=contract_id,
                rule_id=result.rule_id,
            )
            result = result.model_copy(update={
                "passed": True,
                "requires_override": False,
                "overridden": True,
                "message": f"{result.rule_name} - overridden",
            })
        applied.append(result)

    return applied
