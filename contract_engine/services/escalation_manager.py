# ==== ESCALATION MANAGER SERVICE ==== #

"""
Escalation routing and tracking for failed business rules.

Failed ESCALATE rules with a target role become escalation drafts; raised
escalations move OPEN → IN_PROGRESS → RESOLVED → CLOSED. Rule severities map
to escalation severities (ERROR→HIGH, WARNING→MEDIUM, INFO→LOW); CRITICAL is
only reachable through manually raised escalations.
"""

import uuid
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from contract_engine.business.rule_codes import RuleAction
from contract_engine.business.workflow_codes import (
    OPEN_ESCALATION_STATUSES,
    RESOLVED_ESCALATION_STATUSES,
    RULE_SEVERITY_TO_ESCALATION,
    EscalationSeverity,
    EscalationStatus,
    EscalationType,
)
from contract_engine.observability.logging import get_logger, log_business_event
from contract_engine.observability.metrics import escalations_raised_total
from contract_engine.schemas.contract import ContractSnapshot
from contract_engine.schemas.escalation import Escalation, EscalationDraft, EscalationSummary
from contract_engine.schemas.rules import RuleEvaluationResult


logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ==== ROUTING ==== #


def get_required_escalations(
    contract: ContractSnapshot,
    results: Sequence[RuleEvaluationResult]
) -> List[EscalationDraft]:
    """
    Escalation drafts for failed ESCALATE rules that name a target role.

    Args:
        contract (ContractSnapshot): Evaluated contract
        results (Sequence[RuleEvaluationResult]): Evaluator output

    Returns:
        List[EscalationDraft]: One APPROVAL_REQUIRED draft per qualifying result
    """
    drafts = []
    for result in results:
        if result.passed or result.action != RuleAction.ESCALATE or not result.escalate_to:
            continue

        drafts.append(EscalationDraft(
            contract_id=contract.id,
            type=EscalationType.APPROVAL_REQUIRED,
            severity=RULE_SEVERITY_TO_ESCALATION[result.severity],
            description=result.message,
            escalated_to=result.escalate_to,
            rule_id=result.rule_id,
        ))

    return drafts


def create_escalation(draft: EscalationDraft, at: Optional[datetime] = None) -> Escalation:
    """Raise an OPEN escalation from a draft."""
    escalation = Escalation(
        id=f"esc_{uuid.uuid4().hex[:16]}",
        escalated_at=at or _now(),
        status=EscalationStatus.OPEN,
        **draft.model_dump(),
    )

    escalations_raised_total.labels(
        escalated_to=escalation.escalated_to,
        severity=escalation.severity.value
    ).inc()
    log_business_event(
        "escalation_raised",
        escalation.contract_id,
        escalation_id=escalation.id,
        escalated_to=escalation.escalated_to,
        severity=escalation.severity.value,
    )
    return escalation


def create_manual_escalation(
    contract_id: str,
    type: EscalationType,
    severity: EscalationSeverity,
    description: str,
    escalated_to: str,
    at: Optional[datetime] = None
) -> Escalation:
    """Raise an escalation by hand; the only path that can produce CRITICAL."""
    draft = EscalationDraft(
        contract_id=contract_id,
        type=type,
        severity=severity,
        description=description,
        escalated_to=escalated_to,
    )
    return create_escalation(draft, at=at)


# ==== STATUS CHANGES ==== #


def start_escalation(escalation: Escalation) -> Escalation:
    """Move an escalation to IN_PROGRESS."""
    return escalation.model_copy(update={"status": EscalationStatus.IN_PROGRESS})


def resolve_escalation(
    escalation: Escalation,
    resolved_by: str,
    resolution: str,
    at: Optional[datetime] = None
) -> Escalation:
    """
    Mark an escalation RESOLVED.

    Raises:
        ValueError: If the resolution text is blank
    """
    if not resolution or not resolution.strip():
        raise ValueError("Resolution text is required to resolve an escalation")

    resolved = escalation.model_copy(update={
        "status": EscalationStatus.RESOLVED,
        "resolved_by": resolved_by,
        "resolved_at": at or _now(),
        "resolution": resolution.strip(),
    })
    log_business_event(
        "escalation_resolved",
        escalation.contract_id,
        escalation_id=escalation.id,
        resolved_by=resolved_by,
    )
    return resolved


def close_escalation(escalation: Escalation) -> Escalation:
    """Mark an escalation CLOSED. Callers only close RESOLVED escalations."""
    return escalation.model_copy(update={"status": EscalationStatus.CLOSED})


# ==== QUERIES ==== #


def escalations_for_role(escalations: Iterable[Escalation], role: str) -> List[Escalation]:
    return [e for e in escalations if e.escalated_to == role]


def open_escalations(escalations: Iterable[Escalation]) -> List[Escalation]:
    return [e for e in escalations if e.status in OPEN_ESCALATION_STATUSES]


def resolved_escalations(escalations: Iterable[Escalation]) -> List[Escalation]:
    return [e for e in escalations if e.status in RESOLVED_ESCALATION_STATUSES]


def summarize_escalations(escalations: Iterable[Escalation], role: str) -> EscalationSummary:
    """Open, critical, high-priority and resolved counts for one role."""
    mine = escalations_for_role(escalations, role)
    still_open = open_escalations(mine)

    return EscalationSummary(
        role=role,
        total_open=len(still_open),
        critical=sum(1 for e in still_open if e.severity == EscalationSeverity.CRITICAL),
        high=sum(1 for e in still_open if e.severity == EscalationSeverity.HIGH),
        resolved=len(resolved_escalations(mine)),
    )
