"""Schemas for business rules and their evaluation results."""

from typing import List, Optional, Tuple, Union

from pydantic import Field, model_validator

from contract_engine.business.rule_codes import (
    ConditionOperator,
    RuleAction,
    RuleSeverity,
    RuleType,
)
from contract_engine.schemas.base import EngineModel


ConditionValue = Union[bool, int, float, str]


class RuleCondition(EngineModel):
    """Single comparison between a dot-separated contract field and an operand."""

    field: str = Field(min_length=1)
    operator: ConditionOperator
    value: ConditionValue
    value2: Optional[ConditionValue] = None

    @model_validator(mode="after")
    def _between_needs_upper_bound(self) -> "RuleCondition":
        if self.operator == ConditionOperator.BETWEEN and self.value2 is None:
            raise ValueError(f"'between' condition on '{self.field}' requires value2")
        return self


class BusinessRule(EngineModel):
    """
    Immutable catalog entry.

    A rule fires when all of its conditions hold; an empty condition list
    holds vacuously, so such a rule always fires.
    """

    id: str = Field(min_length=1)
    name: str
    description: str
    type: RuleType
    severity: RuleSeverity
    enabled: bool = True
    conditions: Tuple[RuleCondition, ...] = ()
    action: RuleAction
    escalate_to: Optional[str] = None
    compensating_action: Optional[str] = None


class RuleEvaluationResult(EngineModel):
    """Outcome of one enabled rule against one contract snapshot."""

    rule_id: str
    rule_name: str
    passed: bool
    severity: RuleSeverity
    message: str
    action: RuleAction
    requires_override: bool = False
    escalate_to: Optional[str] = None
    unresolved_fields: Tuple[str, ...] = ()
    overridden: bool = False


class RuleDecision(EngineModel):
    """Verdicts derived from a list of evaluation results."""

    can_proceed: bool
    requires_manual_approval: bool
    can_auto_approve: bool
    blocking: List[RuleEvaluationResult] = []
    escalations: List[RuleEvaluationResult] = []
    warnings: List[RuleEvaluationResult] = []
    auto_approvals: List[RuleEvaluationResult] = []
