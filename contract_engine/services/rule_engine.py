# ==== BUSINESS RULE ENGINE ==== #

"""
Business rule evaluation and decision classification for sales contracts.

This module evaluates an ordered, configurable rule catalog against a contract
snapshot and derives the proceed / escalate / auto-approve verdicts from the
results. Evaluation is synchronous and pure over the supplied snapshot: field
paths that cannot be resolved degrade to "condition not met" but are reported
on the result and logged, instead of being silently indistinguishable from a
false comparison.
"""

import time
from collections.abc import Mapping
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from contract_engine.business.rule_codes import (
    NUMERIC_OPERATORS,
    ConditionOperator,
    ConditionOutcome,
    RuleAction,
)
from contract_engine.observability.logging import get_logger
from contract_engine.observability.metrics import (
    rule_evaluation_duration_seconds,
    rule_evaluations_total,
)
from contract_engine.observability.tracing import get_tracer
from contract_engine.services.policy_loader import get_rule_catalog
from contract_engine.schemas.rules import (
    BusinessRule,
    RuleCondition,
    RuleDecision,
    RuleEvaluationResult,
)


tracer = get_tracer(__name__)
logger = get_logger(__name__)


ContractLike = Union[BaseModel, Mapping]


# ==== FIELD RESOLUTION ==== #


class _Unresolved:
    """Sentinel for a field path that does not exist on the snapshot."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNRESOLVED"

    def __bool__(self) -> bool:
        return False


UNRESOLVED = _Unresolved()


class FieldResolver:
    """
    Dot-path lookup into a contract snapshot.

    Pydantic snapshots are dumped by alias so catalog paths use the
    contract's camelCase keys (``qualitySpecs.length``). Mappings are walked
    by key and other objects by attribute. A missing segment, or a ``None``
    before the last segment, yields ``UNRESOLVED``.
    """

    def resolve(self, snapshot: Any, path: str) -> Any:
        current = self.prepare(snapshot)

        for segment in path.split("."):
            if current is None or current is UNRESOLVED:
                return UNRESOLVED

            if isinstance(current, Mapping):
                if segment not in current:
                    return UNRESOLVED
                current = current[segment]
            elif hasattr(current, segment):
                current = getattr(current, segment)
            else:
                return UNRESOLVED

        return current

    @staticmethod
    def prepare(snapshot: Any) -> Any:
        if isinstance(snapshot, BaseModel):
            return snapshot.model_dump(by_alias=True)
        return snapshot


# ==== CONDITION EVALUATION ==== #


def _to_number(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings; anything else is not a number."""
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _strict_equals(left: Any, right: Any) -> bool:
    # A bool never equals a number, unlike Python's default 1 == True
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    if isinstance(left, (int, float)) and isinstance(right, (int, float)):
        return float(left) == float(right)
    return type(left) is type(right) and left == right


def _contains(haystack: Any, needle: Any) -> bool:
    if isinstance(haystack, (list, tuple, set, frozenset)):
        return any(_strict_equals(item, needle) for item in haystack)
    return str(needle) in str(haystack)


def evaluate_condition(
    snapshot: ContractLike,
    condition: RuleCondition,
    resolver: Optional[FieldResolver] = None
) -> ConditionOutcome:
    """
    Evaluate one condition against a snapshot.

    Args:
        snapshot (ContractLike): Contract snapshot or plain mapping
        condition (RuleCondition): Condition to test
        resolver (Optional[FieldResolver]): Field resolver to use

    Returns:
        ConditionOutcome: MET, NOT_MET, or UNRESOLVABLE when the field is
            missing or a numeric operator gets a non-numeric operand
    """
    resolver = resolver or FieldResolver()
    field_value = resolver.resolve(snapshot, condition.field)
    if field_value is UNRESOLVED:
        return ConditionOutcome.UNRESOLVABLE

    operator = condition.operator

    if operator in NUMERIC_OPERATORS:
        number = _to_number(field_value)
        low = _to_number(condition.value)
        high = _to_number(condition.value2) if operator == ConditionOperator.BETWEEN else None
        if number is None or low is None or (operator == ConditionOperator.BETWEEN and high is None):
            return ConditionOutcome.UNRESOLVABLE

        if operator == ConditionOperator.GREATER_THAN:
            met = number > low
        elif operator == ConditionOperator.LESS_THAN:
            met = number < low
        else:
            met = low <= number <= high

    elif operator == ConditionOperator.EQUALS:
        met = _strict_equals(field_value, condition.value)

    elif operator == ConditionOperator.CONTAINS:
        met = _contains(field_value, condition.value)

    else:
        raise ValueError(f"Unhandled condition operator: {operator}")

    return ConditionOutcome.MET if met else ConditionOutcome.NOT_MET


# ==== RULE ENGINE CLASS ==== #


class RuleEngine:
    """
    Evaluates a business rule catalog against contract snapshots.

    The catalog is injected; when omitted the engine reads the configured
    catalog from the policy loader on each use, so ``clear_cache`` takes effect.
    """

    def __init__(
        self,
        rules: Optional[Sequence[BusinessRule]] = None,
        resolver: Optional[FieldResolver] = None
    ):
        """
        Initialize the engine.

        Args:
            rules (Optional[Sequence[BusinessRule]]): Ordered rule catalog
            resolver (Optional[FieldResolver]): Field path resolver
        """
        self._rules = list(rules) if rules is not None else None
        self.resolver = resolver or FieldResolver()

    @property
    def rules(self) -> List[BusinessRule]:
        if self._rules is None:
            return list(get_rule_catalog())
        return self._rules

    def rule_by_id(self, rule_id: str) -> Optional[BusinessRule]:
        return next((r for r in self.rules if r.id == rule_id), None)

    def evaluate(
        self,
        contract: ContractLike,
        rules: Optional[Iterable[BusinessRule]] = None
    ) -> List[RuleEvaluationResult]:
        """
        Evaluate every enabled rule in catalog order.

        Disabled rules are omitted entirely. A rule fires when all of its
        conditions are MET (an empty condition list always fires).

        Args:
            contract (ContractLike): Contract snapshot
            rules (Optional[Iterable[BusinessRule]]): Catalog override for this call

        Returns:
            List[RuleEvaluationResult]: One result per enabled rule
        """
        catalog = self.rules if rules is None else list(rules)
        snapshot = self.resolver.prepare(contract)
        contract_id = self.resolver.resolve(snapshot, "id")

        with tracer.start_as_current_span("evaluate_business_rules") as span:
            span.set_attribute("rules_total", len(catalog))
            start = time.perf_counter()

            results = []
            for rule in catalog:
                if not rule.enabled:
                    continue
                results.append(self.evaluate_rule(snapshot, rule))

            rule_evaluation_duration_seconds.observe(time.perf_counter() - start)
            span.set_attribute("rules_evaluated", len(results))
            span.set_attribute("rules_failed", sum(1 for r in results if not r.passed))

        unresolved = [r for r in results if r.unresolved_fields]
        for result in unresolved:
            logger.warning(
                "Rule references unresolvable fields",
                contract_id=str(contract_id),
                rule_id=result.rule_id,
                fields=list(result.unresolved_fields),
            )

        return results

    def evaluate_rule(self, contract: ContractLike, rule: BusinessRule) -> RuleEvaluationResult:
        """
        Evaluate a single rule.

        AUTO_APPROVE rules are positive: when their conditions hold the
        approval is granted and the result passes; when they do not hold the
        result is a non-blocking failure. Every other action produces a
        failing result when its conditions hold.
        """
        outcomes = [
            evaluate_condition(contract, condition, self.resolver)
            for condition in rule.conditions
        ]
        fired = all(outcome == ConditionOutcome.MET for outcome in outcomes)
        unresolved = tuple(
            condition.field
            for condition, outcome in zip(rule.conditions, outcomes)
            if outcome == ConditionOutcome.UNRESOLVABLE
        )

        rule_evaluations_total.labels(
            rule_id=rule.id,
            outcome="fired" if fired else "not_fired"
        ).inc()

        if rule.action == RuleAction.AUTO_APPROVE:
            return self._auto_approve_result(rule, fired, unresolved)

        if fired:
            return RuleEvaluationResult(
                rule_id=rule.id,
                rule_name=rule.name,
                passed=False,
                severity=rule.severity,
                message=rule.description,
                action=rule.action,
                requires_override=rule.action == RuleAction.BLOCK,
                escalate_to=rule.escalate_to,
                unresolved_fields=unresolved,
            )

        return RuleEvaluationResult(
            rule_id=rule.id,
            rule_name=rule.name,
            passed=True,
            severity=rule.severity,
            message=f"{rule.name} - OK",
            action=rule.action,
            requires_override=False,
            unresolved_fields=unresolved,
        )

    @staticmethod
    def _auto_approve_result(
        rule: BusinessRule,
        fired: bool,
        unresolved: Tuple[str, ...]
    ) -> RuleEvaluationResult:
        return RuleEvaluationResult(
            rule_id=rule.id,
            rule_name=rule.name,
            passed=fired,
            severity=rule.severity,
            message=rule.description if fired else f"{rule.name} - criteria not met",
            action=rule.action,
            requires_override=False,
            unresolved_fields=unresolved,
        )


# ==== DECISION CLASSIFIER ==== #


def can_proceed(results: Sequence[RuleEvaluationResult]) -> bool:
    """False iff any failing result has action BLOCK."""
    return not any(not r.passed and r.action == RuleAction.BLOCK for r in results)


def requires_manual_approval(results: Sequence[RuleEvaluationResult]) -> bool:
    """True iff any failing result has action ESCALATE."""
    return any(not r.passed and r.action == RuleAction.ESCALATE for r in results)


def can_auto_approve(results: Sequence[RuleEvaluationResult]) -> bool:
    """True iff an AUTO_APPROVE result passed and nothing failed with BLOCK or ESCALATE."""
    has_auto_approval = any(r.passed and r.action == RuleAction.AUTO_APPROVE for r in results)
    has_blocking_issues = any(
        not r.passed and r.action in (RuleAction.BLOCK, RuleAction.ESCALATE)
        for r in results
    )
    return has_auto_approval and not has_blocking_issues


def classify(results: Sequence[RuleEvaluationResult]) -> RuleDecision:
    """
    Bundle the verdicts with the results grouped by the action they request.

    Args:
        results (Sequence[RuleEvaluationResult]): Evaluator output

    Returns:
        RuleDecision: Verdicts plus blocking, escalation, warning and
            granted auto-approval results
    """
    blocking, escalations, warnings, auto_approvals = [], [], [], []

    for result in results:
        action = result.action
        if action == RuleAction.AUTO_APPROVE:
            if result.passed:
                auto_approvals.append(result)
        elif result.passed:
            continue
        elif action == RuleAction.BLOCK:
            blocking.append(result)
        elif action == RuleAction.ESCALATE:
            escalations.append(result)
        elif action == RuleAction.WARN:
            warnings.append(result)
        else:
            raise ValueError(f"Unhandled rule action: {action}")

    return RuleDecision(
        can_proceed=can_proceed(results),
        requires_manual_approval=requires_manual_approval(results),
        can_auto_approve=can_auto_approve(results),
        blocking=blocking,
        escalations=escalations,
        warnings=warnings,
        auto_approvals=auto_approvals,
    )


# ==== GLOBAL ENGINE INSTANCE ==== #


_rule_engine: Optional[RuleEngine] = None


def get_rule_engine() -> RuleEngine:
    """
    Get global rule engine instance using the configured catalog.

    Returns:
        RuleEngine: Global rule engine instance
    """
    global _rule_engine
    if _rule_engine is None:
        _rule_engine = RuleEngine()
    return _rule_engine


# ==== CONVENIENCE FUNCTIONS ==== #


def evaluate_business_rules(
    contract: ContractLike,
    rules: Optional[Iterable[BusinessRule]] = None
) -> List[RuleEvaluationResult]:
    """
    Evaluate a catalog against a contract.

    Args:
        contract (ContractLike): Contract snapshot
        rules (Optional[Iterable[BusinessRule]]): Catalog; defaults to the
            configured catalog

    Returns:
        List[RuleEvaluationResult]: One result per enabled rule, in order
    """
    return get_rule_engine().evaluate(contract, rules)
