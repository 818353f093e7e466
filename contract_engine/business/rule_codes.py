# ==== BUSINESS RULE CODES ==== #

"""
Enumerations describing business rules and their evaluation.

Rules are classified by type, carry a severity and declare the action the
calling application takes when the rule fires. Condition operators and
condition outcomes are closed sets as well, so the evaluator can match on
them exhaustively.
"""

from enum import Enum


# ==== ENUMERATION DEFINITIONS ==== #


class RuleType(str, Enum):
    """Business area a rule belongs to."""

    VALIDATION = "VALIDATION"
    APPROVAL = "APPROVAL"
    PRICING = "PRICING"
    QUANTITY = "QUANTITY"
    CREDIT = "CREDIT"
    COMPLIANCE = "COMPLIANCE"


class RuleSeverity(str, Enum):
    """Severity declared by a rule."""

    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


class RuleAction(str, Enum):
    """
    Action a rule requests when it fires.

    Precedence for the decision classifier: BLOCK dominates ESCALATE,
    which dominates AUTO_APPROVE. WARN never affects a verdict.
    """

    BLOCK = "BLOCK"
    WARN = "WARN"
    AUTO_APPROVE = "AUTO_APPROVE"
    ESCALATE = "ESCALATE"


class ConditionOperator(str, Enum):
    """Comparison applied between a resolved field and the condition operand."""

    EQUALS = "equals"
    GREATER_THAN = "greaterThan"
    LESS_THAN = "lessThan"
    CONTAINS = "contains"
    BETWEEN = "between"


class ConditionOutcome(str, Enum):
    """
    Outcome of a single condition.

    UNRESOLVABLE is reported separately from NOT_MET so configuration typos
    (unknown field paths, non-numeric operands) can be surfaced, but a rule
    still fires only when every condition is MET.
    """

    MET = "MET"
    NOT_MET = "NOT_MET"
    UNRESOLVABLE = "UNRESOLVABLE"


NUMERIC_OPERATORS = frozenset({
    ConditionOperator.GREATER_THAN,
    ConditionOperator.LESS_THAN,
    ConditionOperator.BETWEEN,
})
