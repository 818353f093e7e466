# ==== DEFAULT POLICY CATALOGS ==== #

"""
Default rule catalog and trade-type configurations.

These are the in-code fallbacks used when the YAML policy files cannot be
found. They mirror ``policies/default_rules.yaml`` and
``policies/trade_types.yaml``; callers can always inject their own catalogs.
"""

from typing import Dict, List

from contract_engine.business.lifecycle_codes import ContractLifecycleState as S
from contract_engine.business.lifecycle_codes import TradeType
from contract_engine.business.rule_codes import (
    ConditionOperator,
    RuleAction,
    RuleSeverity,
    RuleType,
)
from contract_engine.schemas.lifecycle import TradeTypeConfig
from contract_engine.schemas.rules import BusinessRule, RuleCondition


# ==== BUSINESS RULES ==== #


DEFAULT_BUSINESS_RULES: List[BusinessRule] = [
    BusinessRule(
        id="rule_001",
        name="Minimum Rate Validation",
        description="Ensure contract rate is above minimum threshold",
        type=RuleType.PRICING,
        severity=RuleSeverity.WARNING,
        conditions=(
            RuleCondition(field="rate", operator=ConditionOperator.LESS_THAN, value=5000),
        ),
        action=RuleAction.WARN,
    ),
    BusinessRule(
        id="rule_002",
        name="Maximum Quantity Check",
        description="Flag contracts exceeding 1000 bales for review",
        type=RuleType.QUANTITY,
        severity=RuleSeverity.WARNING,
        conditions=(
            RuleCondition(field="quantityBales", operator=ConditionOperator.GREATER_THAN, value=1000),
        ),
        action=RuleAction.ESCALATE,
        escalate_to="Admin",
    ),
    # Both conditions must hold, so the rule only fires when client AND vendor are empty
    BusinessRule(
        id="rule_003",
        name="Required Fields Validation",
        description="Ensure all mandatory fields are filled",
        type=RuleType.VALIDATION,
        severity=RuleSeverity.ERROR,
        conditions=(
            RuleCondition(field="clientId", operator=ConditionOperator.EQUALS, value=""),
            RuleCondition(field="vendorId", operator=ConditionOperator.EQUALS, value=""),
        ),
        action=RuleAction.BLOCK,
    ),
    BusinessRule(
        id="rule_004",
        name="Auto-Approve Small Contracts",
        description="Auto-approve contracts under 100 bales with standard terms",
        type=RuleType.APPROVAL,
        severity=RuleSeverity.INFO,
        conditions=(
            RuleCondition(field="quantityBales", operator=ConditionOperator.LESS_THAN, value=100),
            RuleCondition(field="bargainType", operator=ConditionOperator.EQUALS, value="Pucca Sauda"),
        ),
        action=RuleAction.AUTO_APPROVE,
    ),
    BusinessRule(
        id="rule_005",
        name="Quality Specs Validation",
        description="Ensure quality specifications are within acceptable ranges",
        type=RuleType.COMPLIANCE,
        severity=RuleSeverity.WARNING,
        conditions=(
            RuleCondition(
                field="qualitySpecs.length",
                operator=ConditionOperator.BETWEEN,
                value=20,
                value2=35,
            ),
        ),
        action=RuleAction.WARN,
    ),
]


# ==== TRADE TYPES ==== #


_CONTRACT_PHASE = (S.DRAFT, S.PENDING_VALIDATION, S.PENDING_APPROVAL, S.APPROVED, S.ACTIVE)
_SETTLEMENT_PHASE = (S.AWAITING_DELIVERY, S.DELIVERED, S.AWAITING_PAYMENT, S.PAID, S.RECONCILED, S.COMPLETED)


DEFAULT_TRADE_TYPE_CONFIGS: Dict[str, TradeTypeConfig] = {
    TradeType.NORMAL: TradeTypeConfig(
        trade_type=TradeType.NORMAL,
        requires_quality_passing=False,
        requires_emd_payment=False,
        payment_due_days=(7, 3, 1),
        delivery_reminder_days=(7, 3, 1),
        quality_check_days=(),
        workflow_steps=_CONTRACT_PHASE + _SETTLEMENT_PHASE,
    ),
    TradeType.CCI: TradeTypeConfig(
        trade_type=TradeType.CCI,
        requires_quality_passing=True,
        requires_emd_payment=True,
        payment_due_days=(5, 2, 0),
        delivery_reminder_days=(5, 2, 0),
        quality_check_days=(3, 1, 0),
        workflow_steps=_CONTRACT_PHASE + (S.AWAITING_QUALITY_PASSING, S.QUALITY_PASSED) + _SETTLEMENT_PHASE,
    ),
}
