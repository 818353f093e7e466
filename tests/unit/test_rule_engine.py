"""Unit tests for business rule evaluation and decision classification."""

import pytest
import yaml

from contract_engine.business.rule_codes import (
    ConditionOperator,
    ConditionOutcome,
    RuleAction,
    RuleSeverity,
    RuleType,
)
from contract_engine.schemas.rules import BusinessRule, RuleCondition, RuleEvaluationResult
from contract_engine.services import policy_loader
from contract_engine.services.rule_engine import (
    UNRESOLVED,
    FieldResolver,
    RuleEngine,
    can_auto_approve,
    can_proceed,
    classify,
    evaluate_business_rules,
    evaluate_condition,
    requires_manual_approval,
)
from contract_engine.settings import get_settings


def make_rule(rule_id="r1", action=RuleAction.WARN, conditions=(), enabled=True,
              severity=RuleSeverity.WARNING, **extra):
    return BusinessRule(
        id=rule_id,
        name=f"Rule {rule_id}",
        description=f"Description of {rule_id}",
        type=RuleType.VALIDATION,
        severity=severity,
        enabled=enabled,
        conditions=conditions,
        action=action,
        **extra,
    )


def make_result(action, passed, rule_id="r1"):
    return RuleEvaluationResult(
        rule_id=rule_id,
        rule_name=f"Rule {rule_id}",
        passed=passed,
        severity=RuleSeverity.WARNING,
        message="msg",
        action=action,
    )


@pytest.mark.unit
class TestFieldResolver:
    """Test cases for dot-path field resolution."""

    def test_resolves_camel_case_paths_on_snapshots(self, contract_factory):
        contract = contract_factory.create_contract(quantity_bales=250)
        resolver = FieldResolver()

        assert resolver.resolve(contract, "quantityBales") == 250
        assert resolver.resolve(contract, "qualitySpecs.length") == "29"

    def test_missing_segment_is_unresolved(self, contract_factory):
        contract = contract_factory.create_contract(quality_length=None)
        resolver = FieldResolver()

        assert resolver.resolve(contract, "qualitySpecs.length") is UNRESOLVED
        assert resolver.resolve(contract, "doesNotExist") is UNRESOLVED

    def test_resolves_plain_mappings(self):
        resolver = FieldResolver()
        snapshot = {"id": "c1", "terms": {"payment": {"days": 30}}}

        assert resolver.resolve(snapshot, "terms.payment.days") == 30
        assert resolver.resolve(snapshot, "terms.delivery") is UNRESOLVED


@pytest.mark.unit
class TestConditionEvaluation:
    """Test cases for single condition evaluation."""

    def test_between_is_inclusive(self):
        condition = RuleCondition(field="length", operator=ConditionOperator.BETWEEN, value=20, value2=35)

        assert evaluate_condition({"length": 20}, condition) == ConditionOutcome.MET
        assert evaluate_condition({"length": 35}, condition) == ConditionOutcome.MET
        assert evaluate_condition({"length": 35.5}, condition) == ConditionOutcome.NOT_MET

    def test_between_requires_value2(self):
        with pytest.raises(ValueError):
            RuleCondition(field="length", operator=ConditionOperator.BETWEEN, value=20)

    def test_numeric_strings_are_coerced(self):
        condition = RuleCondition(field="rate", operator=ConditionOperator.LESS_THAN, value=5000)

        assert evaluate_condition({"rate": "4500"}, condition) == ConditionOutcome.MET
        assert evaluate_condition({"rate": "5500"}, condition) == ConditionOutcome.NOT_MET

    def test_non_numeric_operand_is_unresolvable(self):
        condition = RuleCondition(field="rate", operator=ConditionOperator.GREATER_THAN, value=100)

        assert evaluate_condition({"rate": "n/a"}, condition) == ConditionOutcome.UNRESOLVABLE

    def test_missing_field_is_unresolvable(self):
        condition = RuleCondition(field="rate", operator=ConditionOperator.EQUALS, value=1)

        assert evaluate_condition({}, condition) == ConditionOutcome.UNRESOLVABLE

    def test_equals_is_type_strict(self):
        condition = RuleCondition(field="flag", operator=ConditionOperator.EQUALS, value=True)

        assert evaluate_condition({"flag": True}, condition) == ConditionOutcome.MET
        assert evaluate_condition({"flag": 1}, condition) == ConditionOutcome.NOT_MET
        assert evaluate_condition({"flag": "true"}, condition) == ConditionOutcome.NOT_MET

    def test_equals_matches_int_and_float(self):
        condition = RuleCondition(field="qty", operator=ConditionOperator.EQUALS, value=100)

        assert evaluate_condition({"qty": 100.0}, condition) == ConditionOutcome.MET

    def test_contains_on_strings_and_lists(self):
        condition = RuleCondition(field="variety", operator=ConditionOperator.CONTAINS, value="Shankar")

        assert evaluate_condition({"variety": "Shankar-6"}, condition) == ConditionOutcome.MET
        assert evaluate_condition({"variety": ["MCU-5", "Shankar"]}, condition) == ConditionOutcome.MET
        assert evaluate_condition({"variety": "DCH-32"}, condition) == ConditionOutcome.NOT_MET


@pytest.mark.unit
class TestRuleEngine:
    """Test cases for rule evaluation."""

    def test_empty_conditions_always_fire(self):
        engine = RuleEngine([make_rule(action=RuleAction.BLOCK)])

        results = engine.evaluate({"id": "c1"})

        assert len(results) == 1
        assert results[0].passed is False
        assert results[0].requires_override is True
        assert results[0].message == "Description of r1"

    def test_all_conditions_must_hold(self):
        rule = make_rule(action=RuleAction.BLOCK, conditions=(
            RuleCondition(field="clientId", operator=ConditionOperator.EQUALS, value=""),
            RuleCondition(field="vendorId", operator=ConditionOperator.EQUALS, value=""),
        ))
        engine = RuleEngine([rule])

        only_client_missing = engine.evaluate({"id": "c1", "clientId": "", "vendorId": "v1"})
        both_missing = engine.evaluate({"id": "c1", "clientId": "", "vendorId": ""})

        assert only_client_missing[0].passed is True
        assert only_client_missing[0].message == "Rule r1 - OK"
        assert both_missing[0].passed is False

    def test_disabled_rules_are_omitted(self):
        engine = RuleEngine([
            make_rule("r1"),
            make_rule("r2", enabled=False),
            make_rule("r3"),
        ])

        results = engine.evaluate({"id": "c1"})

        assert [r.rule_id for r in results] == ["r1", "r3"]

    def test_escalate_result_carries_target_role(self):
        rule = make_rule(action=RuleAction.ESCALATE, escalate_to="Admin")

        result = RuleEngine([rule]).evaluate({"id": "c1"})[0]

        assert result.passed is False
        assert result.escalate_to == "Admin"
        assert result.requires_override is False

    def test_unresolvable_fields_are_reported(self, contract_factory, rules):
        contract = contract_factory.create_contract(quality_length=None)

        results = {r.rule_id: r for r in RuleEngine(rules).evaluate(contract)}

        assert results["rule_005"].passed is True
        assert results["rule_005"].unresolved_fields == ("qualitySpecs.length",)
        assert results["rule_001"].unresolved_fields == ()

    def test_auto_approve_not_met_is_non_blocking_failure(self, contract_factory, rule_engine):
        contract = contract_factory.create_contract(quantity_bales=500)

        result = rule_engine.evaluate_rule(contract, rule_engine.rule_by_id("rule_004"))

        assert result.passed is False
        assert result.requires_override is False
        assert result.message == "Auto-Approve Small Contracts - criteria not met"

    def test_rule_by_id(self, rule_engine):
        assert rule_engine.rule_by_id("rule_002").escalate_to == "Admin"
        assert rule_engine.rule_by_id("missing") is None

    def test_engine_loads_configured_catalog(self):
        engine = RuleEngine()

        assert [r.id for r in engine.rules] == ["rule_001", "rule_002", "rule_003", "rule_004", "rule_005"]


@pytest.mark.unit
class TestDefaultCatalogScenarios:
    """Test cases for the shipped rule catalog."""

    def test_standard_contract_only_warns(self, contract_factory, rule_engine):
        contract = contract_factory.create_contract()

        decision = classify(rule_engine.evaluate(contract))

        assert decision.can_proceed is True
        assert decision.requires_manual_approval is False
        assert decision.can_auto_approve is False
        assert [r.rule_id for r in decision.warnings] == ["rule_005"]

    def test_small_pucca_sauda_contract_auto_approves(self, contract_factory, rule_engine):
        contract = contract_factory.create_small_contract()

        results = rule_engine.evaluate(contract)
        decision = classify(results)

        assert decision.can_auto_approve is True
        assert decision.can_proceed is True
        assert [r.rule_id for r in decision.auto_approvals] == ["rule_004"]

    def test_large_contract_requires_manual_approval(self, contract_factory, rule_engine):
        contract = contract_factory.create_contract(quantity_bales=1500)

        decision = classify(rule_engine.evaluate(contract))

        assert decision.requires_manual_approval is True
        assert decision.can_proceed is True
        assert decision.escalations[0].rule_id == "rule_002"

    def test_missing_parties_block(self, contract_factory, rule_engine):
        contract = contract_factory.create_contract(client_id="", vendor_id="")

        decision = classify(rule_engine.evaluate(contract))

        assert decision.can_proceed is False
        assert decision.blocking[0].rule_id == "rule_003"
        assert decision.blocking[0].requires_override is True

    def test_low_rate_warns(self, contract_factory, rule_engine):
        contract = contract_factory.create_contract(rate=4800)

        decision = classify(rule_engine.evaluate(contract))

        assert "rule_001" in [r.rule_id for r in decision.warnings]
        assert decision.can_proceed is True

    def test_module_engine_follows_reloaded_catalog(self, contract_factory, tmp_path, monkeypatch):
        contract = contract_factory.create_contract()
        assert len(evaluate_business_rules(contract)) > 1

        (tmp_path / get_settings().RULE_CATALOG_FILE).write_text(yaml.safe_dump({"rules": [{
            "id": "rule_900",
            "name": "EMD Required",
            "description": "EMD must be recorded for CCI trades",
            "type": "COMPLIANCE",
            "severity": "ERROR",
            "conditions": [{"field": "tradeType", "operator": "equals", "value": "CCI Trade"}],
            "action": "BLOCK",
        }]}))
        monkeypatch.setattr(get_settings(), "POLICY_DIR", str(tmp_path))
        policy_loader.clear_cache()

        assert [r.rule_id for r in evaluate_business_rules(contract)] == ["rule_900"]


@pytest.mark.unit
class TestDecisionClassifier:
    """Test cases for verdict derivation."""

    def test_empty_results(self):
        assert can_proceed([]) is True
        assert requires_manual_approval([]) is False
        assert can_auto_approve([]) is False

    @pytest.mark.parametrize("blocked,escalated,expected", [
        (False, False, True),
        (True, False, False),
        (False, True, False),
        (True, True, False),
    ])
    def test_auto_approve_needs_no_blocking_issues(self, blocked, escalated, expected):
        results = [
            make_result(RuleAction.AUTO_APPROVE, True, "auto"),
            make_result(RuleAction.BLOCK, not blocked, "block"),
            make_result(RuleAction.ESCALATE, not escalated, "esc"),
        ]

        assert can_auto_approve(results) is expected

    def test_failed_warning_does_not_prevent_auto_approval(self):
        results = [
            make_result(RuleAction.AUTO_APPROVE, True, "auto"),
            make_result(RuleAction.WARN, False, "warn"),
        ]

        assert can_auto_approve(results) is True

    def test_failed_auto_approve_does_not_block(self):
        results = [make_result(RuleAction.AUTO_APPROVE, False)]

        assert can_proceed(results) is True
        assert can_auto_approve(results) is False

    def test_classify_groups_failures_by_action(self):
        results = [
            make_result(RuleAction.BLOCK, False, "b"),
            make_result(RuleAction.ESCALATE, False, "e"),
            make_result(RuleAction.WARN, False, "w"),
            make_result(RuleAction.WARN, True, "w-ok"),
        ]

        decision = classify(results)

        assert [r.rule_id for r in decision.blocking] == ["b"]
        assert [r.rule_id for r in decision.escalations] == ["e"]
        assert [r.rule_id for r in decision.warnings] == ["w"]
        assert decision.can_proceed is False
        assert decision.requires_manual_approval is True
