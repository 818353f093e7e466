# ==== POLICY LOADER SERVICE ==== #

"""
Policy loader for business rule catalogs and trade-type configurations.

This module loads the replaceable policy data the engine runs on: the ordered
business rule catalog and the per-trade-type workflow/reminder configuration.
YAML files are read from the packaged ``business/policies`` directory (or
``POLICY_DIR``), cached, validated, and fall back to the in-code defaults
when a file is absent.
"""

import functools
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import ValidationError

from contract_engine.business.defaults import (
    DEFAULT_BUSINESS_RULES,
    DEFAULT_TRADE_TYPE_CONFIGS,
)
from contract_engine.business.lifecycle_codes import BRANCH_STATES
from contract_engine.business.rule_codes import RuleAction
from contract_engine.observability.logging import get_logger
from contract_engine.observability.tracing import get_tracer
from contract_engine.schemas.lifecycle import TradeTypeConfig
from contract_engine.schemas.rules import BusinessRule
from contract_engine.settings import get_settings


tracer = get_tracer(__name__)
logger = get_logger(__name__)


# ==== ERRORS ==== #


class PolicyConfigError(ValueError):
    """Raised when a policy file exists but does not describe a valid catalog."""


class UnknownTradeTypeError(KeyError):
    """Raised when a trade type has no configuration."""

    def __init__(self, trade_type: str):
        super().__init__(trade_type)
        self.trade_type = trade_type

    def __str__(self) -> str:
        return f"No configuration for trade type '{self.trade_type}'"


# ==== PATH RESOLUTION ==== #


def _policy_path(file_name: str) -> Path:
    """Resolve a policy file name against ``POLICY_DIR`` or the packaged policies."""
    settings = get_settings()
    if settings.POLICY_DIR:
        return Path(settings.POLICY_DIR) / file_name

    return Path(os.path.dirname(__file__)).parent / "business" / "policies" / file_name


def _read_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


# ==== RULE CATALOG LOADING ==== #


@functools.lru_cache(maxsize=16)
def get_rule_catalog(path: Optional[str] = None) -> List[BusinessRule]:
    """
    Get the ordered business rule catalog.

    Args:
        path (Optional[str]): Explicit YAML file; defaults to ``RULE_CATALOG_FILE``

    Returns:
        List[BusinessRule]: Rules in catalog order

    Raises:
        PolicyConfigError: If the file exists but is not a valid catalog
    """
    with tracer.start_as_current_span("load_rule_catalog") as span:
        config_path = Path(path) if path else _policy_path(get_settings().RULE_CATALOG_FILE)
        span.set_attribute("config_path", str(config_path))

        try:
            raw = _read_yaml(config_path)
        except FileNotFoundError:
            # Fallback to hardcoded defaults
            span.set_attribute("fallback_used", True)
            logger.warning("Rule catalog not found, using defaults", path=str(config_path))
            return list(DEFAULT_BUSINESS_RULES)

        rules = parse_rule_catalog(raw, source=str(config_path))
        span.set_attribute("rules_loaded", len(rules))
        return rules


def parse_rule_catalog(raw: Any, source: str = "<memory>") -> List[BusinessRule]:
    """
    Build and validate a rule catalog from parsed YAML/JSON data.

    Accepts either a list of rule mappings or a mapping with a ``rules`` key.

    Raises:
        PolicyConfigError: On schema errors or catalog-level problems
    """
    entries = raw.get("rules") if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise PolicyConfigError(f"{source}: expected a list of rules")

    try:
        rules = [BusinessRule.model_validate(entry) for entry in entries]
    except ValidationError as e:
        raise PolicyConfigError(f"{source}: invalid rule definition: {e}") from e

    problems = validate_rule_catalog(rules)
    if problems:
        raise PolicyConfigError(f"{source}: " + "; ".join(problems))

    return rules


# ==== TRADE TYPE CONFIGURATION LOADING ==== #


@functools.lru_cache(maxsize=16)
def get_trade_type_configs(path: Optional[str] = None) -> Dict[str, TradeTypeConfig]:
    """
    Get trade-type configurations keyed by trade type name.

    Args:
        path (Optional[str]): Explicit YAML file; defaults to ``TRADE_TYPES_FILE``

    Returns:
        Dict[str, TradeTypeConfig]: Configuration per trade type

    Raises:
        PolicyConfigError: If the file exists but is not a valid configuration
    """
    with tracer.start_as_current_span("load_trade_type_configs") as span:
        config_path = Path(path) if path else _policy_path(get_settings().TRADE_TYPES_FILE)
        span.set_attribute("config_path", str(config_path))

        try:
            raw = _read_yaml(config_path)
        except FileNotFoundError:
            span.set_attribute("fallback_used", True)
            logger.warning("Trade type config not found, using defaults", path=str(config_path))
            return dict(DEFAULT_TRADE_TYPE_CONFIGS)

        configs = parse_trade_type_configs(raw, source=str(config_path))
        span.set_attribute("trade_types_loaded", len(configs))
        return configs


def parse_trade_type_configs(raw: Any, source: str = "<memory>") -> Dict[str, TradeTypeConfig]:
    """Build and validate trade-type configurations from parsed YAML/JSON data."""
    entries = raw.get("trade_types") if isinstance(raw, dict) else raw
    if not isinstance(entries, list):
        raise PolicyConfigError(f"{source}: expected a list of trade types")

    configs: Dict[str, TradeTypeConfig] = {}
    for entry in entries:
        try:
            config = TradeTypeConfig.model_validate(entry)
        except ValidationError as e:
            raise PolicyConfigError(f"{source}: invalid trade type: {e}") from e

        if config.trade_type in configs:
            raise PolicyConfigError(f"{source}: duplicate trade type '{config.trade_type}'")

        problems = validate_trade_type_config(config)
        if problems:
            raise PolicyConfigError(f"{source}: " + "; ".join(problems))

        configs[config.trade_type] = config

    return configs


def get_trade_type_config(
    trade_type: str,
    configs: Optional[Dict[str, TradeTypeConfig]] = None
) -> TradeTypeConfig:
    """
    Look up one trade type's configuration.

    Args:
        trade_type (str): Trade type name, e.g. "CCI Trade"
        configs (Optional[Dict[str, TradeTypeConfig]]): Injected configs;
            defaults to ``get_trade_type_configs()``

    Raises:
        UnknownTradeTypeError: If the trade type is not configured
    """
    if configs is None:
        configs = get_trade_type_configs()

    try:
        return configs[trade_type]
    except KeyError:
        raise UnknownTradeTypeError(trade_type) from None


# ==== CONFIGURATION VALIDATION ==== #


def validate_rule_catalog(rules: List[BusinessRule]) -> List[str]:
    """
    Check catalog-level consistency.

    Args:
        rules (List[BusinessRule]): Catalog to check

    Returns:
        List[str]: Human readable problems, empty when the catalog is valid
    """
    problems = []
    seen = set()

    for rule in rules:
        if rule.id in seen:
            problems.append(f"duplicate rule id '{rule.id}'")
        seen.add(rule.id)

        if rule.action == RuleAction.ESCALATE and not rule.escalate_to:
            problems.append(f"rule '{rule.id}' escalates without an escalate_to role")

    return problems


def validate_trade_type_config(config: TradeTypeConfig) -> List[str]:
    """
    Check a trade type's workflow and reminder thresholds.

    Returns:
        List[str]: Human readable problems, empty when the config is valid
    """
    problems = []

    branch_steps = [s.value for s in config.workflow_steps if s in BRANCH_STATES]
    if branch_steps:
        problems.append(
            f"'{config.trade_type}' workflow contains branch states {branch_steps}"
        )

    thresholds = {
        "payment_due_days": config.payment_due_days,
        "delivery_reminder_days": config.delivery_reminder_days,
        "quality_check_days": config.quality_check_days,
    }
    for name, days in thresholds.items():
        if any(d < 0 for d in days):
            problems.append(f"'{config.trade_type}' {name} contains negative thresholds")

    if config.quality_check_days and not config.requires_quality_passing:
        problems.append(
            f"'{config.trade_type}' has quality_check_days but does not require quality passing"
        )

    return problems


# ==== CACHE MANAGEMENT ==== #


def clear_cache() -> None:
    """Clear cached policy data after configuration changes or in tests."""
    get_rule_catalog.cache_clear()
    get_trade_type_configs.cache_clear()
