# ==== SHARED TEST FIXTURES AND CONFIGURATION ==== #

"""
Shared test fixtures and configuration.

This module provides the rule catalog, trade-type configurations, engine
components, an in-memory repository and time fixtures used across the unit
and end-to-end suites.
"""

import os
from datetime import UTC, datetime

import pytest
from freezegun import freeze_time


# ==== FORCE ENVIRONMENT SETUP BEFORE ANY IMPORTS ==== #

# Set environment variables BEFORE importing any engine modules
os.environ.update({
    "APP_ENV": "test",
    "LOG_LEVEL": "WARNING",
})
os.environ.pop("POLICY_DIR", None)
os.environ.pop("OTEL_EXPORTER_OTLP_ENDPOINT", None)

# Now import engine modules after environment is set
from contract_engine.business.defaults import DEFAULT_BUSINESS_RULES, DEFAULT_TRADE_TYPE_CONFIGS
from contract_engine.services import policy_loader
from contract_engine.services.contract_workflow import ContractWorkflowService
from contract_engine.services.lifecycle import LifecycleStateMachine
from contract_engine.services.reminder_scheduler import ReminderScheduler
from contract_engine.services.rule_engine import RuleEngine
from contract_engine.settings import Settings
from contract_engine.storage.repository import InMemoryContractRepository

from tests.factories.data_factories import ContractFactory


# ==== POLICY FIXTURES ==== #


@pytest.fixture(autouse=True)
def clear_policy_cache():
    """
    Clear cached policy files around every test.

    Tests that point the loader at temporary YAML files must not leak the
    cached catalog into later tests.
    """
    policy_loader.clear_cache()
    yield
    policy_loader.clear_cache()


@pytest.fixture
def rules():
    """Default business rule catalog."""
    return list(DEFAULT_BUSINESS_RULES)


@pytest.fixture
def trade_type_configs():
    """Default Normal and CCI trade-type configurations."""
    return dict(DEFAULT_TRADE_TYPE_CONFIGS)


# ==== ENGINE FIXTURES ==== #


@pytest.fixture
def rule_engine(rules):
    return RuleEngine(rules)


@pytest.fixture
def state_machine(trade_type_configs):
    return LifecycleStateMachine(trade_type_configs)


@pytest.fixture
def reminder_scheduler(trade_type_configs):
    return ReminderScheduler(trade_type_configs)


@pytest.fixture
def engine_settings():
    """
    Settings used by the workflow service.

    Returns:
        Settings: Lenient transitions with reminder dedupe enabled
    """
    return Settings(STRICT_LIFECYCLE_TRANSITIONS=False, REMINDER_DEDUPE_ENABLED=True)


# ==== REPOSITORY FIXTURES ==== #


@pytest.fixture
def contract_factory():
    return ContractFactory()


@pytest.fixture
def repository():
    """Empty in-memory repository."""
    return InMemoryContractRepository()


@pytest.fixture
def workflow(repository, rule_engine, state_machine, reminder_scheduler, engine_settings):
    """
    Workflow service over the in-memory repository and default policies.

    Returns:
        ContractWorkflowService: Service under test
    """
    return ContractWorkflowService(
        repository,
        rule_engine=rule_engine,
        state_machine=state_machine,
        reminder_scheduler=reminder_scheduler,
        settings=engine_settings,
    )


# ==== TIME FIXTURES ==== #


@pytest.fixture
def base_time():
    """
    Base time for tests.

    Returns:
        datetime: Fixed UTC timestamp
    """
    return datetime(2025, 8, 17, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def frozen_time(base_time):
    """
    Frozen time for consistent testing.

    Args:
        base_time (datetime): Base time to freeze

    Returns:
        FreezeTime: Time freezing context manager
    """
    with freeze_time(base_time) as frozen:
        yield frozen
