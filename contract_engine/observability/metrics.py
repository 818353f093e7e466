# ==== PROMETHEUS METRICS ==== #

"""
Prometheus metrics for the smart contract engine.

Counters and histograms describing rule outcomes, escalations, override
decisions, reminders and lifecycle events. Exposing them over HTTP is left
to the calling application (``render_metrics`` produces the scrape payload).
"""

from prometheus_client import (
    Counter,
    Histogram,
    generate_latest,
    REGISTRY
)


# ==== RULE EVALUATION METRICS ==== #

rule_evaluations_total = Counter(
    "contract_rule_evaluations_total",
    "Total business rule evaluations by rule and outcome",
    ["rule_id", "outcome"]
)

rule_evaluation_duration_seconds = Histogram(
    "contract_rule_evaluation_duration_seconds",
    "Time spent evaluating a rule catalog against one contract in seconds",
    buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5]
)


# ==== WORKFLOW METRICS ==== #

escalations_raised_total = Counter(
    "contract_escalations_raised_total",
    "Total escalations raised by target role and severity",
    ["escalated_to", "severity"]
)

override_decisions_total = Counter(
    "contract_override_decisions_total",
    "Total override requests by resulting status",
    ["status"]
)

reminders_scheduled_total = Counter(
    "contract_reminders_scheduled_total",
    "Total automated reminders scheduled by notification type",
    ["notification_type"]
)

lifecycle_events_total = Counter(
    "contract_lifecycle_events_total",
    "Total lifecycle events recorded by target state and trigger",
    ["to_state", "triggered_by"]
)


def render_metrics() -> bytes:
    """Render all registered metrics in the Prometheus text format."""
    return generate_latest(REGISTRY)
