# ==== CONTRACT WORKFLOW SERVICE ==== #

"""
Contract workflow service tying the engine components to a repository.

The rule engine, state machine, override and escalation modules are pure and
leave guarding to their caller. This service is that caller: it refuses
duplicate or out-of-order override and escalation decisions, applies approved
overrides on re-evaluation, avoids raising the same escalation twice,
optionally enforces workflow adjacency, and dedupes reminders before they are
handed to the delivery layer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from contract_engine.business.lifecycle_codes import ContractLifecycleState
from contract_engine.business.rule_codes import RuleAction
from contract_engine.business.workflow_codes import (
    OPEN_ESCALATION_STATUSES,
    EscalationStatus,
    OverrideStatus,
)
from contract_engine.observability.logging import get_logger
from contract_engine.observability.tracing import get_tracer
from contract_engine.schemas.escalation import Escalation
from contract_engine.schemas.lifecycle import LifecycleEvent
from contract_engine.schemas.notification import AutomatedNotification
from contract_engine.schemas.override import OverrideRequest
from contract_engine.schemas.rules import RuleDecision, RuleEvaluationResult
from contract_engine.schemas.trade_cycle import TradeCycleStatus
from contract_engine.services import escalation_manager, override_service
from contract_engine.services.lifecycle import LifecycleStateMachine, StateLike
from contract_engine.services.reminder_scheduler import ReminderScheduler, suppress_already_scheduled
from contract_engine.services.rule_engine import RuleEngine, classify
from contract_engine.services.trade_cycle import compute_trade_cycle_status
from contract_engine.settings import Settings, get_settings
from contract_engine.storage.repository import ContractRepository


tracer = get_tracer(__name__)
logger = get_logger(__name__)


# ==== ERRORS ==== #


class WorkflowError(Exception):
    """Base class for refused workflow operations."""


class MissingReasonError(WorkflowError, ValueError):
    """A rejection reason or resolution text was blank."""


class DuplicateOverrideError(WorkflowError):
    """A PENDING override already exists for the contract and rule."""


class OverrideStateError(WorkflowError):
    """The override cannot take this decision in its current state."""


class EscalationStateError(WorkflowError):
    """The escalation cannot move to the requested status from its current one."""


class InvalidTransitionError(WorkflowError):
    """The lifecycle transition is not allowed."""


# ==== RESULT TYPES ==== #


@dataclass(frozen=True)
class ContractValidation:
    """Outcome of validating one contract against the rule catalog."""

    contract_id: str
    results: List[RuleEvaluationResult]
    decision: RuleDecision
    escalations_raised: List[Escalation] = field(default_factory=list)


# ==== WORKFLOW SERVICE ==== #


class ContractWorkflowService:
    """
    Calling layer for the contract engine.

    Every method loads what it needs from the repository, calls the pure
    engine components and writes the produced records back. Writes for one
    contract must not run concurrently; the service does not lock.
    """

    def __init__(
        self,
        repository: ContractRepository,
        rule_engine: Optional[RuleEngine] = None,
        state_machine: Optional[LifecycleStateMachine] = None,
        reminder_scheduler: Optional[ReminderScheduler] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize the workflow service.

        Args:
            repository (ContractRepository): Storage for contracts and records
            rule_engine (Optional[RuleEngine]): Rule engine; configured catalog by default
            state_machine (Optional[LifecycleStateMachine]): Lifecycle lookups
            reminder_scheduler (Optional[ReminderScheduler]): Reminder derivation
            settings (Optional[Settings]): Behaviour flags; global settings by default
        """
        self.repository = repository
        self.rule_engine = rule_engine or RuleEngine()
        self.state_machine = state_machine or LifecycleStateMachine()
        self.reminder_scheduler = reminder_scheduler or ReminderScheduler(
            self.state_machine.trade_type_configs
        )
        self.settings = settings or get_settings()

    # ==== STATE ==== #

    def current_state(self, contract_id: str) -> Optional[ContractLifecycleState]:
        """Latest recorded lifecycle state, else the snapshot status."""
        contract = self.repository.get_contract(contract_id)
        events = self.repository.list_lifecycle_events(contract_id)
        return self.state_machine.current_state(events, default=contract.status)

    # ==== VALIDATION ==== #

    def validate_contract(self, contract_id: str, at: Optional[datetime] = None) -> ContractValidation:
        """
        Evaluate the catalog, apply approved overrides and raise escalations.

        An escalation is not raised again while an open one with the same
        role and description exists for the contract.

        Args:
            contract_id (str): Contract to validate
            at (Optional[datetime]): Timestamp for raised escalations

        Returns:
            ContractValidation: Results, decision and newly raised escalations
        """
        with tracer.start_as_current_span("validate_contract") as span:
            span.set_attribute("contract_id", contract_id)

            contract = self.repository.get_contract(contract_id)
            results = self.rule_engine.evaluate(contract)
            results = override_service.apply_approved_overrides(
                results, self.repository.list_overrides(contract_id), contract_id
            )
            decision = classify(results)

            already_open = {
                (e.escalated_to, e.description)
                for e in self.repository.list_escalations(contract_id)
                if e.status in OPEN_ESCALATION_STATUSES
            }

            raised = []
            for draft in escalation_manager.get_required_escalations(contract, results):
                if (draft.escalated_to, draft.description) in already_open:
                    continue
                escalation = escalation_manager.create_escalation(draft, at=at)
                self.repository.upsert_escalation(escalation)
                raised.append(escalation)

            span.set_attribute("can_proceed", decision.can_proceed)
            span.set_attribute("escalations_raised", len(raised))
            logger.info(
                "Contract validated",
                contract_id=contract_id,
                can_proceed=decision.can_proceed,
                requires_manual_approval=decision.requires_manual_approval,
                can_auto_approve=decision.can_auto_approve,
                escalations_raised=len(raised),
            )

            return ContractValidation(
                contract_id=contract_id,
                results=results,
                decision=decision,
                escalations_raised=raised,
            )

    # ==== OVERRIDES ==== #

    def request_override(
        self,
        contract_id: str,
        rule_id: str,
        requested_by: str,
        reason: str,
        business_justification: Optional[str] = None
    ) -> OverrideRequest:
        """
        Record a PENDING override for a blocking rule.

        Raises:
            ContractNotFoundError: Unknown contract
            OverrideStateError: Rule unknown or not a BLOCK rule
            MissingReasonError: Blank reason
            DuplicateOverrideError: A PENDING request already exists
        """
        self.repository.get_contract(contract_id)

        rule = self.rule_engine.rule_by_id(rule_id)
        if rule is None or rule.action != RuleAction.BLOCK:
            raise OverrideStateError(f"Rule '{rule_id}' is not a blocking rule")

        if not reason or not reason.strip():
            raise MissingReasonError("An override request needs a reason")

        for existing in self.repository.list_overrides(contract_id):
            if existing.rule_id == rule_id and existing.status == OverrideStatus.PENDING:
                raise DuplicateOverrideError(
                    f"Override {existing.id} for rule '{rule_id}' is already pending"
                )

        request = override_service.create_override_request(
            contract_id, rule.id, rule.name, requested_by, reason.strip(),
            business_justification=business_justification,
        )
        self.repository.upsert_override(request)
        return request

    def approve_override(self, override_id: str, approved_by: str) -> OverrideRequest:
        """Approve a PENDING override (raises OverrideStateError otherwise)."""
        request = self._pending_override(override_id)
        approved = override_service.approve_override_request(request, approved_by)
        self.repository.upsert_override(approved)
        return approved

    def reject_override(self, override_id: str, rejection_reason: str) -> OverrideRequest:
        """Reject a PENDING override with a non-blank reason."""
        if not rejection_reason or not rejection_reason.strip():
            raise MissingReasonError("A rejection reason is required")

        request = self._pending_override(override_id)
        rejected = override_service.reject_override_request(request, rejection_reason)
        self.repository.upsert_override(rejected)
        return rejected

    def _pending_override(self, override_id: str) -> OverrideRequest:
        request = self.repository.get_override(override_id)
        if request.status != OverrideStatus.PENDING:
            raise OverrideStateError(
                f"Override {override_id} is already {request.status.value}"
            )
        return request

    # ==== ESCALATIONS ==== #

    def start_escalation(self, escalation_id: str) -> Escalation:
        escalation = self.repository.get_escalation(escalation_id)
        if escalation.status != EscalationStatus.OPEN:
            raise EscalationStateError(
                f"Escalation {escalation_id} is {escalation.status.value}, not OPEN"
            )
        started = escalation_manager.start_escalation(escalation)
        self.repository.upsert_escalation(started)
        return started

    def resolve_escalation(self, escalation_id: str, resolved_by: str, resolution: str) -> Escalation:
        """Resolve an OPEN or IN_PROGRESS escalation."""
        if not resolution or not resolution.strip():
            raise MissingReasonError("Resolution text is required")

        escalation = self.repository.get_escalation(escalation_id)
        if escalation.status not in OPEN_ESCALATION_STATUSES:
            raise EscalationStateError(
                f"Escalation {escalation_id} is {escalation.status.value} and cannot be resolved"
            )
        resolved = escalation_manager.resolve_escalation(escalation, resolved_by, resolution)
        self.repository.upsert_escalation(resolved)
        return resolved

    def close_escalation(self, escalation_id: str) -> Escalation:
        """Close a RESOLVED escalation."""
        escalation = self.repository.get_escalation(escalation_id)
        if escalation.status != EscalationStatus.RESOLVED:
            raise EscalationStateError(
                f"Escalation {escalation_id} must be RESOLVED before closing"
            )
        closed = escalation_manager.close_escalation(escalation)
        self.repository.upsert_escalation(closed)
        return closed

    # ==== LIFECYCLE ==== #

    def advance(
        self,
        contract_id: str,
        actor: str,
        reason: str,
        automated: bool = False
    ) -> LifecycleEvent:
        """
        Move the contract to the next step of its trade type's workflow.

        Raises:
            InvalidTransitionError: When the current state has no next step
        """
        contract = self.repository.get_contract(contract_id)
        current = self.current_state(contract_id)
        next_state = self.state_machine.get_next_lifecycle_state(current, contract.trade_type)
        if next_state is None:
            raise InvalidTransitionError(
                f"Contract {contract_id} has no next state from "
                f"{current.value if current else 'an unknown state'}"
            )

        return self._append(contract_id, next_state, actor, reason, automated, from_state=current)

    def record_transition(
        self,
        contract_id: str,
        to_state: StateLike,
        actor: str,
        reason: str,
        automated: bool = False,
        strict: Optional[bool] = None,
        overridden: Optional[bool] = None
    ) -> LifecycleEvent:
        """
        Record an explicit transition, e.g. into or out of a branch state.

        Adjacency is checked only when ``strict`` (defaulting to the
        ``STRICT_LIFECYCLE_TRANSITIONS`` setting) is true.
        """
        contract = self.repository.get_contract(contract_id)
        current = self.current_state(contract_id)

        if strict is None:
            strict = self.settings.STRICT_LIFECYCLE_TRANSITIONS
        if strict and not self.state_machine.validate_transition(current, to_state, contract.trade_type):
            raise InvalidTransitionError(
                f"Transition {current.value if current else None} -> {to_state} "
                f"is not allowed for {contract.trade_type}"
            )

        return self._append(
            contract_id, to_state, actor, reason, automated,
            from_state=current, overridden=overridden,
        )

    def _append(
        self,
        contract_id: str,
        to_state: StateLike,
        actor: str,
        reason: str,
        automated: bool,
        from_state: Optional[ContractLifecycleState],
        overridden: Optional[bool] = None
    ) -> LifecycleEvent:
        contract = self.repository.get_contract(contract_id)
        event = self.state_machine.transition_state(
            contract, to_state, actor, reason,
            automated=automated, overridden=overridden, from_state=from_state,
        )
        self.repository.append_lifecycle_event(event)
        return event

    # ==== REMINDERS ==== #

    def schedule_reminders(
        self,
        contract_id: str,
        due_date: datetime,
        now: Optional[datetime] = None
    ) -> List[AutomatedNotification]:
        """
        Schedule the reminders due for a contract and store them.

        With ``REMINDER_DEDUPE_ENABLED`` thresholds already scheduled or sent
        are not scheduled again.
        """
        contract = self.repository.get_contract(contract_id)
        notifications = self.reminder_scheduler.generate_automated_reminders(
            contract_id=contract.id,
            trade_type=contract.trade_type,
            current_state=self.current_state(contract_id),
            due_date=due_date,
            buyer=contract.client_name or contract.client_id,
            seller=contract.vendor_name or contract.vendor_id,
            now=now,
        )

        if self.settings.REMINDER_DEDUPE_ENABLED:
            notifications = suppress_already_scheduled(
                notifications, self.repository.list_notifications(contract_id)
            )

        for notification in notifications:
            self.repository.upsert_notification(notification)
        return notifications

    # ==== TRANSPARENCY ==== #

    def trade_cycle_status(self, contract_id: str, now: Optional[datetime] = None) -> TradeCycleStatus:
        contract = self.repository.get_contract(contract_id)
        return compute_trade_cycle_status(
            contract,
            delivery_orders=self.repository.list_delivery_orders(contract_id),
            invoices=self.repository.list_invoices(contract_id),
            payments=self.repository.list_payments(contract_id),
            disputes=self.repository.list_disputes(contract_id),
            current_state=self.current_state(contract_id),
            trade_type_configs=self.state_machine.trade_type_configs,
            now=now,
        )
