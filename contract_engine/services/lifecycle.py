# ==== CONTRACT LIFECYCLE STATE MACHINE ==== #

"""
Per-trade-type contract lifecycle for sales contracts.

Each trade type defines an ordered ``workflow_steps`` path; the next state is
purely positional within it. Branch states (DISPUTED, CANCELLED, AMENDED,
VALIDATION_FAILED) sit outside every path and are entered or left only by an
explicit decision of the calling application.

``transition_state`` is a logging constructor: it records an append-only
``LifecycleEvent`` without checking adjacency. ``validate_transition`` is the
optional stricter check callers may apply before recording.
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from contract_engine.business.lifecycle_codes import (
    BRANCH_STATES,
    ContractLifecycleState,
    TriggeredBy,
    resolve_lifecycle_state,
)
from contract_engine.observability.logging import get_logger
from contract_engine.observability.metrics import lifecycle_events_total
from contract_engine.schemas.contract import ContractSnapshot
from contract_engine.schemas.lifecycle import LifecycleEvent, TradeTypeConfig
from contract_engine.services.policy_loader import get_trade_type_config, get_trade_type_configs


logger = get_logger(__name__)


StateLike = Union[ContractLifecycleState, str]
MetadataValue = Union[str, int, float, bool]


def _new_event_id() -> str:
    return f"evt_{uuid.uuid4().hex[:16]}"


class LifecycleStateMachine:
    """
    Workflow lookups and lifecycle event construction.

    Holds only the injected trade-type configuration; it keeps no per-contract
    state, so event logs live with the caller.
    """

    def __init__(self, trade_type_configs: Optional[Dict[str, TradeTypeConfig]] = None):
        """
        Initialize the state machine.

        Args:
            trade_type_configs (Optional[Dict[str, TradeTypeConfig]]): Configs
                keyed by trade type; defaults to the configured policies
        """
        self._configs = trade_type_configs

    @property
    def trade_type_configs(self) -> Dict[str, TradeTypeConfig]:
        if self._configs is None:
            return get_trade_type_configs()
        return self._configs

    def workflow_steps(self, trade_type: str) -> List[ContractLifecycleState]:
        """Ordered workflow path for a trade type (raises UnknownTradeTypeError)."""
        return list(get_trade_type_config(trade_type, self.trade_type_configs).workflow_steps)

    # ==== WORKFLOW LOOKUPS ==== #

    def get_next_lifecycle_state(
        self,
        current: Optional[StateLike],
        trade_type: str
    ) -> Optional[ContractLifecycleState]:
        """
        Positional successor of ``current`` in the trade type's workflow.

        Args:
            current (Optional[StateLike]): Current state
            trade_type (str): Trade type name

        Returns:
            Optional[ContractLifecycleState]: Next workflow step, or None when
                ``current`` is not on the path (branch states included) or is
                the final step
        """
        steps = self.workflow_steps(trade_type)
        state = resolve_lifecycle_state(current)
        if state is None or state not in steps:
            return None

        index = steps.index(state)
        if index + 1 >= len(steps):
            return None
        return steps[index + 1]

    def is_workflow_state(self, state: StateLike, trade_type: str) -> bool:
        return resolve_lifecycle_state(state) in self.workflow_steps(trade_type)

    @staticmethod
    def is_branch_state(state: StateLike) -> bool:
        return resolve_lifecycle_state(state) in BRANCH_STATES

    def validate_transition(
        self,
        from_state: Optional[StateLike],
        to_state: StateLike,
        trade_type: str
    ) -> bool:
        """
        Check a transition against workflow adjacency.

        A transition is legal when ``to_state`` is the positional successor of
        ``from_state``, when ``to_state`` is a branch state, or when there is
        no ``from_state`` and ``to_state`` is the first workflow step. Leaving
        a branch state may return to any workflow step of the trade type.
        """
        target = resolve_lifecycle_state(to_state)
        if target is None:
            return False
        if target in BRANCH_STATES:
            return True

        if from_state is None:
            return target == self.workflow_steps(trade_type)[0]

        if resolve_lifecycle_state(from_state) in BRANCH_STATES:
            return target in self.workflow_steps(trade_type)

        return self.get_next_lifecycle_state(from_state, trade_type) == target

    # ==== EVENT CONSTRUCTION ==== #

    def transition_state(
        self,
        contract: ContractSnapshot,
        to_state: StateLike,
        actor: str,
        reason: str,
        automated: bool = False,
        overridden: Optional[bool] = None,
        metadata: Optional[Dict[str, MetadataValue]] = None,
        from_state: Optional[StateLike] = None,
        at: Optional[datetime] = None
    ) -> LifecycleEvent:
        """
        Record a lifecycle event for a contract.

        No adjacency validation is performed. ``from_state`` defaults to the
        contract's status at call time.

        Args:
            contract (ContractSnapshot): Contract snapshot
            to_state (StateLike): Target state
            actor (str): User name or "SYSTEM"; recorded as given
            reason (str): Why the transition happened
            automated (bool): True when the system triggered it
            overridden (Optional[bool]): Set when an approved override allowed it
            metadata (Optional[Dict[str, MetadataValue]]): Extra metadata,
                merged over ``contractNo`` and ``version``
            from_state (Optional[StateLike]): Explicit previous state
            at (Optional[datetime]): Event timestamp; defaults to now (UTC)

        Returns:
            LifecycleEvent: New event, not yet appended anywhere
        """
        target = resolve_lifecycle_state(to_state)
        if target is None:
            raise ValueError(f"Unknown lifecycle state: {to_state!r}")

        previous = resolve_lifecycle_state(
            from_state if from_state is not None else contract.status
        )

        event_metadata: Dict[str, MetadataValue] = {
            "contractNo": contract.sc_no,
            "version": contract.version,
        }
        if metadata:
            event_metadata.update(metadata)

        triggered_by = TriggeredBy.SYSTEM if automated else TriggeredBy.USER
        event = LifecycleEvent(
            id=_new_event_id(),
            contract_id=contract.id,
            timestamp=at or datetime.now(timezone.utc),
            from_state=previous,
            to_state=target,
            triggered_by=triggered_by,
            actor=actor,
            reason=reason,
            automated=automated,
            overridden=overridden,
            metadata=event_metadata,
        )

        lifecycle_events_total.labels(
            to_state=target.value,
            triggered_by=triggered_by.value
        ).inc()
        logger.debug(
            "Lifecycle event recorded",
            contract_id=contract.id,
            from_state=previous.value if previous else None,
            to_state=target.value,
            actor=actor,
        )
        return event

    # ==== TIMELINES ==== #

    @staticmethod
    def build_timeline(events: Iterable[LifecycleEvent]) -> List[LifecycleEvent]:
        """Events ordered by timestamp; ties keep arrival order."""
        return sorted(events, key=lambda e: e.timestamp)

    @classmethod
    def current_state(
        cls,
        events: Iterable[LifecycleEvent],
        default: Optional[StateLike] = None
    ) -> Optional[ContractLifecycleState]:
        """State reached by the latest event, or ``default`` with no events."""
        timeline = cls.build_timeline(events)
        if timeline:
            return timeline[-1].to_state
        return resolve_lifecycle_state(default)


# ==== GLOBAL STATE MACHINE INSTANCE ==== #


_state_machine: Optional[LifecycleStateMachine] = None


def get_state_machine() -> LifecycleStateMachine:
    """Get global state machine instance using the configured trade types."""
    global _state_machine
    if _state_machine is None:
        _state_machine = LifecycleStateMachine()
    return _state_machine


# ==== CONVENIENCE FUNCTIONS ==== #


def get_next_lifecycle_state(
    current: Optional[StateLike],
    trade_type: str
) -> Optional[ContractLifecycleState]:
    """Next workflow state for ``current`` under the configured trade types."""
    return get_state_machine().get_next_lifecycle_state(current, trade_type)


def transition_state(
    contract: ContractSnapshot,
    to_state: StateLike,
    actor: str,
    reason: str,
    automated: bool = False
) -> LifecycleEvent:
    """Record a lifecycle event from the contract's current status to ``to_state``."""
    return get_state_machine().transition_state(contract, to_state, actor, reason, automated)
