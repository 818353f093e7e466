# ==== CONTRACT REPOSITORY ==== #

"""
Repository abstraction for the data the engine reads and the records it produces.

The engine itself persists nothing. The workflow service depends only on
``ContractRepository``; concrete storage (database, API client, UI store) is
supplied by the calling application. ``InMemoryContractRepository`` backs
tests and demos.

Writes for one contract must be serialized by the caller; implementations are
not required to arbitrate concurrent writers.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from contract_engine.schemas.contract import (
    ContractSnapshot,
    DeliveryOrder,
    Dispute,
    Invoice,
    Payment,
)
from contract_engine.schemas.escalation import Escalation
from contract_engine.schemas.lifecycle import LifecycleEvent
from contract_engine.schemas.notification import AutomatedNotification
from contract_engine.schemas.override import OverrideRequest


# ==== ERRORS ==== #


class ContractNotFoundError(LookupError):
    """Raised when a contract id is unknown to the repository."""

    def __init__(self, contract_id: str):
        super().__init__(f"Contract '{contract_id}' not found")
        self.contract_id = contract_id


class RecordNotFoundError(LookupError):
    """Raised when an override, escalation or notification id is unknown."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} '{record_id}' not found")
        self.kind = kind
        self.record_id = record_id


# ==== ABSTRACT REPOSITORY ==== #


class ContractRepository(ABC):
    """Load contract snapshots and ledgers; append and upsert workflow records."""

    @abstractmethod
    def get_contract(self, contract_id: str) -> ContractSnapshot:
        """Raises ContractNotFoundError for unknown ids."""

    @abstractmethod
    def list_invoices(self, contract_id: str) -> List[Invoice]: ...

    @abstractmethod
    def list_payments(self, contract_id: str) -> List[Payment]: ...

    @abstractmethod
    def list_delivery_orders(self, contract_id: str) -> List[DeliveryOrder]: ...

    @abstractmethod
    def list_disputes(self, contract_id: str) -> List[Dispute]: ...

    @abstractmethod
    def list_lifecycle_events(self, contract_id: str) -> List[LifecycleEvent]: ...

    @abstractmethod
    def append_lifecycle_event(self, event: LifecycleEvent) -> None: ...

    @abstractmethod
    def list_overrides(self, contract_id: str) -> List[OverrideRequest]: ...

    @abstractmethod
    def get_override(self, override_id: str) -> OverrideRequest:
        """Raises RecordNotFoundError for unknown ids."""

    @abstractmethod
    def upsert_override(self, override: OverrideRequest) -> None: ...

    @abstractmethod
    def list_escalations(self, contract_id: Optional[str] = None) -> List[Escalation]:
        """Escalations of one contract, or of every contract when ``contract_id`` is None."""

    @abstractmethod
    def get_escalation(self, escalation_id: str) -> Escalation:
        """Raises RecordNotFoundError for unknown ids."""

    @abstractmethod
    def upsert_escalation(self, escalation: Escalation) -> None: ...

    @abstractmethod
    def list_notifications(self, contract_id: str) -> List[AutomatedNotification]: ...

    @abstractmethod
    def upsert_notification(self, notification: AutomatedNotification) -> None: ...


# ==== IN-MEMORY IMPLEMENTATION ==== #


class InMemoryContractRepository(ContractRepository):
    """Dictionary-backed repository. Upserts keep first-insertion order."""

    def __init__(self):
        self._contracts: Dict[str, ContractSnapshot] = {}
        self._invoices: Dict[str, List[Invoice]] = defaultdict(list)
        self._payments: Dict[str, List[Payment]] = defaultdict(list)
        self._deliveries: Dict[str, List[DeliveryOrder]] = defaultdict(list)
        self._disputes: Dict[str, List[Dispute]] = defaultdict(list)
        self._events: Dict[str, List[LifecycleEvent]] = defaultdict(list)
        self._overrides: Dict[str, OverrideRequest] = {}
        self._escalations: Dict[str, Escalation] = {}
        self._notifications: Dict[str, AutomatedNotification] = {}

    # --► SEEDING

    def add_contract(self, contract: ContractSnapshot) -> None:
        self._contracts[contract.id] = contract

    def add_invoices(self, invoices: Iterable[Invoice]) -> None:
        for invoice in invoices:
            self._invoices[invoice.contract_id].append(invoice)

    def add_payments(self, payments: Iterable[Payment]) -> None:
        for payment in payments:
            self._payments[payment.contract_id].append(payment)

    def add_delivery_orders(self, delivery_orders: Iterable[DeliveryOrder]) -> None:
        for delivery_order in delivery_orders:
            self._deliveries[delivery_order.contract_id].append(delivery_order)

    def add_disputes(self, disputes: Iterable[Dispute]) -> None:
        for dispute in disputes:
            self._disputes[dispute.contract_id].append(dispute)

    # --► CONTRACTS AND LEDGERS

    def get_contract(self, contract_id: str) -> ContractSnapshot:
        try:
            return self._contracts[contract_id]
        except KeyError:
            raise ContractNotFoundError(contract_id) from None

    def list_invoices(self, contract_id: str) -> List[Invoice]:
        return list(self._invoices.get(contract_id, []))

    def list_payments(self, contract_id: str) -> List[Payment]:
        return list(self._payments.get(contract_id, []))

    def list_delivery_orders(self, contract_id: str) -> List[DeliveryOrder]:
        return list(self._deliveries.get(contract_id, []))

    def list_disputes(self, contract_id: str) -> List[Dispute]:
        return list(self._disputes.get(contract_id, []))

    # --► LIFECYCLE EVENTS

    def list_lifecycle_events(self, contract_id: str) -> List[LifecycleEvent]:
        return list(self._events.get(contract_id, []))

    def append_lifecycle_event(self, event: LifecycleEvent) -> None:
        self._events[event.contract_id].append(event)

    # --► OVERRIDES

    def list_overrides(self, contract_id: str) -> List[OverrideRequest]:
        return [o for o in self._overrides.values() if o.contract_id == contract_id]

    def get_override(self, override_id: str) -> OverrideRequest:
        try:
            return self._overrides[override_id]
        except KeyError:
            raise RecordNotFoundError("Override", override_id) from None

    def upsert_override(self, override: OverrideRequest) -> None:
        self._overrides[override.id] = override

    # --► ESCALATIONS

    def list_escalations(self, contract_id: Optional[str] = None) -> List[Escalation]:
        return [
            e for e in self._escalations.values()
            if contract_id is None or e.contract_id == contract_id
        ]

    def get_escalation(self, escalation_id: str) -> Escalation:
        try:
            return self._escalations[escalation_id]
        except KeyError:
            raise RecordNotFoundError("Escalation", escalation_id) from None

    def upsert_escalation(self, escalation: Escalation) -> None:
        self._escalations[escalation.id] = escalation

    # --► NOTIFICATIONS

    def list_notifications(self, contract_id: str) -> List[AutomatedNotification]:
        return [n for n in self._notifications.values() if n.contract_id == contract_id]

    def upsert_notification(self, notification: AutomatedNotification) -> None:
        self._notifications[notification.id] = notification
