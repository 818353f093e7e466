# ==== TRADE CYCLE STATUS AGGREGATOR ==== #

"""
Trade cycle read model for contract transparency views.

Rolls a contract's delivery orders, invoices, payments and disputes up into a
single ``TradeCycleStatus``. Pure aggregation over the supplied ledgers;
visibility flags are always true here because access control belongs to the
calling application.
"""

from datetime import datetime, timezone
from typing import Dict, Iterable, Optional

from contract_engine.business.lifecycle_codes import (
    RECONCILED_STATES,
    ContractLifecycleState,
    resolve_lifecycle_state,
)
from contract_engine.schemas.contract import (
    ContractSnapshot,
    DeliveryOrder,
    Dispute,
    Invoice,
    Payment,
)
from contract_engine.schemas.lifecycle import TradeTypeConfig
from contract_engine.schemas.trade_cycle import TradeCycleStatus
from contract_engine.services.policy_loader import get_trade_type_configs


OPEN_DISPUTE_STATUS = "open"


def _quality_passed(
    config: Optional[TradeTypeConfig],
    state: Optional[ContractLifecycleState]
) -> bool:
    """True once the contract is at or past QUALITY_PASSED in its workflow."""
    if config is None or not config.requires_quality_passing or state is None:
        return False

    steps = list(config.workflow_steps)
    if ContractLifecycleState.QUALITY_PASSED not in steps or state not in steps:
        return False
    return steps.index(state) >= steps.index(ContractLifecycleState.QUALITY_PASSED)


def compute_trade_cycle_status(
    contract: ContractSnapshot,
    delivery_orders: Iterable[DeliveryOrder] = (),
    invoices: Iterable[Invoice] = (),
    payments: Iterable[Payment] = (),
    disputes: Iterable[Dispute] = (),
    current_state: Optional[ContractLifecycleState | str] = None,
    trade_type_configs: Optional[Dict[str, TradeTypeConfig]] = None,
    now: Optional[datetime] = None
) -> TradeCycleStatus:
    """
    Aggregate a contract's sub-ledgers into one status.

    Ledger entries belonging to other contracts are ignored.

    Args:
        contract (ContractSnapshot): Contract snapshot
        delivery_orders (Iterable[DeliveryOrder]): Delivery ledger
        invoices (Iterable[Invoice]): Invoice ledger
        payments (Iterable[Payment]): Payment ledger
        disputes (Iterable[Dispute]): Dispute ledger
        current_state (Optional[ContractLifecycleState | str]): Current lifecycle
            state; defaults to the contract's status
        trade_type_configs (Optional[Dict[str, TradeTypeConfig]]): Configs used
            for the quality passing flags
        now (Optional[datetime]): ``last_updated`` timestamp

    Returns:
        TradeCycleStatus: Derived read model
    """
    if trade_type_configs is None:
        trade_type_configs = get_trade_type_configs()

    own_deliveries = [d for d in delivery_orders if d.contract_id == contract.id]
    own_invoices = [i for i in invoices if i.contract_id == contract.id]
    own_payments = [p for p in payments if p.contract_id == contract.id]
    own_disputes = [d for d in disputes if d.contract_id == contract.id]

    total_delivered = sum(d.quantity_bales for d in own_deliveries)
    total_invoiced = sum(i.amount for i in own_invoices)
    total_paid = sum(p.amount for p in own_payments)

    state = resolve_lifecycle_state(current_state if current_state is not None else contract.status)
    config = trade_type_configs.get(contract.trade_type)

    return TradeCycleStatus(
        contract_id=contract.id,
        contract_no=contract.sc_no,
        trade_type=contract.trade_type,
        current_state=state,
        contracted_bales=contract.quantity_bales,
        quality_check_required=bool(config and config.requires_quality_passing),
        quality_check_passed=_quality_passed(config, state),
        delivery_orders=own_deliveries,
        total_delivered=total_delivered,
        delivery_complete=total_delivered >= contract.quantity_bales,
        invoices=own_invoices,
        total_invoiced=total_invoiced,
        payments=own_payments,
        total_paid=total_paid,
        # No invoices means nothing can be "fully paid"
        payment_complete=total_paid >= total_invoiced and total_invoiced > 0,
        disputes=own_disputes,
        open_disputes=sum(1 for d in own_disputes if d.status.lower() == OPEN_DISPUTE_STATUS),
        reconciled=state in RECONCILED_STATES,
        buyer_can_view=True,
        seller_can_view=True,
        last_updated=now or datetime.now(timezone.utc),
    )
