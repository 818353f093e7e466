"""Read model aggregating a contract's delivery, invoice, payment and dispute ledgers."""

from datetime import datetime
from typing import List, Optional

from pydantic import computed_field

from contract_engine.business.lifecycle_codes import ContractLifecycleState
from contract_engine.schemas.base import EngineModel
from contract_engine.schemas.contract import DeliveryOrder, Dispute, Invoice, Payment


class TradeCycleStatus(EngineModel):
    """Per-contract transparency view. Derived on demand, never stored."""

    contract_id: str
    contract_no: str
    trade_type: str
    current_state: Optional[ContractLifecycleState] = None
    contracted_bales: float

    quality_check_required: bool = False
    quality_check_passed: bool = False

    delivery_orders: List[DeliveryOrder] = []
    total_delivered: float = 0
    delivery_complete: bool = False

    invoices: List[Invoice] = []
    total_invoiced: float = 0
    payments: List[Payment] = []
    total_paid: float = 0
    payment_complete: bool = False

    disputes: List[Dispute] = []
    open_disputes: int = 0

    reconciled: bool = False
    buyer_can_view: bool = True
    seller_can_view: bool = True
    last_updated: datetime

    @computed_field
    @property
    def delivery_percentage(self) -> float:
        if self.delivery_complete:
            return 100.0
        if self.contracted_bales <= 0:
            return 0.0
        return min(100.0, self.total_delivered / self.contracted_bales * 100)

    @computed_field
    @property
    def payment_percentage(self) -> float:
        if self.payment_complete:
            return 100.0
        if self.total_invoiced <= 0:
            return 0.0
        return min(100.0, self.total_paid / self.total_invoiced * 100)
