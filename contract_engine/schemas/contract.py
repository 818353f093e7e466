"""Contract snapshot and ledger schemas consumed by the engine."""

import datetime as dt
from typing import Optional

from pydantic import ConfigDict, Field

from contract_engine.business.lifecycle_codes import TradeType
from contract_engine.schemas.base import EngineModel


class QualitySpecs(EngineModel):
    """Cotton quality specification as captured on the contract form."""

    length: str = ""
    mic: str = ""
    rd: str = ""
    trash: str = ""
    moisture: str = ""
    strength: str = ""


class ContractSnapshot(EngineModel):
    """
    Read-only view of a sales contract at evaluation time.

    Unknown keys are preserved so catalog rules can reference fields
    specific to the calling application.
    """

    model_config = ConfigDict(extra="allow")

    id: str
    sc_no: str = ""
    version: int = 1
    client_id: str = ""
    client_name: str = ""
    vendor_id: str = ""
    vendor_name: str = ""
    variety: str = ""
    quantity_bales: float = 0
    rate: float = 0
    trade_type: str = TradeType.NORMAL
    bargain_type: str = ""
    quality_specs: Optional[QualitySpecs] = None
    status: str = "DRAFT"
    cci_contract_no: Optional[str] = None


class Invoice(EngineModel):
    """Invoice raised against a contract."""

    id: str
    contract_id: str
    amount: float = Field(ge=0)
    date: Optional[dt.date] = None
    status: str = "Unpaid"


class Payment(EngineModel):
    """Payment received against an invoice of a contract."""

    id: str
    contract_id: str
    invoice_id: Optional[str] = None
    amount: float = Field(ge=0)
    date: Optional[dt.date] = None


class DeliveryOrder(EngineModel):
    """Delivery order shipping part of the contracted bales."""

    id: str
    contract_id: str
    quantity_bales: float = Field(ge=0)
    date: Optional[dt.date] = None
    status: str = "Pending"


class Dispute(EngineModel):
    """Dispute raised on a contract."""

    id: str
    contract_id: str
    reason: str = ""
    status: str = "Open"
    raised_date: Optional[dt.date] = None
