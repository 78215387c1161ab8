from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel

from gst import GstType
from ledger import PaymentStatus
from models import PartyRole, PaymentMode, TransactionKind, WeightUnit
from reconciliation import LotStatus


class ORMModel(BaseModel):
    model_config = {"from_attributes": True}


# Parties

class PartyCreate(BaseModel):
    name: Optional[str] = None
    mobile: str = ""
    address: str = ""
    tax_id: str = ""
    role: PartyRole = PartyRole.BOTH


class PartyUpdate(BaseModel):
    name: Optional[str] = None
    mobile: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    role: Optional[PartyRole] = None


class PartyBrief(ORMModel):
    id: int
    name: str
    mobile: Optional[str] = None


class PartyRead(PartyBrief):
    address: Optional[str] = None
    tax_id: Optional[str] = None
    role: PartyRole
    created_at: datetime


# Bills and payments

class TransactionCreate(BaseModel):
    bill_number: Optional[str] = None
    party_id: Optional[int] = None
    material_type: Optional[str] = None
    weight: Optional[float] = None
    weight_unit: WeightUnit = WeightUnit.KG
    rate_per_kg: Optional[float] = None
    taxable_amount: Optional[float] = None
    # free text on purpose: unknown regimes are treated as "none"
    gst_type: Optional[str] = None
    gst_percent: Optional[float] = None
    bill_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: str = ""


class TransactionUpdate(BaseModel):
    bill_number: Optional[str] = None
    party_id: Optional[int] = None
    material_type: Optional[str] = None
    weight: Optional[float] = None
    weight_unit: Optional[WeightUnit] = None
    rate_per_kg: Optional[float] = None
    taxable_amount: Optional[float] = None
    gst_type: Optional[str] = None
    gst_percent: Optional[float] = None
    bill_date: Optional[date] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


class PaymentCreate(BaseModel):
    amount: Optional[float] = None
    payment_date: Optional[date] = None
    mode: PaymentMode = PaymentMode.CASH
    note: str = ""
    reference: str = ""


class PaymentRead(ORMModel):
    id: int
    amount: float
    payment_date: date
    mode: PaymentMode
    note: Optional[str] = None
    reference: Optional[str] = None


class TransactionBrief(ORMModel):
    id: int
    kind: TransactionKind
    bill_number: str
    bill_date: date
    material_type: str
    financial_year: str
    party: Optional[PartyBrief] = None


class TransactionRead(TransactionBrief):
    party_id: int
    weight: float
    weight_unit: WeightUnit
    rate_per_kg: float
    taxable_amount: float
    gst_type: GstType
    gst_percent: float
    cgst_amount: float
    sgst_amount: float
    igst_amount: float
    total_gst_amount: float
    total_amount: float
    due_date: Optional[date] = None
    attachment_url: Optional[str] = None
    notes: Optional[str] = None
    payments: List[PaymentRead] = []
    paid_amount: float
    pending_amount: float
    payment_status: PaymentStatus
    is_overdue: bool
    status: PaymentStatus
    created_at: datetime
    updated_at: datetime


class TransactionPage(BaseModel):
    items: List[TransactionRead]
    total: int
    page: int
    pages: int


# Lots

class LotLinkCreate(BaseModel):
    transaction_id: Optional[int] = None
    weight: Optional[float] = None
    rate: Optional[float] = None
    amount: Optional[float] = None


class LotLinkRead(ORMModel):
    id: int
    transaction_id: int
    weight: float
    rate: float
    amount: float
    transaction: Optional[TransactionBrief] = None


class LotCreate(BaseModel):
    lot_number: Optional[str] = None
    material_type: Optional[str] = None
    description: str = ""
    purchases: List[LotLinkCreate] = []
    sales: List[LotLinkCreate] = []


class LotUpdate(BaseModel):
    lot_number: Optional[str] = None
    material_type: Optional[str] = None
    description: Optional[str] = None
    purchases: Optional[List[LotLinkCreate]] = None
    sales: Optional[List[LotLinkCreate]] = None


class LotRead(ORMModel):
    id: int
    lot_number: str
    material_type: str
    financial_year: str
    description: Optional[str] = None
    purchases: List[LotLinkRead]
    sales: List[LotLinkRead]
    total_purchase_cost: float
    total_purchase_weight: float
    total_sale_revenue: float
    total_sale_weight: float
    profit: float
    profit_percent: float
    weight_difference: float
    status: LotStatus
    created_at: datetime


# Dashboard and ledgers

class MonthlyPointRead(ORMModel):
    month: str
    purchases: float
    sales: float


class MaterialPointRead(ORMModel):
    material: str
    purchases: float
    sales: float
    profit: float


class PartyTotalRead(ORMModel):
    party_id: int
    name: Optional[str] = None
    total: float


class DashboardRead(ORMModel):
    total_purchases: float
    total_sales: float
    total_purchase_paid: float
    total_sale_paid: float
    total_payables: float
    total_receivables: float
    profit: float
    purchase_count: int
    sale_count: int
    monthly: List[MonthlyPointRead]
    material_wise: List[MaterialPointRead]
    top_parties: List[PartyTotalRead]
    purchase_status: Dict[str, int]
    sale_status: Dict[str, int]


class PartyBalanceRead(ORMModel):
    total_purchase: float
    total_sale: float
    pending_payable: float
    pending_receivable: float


class PartyLedgerRead(ORMModel):
    party: PartyRead
    purchases: List[TransactionRead]
    sales: List[TransactionRead]
    summary: PartyBalanceRead


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    field: Optional[str] = None
