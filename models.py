# models.py
import enum
from datetime import date, datetime

from sqlalchemy import (
    Column, Integer, String, Float, ForeignKey, DateTime, Date, Text, Enum, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from database import Base
from gst import GstType
from ledger import LedgerSummary, summarize
from reconciliation import LotMetrics, reconcile


class PartyRole(str, enum.Enum):
    SUPPLIER = "supplier"
    CUSTOMER = "customer"
    BOTH = "both"


class TransactionKind(str, enum.Enum):
    PURCHASE = "purchase"
    SALE = "sale"


class WeightUnit(str, enum.Enum):
    KG = "kg"
    TON = "ton"
    QUINTAL = "quintal"


class PaymentMode(str, enum.Enum):
    CASH = "Cash"
    BANK = "Bank"
    UPI = "UPI"
    CHEQUE = "Cheque"


class Party(Base):
    __tablename__ = "parties"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    mobile = Column(String, default="")
    address = Column(String, default="")
    tax_id = Column(String, default="")       # GSTIN, kept upper-case
    role = Column(Enum(PartyRole), default=PartyRole.BOTH, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    transactions = relationship("Transaction", back_populates="party")


class Transaction(Base):
    """A purchase or sale bill. Both kinds share one table."""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    kind = Column(Enum(TransactionKind), nullable=False, index=True)
    bill_number = Column(String, nullable=False)
    party_id = Column(Integer, ForeignKey("parties.id"), nullable=False)
    material_type = Column(String, nullable=False)
    weight = Column(Float, nullable=False)
    weight_unit = Column(Enum(WeightUnit), default=WeightUnit.KG, nullable=False)
    rate_per_kg = Column(Float, nullable=False)

    taxable_amount = Column(Float, nullable=False)
    gst_type = Column(Enum(GstType), default=GstType.NONE, nullable=False)
    gst_percent = Column(Float, default=0.0)
    cgst_amount = Column(Float, default=0.0)
    sgst_amount = Column(Float, default=0.0)
    igst_amount = Column(Float, default=0.0)
    total_gst_amount = Column(Float, default=0.0)
    total_amount = Column(Float, nullable=False)

    bill_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=True)
    financial_year = Column(String(9), nullable=False, index=True)
    attachment_url = Column(String, default="")
    attachment_id = Column(String, default="")
    notes = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    party = relationship("Party", back_populates="transactions")
    payments = relationship(
        "Payment", back_populates="transaction", cascade="all, delete-orphan", order_by="Payment.id"
    )
    # links belong to their lot; a bill only takes them along when it is deleted
    lot_links = relationship("LotLink", back_populates="transaction", cascade="all, delete")

    @property
    def ledger(self) -> LedgerSummary:
        return summarize(self.total_amount or 0.0, self.payments, self.due_date)

    @property
    def paid_amount(self) -> float:
        return self.ledger.paid_amount

    @property
    def pending_amount(self) -> float:
        return self.ledger.pending_amount

    @property
    def payment_status(self):
        return self.ledger.payment_status

    @property
    def is_overdue(self) -> bool:
        return self.ledger.is_overdue

    @property
    def status(self):
        return self.ledger.status


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Float, nullable=False)
    payment_date = Column(Date, default=date.today, nullable=False)
    mode = Column(Enum(PaymentMode), default=PaymentMode.CASH, nullable=False)
    note = Column(String, default="")
    reference = Column(String, default="")
    created_at = Column(DateTime, default=datetime.now)

    transaction = relationship("Transaction", back_populates="payments")


class Lot(Base):
    __tablename__ = "lots"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, nullable=False, index=True)
    lot_number = Column(String, nullable=False)
    material_type = Column(String, nullable=False)
    financial_year = Column(String(9), nullable=False, index=True)
    description = Column(Text, default="")
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    links = relationship("LotLink", back_populates="lot", cascade="all, delete-orphan", order_by="LotLink.id")

    @property
    def purchases(self):
        return [l for l in self.links if l.kind == TransactionKind.PURCHASE]

    @property
    def sales(self):
        return [l for l in self.links if l.kind == TransactionKind.SALE]

    @property
    def metrics(self) -> LotMetrics:
        return reconcile(self.purchases, self.sales)

    @property
    def total_purchase_cost(self) -> float:
        return self.metrics.total_purchase_cost

    @property
    def total_purchase_weight(self) -> float:
        return self.metrics.total_purchase_weight

    @property
    def total_sale_revenue(self) -> float:
        return self.metrics.total_sale_revenue

    @property
    def total_sale_weight(self) -> float:
        return self.metrics.total_sale_weight

    @property
    def profit(self) -> float:
        return self.metrics.profit

    @property
    def profit_percent(self) -> float:
        return self.metrics.profit_percent

    @property
    def weight_difference(self) -> float:
        return self.metrics.weight_difference

    @property
    def status(self):
        return self.metrics.status


class LotLink(Base):
    """Share of one bill allocated to a lot."""
    __tablename__ = "lot_links"
    __table_args__ = (UniqueConstraint("lot_id", "transaction_id", "kind", name="uq_lot_link"),)

    id = Column(Integer, primary_key=True, index=True)
    lot_id = Column(Integer, ForeignKey("lots.id", ondelete="CASCADE"), nullable=False)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False)
    kind = Column(Enum(TransactionKind), nullable=False)
    weight = Column(Float, nullable=False)
    rate = Column(Float, nullable=False)
    amount = Column(Float, nullable=False)

    lot = relationship("Lot", back_populates="links")
    transaction = relationship("Transaction", back_populates="lot_links")
