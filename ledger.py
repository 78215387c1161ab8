# ledger.py
"""Payment ledger: what has been paid against a bill and what is left."""
from dataclasses import dataclass
from datetime import date, datetime, time as dtime
from enum import Enum
from typing import Iterable, Optional

from gst import round2


class PaymentStatus(str, Enum):
    PAID = "Paid"
    PARTIAL = "Partial"
    PENDING = "Pending"
    OVERDUE = "Overdue"


@dataclass(frozen=True)
class LedgerSummary:
    paid_amount: float
    pending_amount: float
    payment_status: PaymentStatus
    is_overdue: bool

    @property
    def status(self) -> PaymentStatus:
        """Overdue wins over the raw payment status."""
        return PaymentStatus.OVERDUE if self.is_overdue else self.payment_status


def paid_amount(payments: Iterable) -> float:
    return sum((p.amount for p in payments), 0.0)


def payment_status(total_amount: float, paid: float) -> PaymentStatus:
    if paid >= total_amount:
        return PaymentStatus.PAID
    if paid > 0:
        return PaymentStatus.PARTIAL
    return PaymentStatus.PENDING


def is_overdue(due_date: Optional[date], pending: float, now: Optional[datetime] = None) -> bool:
    if due_date is None:
        return False
    now = now or datetime.now()
    return datetime.combine(due_date, dtime.min) < now and pending > 0


def summarize(total_amount: float, payments: Iterable, due_date: Optional[date] = None,
              now: Optional[datetime] = None) -> LedgerSummary:
    # compare in paise so float noise never leaves a settled bill open
    total = round2(total_amount)
    paid = round2(paid_amount(payments))
    pending = round2(total - paid)
    return LedgerSummary(
        paid_amount=paid,
        pending_amount=pending,
        payment_status=payment_status(total, paid),
        is_overdue=is_overdue(due_date, pending, now),
    )


@dataclass(frozen=True)
class PartyBalance:
    total_purchase: float
    total_sale: float
    pending_payable: float
    pending_receivable: float


def party_balance(purchases: Iterable, sales: Iterable) -> PartyBalance:
    """Totals owed to (payable) and by (receivable) one party."""
    purchases, sales = list(purchases), list(sales)
    total_purchase = round2(sum((p.total_amount for p in purchases), 0.0))
    total_sale = round2(sum((s.total_amount for s in sales), 0.0))
    return PartyBalance(
        total_purchase=total_purchase,
        total_sale=total_sale,
        pending_payable=round2(total_purchase - sum((p.paid_amount for p in purchases), 0.0)),
        pending_receivable=round2(total_sale - sum((s.paid_amount for s in sales), 0.0)),
    )
