# dashboard.py
"""Roll purchases and sales of a period up into dashboard figures.

Transactions are read through their attributes only (``total_amount``,
``paid_amount``, ``bill_date``, ``material_type``, ``party_id``, ``party``,
``status``), so ORM rows and plain objects both work.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from gst import round2
from ledger import PaymentStatus

# Financial-year order
MONTHS = ["Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec", "Jan", "Feb", "Mar"]
TOP_PARTIES = 5


@dataclass
class MonthlyPoint:
    month: str
    purchases: float
    sales: float


@dataclass
class MaterialPoint:
    material: str
    purchases: float
    sales: float
    profit: float


@dataclass
class PartyTotal:
    party_id: int
    name: Optional[str]
    total: float


@dataclass
class DashboardSummary:
    total_purchases: float
    total_sales: float
    total_purchase_paid: float
    total_sale_paid: float
    total_payables: float
    total_receivables: float
    profit: float
    purchase_count: int
    sale_count: int
    monthly: List[MonthlyPoint] = field(default_factory=list)
    material_wise: List[MaterialPoint] = field(default_factory=list)
    top_parties: List[PartyTotal] = field(default_factory=list)
    purchase_status: Dict[str, int] = field(default_factory=dict)
    sale_status: Dict[str, int] = field(default_factory=dict)


def _total(txns) -> float:
    return round2(sum((t.total_amount for t in txns), 0.0))


def monthly_series(purchases, sales) -> List[MonthlyPoint]:
    """Twelve buckets Apr..Mar keyed on month of year only.

    Bills from different years that share a month land in the same bucket.
    """
    points = []
    for i, label in enumerate(MONTHS):
        month = (i + 3) % 12 + 1
        points.append(MonthlyPoint(
            month=label,
            purchases=_total(p for p in purchases if p.bill_date.month == month),
            sales=_total(s for s in sales if s.bill_date.month == month),
        ))
    return points


def material_wise(purchases, sales) -> List[MaterialPoint]:
    by_material: Dict[str, Dict[str, float]] = {}
    for s in sales:
        by_material.setdefault(s.material_type, {"sales": 0.0, "purchases": 0.0})["sales"] += s.total_amount
    for p in purchases:
        by_material.setdefault(p.material_type, {"sales": 0.0, "purchases": 0.0})["purchases"] += p.total_amount
    return [
        MaterialPoint(material=m, purchases=v["purchases"], sales=v["sales"], profit=v["sales"] - v["purchases"])
        for m, v in by_material.items()
    ]


def top_parties(transactions, limit: int = TOP_PARTIES) -> List[PartyTotal]:
    totals: Dict[int, PartyTotal] = {}
    for t in transactions:
        if t.party_id is None:
            continue
        entry = totals.get(t.party_id)
        if entry is None:
            name = t.party.name if t.party is not None else None
            entry = totals[t.party_id] = PartyTotal(party_id=t.party_id, name=name, total=0.0)
        entry.total += t.total_amount
    return sorted(totals.values(), key=lambda e: e.total, reverse=True)[:limit]


def status_counts(transactions) -> Dict[str, int]:
    counts = defaultdict(int, {s.value: 0 for s in PaymentStatus})
    for t in transactions:
        counts[PaymentStatus(t.status).value] += 1
    return dict(counts)


def summarize(purchases: Iterable, sales: Iterable) -> DashboardSummary:
    purchases, sales = list(purchases), list(sales)
    total_purchases = _total(purchases)
    total_sales = _total(sales)
    purchase_paid = round2(sum((p.paid_amount for p in purchases), 0.0))
    sale_paid = round2(sum((s.paid_amount for s in sales), 0.0))
    return DashboardSummary(
        total_purchases=total_purchases,
        total_sales=total_sales,
        total_purchase_paid=purchase_paid,
        total_sale_paid=sale_paid,
        total_payables=round2(total_purchases - purchase_paid),
        total_receivables=round2(total_sales - sale_paid),
        profit=round2(total_sales - total_purchases),
        purchase_count=len(purchases),
        sale_count=len(sales),
        monthly=monthly_series(purchases, sales),
        material_wise=material_wise(purchases, sales),
        top_parties=top_parties(purchases + sales),
        purchase_status=status_counts(purchases),
        sale_status=status_counts(sales),
    )
