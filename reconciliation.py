# reconciliation.py
"""Lot reconciliation: weight and money across purchase and sale allocations.

Links carry their own weight/rate/amount so a bill can be split between
lots. Nothing here is stored; every figure is derived from the link lists.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from gst import round2


class LotStatus(str, Enum):
    UNSOLD = "Unsold"
    PARTIAL = "Partial"
    FULLY_SOLD = "Fully Sold"


@dataclass(frozen=True)
class LotMetrics:
    total_purchase_cost: float
    total_purchase_weight: float
    total_sale_revenue: float
    total_sale_weight: float
    profit: float
    profit_percent: float
    weight_difference: float
    status: LotStatus


def lot_status(purchase_weight: float, sale_weight: float) -> LotStatus:
    if sale_weight == 0:
        return LotStatus.UNSOLD
    if sale_weight >= purchase_weight:
        return LotStatus.FULLY_SOLD
    return LotStatus.PARTIAL


def reconcile(purchase_links: Iterable, sale_links: Iterable) -> LotMetrics:
    purchase_links, sale_links = list(purchase_links), list(sale_links)
    cost = sum((l.amount for l in purchase_links), 0.0)
    bought = sum((l.weight for l in purchase_links), 0.0)
    revenue = sum((l.amount for l in sale_links), 0.0)
    sold = sum((l.weight for l in sale_links), 0.0)
    profit = revenue - cost
    return LotMetrics(
        total_purchase_cost=cost,
        total_purchase_weight=bought,
        total_sale_revenue=revenue,
        total_sale_weight=sold,
        profit=profit,
        profit_percent=round2(profit / cost * 100) if cost else 0.0,
        # positive means more was sold than bought
        weight_difference=sold - bought,
        status=lot_status(bought, sold),
    )
