from types import SimpleNamespace

import pytest

from reconciliation import LotStatus, lot_status, reconcile


def link(weight, amount):
    return SimpleNamespace(weight=weight, amount=amount)


class TestLotStatus:

    @pytest.mark.parametrize("sold,expected", [
        (0, LotStatus.UNSOLD),
        (60, LotStatus.PARTIAL),
        (100, LotStatus.FULLY_SOLD),
        (120, LotStatus.FULLY_SOLD),
    ])
    def test_status_by_weight_sold(self, sold, expected):
        assert lot_status(100, sold) is expected


class TestReconcile:

    def test_totals_and_profit(self):
        m = reconcile([link(60, 3000), link(40, 2000)], [link(90, 5400)])
        assert m.total_purchase_weight == 100
        assert m.total_purchase_cost == 5000
        assert m.total_sale_weight == 90
        assert m.total_sale_revenue == 5400
        assert m.profit == 400
        assert m.profit_percent == 8.0
        assert m.weight_difference == -10
        assert m.status is LotStatus.PARTIAL

    def test_overselling_is_not_clamped(self):
        m = reconcile([link(100, 1000)], [link(120, 1500)])
        assert m.status is LotStatus.FULLY_SOLD
        assert m.weight_difference == 20

    def test_profit_percent_rounded(self):
        assert reconcile([link(1, 300)], [link(1, 400)]).profit_percent == 33.33

    def test_no_purchase_cost_gives_zero_percent(self):
        m = reconcile([], [link(10, 999)])
        assert m.profit == 999
        assert m.profit_percent == 0

    def test_empty_lot(self):
        m = reconcile([], [])
        assert m.status is LotStatus.UNSOLD
        assert m.profit == 0
