from datetime import date
from types import SimpleNamespace

from dashboard import MONTHS, summarize, top_parties
from ledger import PaymentStatus


def bill(total, paid=0.0, when=date(2025, 5, 1), material="Copper", party_id=1, name="Ravi",
         status=PaymentStatus.PENDING):
    return SimpleNamespace(
        total_amount=total, paid_amount=paid, bill_date=when, material_type=material,
        party_id=party_id, party=SimpleNamespace(name=name), status=status,
    )


class TestSummary:

    def test_totals(self):
        purchases = [bill(1000, paid=400), bill(500, paid=500, status=PaymentStatus.PAID)]
        sales = [bill(2500, paid=1000, status=PaymentStatus.PARTIAL)]
        s = summarize(purchases, sales)
        assert s.total_purchases == 1500
        assert s.total_sales == 2500
        assert s.total_purchase_paid == 900
        assert s.total_sale_paid == 1000
        assert s.total_payables == 600
        assert s.total_receivables == 1500
        assert s.profit == 1000
        assert (s.purchase_count, s.sale_count) == (2, 1)

    def test_empty_period(self):
        s = summarize([], [])
        assert s.total_purchases == s.total_sales == s.profit == 0
        assert [p.month for p in s.monthly] == MONTHS
        assert s.material_wise == []
        assert s.top_parties == []
        assert s.purchase_status == {"Paid": 0, "Partial": 0, "Pending": 0, "Overdue": 0}


class TestMonthly:

    def test_buckets_run_april_to_march(self):
        s = summarize([bill(100, when=date(2025, 4, 2))], [bill(300, when=date(2026, 1, 20))])
        assert s.monthly[0].month == "Apr"
        assert s.monthly[0].purchases == 100
        assert s.monthly[9].month == "Jan"
        assert s.monthly[9].sales == 300

    def test_same_month_of_different_years_share_a_bucket(self):
        s = summarize([bill(100, when=date(2023, 4, 5)), bill(200, when=date(2025, 4, 5))], [])
        assert s.monthly[0].purchases == 300


class TestMaterialWise:

    def test_grouping_is_case_sensitive(self):
        s = summarize([bill(100, material="Copper"), bill(50, material="copper")], [bill(180, material="Copper")])
        by_name = {m.material: m for m in s.material_wise}
        assert set(by_name) == {"Copper", "copper"}
        assert by_name["Copper"].profit == 80
        assert by_name["copper"].sales == 0
        assert by_name["copper"].profit == -50


class TestPartiesAndStatus:

    def test_top_five_parties_across_both_kinds(self):
        txns = [bill(100 * i, party_id=i, name=f"P{i}") for i in range(1, 8)]
        txns.append(bill(1000, party_id=1, name="P1"))
        top = top_parties(txns)
        assert [p.party_id for p in top] == [1, 7, 6, 5, 4]
        assert top[0].total == 1100

    def test_status_counts_per_kind(self):
        purchases = [bill(1, status=PaymentStatus.OVERDUE), bill(1, status=PaymentStatus.OVERDUE),
                     bill(1, status=PaymentStatus.PAID)]
        sales = [bill(1, status=PaymentStatus.PARTIAL)]
        s = summarize(purchases, sales)
        assert s.purchase_status == {"Paid": 1, "Partial": 0, "Pending": 0, "Overdue": 2}
        assert s.sale_status == {"Paid": 0, "Partial": 1, "Pending": 0, "Overdue": 0}
