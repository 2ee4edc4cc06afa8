"""
Reporting aggregator tests.

compute_report() is driven with an explicit clock and calendar so every
bucket boundary is deterministic.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gestion360.models import COLLECTION_CUSTOMERS, COLLECTION_PRODUCTS
from gestion360.services.reporting_service import (
    DAY_BLOCK_LABELS,
    MONTH_LABELS,
    WEEK_LABELS,
    ReportError,
    compute_report,
    dashboard_summary,
    parse_timeframe,
    Timeframe,
)

UTC = timezone.utc
NOW = datetime(2026, 10, 19, 15, 0)


def tx(kind, amount, date, description="Taza"):
    return {"type": kind, "description": description, "amount": amount, "date": date}


def sale(amount, date, description="Taza"):
    return tx("SALE", amount, date, description)


def expense(amount, date, description="Luz"):
    return tx("EXPENSE", amount, date, description)


def report(transactions, timeframe, **kwargs):
    kwargs.setdefault("now", NOW)
    kwargs.setdefault("tz", UTC)
    return compute_report(transactions, timeframe, **kwargs)


def bucket(result, name):
    return next(b for b in result["buckets"] if b["name"] == name)


# =============================================================================
# BUCKETS
# =============================================================================


class TestDayBuckets:
    def test_sale_at_14_lands_in_12_16(self):
        result = report([sale(100, "2026-10-19T14:00:00Z")], "day")

        assert bucket(result, "12-16")["sales"] == 100
        assert all(b["sales"] == 0 for b in result["buckets"] if b["name"] != "12-16")
        assert result["total_sales"] == 100

    def test_all_blocks_present_when_empty(self):
        result = report([], "day")

        assert [b["name"] for b in result["buckets"]] == DAY_BLOCK_LABELS
        assert result["total_sales"] == 0
        assert result["top_items"] == []

    def test_block_edges(self):
        result = report([
            sale(1, "2026-10-19T00:00:00Z"),
            sale(2, "2026-10-19T03:59:59Z"),
            sale(4, "2026-10-19T04:00:00Z"),
            sale(8, "2026-10-19T23:59:00Z"),
        ], "day")

        assert bucket(result, "00-04")["sales"] == 3
        assert bucket(result, "04-08")["sales"] == 4
        assert bucket(result, "20-24")["sales"] == 8

    def test_other_days_filtered_out(self):
        result = report([
            sale(100, "2026-10-18T14:00:00Z"),
            sale(100, "2025-10-19T14:00:00Z"),
        ], "day")

        assert result["total_sales"] == 0

    def test_local_calendar(self):
        # 02:00 UTC is still the previous evening three hours west
        tz = timezone(timedelta(hours=-3))
        result = report([
            sale(5, "2026-10-19T01:00:00Z"),
            sale(7, "2026-10-19T04:00:00Z"),
        ], "day", now=datetime(2026, 10, 19, 2, 0), tz=tz)

        assert bucket(result, "20-24")["sales"] == 5
        assert result["total_sales"] == 5


class TestMonthBuckets:
    def test_week_of_month(self):
        result = report([
            sale(1, "2026-10-01T10:00:00Z"),
            sale(2, "2026-10-07T10:00:00Z"),
            sale(4, "2026-10-08T10:00:00Z"),
            sale(8, "2026-10-29T10:00:00Z"),
            sale(16, "2026-10-31T10:00:00Z"),
            sale(32, "2026-09-30T10:00:00Z"),
        ], "month")

        assert [b["name"] for b in result["buckets"]] == WEEK_LABELS
        assert [b["sales"] for b in result["buckets"]] == [3, 4, 0, 0, 24]
        assert result["period_label"] == "Este mes"


class TestYearBuckets:
    def test_months(self):
        result = report([
            sale(10, "2026-01-15T10:00:00Z"),
            expense(3, "2026-01-20T10:00:00Z"),
            sale(20, "2026-12-01T10:00:00Z"),
            sale(99, "2025-12-01T10:00:00Z"),
        ], "year")

        assert [b["name"] for b in result["buckets"]] == MONTH_LABELS
        assert bucket(result, "Ene") == {"name": "Ene", "sales": 10, "expenses": 3}
        assert bucket(result, "Dic")["sales"] == 20
        assert result["period_label"] == "Este año"


# =============================================================================
# TOTALS, GROWTH, TOP ITEMS
# =============================================================================


class TestTotals:
    def test_totals_equal_bucket_sums(self):
        transactions = [
            sale(0.1, "2026-10-19T01:00:00Z"),
            sale(0.2, "2026-10-19T09:00:00Z"),
            sale(0.3, "2026-10-19T13:00:00Z"),
            expense(0.7, "2026-10-19T21:00:00Z"),
        ]
        for timeframe in Timeframe:
            result = report(transactions, timeframe)
            assert sum(b["sales"] for b in result["buckets"]) == result["total_sales"]
            assert sum(b["expenses"] for b in result["buckets"]) == result["total_expenses"]
            assert result["net_profit"] == result["total_sales"] - result["total_expenses"]

    def test_unreadable_dates_skipped(self):
        result = report([
            sale(100, "ayer"),
            sale(100, None),
            sale(50, "2026-10-19T10:00:00Z"),
        ], "day")

        assert result["total_sales"] == 50


class TestGrowth:
    def test_against_default_baseline(self):
        result = report([sale(150_000, "2026-10-19T10:00:00Z")], "day")

        assert result["growth_baseline"] == 100_000
        assert result["growth_percent"] == 50.0

    def test_custom_baseline(self):
        result = report([sale(500, "2026-10-19T10:00:00Z")], "day", growth_baseline=1000)

        assert result["growth_percent"] == -50.0

    def test_zero_baseline(self):
        result = report([sale(500, "2026-10-19T10:00:00Z")], "day", growth_baseline=0)

        assert result["growth_percent"] == 0

    def test_not_rounded(self):
        result = report([sale(1, "2026-10-19T10:00:00Z")], "day", growth_baseline=3)

        assert result["growth_percent"] == pytest.approx((1 - 3) / 3 * 100)
        assert result["growth_percent"] != -66.67


class TestTopItems:
    def test_top_five_by_revenue(self):
        transactions = [
            sale(amount, "2026-10-19T10:00:00Z", description=name)
            for name, amount in [("A", 10), ("B", 60), ("C", 30), ("D", 50), ("E", 20), ("F", 40)]
        ]
        transactions.append(sale(25, "2026-10-19T11:00:00Z", description="E"))
        transactions.append(expense(1000, "2026-10-19T11:00:00Z", description="Alquiler"))

        items = report(transactions, "day")["top_items"]

        assert [i["name"] for i in items] == ["B", "D", "E", "F", "C"]
        assert items[2] == {"name": "E", "count": 2, "total_revenue": 45}
        revenues = [i["total_revenue"] for i in items]
        assert revenues == sorted(revenues, reverse=True)

    def test_ties_keep_first_seen_order(self):
        items = report([
            sale(10, "2026-10-19T10:00:00Z", description="Vaso"),
            sale(10, "2026-10-19T10:00:00Z", description="Plato"),
        ], "day")["top_items"]

        assert [i["name"] for i in items] == ["Vaso", "Plato"]


class TestTimeframes:
    @pytest.mark.parametrize("value,expected", [
        ("day", Timeframe.DAY),
        ("Mes", Timeframe.MONTH),
        ("año", Timeframe.YEAR),
        (Timeframe.YEAR, Timeframe.YEAR),
    ])
    def test_parse(self, value, expected):
        assert parse_timeframe(value) is expected

    def test_unknown(self):
        with pytest.raises(ReportError):
            report([], "week")


# =============================================================================
# DASHBOARD
# =============================================================================


class TestDashboard:
    def test_summary(self, store, engine, product_p1, customer_c1):
        store.upsert_by_id(COLLECTION_PRODUCTS, "p2", {"name": "Vaso", "price": 100, "stock": 2})
        store.upsert_by_id(COLLECTION_CUSTOMERS, "c2", {"name": "Beto", "debt": 50})
        engine.record_transaction({"type": "SALE", "description": "Taza", "amount": 500, "customerId": customer_c1})

        summary = dashboard_summary(store)

        assert summary["loading"] is False
        assert summary["product_count"] == 2
        assert summary["customer_count"] == 2
        assert summary["transaction_count"] == 1
        assert summary["outstanding_debt"] == 550
        assert summary["low_stock"] == [{"id": "p2", "name": "Vaso", "stock": 2}]
        assert len(summary["recent_transactions"]) == 1
