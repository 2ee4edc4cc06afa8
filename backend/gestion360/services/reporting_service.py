# Overview: Report rollups over the mirrored transaction list.

"""
Reporting Aggregator

compute_report() is a pure function of (transactions, timeframe, clock):
- transactions outside the current day / month / year (local calendar) are dropped
- the rest are partitioned into a fixed set of buckets, every bucket always present
    Day   -> six 4-hour blocks "00-04" .. "20-24" (hour of day)
    Month -> "Sem 1" .. "Sem 5" (ceil(day of month / 7))
    Year  -> "Ene" .. "Dic" (month)
- totals are sums over the filtered set and equal the bucket sums
- top items group SALE descriptions (not product ids) and rank by revenue

Growth is measured against a fixed baseline figure, not against the
previous period. The baseline is a parameter (REPORT_GROWTH_BASELINE).
"""
from __future__ import annotations

import enum
import math
from datetime import datetime, tzinfo
from typing import Iterable

from ..models import TransactionType
from gestion360.time_utils import parse_iso_datetime, to_local, utcnow
from .replicated_store import ReplicatedStore


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


class Timeframe(str, enum.Enum):
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


DAY_BLOCK_LABELS = ["00-04", "04-08", "08-12", "12-16", "16-20", "20-24"]
WEEK_LABELS = ["Sem 1", "Sem 2", "Sem 3", "Sem 4", "Sem 5"]
MONTH_LABELS = ["Ene", "Feb", "Mar", "Abr", "May", "Jun", "Jul", "Ago", "Sep", "Oct", "Nov", "Dic"]

BUCKET_LABELS = {
    Timeframe.DAY: DAY_BLOCK_LABELS,
    Timeframe.MONTH: WEEK_LABELS,
    Timeframe.YEAR: MONTH_LABELS,
}

PERIOD_LABELS = {
    Timeframe.DAY: "Hoy",
    Timeframe.MONTH: "Este mes",
    Timeframe.YEAR: "Este año",
}

# Labels the screens send besides the enum values
TIMEFRAME_ALIASES = {
    "día": Timeframe.DAY,
    "dia": Timeframe.DAY,
    "mes": Timeframe.MONTH,
    "año": Timeframe.YEAR,
    "ano": Timeframe.YEAR,
}

DEFAULT_GROWTH_BASELINE = 100_000.0
TOP_ITEMS_LIMIT = 5
LOW_STOCK_THRESHOLD = 5


def parse_timeframe(value: str | Timeframe) -> Timeframe:
    if isinstance(value, Timeframe):
        return value
    key = (value or "").strip().lower()
    try:
        return Timeframe(key)
    except ValueError:
        pass
    if key in TIMEFRAME_ALIASES:
        return TIMEFRAME_ALIASES[key]
    raise ReportError("timeframe must be day, month, or year")


def _local_moment(value, tz: tzinfo | None) -> datetime | None:
    """Transaction date on the report calendar; None if it cannot be read."""
    if isinstance(value, datetime):
        return to_local(value, tz)
    if not isinstance(value, str):
        return None
    try:
        dt = parse_iso_datetime(value)
    except ValueError:
        return None
    return to_local(dt, tz) if dt is not None else None


def _in_period(moment: datetime, now: datetime, timeframe: Timeframe) -> bool:
    if moment.year != now.year:
        return False
    if timeframe == Timeframe.YEAR:
        return True
    if moment.month != now.month:
        return False
    if timeframe == Timeframe.MONTH:
        return True
    return moment.day == now.day


def _bucket_index(moment: datetime, timeframe: Timeframe) -> int:
    if timeframe == Timeframe.DAY:
        return moment.hour // 4
    if timeframe == Timeframe.MONTH:
        return math.ceil(moment.day / 7) - 1
    return moment.month - 1


def _amount(document: dict) -> float:
    return float(document.get("amount") or 0)


def top_items(transactions: Iterable[dict], limit: int = TOP_ITEMS_LIMIT) -> list[dict]:
    """
    Rank SALE descriptions by revenue.

    Ties keep first-encountered order (sorted() is stable).
    """
    totals: dict[str, dict] = {}
    for t in transactions:
        if t.get("type") != TransactionType.SALE.value:
            continue
        name = t.get("description") or ""
        entry = totals.setdefault(name, {"name": name, "count": 0, "total_revenue": 0.0})
        entry["count"] += 1
        entry["total_revenue"] += _amount(t)

    ranked = sorted(totals.values(), key=lambda e: e["total_revenue"], reverse=True)
    return ranked[:limit]


def compute_report(
    transactions: Iterable[dict],
    timeframe: str | Timeframe,
    *,
    now: datetime | None = None,
    tz: tzinfo | None = None,
    growth_baseline: float = DEFAULT_GROWTH_BASELINE,
) -> dict:
    """
    Bucketed sales/expense rollup for the current day, month or year.

    Args:
        transactions: wire documents (type, description, amount, date)
        timeframe: day | month | year
        now: clock override; naive values are UTC. Defaults to the current time.
        tz: report calendar; None means the process local zone
        growth_baseline: reference sales figure growth is measured against
    """
    timeframe = parse_timeframe(timeframe)
    now_local = to_local(now or utcnow(), tz)

    labels = BUCKET_LABELS[timeframe]
    buckets = [{"name": label, "sales": 0.0, "expenses": 0.0} for label in labels]

    filtered = []
    for t in transactions:
        moment = _local_moment(t.get("date"), tz)
        if moment is None or not _in_period(moment, now_local, timeframe):
            continue
        filtered.append(t)

        bucket = buckets[_bucket_index(moment, timeframe)]
        if t.get("type") == TransactionType.SALE.value:
            bucket["sales"] += _amount(t)
        elif t.get("type") == TransactionType.EXPENSE.value:
            bucket["expenses"] += _amount(t)

    # Totals are taken from the buckets so the partition always adds up exactly
    total_sales = sum(b["sales"] for b in buckets)
    total_expenses = sum(b["expenses"] for b in buckets)

    if growth_baseline > 0:
        growth = (total_sales - growth_baseline) / growth_baseline * 100.0
    else:
        growth = 0.0

    return {
        "timeframe": timeframe.value,
        "period_label": PERIOD_LABELS[timeframe],
        "buckets": buckets,
        "total_sales": total_sales,
        "total_expenses": total_expenses,
        "net_profit": total_sales - total_expenses,
        "growth_percent": growth,
        "growth_baseline": growth_baseline,
        "top_items": top_items(filtered),
    }


def dashboard_summary(store: ReplicatedStore, *, low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> dict:
    """Headline numbers for the dashboard: catalog size, money owed, stock alerts."""
    products = store.products
    customers = store.customers
    transactions = store.transactions

    return {
        "loading": store.loading,
        "product_count": len(products),
        "customer_count": len(customers),
        "transaction_count": len(transactions),
        "outstanding_debt": sum(float(c.get("debt") or 0) for c in customers),
        "low_stock": [
            {"id": p["id"], "name": p["name"], "stock": p["stock"]}
            for p in products
            if p.get("stock", 0) <= low_stock_threshold
        ],
        "recent_transactions": transactions[:5],
    }
