from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional, assert_never

from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.config import get_settings
from inventory_insights.core.cache import TTLCache
from inventory_insights.core.constants import VARIANCE_EPSILON, TxnType, VarianceReason
from inventory_insights.core.dates import iso_week_label, normalize_date, start_of_day
from inventory_insights.database.session import SessionLocal
from inventory_insights.schemas.trends import (
    TopVarianceItem,
    VarianceBreakdown,
    VarianceByReason,
    VarianceSummary,
    VarianceTrendPoint,
)
from inventory_insights.services.ledger_reader import (
    fetch_approved_counts,
    fetch_branch_names,
    fetch_transactions,
)

logger = logging.getLogger(__name__)
settings = get_settings()

trends_cache = TTLCache(settings.TRENDS_CACHE_SECONDS)

GRANULARITIES = ("daily", "weekly")
SORT_KEYS = ("quantity", "value")

BREAKDOWN_TXN_TYPES = (
    TxnType.SALE_DEDUCTION,
    TxnType.WASTE,
    TxnType.REFUND,
    TxnType.ADJUSTMENT_IN,
    TxnType.ADJUSTMENT_OUT,
    TxnType.STOCK_COUNT_ADJUSTMENT,
)


def variance_reason(txn_type) -> Optional[VarianceReason]:
    kind = TxnType(txn_type)
    match kind:
        case TxnType.SALE_DEDUCTION:
            return VarianceReason.USAGE
        case TxnType.WASTE:
            return VarianceReason.WASTE
        case TxnType.REFUND:
            return VarianceReason.REFUND
        case TxnType.ADJUSTMENT_IN | TxnType.ADJUSTMENT_OUT | TxnType.STOCK_COUNT_ADJUSTMENT:
            return VarianceReason.ADJUSTMENT
        case TxnType.PURCHASE | TxnType.TRANSFER_IN | TxnType.TRANSFER_OUT:
            return None
        case _:
            assert_never(kind)


def period_label(value, granularity: str) -> str:
    if granularity == "weekly":
        return iso_week_label(value)
    return normalize_date(value).isoformat()


def _window(days: int, today: Optional[date]):
    today = today or date.today()
    return start_of_day(today - timedelta(days=days)), start_of_day(today + timedelta(days=1))


def _cached(kind, session_factory, key_args, compute, default):
    try:
        return trends_cache.get_or_compute((kind, session_factory) + key_args, compute)
    except SQLAlchemyError:
        logger.exception("Variance %s query failed for %s", kind, key_args)
        return default()


def bucket_variance_trends(counts, granularity: str = "daily") -> list[VarianceTrendPoint]:
    buckets: dict[tuple[str, int], VarianceTrendPoint] = {}
    for count in counts:
        key = (period_label(count.approved_at, granularity), count.branch_id)
        point = buckets.get(key)
        if point is None:
            point = buckets[key] = VarianceTrendPoint(
                period=key[0],
                branch_id=count.branch_id,
                branch_name=count.branch_name,
            )
        point.count_approved += 1
        for line in count.lines:
            if line.variance > 0:
                point.positive_variance += line.variance
            elif line.variance < 0:
                point.negative_variance += abs(line.variance)
            point.net_variance += line.variance
    return [buckets[key] for key in sorted(buckets)]


def rank_top_variance_items(counts, limit: int = 10, sort_by: str = "value") -> list[TopVarianceItem]:
    items: dict[int, TopVarianceItem] = {}
    for count in counts:
        for line in count.lines:
            qty = abs(line.variance)
            if qty < VARIANCE_EPSILON:
                continue
            entry = items.get(line.item_id)
            if entry is None:
                entry = items[line.item_id] = TopVarianceItem(
                    item_id=line.item_id,
                    item_name=line.item_name,
                    branch_id=count.branch_id,
                    branch_name=count.branch_name,
                    unit_name=line.unit_name,
                )
            entry.total_variance_qty += qty
            entry.total_variance_value += qty * line.avg_cost
            entry.variance_count += 1

    if sort_by == "quantity":
        ranked = sorted(items.values(), key=lambda entry: (-entry.total_variance_qty, entry.item_id))
    else:
        ranked = sorted(items.values(), key=lambda entry: (-entry.total_variance_value, entry.item_id))
    return ranked[:limit]


def break_down_by_reason(transactions, branch_names=None) -> list[VarianceBreakdown]:
    branch_names = branch_names or {}
    per_branch: dict[int, dict[VarianceReason, VarianceByReason]] = {}
    for txn in transactions:
        reason = variance_reason(txn.txn_type)
        if reason is None:
            continue
        reasons = per_branch.setdefault(txn.branch_id, {})
        bucket = reasons.get(reason)
        if bucket is None:
            bucket = reasons[reason] = VarianceByReason(reason=reason)
        bucket.total_qty += abs(float(txn.qty_in_base or 0.0))
        bucket.total_value += abs(float(txn.total_cost or 0.0))
        bucket.transaction_count += 1

    return [
        VarianceBreakdown(
            branch_id=branch_id,
            branch_name=branch_names.get(branch_id, ""),
            breakdown=[per_branch[branch_id][reason] for reason in VarianceReason if reason in per_branch[branch_id]],
        )
        for branch_id in sorted(per_branch)
    ]


def summarize_counts(counts) -> VarianceSummary:
    summary = VarianceSummary(stock_counts_approved=len(counts))
    items = set()
    for count in counts:
        for line in count.lines:
            if abs(line.variance) < VARIANCE_EPSILON:
                continue
            items.add(line.item_id)
            if line.variance > 0:
                summary.total_positive_variance += line.variance
            else:
                summary.total_negative_variance += abs(line.variance)
            summary.net_variance += line.variance
            summary.total_variance_value += abs(line.variance) * line.avg_cost
    summary.items_with_variance = len(items)
    return summary


def _approved_counts(session_factory, restaurant_id, days, branch_id, today):
    since, until = _window(days, today)
    with session_factory() as db:
        return fetch_approved_counts(db, restaurant_id, since, branch_id=branch_id, until=until)


def get_variance_trends(
    restaurant_id: int,
    granularity: str = "daily",
    days: int = 30,
    branch_id: Optional[int] = None,
    *,
    today: Optional[date] = None,
    session_factory=SessionLocal,
) -> list[VarianceTrendPoint]:
    if granularity not in GRANULARITIES:
        raise ValueError("granularity must be one of {}".format(", ".join(GRANULARITIES)))
    if not restaurant_id:
        return []
    return _cached(
        "trends",
        session_factory,
        (restaurant_id, granularity, days, branch_id, today),
        lambda: bucket_variance_trends(
            _approved_counts(session_factory, restaurant_id, days, branch_id, today),
            granularity,
        ),
        list,
    )


def get_top_variance_items(
    restaurant_id: int,
    days: int = 30,
    limit: int = 10,
    sort_by: str = "value",
    branch_id: Optional[int] = None,
    *,
    today: Optional[date] = None,
    session_factory=SessionLocal,
) -> list[TopVarianceItem]:
    if sort_by not in SORT_KEYS:
        raise ValueError("sort_by must be one of {}".format(", ".join(SORT_KEYS)))
    if not restaurant_id:
        return []
    return _cached(
        "top-items",
        session_factory,
        (restaurant_id, days, limit, sort_by, branch_id, today),
        lambda: rank_top_variance_items(
            _approved_counts(session_factory, restaurant_id, days, branch_id, today),
            limit,
            sort_by,
        ),
        list,
    )


def get_variance_breakdown(
    restaurant_id: int,
    days: int = 30,
    branch_id: Optional[int] = None,
    *,
    today: Optional[date] = None,
    session_factory=SessionLocal,
) -> list[VarianceBreakdown]:
    if not restaurant_id:
        return []

    def _compute():
        window_start, window_end = _window(days, today)
        with session_factory() as db:
            transactions = fetch_transactions(
                db,
                restaurant_id,
                window_start,
                window_end,
                BREAKDOWN_TXN_TYPES,
                branch_id=branch_id,
            )
            branch_names = dict(fetch_branch_names(db, restaurant_id))
        return break_down_by_reason(transactions, branch_names)

    return _cached("breakdown", session_factory, (restaurant_id, days, branch_id, today), _compute, list)


def get_variance_summary(
    restaurant_id: int,
    days: int = 30,
    branch_id: Optional[int] = None,
    *,
    today: Optional[date] = None,
    session_factory=SessionLocal,
) -> VarianceSummary:
    if not restaurant_id:
        return VarianceSummary()
    return _cached(
        "summary",
        session_factory,
        (restaurant_id, days, branch_id, today),
        lambda: summarize_counts(_approved_counts(session_factory, restaurant_id, days, branch_id, today)),
        VarianceSummary,
    )


__all__ = [
    "break_down_by_reason",
    "bucket_variance_trends",
    "get_top_variance_items",
    "get_variance_breakdown",
    "get_variance_summary",
    "get_variance_trends",
    "period_label",
    "rank_top_variance_items",
    "summarize_counts",
    "trends_cache",
    "variance_reason",
]
