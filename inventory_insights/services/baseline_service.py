from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Optional

from inventory_insights.config import get_settings
from inventory_insights.core.constants import (
    DEFAULT_SHIFT_HOURS,
    MANUAL_ADJUSTMENT_TYPES,
    SHIFT_HOURS_CAP,
    OrderStatus,
    ShiftStatus,
)
from inventory_insights.core.dates import normalize_date, start_of_day, to_local_naive, whole_hours_between
from inventory_insights.database.session import SessionLocal
from inventory_insights.schemas.insights import BaselineData, TodayActivity
from inventory_insights.services.ledger_reader import (
    fetch_open_shifts,
    fetch_orders,
    fetch_refunds,
    fetch_shifts_opened,
    fetch_transactions,
)

logger = logging.getLogger(__name__)
settings = get_settings()


def _paid(orders):
    return [order for order in orders if order.status == OrderStatus.PAID.value]


def repeatedly_adjusted_items(adjustments) -> int:
    """Number of items with two or more manual adjustments in the given rows."""
    per_item: dict[int, int] = {}
    for txn in adjustments:
        per_item[txn.item_id] = per_item.get(txn.item_id, 0) + 1
    return sum(1 for count in per_item.values() if count >= 2)


def summarize_baseline(orders, refunds, shifts, adjustments) -> BaselineData:
    paid_orders = _paid(orders)
    orders_per_day: dict[date, int] = {}
    for order in paid_orders:
        day = normalize_date(order.created_at)
        orders_per_day[day] = orders_per_day.get(day, 0) + 1

    active_days = len(orders_per_day)
    if active_days == 0:
        return BaselineData(avg_shift_duration_hours=DEFAULT_SHIFT_HOURS, active_days_count=0)

    total_revenue = sum(float(order.total or 0.0) for order in paid_orders)
    total_discounts = sum(float(order.discount_value or 0.0) for order in paid_orders)

    adjustments_by_day: dict[date, list] = {}
    for txn in adjustments:
        adjustments_by_day.setdefault(normalize_date(txn.created_at), []).append(txn)
    repeated_adjustments = sum(repeatedly_adjusted_items(rows) for rows in adjustments_by_day.values())

    closed_hours = [
        min(float(whole_hours_between(shift.opened_at, shift.closed_at)), SHIFT_HOURS_CAP)
        for shift in shifts
        if shift.status == ShiftStatus.CLOSED.value and shift.closed_at is not None
    ]

    return BaselineData(
        avg_cancellations_after_payment=len(refunds) / active_days,
        avg_discount_rate=total_discounts / total_revenue * 100 if total_revenue > 0 else 0.0,
        avg_inventory_adjustments=repeated_adjustments / active_days,
        avg_shift_duration_hours=sum(closed_hours) / len(closed_hours) if closed_hours else DEFAULT_SHIFT_HOURS,
        avg_orders_per_day=len(paid_orders) / active_days,
        active_days_count=active_days,
    )


def calculate_baseline(
    restaurant_id: int,
    today: Optional[date] = None,
    *,
    days: Optional[int] = None,
    session_factory=SessionLocal,
) -> BaselineData:
    """Per-day averages over the ``days`` full days before ``today``."""
    today = today or date.today()
    days = days or settings.BASELINE_DAYS
    window_start = start_of_day(today - timedelta(days=days))
    window_end = start_of_day(today)

    with session_factory() as db:
        orders = fetch_orders(db, restaurant_id, window_start, window_end)
        refunds = fetch_refunds(db, restaurant_id, window_start, window_end)
        shifts = fetch_shifts_opened(db, restaurant_id, window_start, window_end)
        adjustments = fetch_transactions(db, restaurant_id, window_start, window_end, MANUAL_ADJUSTMENT_TYPES)

    baseline = summarize_baseline(orders, refunds, shifts, adjustments)
    logger.debug(
        "Baseline for restaurant %s over %s days: %s active days",
        restaurant_id,
        days,
        baseline.active_days_count,
    )
    return baseline


def get_today_activity(
    restaurant_id: int,
    now: Optional[datetime] = None,
    *,
    session_factory=SessionLocal,
) -> TodayActivity:
    now = to_local_naive(now or datetime.now())
    window_start = start_of_day(now.date())
    window_end = start_of_day(now.date() + timedelta(days=1))

    with session_factory() as db:
        orders = fetch_orders(db, restaurant_id, window_start, window_end)
        refunds = fetch_refunds(db, restaurant_id, window_start, window_end)
        adjustments = fetch_transactions(db, restaurant_id, window_start, window_end, MANUAL_ADJUSTMENT_TYPES)
        open_shifts = fetch_open_shifts(db, restaurant_id)

    paid_orders = _paid(orders)
    return TodayActivity(
        cancellations_after_payment=len(refunds),
        total_orders=len(paid_orders),
        total_revenue=sum(float(order.total or 0.0) for order in paid_orders),
        total_discounts=sum(float(order.discount_value or 0.0) for order in paid_orders),
        discounted_orders=sum(1 for order in paid_orders if float(order.discount_value or 0.0) > 0),
        repeated_inventory_adjustments=repeatedly_adjusted_items(adjustments),
        max_shift_hours=max((whole_hours_between(shift.opened_at, now) for shift in open_shifts), default=0),
        has_open_shift=bool(open_shifts),
    )


__all__ = [
    "calculate_baseline",
    "get_today_activity",
    "repeatedly_adjusted_items",
    "summarize_baseline",
]
