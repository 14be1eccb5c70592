"""Raw reads against the POS store.

Every function here is a plain query: no business rules. A store failure is
logged and the read degrades to an empty result so one failing source never
blocks the computations that do not depend on it.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.core.constants import OrderStatus, ShiftStatus, StockCountStatus
from inventory_insights.models.inventory import InventoryItem, InventoryUnit
from inventory_insights.models.order import Order, OrderItem, Refund
from inventory_insights.models.recipe import MenuItem, Recipe, RecipeLine
from inventory_insights.models.restaurant import Branch
from inventory_insights.models.shift import Shift
from inventory_insights.models.stock_count import StockCount, StockCountLine
from inventory_insights.models.transaction import InventoryTransaction
from inventory_insights.models.variance_tag import VarianceTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CountLine:
    item_id: int
    item_name: str
    unit_name: str
    variance: float
    avg_cost: float


@dataclass(frozen=True)
class CountSnapshot:
    id: int
    branch_id: int
    branch_name: str
    approved_at: datetime
    lines: tuple[CountLine, ...] = ()


def _degrade_to(default_factory):
    def decorator(func):
        @functools.wraps(func)
        def wrapper(db, *args, **kwargs):
            try:
                return func(db, *args, **kwargs)
            except SQLAlchemyError:
                logger.exception("Ledger read failed in %s", func.__name__)
                db.rollback()
                return default_factory()

        return wrapper

    return decorator


def _values(enums: Iterable) -> list[str]:
    return [getattr(value, "value", value) for value in enums]


@_degrade_to(list)
def fetch_sold_lines(
    db,
    restaurant_id: int,
    window_start: Optional[datetime],
    window_end: Optional[datetime],
    branch_id: Optional[int] = None,
):
    """(menu_item_id, quantity) for non-voided lines of paid orders in the window.

    A missing bound leaves that side of the window open.
    """
    stmt = (
        select(OrderItem.menu_item_id, OrderItem.quantity)
        .join(Order, Order.id == OrderItem.order_id)
        .where(
            Order.restaurant_id == restaurant_id,
            Order.status == OrderStatus.PAID.value,
            OrderItem.voided.is_(False),
            OrderItem.menu_item_id.is_not(None),
        )
    )
    if window_start is not None:
        stmt = stmt.where(Order.created_at >= window_start)
    if window_end is not None:
        stmt = stmt.where(Order.created_at < window_end)
    if branch_id is not None:
        stmt = stmt.where(Order.branch_id == branch_id)
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_active_recipes(db, restaurant_id: int, branch_id: Optional[int], menu_item_ids):
    menu_item_ids = list(menu_item_ids)
    if not menu_item_ids:
        return []
    stmt = select(Recipe.id, Recipe.menu_item_id, Recipe.branch_id).where(
        Recipe.restaurant_id == restaurant_id,
        Recipe.is_active.is_(True),
        Recipe.menu_item_id.in_(menu_item_ids),
    )
    if branch_id is not None:
        stmt = stmt.where(or_(Recipe.branch_id == branch_id, Recipe.branch_id.is_(None)))
    return db.execute(stmt.order_by(Recipe.id)).all()


@_degrade_to(list)
def fetch_recipe_lines(db, recipe_ids):
    recipe_ids = list(recipe_ids)
    if not recipe_ids:
        return []
    stmt = (
        select(
            RecipeLine.recipe_id,
            RecipeLine.inventory_item_id,
            RecipeLine.unit_id,
            RecipeLine.qty_in_base,
            InventoryItem.base_unit_id,
        )
        .join(InventoryItem, InventoryItem.id == RecipeLine.inventory_item_id)
        .where(RecipeLine.recipe_id.in_(recipe_ids))
        .order_by(RecipeLine.recipe_id, RecipeLine.position, RecipeLine.id)
    )
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_transactions(
    db,
    restaurant_id: int,
    window_start: datetime,
    window_end: datetime,
    txn_types,
    branch_id: Optional[int] = None,
):
    stmt = select(
        InventoryTransaction.id,
        InventoryTransaction.item_id,
        InventoryTransaction.branch_id,
        InventoryTransaction.txn_type,
        InventoryTransaction.qty_in_base,
        InventoryTransaction.total_cost,
        InventoryTransaction.created_at,
    ).where(
        InventoryTransaction.restaurant_id == restaurant_id,
        InventoryTransaction.txn_type.in_(_values(txn_types)),
        InventoryTransaction.created_at >= window_start,
        InventoryTransaction.created_at < window_end,
    )
    if branch_id is not None:
        stmt = stmt.where(InventoryTransaction.branch_id == branch_id)
    return db.execute(stmt.order_by(InventoryTransaction.created_at, InventoryTransaction.id)).all()


@_degrade_to(list)
def fetch_inventory_items(db, item_ids):
    item_ids = list(item_ids)
    if not item_ids:
        return []
    stmt = (
        select(
            InventoryItem.id,
            InventoryItem.name,
            InventoryItem.branch_id,
            InventoryItem.avg_cost,
            InventoryItem.base_unit_id,
            InventoryUnit.name.label("unit_name"),
            Branch.name.label("branch_name"),
        )
        .outerjoin(InventoryUnit, InventoryUnit.id == InventoryItem.base_unit_id)
        .outerjoin(Branch, Branch.id == InventoryItem.branch_id)
        .where(InventoryItem.id.in_(item_ids))
        .order_by(InventoryItem.id)
    )
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_variance_tags(db, restaurant_id: int, branch_id: int, period_start, period_end):
    stmt = select(VarianceTag).where(
        VarianceTag.restaurant_id == restaurant_id,
        VarianceTag.branch_id == branch_id,
        VarianceTag.period_start == period_start,
        VarianceTag.period_end == period_end,
    )
    return list(db.execute(stmt).scalars())


@_degrade_to(list)
def fetch_branch_names(db, restaurant_id: int):
    stmt = select(Branch.id, Branch.name).where(Branch.restaurant_id == restaurant_id)
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_approved_counts(
    db,
    restaurant_id: int,
    since: datetime,
    branch_id: Optional[int] = None,
    until: Optional[datetime] = None,
) -> list[CountSnapshot]:
    """Approved stock counts (oldest first) with their lines."""
    count_stmt = (
        select(
            StockCount.id,
            StockCount.branch_id,
            StockCount.approved_at,
            Branch.name.label("branch_name"),
        )
        .outerjoin(Branch, Branch.id == StockCount.branch_id)
        .where(
            StockCount.restaurant_id == restaurant_id,
            StockCount.status == StockCountStatus.APPROVED.value,
            StockCount.approved_at.is_not(None),
            StockCount.approved_at >= since,
        )
        .order_by(StockCount.approved_at, StockCount.id)
    )
    if branch_id is not None:
        count_stmt = count_stmt.where(StockCount.branch_id == branch_id)
    if until is not None:
        count_stmt = count_stmt.where(StockCount.approved_at < until)
    counts = db.execute(count_stmt).all()
    if not counts:
        return []

    line_stmt = (
        select(
            StockCountLine.stock_count_id,
            StockCountLine.item_id,
            StockCountLine.expected_base,
            StockCountLine.actual_base,
            InventoryItem.name.label("item_name"),
            InventoryItem.avg_cost,
            InventoryUnit.name.label("unit_name"),
        )
        .join(InventoryItem, InventoryItem.id == StockCountLine.item_id)
        .outerjoin(InventoryUnit, InventoryUnit.id == InventoryItem.base_unit_id)
        .where(StockCountLine.stock_count_id.in_([row.id for row in counts]))
        .order_by(StockCountLine.stock_count_id, StockCountLine.id)
    )
    lines_by_count: dict[int, list[CountLine]] = {}
    for row in db.execute(line_stmt):
        lines_by_count.setdefault(row.stock_count_id, []).append(
            CountLine(
                item_id=row.item_id,
                item_name=row.item_name,
                unit_name=row.unit_name or "",
                variance=(row.actual_base or 0.0) - (row.expected_base or 0.0),
                avg_cost=row.avg_cost or 0.0,
            )
        )

    return [
        CountSnapshot(
            id=row.id,
            branch_id=row.branch_id,
            branch_name=row.branch_name or "",
            approved_at=row.approved_at,
            lines=tuple(lines_by_count.get(row.id, ())),
        )
        for row in counts
    ]


@_degrade_to(list)
def fetch_orders(db, restaurant_id: int, window_start: datetime, window_end: datetime):
    stmt = select(
        Order.id,
        Order.status,
        Order.total,
        Order.discount_value,
        Order.created_at,
    ).where(
        Order.restaurant_id == restaurant_id,
        Order.created_at >= window_start,
        Order.created_at < window_end,
    )
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_refunds(db, restaurant_id: int, window_start: datetime, window_end: datetime):
    stmt = select(Refund.id, Refund.created_at).where(
        Refund.restaurant_id == restaurant_id,
        Refund.created_at >= window_start,
        Refund.created_at < window_end,
    )
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_shifts_opened(db, restaurant_id: int, window_start: datetime, window_end: datetime):
    stmt = select(Shift.opened_at, Shift.closed_at, Shift.status).where(
        Shift.restaurant_id == restaurant_id,
        Shift.opened_at >= window_start,
        Shift.opened_at < window_end,
    )
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_open_shifts(db, restaurant_id: int):
    stmt = select(Shift.id, Shift.opened_at).where(
        Shift.restaurant_id == restaurant_id,
        Shift.status == ShiftStatus.OPEN.value,
    )
    return db.execute(stmt).all()


@_degrade_to(list)
def fetch_menu_items(db, menu_item_ids):
    menu_item_ids = list(menu_item_ids)
    if not menu_item_ids:
        return []
    stmt = select(MenuItem.id, MenuItem.name).where(MenuItem.id.in_(menu_item_ids))
    return db.execute(stmt).all()


__all__ = [
    "CountLine",
    "CountSnapshot",
    "fetch_active_recipes",
    "fetch_approved_counts",
    "fetch_branch_names",
    "fetch_inventory_items",
    "fetch_menu_items",
    "fetch_open_shifts",
    "fetch_orders",
    "fetch_recipe_lines",
    "fetch_refunds",
    "fetch_shifts_opened",
    "fetch_sold_lines",
    "fetch_transactions",
    "fetch_variance_tags",
]
