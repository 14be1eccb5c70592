from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Optional, assert_never

from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.config import get_settings
from inventory_insights.core.cache import TTLCache
from inventory_insights.core.concurrency import run_concurrently
from inventory_insights.core.constants import CONSUMPTION_TXN_TYPES, VARIANCE_EPSILON, TxnType
from inventory_insights.core.dates import day_window, start_of_day
from inventory_insights.core.units import shares_base_unit
from inventory_insights.database.session import SessionLocal
from inventory_insights.schemas.variance import (
    ConsumptionVarianceItem,
    ConsumptionVarianceSummary,
    ItemWithoutRecipe,
)
from inventory_insights.services.ledger_reader import (
    fetch_active_recipes,
    fetch_inventory_items,
    fetch_menu_items,
    fetch_recipe_lines,
    fetch_sold_lines,
    fetch_transactions,
    fetch_variance_tags,
)

logger = logging.getLogger(__name__)
settings = get_settings()

VARIANCE_CACHE_KIND = "consumption-variance"
variance_cache = TTLCache(settings.VARIANCE_CACHE_SECONDS)


def consumed_quantity(txn_type, qty_in_base) -> float:
    """Inventory draw-down represented by one ledger entry, in base units."""
    qty = float(qty_in_base or 0.0)
    kind = TxnType(txn_type)
    match kind:
        case TxnType.SALE_DEDUCTION | TxnType.WASTE | TxnType.ADJUSTMENT_OUT:
            return abs(qty)
        case TxnType.STOCK_COUNT_ADJUSTMENT:
            # Only count corrections that removed stock.
            return -qty if qty < 0 else 0.0
        case (
            TxnType.ADJUSTMENT_IN
            | TxnType.REFUND
            | TxnType.PURCHASE
            | TxnType.TRANSFER_IN
            | TxnType.TRANSFER_OUT
        ):
            return 0.0
        case _:
            assert_never(kind)


def aggregate_ordered_quantities(sold_lines) -> dict[int, int]:
    ordered: dict[int, int] = {}
    for row in sold_lines:
        if row.menu_item_id is None:
            continue
        ordered[row.menu_item_id] = ordered.get(row.menu_item_id, 0) + (row.quantity or 0)
    return ordered


def select_recipe_per_menu_item(recipes) -> dict[int, int]:
    """recipe_id -> menu_item_id, one recipe per menu item.

    Branch-specific recipes win over restaurant-wide ones; among equals the
    newest recipe wins.
    """
    chosen = {}
    for row in recipes:
        current = chosen.get(row.menu_item_id)
        rank = (row.branch_id is not None, row.id)
        if current is None or rank > current[0]:
            chosen[row.menu_item_id] = (rank, row.id)
    return {recipe_id: menu_item_id for menu_item_id, (_, recipe_id) in chosen.items()}


def compute_theoretical_consumption(ordered_qty, recipe_menu_map, recipe_lines) -> dict[int, float]:
    theoretical: dict[int, float] = {}
    for line in recipe_lines:
        menu_item_id = recipe_menu_map.get(line.recipe_id)
        if menu_item_id is None:
            continue
        if not shares_base_unit(line.base_unit_id, line.unit_id):
            logger.warning(
                "Skipping recipe %s line for item %s: unit %s is not the item's base unit %s",
                line.recipe_id,
                line.inventory_item_id,
                line.unit_id,
                line.base_unit_id,
            )
            continue
        required = float(line.qty_in_base or 0.0) * ordered_qty.get(menu_item_id, 0)
        theoretical[line.inventory_item_id] = theoretical.get(line.inventory_item_id, 0.0) + required
    return theoretical


def compute_actual_consumption(transactions) -> dict[int, float]:
    actual: dict[int, float] = {}
    for txn in transactions:
        consumed = consumed_quantity(txn.txn_type, txn.qty_in_base)
        if consumed <= 0:
            continue
        actual[txn.item_id] = actual.get(txn.item_id, 0.0) + consumed
    return actual


def variance_percentage(theoretical: float, actual: float) -> float:
    if theoretical > 0:
        return (actual - theoretical) / theoretical * 100
    return 100.0 if actual > 0 else 0.0


def reconcile_variance(theoretical, actual, inventory_items, tags_by_item=None):
    """Join both consumption maps per inventory item, highest cost impact first."""
    tags_by_item = tags_by_item or {}
    results = []
    for item in inventory_items:
        theoretical_qty = theoretical.get(item.id, 0.0)
        actual_qty = actual.get(item.id, 0.0)
        if theoretical_qty == 0 and actual_qty == 0:
            continue

        variance = actual_qty - theoretical_qty
        avg_cost = float(item.avg_cost or 0.0)
        tag = tags_by_item.get(item.id)
        results.append(
            ConsumptionVarianceItem(
                inventory_item_id=item.id,
                item_name=item.name,
                branch_id=item.branch_id,
                branch_name=item.branch_name or "",
                unit_name=item.unit_name or "",
                theoretical_consumption=theoretical_qty,
                actual_consumption=actual_qty,
                variance=variance,
                variance_percentage=variance_percentage(theoretical_qty, actual_qty),
                variance_cost=variance * avg_cost,
                avg_cost=avg_cost,
                root_cause_tag=tag.root_cause if tag else None,
                root_cause_notes=tag.notes if tag else None,
                tag_id=tag.id if tag else None,
            )
        )
    results.sort(key=lambda entry: (-abs(entry.variance_cost), entry.inventory_item_id))
    return results


def _theoretical_for(session_factory, restaurant_id, branch_id, start, end) -> dict[int, float]:
    window_start, window_end = day_window(start, end)
    with session_factory() as db:
        ordered_qty = aggregate_ordered_quantities(
            fetch_sold_lines(db, restaurant_id, window_start, window_end, branch_id=branch_id)
        )
        if not ordered_qty:
            return {}
        recipes = fetch_active_recipes(db, restaurant_id, branch_id, ordered_qty.keys())
        recipe_menu_map = select_recipe_per_menu_item(recipes)
        if not recipe_menu_map:
            return {}
        recipe_lines = fetch_recipe_lines(db, recipe_menu_map.keys())
    return compute_theoretical_consumption(ordered_qty, recipe_menu_map, recipe_lines)


def _actual_for(session_factory, restaurant_id, branch_id, start, end) -> dict[int, float]:
    window_start, window_end = day_window(start, end)
    with session_factory() as db:
        transactions = fetch_transactions(
            db,
            restaurant_id,
            window_start,
            window_end,
            CONSUMPTION_TXN_TYPES,
            branch_id=branch_id,
        )
    return compute_actual_consumption(transactions)


def get_theoretical_consumption(
    restaurant_id: int,
    branch_id: int,
    start: date,
    end: date,
    *,
    session_factory=SessionLocal,
) -> dict[int, float]:
    try:
        return _theoretical_for(session_factory, restaurant_id, branch_id, start, end)
    except SQLAlchemyError:
        logger.exception("Theoretical consumption failed for restaurant %s branch %s", restaurant_id, branch_id)
        return {}


def get_actual_consumption(
    restaurant_id: int,
    branch_id: int,
    start: date,
    end: date,
    *,
    session_factory=SessionLocal,
) -> dict[int, float]:
    try:
        return _actual_for(session_factory, restaurant_id, branch_id, start, end)
    except SQLAlchemyError:
        logger.exception("Actual consumption failed for restaurant %s branch %s", restaurant_id, branch_id)
        return {}


def _compute_consumption_variance(session_factory, restaurant_id, branch_id, start, end):
    theoretical, actual = run_concurrently(
        lambda: get_theoretical_consumption(
            restaurant_id, branch_id, start, end, session_factory=session_factory
        ),
        lambda: get_actual_consumption(
            restaurant_id, branch_id, start, end, session_factory=session_factory
        ),
    )
    item_ids = set(theoretical) | set(actual)
    if not item_ids:
        return []

    with session_factory() as db:
        inventory_items = fetch_inventory_items(db, sorted(item_ids))
        tags = fetch_variance_tags(db, restaurant_id, branch_id, start, end)
    tags_by_item = {tag.inventory_item_id: tag for tag in tags}
    return reconcile_variance(theoretical, actual, inventory_items, tags_by_item)


def get_consumption_variance(
    restaurant_id: int,
    branch_id: int,
    start: date,
    end: date,
    *,
    session_factory=SessionLocal,
) -> list[ConsumptionVarianceItem]:
    if not restaurant_id or not branch_id:
        return []
    cache_key = (VARIANCE_CACHE_KIND, session_factory, restaurant_id, branch_id, start, end)
    try:
        return variance_cache.get_or_compute(
            cache_key,
            lambda: _compute_consumption_variance(session_factory, restaurant_id, branch_id, start, end),
        )
    except SQLAlchemyError:
        logger.exception("Consumption variance failed for restaurant %s branch %s", restaurant_id, branch_id)
        return []


def invalidate_variance_cache(restaurant_id, branch_id=None, period_start=None, period_end=None) -> int:
    def _matches(key):
        _, _, key_restaurant, key_branch, key_start, key_end = key
        if key_restaurant != restaurant_id:
            return False
        if branch_id is not None and key_branch != branch_id:
            return False
        if period_start is not None and key_start != period_start:
            return False
        if period_end is not None and key_end != period_end:
            return False
        return True

    return variance_cache.invalidate(_matches)


def summarize_consumption_variance(items) -> ConsumptionVarianceSummary:
    with_variance = [item for item in items if abs(item.variance) > VARIANCE_EPSILON]
    tagged_count = sum(1 for item in items if item.root_cause_tag)
    return ConsumptionVarianceSummary(
        total_items=len(items),
        items_with_variance=len(with_variance),
        total_positive_variance=sum(item.variance for item in items if item.variance > 0),
        total_negative_variance=sum(abs(item.variance) for item in items if item.variance < 0),
        net_variance_cost=sum(item.variance_cost for item in items),
        tagged_count=tagged_count,
        untagged_count=len(with_variance) - tagged_count,
    )


def get_items_without_recipes(
    restaurant_id: int,
    branch_id: Optional[int] = None,
    *,
    days: Optional[int] = None,
    today: Optional[date] = None,
    session_factory=SessionLocal,
) -> list[ItemWithoutRecipe]:
    """Sold menu items that have no active recipe and so add no theoretical consumption."""
    today = today or date.today()
    window_start = start_of_day(today - timedelta(days=days)) if days else None
    try:
        with session_factory() as db:
            ordered_qty = aggregate_ordered_quantities(
                fetch_sold_lines(db, restaurant_id, window_start, None, branch_id=branch_id)
            )
            if not ordered_qty:
                return []
            recipes = fetch_active_recipes(db, restaurant_id, branch_id, ordered_qty.keys())
            covered = {row.menu_item_id for row in recipes}
            missing = [menu_item_id for menu_item_id in ordered_qty if menu_item_id not in covered]
            names = {row.id: row.name for row in fetch_menu_items(db, missing)}
    except SQLAlchemyError:
        logger.exception("Items-without-recipes lookup failed for restaurant %s", restaurant_id)
        return []

    results = [
        ItemWithoutRecipe(
            menu_item_id=menu_item_id,
            menu_item_name=names.get(menu_item_id, ""),
            sold_count=ordered_qty[menu_item_id],
        )
        for menu_item_id in missing
    ]
    results.sort(key=lambda entry: (-entry.sold_count, entry.menu_item_id))
    return results


__all__ = [
    "aggregate_ordered_quantities",
    "compute_actual_consumption",
    "compute_theoretical_consumption",
    "consumed_quantity",
    "get_actual_consumption",
    "get_consumption_variance",
    "get_items_without_recipes",
    "get_theoretical_consumption",
    "invalidate_variance_cache",
    "reconcile_variance",
    "select_recipe_per_menu_item",
    "summarize_consumption_variance",
    "variance_cache",
    "variance_percentage",
]
