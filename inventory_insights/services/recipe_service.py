import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.core.units import ensure_base_unit
from inventory_insights.database.session import SessionLocal
from inventory_insights.models.inventory import InventoryItem
from inventory_insights.models.recipe import Recipe, RecipeLine
from inventory_insights.schemas.recipe import RecipeLineIn, RecipeLineRead, RecipeRead
from inventory_insights.services.consumption_service import invalidate_variance_cache

logger = logging.getLogger(__name__)


def _coerce_lines(lines) -> list[RecipeLineIn]:
    return [line if isinstance(line, RecipeLineIn) else RecipeLineIn.model_validate(line) for line in lines]


def save_recipe(
    restaurant_id: int,
    branch_id: Optional[int],
    menu_item_id: int,
    lines,
    *,
    session_factory=SessionLocal,
) -> RecipeRead:
    """Store a new active recipe, replacing the previous one for the same scope.

    Every line must be expressed in its inventory item's base unit; otherwise
    ``UnitMismatchError`` is raised and nothing is written.
    """
    lines = _coerce_lines(lines)
    if not lines:
        raise ValueError("A recipe needs at least one line.")

    db = session_factory()
    try:
        item_ids = sorted({line.inventory_item_id for line in lines})
        base_units = dict(
            db.execute(
                select(InventoryItem.id, InventoryItem.base_unit_id).where(
                    InventoryItem.restaurant_id == restaurant_id,
                    InventoryItem.id.in_(item_ids),
                )
            ).all()
        )
        missing = [item_id for item_id in item_ids if item_id not in base_units]
        if missing:
            raise ValueError("Unknown inventory items for restaurant {}: {}".format(restaurant_id, missing))
        for line in lines:
            ensure_base_unit(line.inventory_item_id, base_units[line.inventory_item_id], line.unit_id)

        scope = Recipe.branch_id.is_(None) if branch_id is None else Recipe.branch_id == branch_id
        db.execute(
            update(Recipe)
            .where(
                Recipe.restaurant_id == restaurant_id,
                Recipe.menu_item_id == menu_item_id,
                scope,
                Recipe.is_active.is_(True),
            )
            .values(is_active=False)
        )

        recipe = Recipe(
            restaurant_id=restaurant_id,
            branch_id=branch_id,
            menu_item_id=menu_item_id,
            is_active=True,
        )
        db.add(recipe)
        db.flush()
        stored_lines = [
            RecipeLine(
                recipe_id=recipe.id,
                inventory_item_id=line.inventory_item_id,
                unit_id=line.unit_id,
                qty_in_base=line.qty_in_base,
                position=position,
            )
            for position, line in enumerate(lines)
        ]
        db.add_all(stored_lines)
        db.commit()

        result = RecipeRead(
            id=recipe.id,
            restaurant_id=recipe.restaurant_id,
            branch_id=recipe.branch_id,
            menu_item_id=recipe.menu_item_id,
            is_active=recipe.is_active,
            lines=[RecipeLineRead.model_validate(line) for line in stored_lines],
        )
    except (SQLAlchemyError, ValueError):
        db.rollback()
        raise
    finally:
        db.close()

    invalidate_variance_cache(restaurant_id)
    logger.info(
        "Recipe %s saved for menu item %s (restaurant %s, branch %s) with %s line(s)",
        result.id,
        menu_item_id,
        restaurant_id,
        branch_id,
        len(result.lines),
    )
    return result


__all__ = ["save_recipe"]
