from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String

from inventory_insights.database.base import Base


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    name = Column(String, nullable=False)
    is_available = Column(Boolean, nullable=False, default=True)


class Recipe(Base):
    __tablename__ = "menu_item_recipes"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    # NULL applies the recipe to every branch of the restaurant.
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"))
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_recipes_menu_item_active", "restaurant_id", "menu_item_id", "is_active"),
    )


class RecipeLine(Base):
    __tablename__ = "menu_item_recipe_lines"

    id = Column(Integer, primary_key=True)
    recipe_id = Column(Integer, ForeignKey("menu_item_recipes.id"), nullable=False)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("inventory_units.id"), nullable=False)

    qty_in_base = Column(Float, nullable=False)
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("idx_recipe_lines_recipe", "recipe_id"),
    )


__all__ = ["MenuItem", "Recipe", "RecipeLine"]
