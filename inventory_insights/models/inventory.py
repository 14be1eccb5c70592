from sqlalchemy import Boolean, Column, Float, ForeignKey, Index, Integer, String

from inventory_insights.database.base import Base


class InventoryUnit(Base):
    __tablename__ = "inventory_units"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    symbol = Column(String, nullable=False, default="")


class InventoryItem(Base):
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False)

    name = Column(String, nullable=False)
    base_unit_id = Column(Integer, ForeignKey("inventory_units.id"), nullable=False)

    # Moving average cost per base unit.
    avg_cost = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_inventory_items_branch", "restaurant_id", "branch_id"),
    )


__all__ = ["InventoryItem", "InventoryUnit"]
