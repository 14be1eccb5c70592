from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String, event

from inventory_insights.database.base import Base


class InventoryTransaction(Base):
    """Append-only inventory ledger entry. Outflows carry negative quantities."""

    __tablename__ = "inventory_transactions"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)

    txn_type = Column(String(40), nullable=False)
    qty_in_base = Column(Float, nullable=False)
    unit_cost = Column(Float, nullable=False, default=0)
    total_cost = Column(Float, nullable=False, default=0)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.now,
    )

    __table_args__ = (
        Index("idx_inv_txn_branch_type_created", "restaurant_id", "branch_id", "txn_type", "created_at"),
        Index("idx_inv_txn_item", "item_id"),
    )


@event.listens_for(InventoryTransaction, "before_update")
def _reject_ledger_update(_mapper, _connection, target):
    raise ValueError("Inventory transaction {} is immutable".format(target.id))


__all__ = ["InventoryTransaction"]
