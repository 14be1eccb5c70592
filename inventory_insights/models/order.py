from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Index, Integer, String

from inventory_insights.database.base import Base


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False)

    status = Column(String(20), nullable=False)
    total = Column(Float, nullable=False, default=0)
    discount_value = Column(Float, nullable=False, default=0)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.now,
    )

    __table_args__ = (
        Index("idx_orders_branch_status_created", "restaurant_id", "branch_id", "status", "created_at"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False)
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"))

    quantity = Column(Integer, nullable=False, default=1)
    voided = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_order_items_order", "order_id"),
    )


class Refund(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"))
    order_id = Column(Integer, ForeignKey("orders.id"))

    amount = Column(Float, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.now,
    )

    __table_args__ = (
        Index("idx_refunds_restaurant_created", "restaurant_id", "created_at"),
    )


__all__ = ["Order", "OrderItem", "Refund"]
