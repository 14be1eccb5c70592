from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Index, Integer, String

from inventory_insights.database.base import Base


class StockCount(Base):
    __tablename__ = "stock_counts"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False)

    status = Column(String(20), nullable=False, default="DRAFT")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=datetime.now,
    )
    approved_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_stock_counts_status_approved", "restaurant_id", "status", "approved_at"),
    )


class StockCountLine(Base):
    __tablename__ = "stock_count_lines"

    id = Column(Integer, primary_key=True)
    stock_count_id = Column(Integer, ForeignKey("stock_counts.id"), nullable=False)
    item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)

    expected_base = Column(Float, nullable=False, default=0)
    actual_base = Column(Float, nullable=False, default=0)

    __table_args__ = (
        Index("idx_stock_count_lines_count", "stock_count_id"),
    )


__all__ = ["StockCount", "StockCountLine"]
