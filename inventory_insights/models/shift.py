from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from inventory_insights.database.base import Base


class Shift(Base):
    __tablename__ = "shifts"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"))

    status = Column(String(20), nullable=False, default="open")
    opened_at = Column(DateTime(timezone=True), nullable=False)
    closed_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_shifts_restaurant_opened", "restaurant_id", "opened_at"),
    )


__all__ = ["Shift"]
