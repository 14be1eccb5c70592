from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint

from inventory_insights.database.base import Base


class VarianceTag(Base):
    __tablename__ = "inventory_variance_tags"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)

    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)

    root_cause = Column(String(40), nullable=False)
    notes = Column(String)
    variance_qty = Column(Float, nullable=False, default=0)
    variance_value = Column(Float, nullable=False, default=0)

    tagged_by = Column(String(120))
    tagged_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint(
            "branch_id",
            "inventory_item_id",
            "period_start",
            "period_end",
            name="uq_variance_tags_branch_item_period",
        ),
        Index("idx_variance_tags_restaurant", "restaurant_id"),
        Index("idx_variance_tags_period", "period_start", "period_end"),
    )


__all__ = ["VarianceTag"]
