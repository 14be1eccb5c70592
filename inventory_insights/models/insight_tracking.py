from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, UniqueConstraint

from inventory_insights.database.base import Base


class InsightTracking(Base):
    __tablename__ = "insight_tracking"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    insight_type = Column(String(60), nullable=False)

    last_shown_date = Column(Date)
    consecutive_days = Column(Integer, nullable=False, default=0)

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("restaurant_id", "insight_type", name="uq_insight_tracking_restaurant_type"),
    )


__all__ = ["InsightTracking"]
