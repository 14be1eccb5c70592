from sqlalchemy import Column, ForeignKey, Index, Integer, String

from inventory_insights.database.base import Base


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)


class Branch(Base):
    __tablename__ = "restaurant_branches"

    id = Column(Integer, primary_key=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False)
    name = Column(String, nullable=False)

    __table_args__ = (
        Index("idx_branches_restaurant", "restaurant_id"),
    )


__all__ = ["Branch", "Restaurant"]
