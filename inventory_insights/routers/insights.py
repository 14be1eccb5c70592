from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from inventory_insights.dependencies import get_session_factory
from inventory_insights.schemas.insights import BaselineData, InsightsResult
from inventory_insights.services.baseline_service import calculate_baseline
from inventory_insights.services.insights_service import get_operational_insights

router = APIRouter(prefix="/insights", tags=["Insights"])


@router.get("/operational", response_model=InsightsResult)
def operational_insights(restaurant_id: int, session_factory=Depends(get_session_factory)):
    return get_operational_insights(restaurant_id, session_factory=session_factory)


@router.get("/baseline", response_model=BaselineData)
def baseline(
    restaurant_id: int,
    today: Optional[date] = None,
    session_factory=Depends(get_session_factory),
):
    return calculate_baseline(restaurant_id, today, session_factory=session_factory)


__all__ = ["router"]
