from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from inventory_insights.dependencies import get_session_factory
from inventory_insights.schemas.trends import (
    TopVarianceItem,
    VarianceBreakdown,
    VarianceSummary,
    VarianceTrendPoint,
)
from inventory_insights.services.trend_service import (
    get_top_variance_items,
    get_variance_breakdown,
    get_variance_summary,
    get_variance_trends,
)

router = APIRouter(prefix="/trends", tags=["Trends"])


@router.get("/variance", response_model=list[VarianceTrendPoint])
def variance_trends(
    restaurant_id: int,
    granularity: Literal["daily", "weekly"] = "daily",
    days: int = Query(30, ge=1, le=365),
    branch_id: Optional[int] = None,
    session_factory=Depends(get_session_factory),
):
    return get_variance_trends(restaurant_id, granularity, days, branch_id, session_factory=session_factory)


@router.get("/top-items", response_model=list[TopVarianceItem])
def top_variance_items(
    restaurant_id: int,
    days: int = Query(30, ge=1, le=365),
    limit: int = Query(10, ge=1, le=100),
    sort_by: Literal["quantity", "value"] = "value",
    branch_id: Optional[int] = None,
    session_factory=Depends(get_session_factory),
):
    return get_top_variance_items(restaurant_id, days, limit, sort_by, branch_id, session_factory=session_factory)


@router.get("/breakdown", response_model=list[VarianceBreakdown])
def variance_breakdown(
    restaurant_id: int,
    days: int = Query(30, ge=1, le=365),
    branch_id: Optional[int] = None,
    session_factory=Depends(get_session_factory),
):
    return get_variance_breakdown(restaurant_id, days, branch_id, session_factory=session_factory)


@router.get("/summary", response_model=VarianceSummary)
def variance_summary(
    restaurant_id: int,
    days: int = Query(30, ge=1, le=365),
    branch_id: Optional[int] = None,
    session_factory=Depends(get_session_factory),
):
    return get_variance_summary(restaurant_id, days, branch_id, session_factory=session_factory)


__all__ = ["router"]
