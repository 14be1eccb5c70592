from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.dependencies import get_session_factory
from inventory_insights.schemas.variance import (
    ConsumptionVarianceItem,
    ConsumptionVarianceSummary,
    ItemWithoutRecipe,
    VarianceTagRead,
    VarianceTagUpsert,
)
from inventory_insights.services.consumption_service import (
    get_actual_consumption,
    get_consumption_variance,
    get_items_without_recipes,
    get_theoretical_consumption,
    summarize_consumption_variance,
)
from inventory_insights.services.variance_tag_service import (
    delete_variance_tag,
    list_variance_tags,
    upsert_variance_tag,
)

router = APIRouter(prefix="/variance", tags=["Variance"])


def _check_period(start: date, end: date) -> None:
    if end < start:
        raise HTTPException(status_code=400, detail="end must not be before start.")


@router.get("/consumption", response_model=list[ConsumptionVarianceItem])
def consumption_variance(
    restaurant_id: int,
    branch_id: int,
    start: date,
    end: date,
    session_factory=Depends(get_session_factory),
):
    _check_period(start, end)
    return get_consumption_variance(restaurant_id, branch_id, start, end, session_factory=session_factory)


@router.get("/consumption/summary", response_model=ConsumptionVarianceSummary)
def consumption_variance_summary(
    restaurant_id: int,
    branch_id: int,
    start: date,
    end: date,
    session_factory=Depends(get_session_factory),
):
    _check_period(start, end)
    items = get_consumption_variance(restaurant_id, branch_id, start, end, session_factory=session_factory)
    return summarize_consumption_variance(items)


@router.get("/theoretical")
def theoretical_consumption(
    restaurant_id: int,
    branch_id: int,
    start: date,
    end: date,
    session_factory=Depends(get_session_factory),
):
    _check_period(start, end)
    return get_theoretical_consumption(restaurant_id, branch_id, start, end, session_factory=session_factory)


@router.get("/actual")
def actual_consumption(
    restaurant_id: int,
    branch_id: int,
    start: date,
    end: date,
    session_factory=Depends(get_session_factory),
):
    _check_period(start, end)
    return get_actual_consumption(restaurant_id, branch_id, start, end, session_factory=session_factory)


@router.get("/tags", response_model=list[VarianceTagRead])
def variance_tags(
    restaurant_id: int,
    branch_id: Optional[int] = None,
    session_factory=Depends(get_session_factory),
):
    return list_variance_tags(restaurant_id, branch_id, session_factory=session_factory)


@router.put("/tags", response_model=VarianceTagRead)
def put_variance_tag(payload: VarianceTagUpsert, session_factory=Depends(get_session_factory)):
    try:
        return upsert_variance_tag(payload, session_factory=session_factory)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=500, detail="Could not save variance tag.") from exc


@router.delete("/tags/{tag_id}", status_code=204)
def remove_variance_tag(tag_id: int, session_factory=Depends(get_session_factory)):
    try:
        deleted = delete_variance_tag(tag_id, session_factory=session_factory)
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=500, detail="Could not delete variance tag.") from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="Variance tag not found.")
    return Response(status_code=204)


@router.get("/items-without-recipes", response_model=list[ItemWithoutRecipe])
def items_without_recipes(
    restaurant_id: int,
    branch_id: Optional[int] = None,
    days: Optional[int] = Query(None, ge=1, le=365),
    session_factory=Depends(get_session_factory),
):
    return get_items_without_recipes(restaurant_id, branch_id, days=days, session_factory=session_factory)


__all__ = ["router"]
