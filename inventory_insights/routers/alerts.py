from typing import Optional

from fastapi import APIRouter, Depends

from inventory_insights.dependencies import get_session_factory
from inventory_insights.schemas.alert import InventoryAlert
from inventory_insights.services.alert_service import get_inventory_alerts

router = APIRouter(prefix="/alerts", tags=["Alerts"])


@router.get("/inventory", response_model=list[InventoryAlert])
def inventory_alerts(
    restaurant_id: int,
    branch_id: Optional[int] = None,
    session_factory=Depends(get_session_factory),
):
    return get_inventory_alerts(restaurant_id, branch_id, session_factory=session_factory)


__all__ = ["router"]
