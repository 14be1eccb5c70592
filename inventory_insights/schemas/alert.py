from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from inventory_insights.core.constants import AlertSeverity, AlertType


class AlertData(BaseModel):
    current_variance: Optional[float] = None
    previous_variance: Optional[float] = None
    occurrences: Optional[int] = None
    percentage_change: Optional[float] = None
    unit_name: Optional[str] = None


class InventoryAlert(BaseModel):
    id: str
    type: AlertType
    severity: AlertSeverity
    item_id: int
    item_name: str
    branch_id: int
    branch_name: str = ""
    title: str
    explanation: str
    suggestion: str
    data: AlertData = Field(default_factory=AlertData)
    detected_at: datetime
