from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from inventory_insights.core.constants import InsightSeverity, InsightType


class BaselineData(BaseModel):
    avg_cancellations_after_payment: float = 0.0
    avg_discount_rate: float = 0.0
    avg_inventory_adjustments: float = 0.0
    avg_shift_duration_hours: float = 8.0
    avg_orders_per_day: float = 0.0
    active_days_count: int = 0


class TodayActivity(BaseModel):
    cancellations_after_payment: int = 0
    total_orders: int = 0
    total_revenue: float = 0.0
    total_discounts: float = 0.0
    discounted_orders: int = 0
    repeated_inventory_adjustments: int = 0
    max_shift_hours: int = 0
    has_open_shift: bool = False


class OperationalInsight(BaseModel):
    id: str
    type: InsightType
    severity: InsightSeverity
    detected_at: datetime
    consecutive_days: int
    current_value: float
    baseline_value: float
    deviation_percent: float
    already_shown: bool = False


class InsightsResult(BaseModel):
    insights: List[OperationalInsight] = Field(default_factory=list)
    baseline: Optional[BaselineData] = None
    is_new_restaurant: bool = False
    confidence_score: int = 100
    operational_notes: List[str] = Field(default_factory=list)
