from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from inventory_insights.core.constants import RootCause


class ConsumptionVarianceItem(BaseModel):
    inventory_item_id: int
    item_name: str
    branch_id: int
    branch_name: str = ""
    unit_name: str = ""
    theoretical_consumption: float
    actual_consumption: float
    variance: float
    variance_percentage: float
    variance_cost: float
    avg_cost: float
    root_cause_tag: Optional[RootCause] = None
    root_cause_notes: Optional[str] = None
    tag_id: Optional[int] = None


class ConsumptionVarianceSummary(BaseModel):
    total_items: int = 0
    items_with_variance: int = 0
    total_positive_variance: float = 0.0
    total_negative_variance: float = 0.0
    net_variance_cost: float = 0.0
    tagged_count: int = 0
    untagged_count: int = 0


class VarianceTagUpsert(BaseModel):
    restaurant_id: int
    branch_id: int
    inventory_item_id: int
    period_start: date
    period_end: date
    root_cause: RootCause
    notes: Optional[str] = None
    variance_qty: float = 0.0
    variance_value: float = 0.0
    tagged_by: Optional[str] = Field(default=None, max_length=120)

    @model_validator(mode="after")
    def _check_period(self):
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class VarianceTagRead(BaseModel):
    id: int
    restaurant_id: int
    branch_id: int
    inventory_item_id: int
    period_start: date
    period_end: date
    root_cause: RootCause
    notes: Optional[str]
    variance_qty: float
    variance_value: float
    tagged_by: Optional[str]
    tagged_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ItemWithoutRecipe(BaseModel):
    menu_item_id: int
    menu_item_name: str
    sold_count: int
