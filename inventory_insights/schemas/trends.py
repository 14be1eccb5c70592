from typing import List

from pydantic import BaseModel, Field

from inventory_insights.core.constants import VarianceReason


class VarianceTrendPoint(BaseModel):
    period: str
    branch_id: int
    branch_name: str = ""
    positive_variance: float = 0.0
    negative_variance: float = 0.0
    net_variance: float = 0.0
    count_approved: int = 0


class TopVarianceItem(BaseModel):
    item_id: int
    item_name: str
    branch_id: int
    branch_name: str = ""
    unit_name: str = ""
    total_variance_qty: float = 0.0
    total_variance_value: float = 0.0
    variance_count: int = 0


class VarianceByReason(BaseModel):
    reason: VarianceReason
    total_qty: float = 0.0
    total_value: float = 0.0
    transaction_count: int = 0


class VarianceBreakdown(BaseModel):
    branch_id: int
    branch_name: str = ""
    breakdown: List[VarianceByReason] = Field(default_factory=list)


class VarianceSummary(BaseModel):
    total_positive_variance: float = 0.0
    total_negative_variance: float = 0.0
    net_variance: float = 0.0
    total_variance_value: float = 0.0
    stock_counts_approved: int = 0
    items_with_variance: int = 0
