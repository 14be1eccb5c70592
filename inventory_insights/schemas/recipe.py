from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RecipeLineIn(BaseModel):
    inventory_item_id: int
    unit_id: int
    qty_in_base: float = Field(gt=0)


class RecipeCreate(BaseModel):
    restaurant_id: int
    branch_id: Optional[int] = None
    menu_item_id: int
    lines: List[RecipeLineIn] = Field(min_length=1)


class RecipeLineRead(BaseModel):
    id: int
    inventory_item_id: int
    unit_id: int
    qty_in_base: float
    position: int

    model_config = ConfigDict(from_attributes=True)


class RecipeRead(BaseModel):
    id: int
    restaurant_id: int
    branch_id: Optional[int]
    menu_item_id: int
    is_active: bool
    lines: List[RecipeLineRead] = Field(default_factory=list)
