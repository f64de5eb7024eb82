from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class MovementIn(BaseModel):
    product_id: int
    movement_type: str
    quantity: int = 0
    quantity_grams: Optional[int] = None
    reference: str
    source_table: Optional[str] = None
    source_id: Optional[int] = None
    notes: Optional[str] = None


class MovementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    product_id: int
    movement_date: Optional[datetime] = None
    movement_type: str
    quantity: int
    quantity_grams: Optional[int] = None
    reference: str
    source_table: Optional[str] = None
    source_id: Optional[int] = None
    notes: Optional[str] = None
