from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from .alerts import AlertLevel
from .models import MovementType

class ItemCreate(BaseModel):
    """Schema for creating an item"""
    name: str = Field(..., max_length=200)
    unit: Optional[str] = Field("pcs", max_length=32)
    min_stock_level: int = Field(..., ge=0)

    class Config:
        json_schema_extra = {
            "example": {
                "name": "Widget",
                "unit": "pcs",
                "min_stock_level": 5
            }
        }

class Item(BaseModel):
    """Schema for reading an item"""
    id: int
    name: str
    unit: str
    current_stock: int
    min_stock_level: int
    alert_level: AlertLevel
    last_updated: datetime
    created_at: datetime

    class Config:
        from_attributes = True

class MovementCreate(BaseModel):
    """Schema for recording a stock movement"""
    item_id: int
    type: MovementType
    quantity: int = Field(..., gt=0)
    responsible_person: str = Field(..., max_length=100)
    request_code: Optional[str] = Field(None, max_length=100)
    remarks: Optional[str] = Field(None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "item_id": 1,
                "type": "OUT",
                "quantity": 5,
                "responsible_person": "Charyl",
                "request_code": "RFQ-2002CORE-25-004275",
                "remarks": "Wellness Walk"
            }
        }

class Movement(BaseModel):
    """Schema for reading a stock movement"""
    id: int
    item_id: int
    item_name: str
    quantity: int
    type: MovementType
    request_code: Optional[str] = None
    responsible_person: str
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class MovementResult(BaseModel):
    """Schema for the outcome of a recorded movement"""
    movement: Movement
    item: Item

class StockSummary(BaseModel):
    """Schema for inventory totals"""
    total_items: int
    total_stock: int
    low_stock_count: int
    warning_count: int

class LedgerCheck(BaseModel):
    """Schema for the result of a ledger audit"""
    item_id: int
    consistent: bool
