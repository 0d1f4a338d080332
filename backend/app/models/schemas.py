r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as both request payload validators and response
serialisation schemas.  Dates cross the wire as ``YYYY/MM/DD`` text for
deliveries and ``MM/01`` text for forecast buckets.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class LoginRequest(BaseModel):
    username: str = ""
    password: Optional[str] = None


class Permissions(BaseModel):
    can_edit: bool
    can_view: bool = True


class LoginResponse(BaseModel):
    success: bool = True
    message: str = "Login successful"
    token: str
    username: str
    role: str
    permissions: Permissions


class UserInfo(BaseModel):
    username: str
    role: str
    login_time: str
    permissions: Permissions


class OrderOut(BaseModel):
    id: int
    order_number: str
    drawing_number: str
    product_name: str = ""
    quantity: int
    delivery_date: str
    status: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str = Field("", description="Free text status; 'ok' marks the order fulfilled")

    @field_validator("status", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)


class ForecastIn(BaseModel):
    drawing_number: str = Field(..., min_length=1)
    month_date: str = Field(..., min_length=1, description="Month bucket, e.g. '08/01'")
    quantity: Any = Field(..., description="Coerced to an integer; 0 when unparseable")


class ForecastBatch(BaseModel):
    forecasts: List[ForecastIn]


class ForecastOut(BaseModel):
    id: int
    drawing_number: str
    month_date: str
    quantity: float
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class StockIn(BaseModel):
    groupName: Optional[str] = None
    quantity: Any = 0


class StockBatch(BaseModel):
    stocks: Dict[str, Any]


class StockOut(BaseModel):
    group_key: str
    group_name: str
    quantity: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    last_updated_formatted: str
    has_stock: bool
    stock_level: Literal["high", "medium", "low", "empty"]


class MaterialGroupOut(BaseModel):
    key: str
    name: str
    parts: List[str]
    current_stock: float


class ItemAvailabilityOut(BaseModel):
    key: str
    kind: Literal["order", "forecast"]
    part_number: str
    date: str
    quantity: float
    before_stock: float
    after_stock: float
    balance: float
    sufficient: bool
    shortfall: float


class ProjectionOut(BaseModel):
    group_key: str
    group_name: str
    parts: List[str]
    current_stock: float
    final_stock: float
    all_insufficient: bool
    items: List[ItemAvailabilityOut]


class ProjectionsResponse(BaseModel):
    generation: Optional[int]
    groups: List[ProjectionOut]


class DemandItemOut(BaseModel):
    key: str
    kind: Literal["order", "forecast"]
    part_number: str
    date: str
    quantity: float
    priority: Optional[int] = None
    order_number: Optional[str] = None
    status: Optional[str] = None
    sufficient: bool


class SufficiencyResponse(BaseModel):
    part_number: str
    key: Optional[str]
    sufficient: bool
