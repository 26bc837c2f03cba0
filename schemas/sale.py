from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SaleIn(BaseModel):
    variant_id: int
    quantity: int = Field(gt=0)
    unit_price: float = Field(gt=0)
    total_price: Optional[float] = Field(default=None, ge=0)
    sale_date: datetime


class SalesUpload(BaseModel):
    sales: List[SaleIn]


class SalesUploadResult(BaseModel):
    success: bool = True
    received: int
    message: str


class SaleOut(BaseModel):
    sale_id: int = Field(validation_alias="id")
    variant_id: int
    quantity: int
    unit_price: float
    total_price: float
    sale_date: datetime

    class Config:
        from_attributes = True


class DailySummary(BaseModel):
    sale_day: date
    transaction_count: int
    revenue: float
