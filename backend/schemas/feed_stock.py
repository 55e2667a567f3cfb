from pydantic import BaseModel, field_serializer
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from models.feed_consumption import FeedType


class FeedStockSummary(BaseModel):
    feed_type: FeedType
    quantity_kg: Decimal
    quantity_buckets: Decimal
    quantity_sacks: Decimal
    daily_consumption: Decimal
    estimated_finish_date: Optional[date] = None
    days_remaining: Optional[int] = None
    updated_at: Optional[datetime] = None

    @field_serializer('quantity_kg', 'quantity_buckets', 'quantity_sacks', 'daily_consumption')
    def serialize_decimal(self, value: Decimal) -> float:
        return float(value)

    class Config:
        from_attributes = True


class AvailableStock(BaseModel):
    feed_type: FeedType
    available_kg: float


class DailyConsumption(BaseModel):
    date: date
    total_consumption: float


class FeedIntakeCreate(BaseModel):
    quantity: Decimal
    unit: str = "kg"
    note: Optional[str] = None


class FeedStockQuantityUpdate(BaseModel):
    quantity_kg: Decimal
    note: Optional[str] = None


class FeedStockAudit(BaseModel):
    id: int
    feed_type: FeedType
    change_type: str
    change_amount: float
    requested_amount: float
    old_quantity: float
    new_quantity: float
    clamped: bool
    changed_by: Optional[str] = None
    timestamp: datetime
    note: Optional[str] = None

    class Config:
        from_attributes = True


class FeedStockRefresh(BaseModel):
    message: str
    summaries: List[FeedStockSummary]
