from pydantic import BaseModel, field_serializer
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from models.feed_consumption import FeedType, FeedUnit

# feed_type and unit are plain strings here; the ledger resolves them (and their
# aliases) and answers 422 for anything it does not recognise.


class FeedConsumptionBase(BaseModel):
    batch: str
    feed_type: str  # B0, B1, B2
    feed_name: Optional[str] = None
    quantity_used: Decimal
    unit: str  # kg, bucket, sack
    consumption_date: date


class FeedConsumptionCreate(FeedConsumptionBase):
    pass


class FeedConsumptionUpdate(BaseModel):
    batch: Optional[str] = None
    feed_type: Optional[str] = None
    feed_name: Optional[str] = None
    quantity_used: Optional[Decimal] = None
    unit: Optional[str] = None
    consumption_date: Optional[date] = None


class FeedConsumption(FeedConsumptionBase):
    id: int
    feed_type: FeedType
    unit: FeedUnit
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    updated_by: Optional[str] = None

    @field_serializer('quantity_used')
    def serialize_quantity(self, value: Decimal) -> float:
        return float(value)

    class Config:
        from_attributes = True


class FeedConsumptionCreated(BaseModel):
    id: int
    message: str


class BatchConsumptionTotal(BaseModel):
    batch: str
    total_kg: float
