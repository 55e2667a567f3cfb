from sqlalchemy import Column, Integer, Numeric, Date, DateTime, Enum, UniqueConstraint, CheckConstraint
from database import Base
from models.feed_consumption import FeedType, _enum_values
from utils.time_utils import local_now


class FeedStockSummary(Base):
    __tablename__ = "feed_stock_summary"
    __table_args__ = (
        UniqueConstraint('feed_type', name='_feed_stock_summary_feed_type_uc'),
        CheckConstraint('quantity_kg >= 0', name='ck_feed_stock_summary_quantity_non_negative'),
    )

    id = Column(Integer, primary_key=True, index=True)
    feed_type = Column(Enum(FeedType, name="feed_type", native_enum=False, values_callable=_enum_values), nullable=False)
    quantity_kg = Column(Numeric(12, 3), default=0, nullable=False)  # authoritative balance
    quantity_buckets = Column(Numeric(12, 3), default=0, nullable=False)
    quantity_sacks = Column(Numeric(12, 3), default=0, nullable=False)
    daily_consumption = Column(Numeric(12, 3), default=0, nullable=False)  # kg/day over days with activity
    estimated_finish_date = Column(Date, nullable=True)
    days_remaining = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=local_now, onupdate=local_now)
