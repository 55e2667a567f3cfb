from sqlalchemy import Column, Integer, String, DateTime, Numeric, Boolean, Enum
from database import Base
from models.feed_consumption import FeedType, _enum_values
from utils.time_utils import local_now


class FeedStockAudit(Base):
    __tablename__ = "feed_stock_audit"

    id = Column(Integer, primary_key=True, index=True)
    feed_type = Column(Enum(FeedType, name="feed_type", native_enum=False, values_callable=_enum_values), nullable=False, index=True)
    change_type = Column(String, nullable=False)  # "consumption", "consumption_revert", "consumption_edit", "intake", "manual", "refresh"
    change_amount = Column(Numeric(12, 3), nullable=False)  # applied kg, positive or negative
    requested_amount = Column(Numeric(12, 3), nullable=False)  # differs from change_amount when clamped at zero
    old_quantity = Column(Numeric(12, 3), nullable=False)
    new_quantity = Column(Numeric(12, 3), nullable=False)
    clamped = Column(Boolean, default=False, nullable=False)
    changed_by = Column(String, nullable=True)
    timestamp = Column(DateTime(timezone=True), default=local_now, index=True)
    note = Column(String, nullable=True)
