from sqlalchemy import Column, Integer, Numeric, String, Date, Enum, CheckConstraint
from database import Base
from models.audit_mixin import TimestampMixin
import enum


class FeedType(str, enum.Enum):
    B0 = "B0"  # starter
    B1 = "B1"  # grower
    B2 = "B2"  # layer


class FeedUnit(str, enum.Enum):
    KG = "kg"
    BUCKET = "bucket"
    SACK = "sack"


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class FeedConsumption(Base, TimestampMixin):
    __tablename__ = "feed_consumption"
    __table_args__ = (CheckConstraint('quantity_used > 0', name='ck_feed_consumption_quantity_positive'),)

    id = Column(Integer, primary_key=True, index=True)
    batch = Column(String, nullable=False, index=True)  # batch label, e.g. "Batch-1"
    feed_type = Column(Enum(FeedType, name="feed_type", native_enum=False, values_callable=_enum_values), nullable=False, index=True)
    feed_name = Column(String, nullable=True)
    quantity_used = Column(Numeric(12, 3), nullable=False)  # in `unit`, not kg
    unit = Column(Enum(FeedUnit, name="feed_unit", native_enum=False, values_callable=_enum_values), nullable=False)
    consumption_date = Column(Date, nullable=False, index=True)
