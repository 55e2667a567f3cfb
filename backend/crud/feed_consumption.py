"""
Feed consumption records and the stock movements they cause.

Creating, editing or deleting a record and the matching stock adjustment happen
in one transaction: either both are saved or neither is.
"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud.feed_stock import adjust_feed_stock, lock_feed_stock, lock_feed_stocks
from errors import InsufficientStockError, InvalidInputError, NotFoundError, StoreError
from models.feed_consumption import FeedConsumption
from schemas.feed_consumption import FeedConsumptionCreate
from utils.feed_units import parse_feed_type, parse_unit, to_kilograms
from utils.time_utils import local_today

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("batch", "feed_type", "feed_name", "quantity_used", "unit", "consumption_date")
REQUIRED_FIELDS = ("batch", "feed_type", "quantity_used", "unit", "consumption_date")

# quantity_used and every kg column are Numeric(12, 3)
_QUANTUM = Decimal("0.001")


def _validate_quantity(quantity) -> Decimal:
    try:
        quantity = Decimal(str(quantity))
    except ArithmeticError:
        raise InvalidInputError(f"Quantity '{quantity}' is not a number.")
    if not quantity.is_finite() or quantity <= 0:
        raise InvalidInputError("Quantity used must be greater than zero.")
    if quantity != quantity.quantize(_QUANTUM):
        raise InvalidInputError(f"Quantity '{quantity}' has more than 3 decimal places.")
    return quantity.quantize(_QUANTUM)


def _kilograms(quantity, unit) -> Decimal:
    """Kilograms for a stored quantity, at the precision the balance is kept in."""
    return to_kilograms(quantity, unit).quantize(_QUANTUM)


def _validate_batch(batch) -> str:
    if batch is None or not str(batch).strip():
        raise InvalidInputError("Batch is required.")
    return str(batch).strip()


def _describe(record: FeedConsumption) -> str:
    return f"{record.quantity_used} {record.unit.value} of {record.feed_type.value} for batch '{record.batch}' on {record.consumption_date}"


# --- Reads -------------------------------------------------------------------

def _ordered(query):
    return query.order_by(FeedConsumption.consumption_date.desc(), FeedConsumption.id.desc())


def get_consumption_record(db: Session, record_id: int) -> FeedConsumption:
    record = db.query(FeedConsumption).filter(FeedConsumption.id == record_id).first()
    if record is None:
        raise NotFoundError(f"Consumption record {record_id} not found.")
    return record


def get_all_consumption_records(db: Session, skip: int = 0, limit: Optional[int] = None) -> List[FeedConsumption]:
    query = _ordered(db.query(FeedConsumption)).offset(skip)
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def get_consumption_records_by_batch(db: Session, batch: str) -> List[FeedConsumption]:
    return _ordered(db.query(FeedConsumption).filter(FeedConsumption.batch == batch)).all()


def get_consumption_records_by_feed_type(db: Session, feed_type) -> List[FeedConsumption]:
    feed_type = parse_feed_type(feed_type)
    return _ordered(db.query(FeedConsumption).filter(FeedConsumption.feed_type == feed_type)).all()


def get_consumption_records_by_date_range(db: Session, start_date: date, end_date: date) -> List[FeedConsumption]:
    if start_date > end_date:
        raise InvalidInputError("start_date must be on or before end_date.")
    return _ordered(db.query(FeedConsumption).filter(
        FeedConsumption.consumption_date >= start_date,
        FeedConsumption.consumption_date <= end_date,
    )).all()


def get_consumption_records(
    db: Session,
    batch: Optional[str] = None,
    feed_type=None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[FeedConsumption]:
    """All records matching every filter given; open-ended date bounds are allowed."""
    query = db.query(FeedConsumption)
    if batch:
        query = query.filter(FeedConsumption.batch == batch)
    if feed_type:
        query = query.filter(FeedConsumption.feed_type == parse_feed_type(feed_type))
    if start_date and end_date and start_date > end_date:
        raise InvalidInputError("start_date must be on or before end_date.")
    if start_date:
        query = query.filter(FeedConsumption.consumption_date >= start_date)
    if end_date:
        query = query.filter(FeedConsumption.consumption_date <= end_date)
    return _ordered(query).all()


def get_total_consumption_by_batch(db: Session, batch: str) -> Decimal:
    """Total kilograms fed to a batch across all feed types."""
    rows = db.query(FeedConsumption.unit, func.sum(FeedConsumption.quantity_used)).filter(
        FeedConsumption.batch == batch
    ).group_by(FeedConsumption.unit).all()
    return sum((to_kilograms(total, unit) for unit, total in rows), Decimal("0"))


# --- Writes ------------------------------------------------------------------

def create_consumption_record(db: Session, consumption: FeedConsumptionCreate, changed_by: str = None, today: date = None) -> int:
    """
    Record feed taken out of stock and decrement the balance. Returns the new record's id.

    Raises InvalidInputError before touching the database, InsufficientStockError
    when the converted quantity exceeds the balance, StoreError when the write fails.
    """
    batch = _validate_batch(consumption.batch)
    feed_type = parse_feed_type(consumption.feed_type)
    unit = parse_unit(consumption.unit)
    quantity = _validate_quantity(consumption.quantity_used)
    if consumption.consumption_date is None:
        raise InvalidInputError("Consumption date is required.")
    required_kg = _kilograms(quantity, unit)

    try:
        summary = lock_feed_stock(db, feed_type)
        available_kg = Decimal(summary.quantity_kg)
        if required_kg > available_kg:
            db.rollback()
            logger.warning(f"Rejected consumption of {required_kg} kg {feed_type.value}: only {available_kg} kg available")
            raise InsufficientStockError(feed_type.value, available_kg, required_kg)

        record = FeedConsumption(
            batch=batch,
            feed_type=feed_type,
            feed_name=consumption.feed_name,
            quantity_used=quantity,
            unit=unit,
            consumption_date=consumption.consumption_date,
            created_by=changed_by,
            updated_by=changed_by,
        )
        db.add(record)
        db.flush()  # id, and visible to the trailing-rate scan

        adjust_feed_stock(
            db, feed_type, -required_kg,
            change_type="consumption",
            changed_by=changed_by,
            note=f"Consumption #{record.id}: {_describe(record)}.",
            today=today,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error creating consumption record: {e}")
        raise StoreError("Could not save the consumption record.") from e

    logger.info(f"Consumption record {record.id} created by {changed_by}: {_describe(record)} ({required_kg} kg)")
    return record.id


def update_consumption_record(db: Session, record_id: int, changes: dict, changed_by: str = None, today: date = None) -> FeedConsumption:
    """
    Patch a consumption record and reconcile the stock balance.

    The old withdrawal is credited back and the new one debited, so changing the
    quantity, unit or feed type keeps the balance consistent with the records.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise InvalidInputError(f"Cannot update field(s): {', '.join(sorted(unknown))}.")
    for field in REQUIRED_FIELDS:
        if field in changes and changes[field] is None:
            raise InvalidInputError(f"{field} cannot be empty.")

    changes = dict(changes)
    if "batch" in changes:
        changes["batch"] = _validate_batch(changes["batch"])
    if "feed_type" in changes:
        changes["feed_type"] = parse_feed_type(changes["feed_type"])
    if "unit" in changes:
        changes["unit"] = parse_unit(changes["unit"])
    if "quantity_used" in changes:
        changes["quantity_used"] = _validate_quantity(changes["quantity_used"])

    try:
        record = get_consumption_record(db, record_id)
        old_feed_type = record.feed_type
        old_kg = _kilograms(record.quantity_used, record.unit)
        old_date = record.consumption_date

        new_feed_type = changes.get("feed_type", old_feed_type)
        new_kg = _kilograms(changes.get("quantity_used", record.quantity_used), changes.get("unit", record.unit))
        stock_changed = new_feed_type != old_feed_type or new_kg != old_kg

        if stock_changed:
            summaries = lock_feed_stocks(db, old_feed_type, new_feed_type)
            available_kg = Decimal(summaries[new_feed_type].quantity_kg)
            if new_feed_type == old_feed_type:
                available_kg += old_kg
            if new_kg > available_kg:
                db.rollback()
                logger.warning(f"Rejected edit of consumption {record_id}: {new_kg} kg {new_feed_type.value} needed, {available_kg} kg available")
                raise InsufficientStockError(new_feed_type.value, available_kg, new_kg)

        for key, value in changes.items():
            setattr(record, key, value)
        record.updated_by = changed_by
        db.flush()

        if stock_changed:
            if new_feed_type == old_feed_type:
                adjust_feed_stock(
                    db, new_feed_type, old_kg - new_kg,
                    change_type="consumption_edit",
                    changed_by=changed_by,
                    note=f"Consumption #{record_id} edited: {old_kg} kg -> {new_kg} kg.",
                    today=today,
                )
            else:
                adjust_feed_stock(
                    db, old_feed_type, old_kg,
                    change_type="consumption_edit",
                    changed_by=changed_by,
                    note=f"Consumption #{record_id} moved to {new_feed_type.value}: {old_kg} kg returned.",
                    today=today,
                )
                adjust_feed_stock(
                    db, new_feed_type, -new_kg,
                    change_type="consumption_edit",
                    changed_by=changed_by,
                    note=f"Consumption #{record_id} moved from {old_feed_type.value}: {new_kg} kg taken.",
                    today=today,
                )
        elif record.consumption_date != old_date:
            # balance unchanged, but the trailing window saw the entry move
            adjust_feed_stock(
                db, old_feed_type, 0,
                change_type="consumption_edit",
                changed_by=changed_by,
                note=f"Consumption #{record_id} date changed from {old_date} to {record.consumption_date}.",
                today=today,
            )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error updating consumption record {record_id}: {e}")
        raise StoreError("Could not update the consumption record.") from e

    db.refresh(record)
    logger.info(f"Consumption record {record_id} updated by {changed_by}: {_describe(record)}")
    return record


def delete_consumption_record(db: Session, record_id: int, changed_by: str = None, today: date = None) -> None:
    """Delete a consumption record and return its kilograms to stock."""
    try:
        record = get_consumption_record(db, record_id)
        feed_type = record.feed_type
        returned_kg = _kilograms(record.quantity_used, record.unit)
        description = _describe(record)

        lock_feed_stock(db, feed_type)
        db.delete(record)
        db.flush()  # gone before the trailing-rate scan

        adjust_feed_stock(
            db, feed_type, returned_kg,
            change_type="consumption_revert",
            changed_by=changed_by,
            note=f"Deleted consumption #{record_id}: {description}.",
            today=today,
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error deleting consumption record {record_id}: {e}")
        raise StoreError("Could not delete the consumption record.") from e

    logger.info(f"Consumption record {record_id} deleted by {changed_by}; {returned_kg} kg returned to {feed_type.value}")
