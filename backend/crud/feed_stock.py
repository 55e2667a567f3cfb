"""
Feed stock summary: the running per-feed-type balance.

Every change to a feed type's balance goes through ``adjust_feed_stock``. The
summary row is locked (SELECT ... FOR UPDATE) for the rest of the caller's
transaction, so concurrent adjustments of the same feed type are serialized
and no decrement is lost. Callers own the transaction: functions here flush,
the caller commits or rolls back.
"""
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_CEILING
from typing import Dict, List, Optional, Tuple
import logging

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from errors import InvalidInputError, StoreError
from models.feed_consumption import FeedConsumption, FeedType, FeedUnit
from models.feed_stock_audit import FeedStockAudit
from models.feed_stock_summary import FeedStockSummary
from utils.feed_units import to_kilograms, from_kilograms, parse_feed_type, parse_unit
from utils.time_utils import local_now, local_today

logger = logging.getLogger(__name__)

TRAILING_WINDOW_DAYS = 30
MIN_DAILY_CONSUMPTION = Decimal("0.01")  # kg/day; below this no stock-out date is projected
_QUANTUM = Decimal("0.001")

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def _q(value: Decimal) -> Decimal:
    return Decimal(value).quantize(_QUANTUM)


# --- Derived analytics -------------------------------------------------------

def get_daily_consumption_totals(db: Session, feed_type, since: date) -> Dict[date, Decimal]:
    """Kilograms consumed per calendar date for one feed type, from `since` onwards."""
    feed_type = parse_feed_type(feed_type)
    rows = db.query(FeedConsumption.consumption_date, FeedConsumption.quantity_used, FeedConsumption.unit).filter(
        FeedConsumption.feed_type == feed_type,
        FeedConsumption.consumption_date >= since,
    ).all()

    totals = defaultdict(Decimal)
    for consumption_date, quantity_used, unit in rows:
        totals[consumption_date] += to_kilograms(quantity_used, unit)
    return dict(totals)


def calculate_daily_consumption(daily_totals: Dict[date, Decimal]) -> Decimal:
    """Average kg/day over the days that had consumption; zero-activity days do not dilute it."""
    if not daily_totals:
        return Decimal("0")
    return sum(daily_totals.values(), Decimal("0")) / len(daily_totals)


def project_stock_out(quantity_kg: Decimal, daily_consumption: Decimal, today: date) -> Tuple[Optional[int], Optional[date]]:
    """Return (days_remaining, estimated_finish_date), or (None, None) when nothing is being used up."""
    quantity_kg = Decimal(quantity_kg)
    daily_consumption = Decimal(daily_consumption)
    if daily_consumption <= MIN_DAILY_CONSUMPTION or quantity_kg <= 0:
        return None, None
    days_remaining = int((quantity_kg / daily_consumption).to_integral_value(rounding=ROUND_CEILING))
    return days_remaining, today + timedelta(days=days_remaining)


def get_daily_consumption_trend(db: Session, feed_type, days: int = TRAILING_WINDOW_DAYS, today: date = None) -> List[dict]:
    today = today or local_today()
    totals = get_daily_consumption_totals(db, feed_type, today - timedelta(days=days))
    return [
        {"date": consumption_date, "total_consumption": float(totals[consumption_date])}
        for consumption_date in sorted(totals)
    ]


# --- Summary reads -----------------------------------------------------------

def get_feed_stock_summary(db: Session) -> List[FeedStockSummary]:
    # sort in Python: the column holds enum values and the enum order matches B0 < B1 < B2
    summaries = db.query(FeedStockSummary).all()
    return sorted(summaries, key=lambda s: s.feed_type.value)


def get_feed_stock(db: Session, feed_type) -> Optional[FeedStockSummary]:
    feed_type = parse_feed_type(feed_type)
    return db.query(FeedStockSummary).filter(FeedStockSummary.feed_type == feed_type).first()


def get_available_stock(db: Session, feed_type) -> Decimal:
    """Current balance in kg; 0 when the feed type has never been stocked."""
    summary = get_feed_stock(db, feed_type)
    return Decimal(summary.quantity_kg) if summary else Decimal("0")


def get_feed_stock_audit(db: Session, feed_type, start_date: date = None, end_date: date = None) -> List[FeedStockAudit]:
    feed_type = parse_feed_type(feed_type)
    query = db.query(FeedStockAudit).filter(FeedStockAudit.feed_type == feed_type)
    if start_date:
        query = query.filter(FeedStockAudit.timestamp >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        query = query.filter(FeedStockAudit.timestamp <= datetime.combine(end_date, datetime.max.time()))
    return query.order_by(FeedStockAudit.timestamp.desc(), FeedStockAudit.id.desc()).all()


# --- Locked balance access ---------------------------------------------------

def _ensure_summary_row(db: Session, feed_type: FeedType) -> None:
    """Create the zero-balance row for feed_type unless it already exists (atomic on the feed_type key)."""
    values = dict(
        feed_type=feed_type,
        quantity_kg=0,
        quantity_buckets=0,
        quantity_sacks=0,
        daily_consumption=0,
        updated_at=local_now(),
    )
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
    if insert is not None:
        db.execute(insert(FeedStockSummary).values(**values).on_conflict_do_nothing(index_elements=["feed_type"]))
    elif get_feed_stock(db, feed_type) is None:
        # other dialects fall back to the unique constraint to reject a duplicate insert
        db.add(FeedStockSummary(**values))
        db.flush()


def lock_feed_stock(db: Session, feed_type) -> FeedStockSummary:
    """Return the summary row for feed_type, creating it if needed, locked until the transaction ends."""
    feed_type = parse_feed_type(feed_type)
    _ensure_summary_row(db, feed_type)
    return db.query(FeedStockSummary).filter(
        FeedStockSummary.feed_type == feed_type
    ).populate_existing().with_for_update().one()


def lock_feed_stocks(db: Session, *feed_types) -> Dict[FeedType, FeedStockSummary]:
    """Lock several summary rows in a fixed order so two writers never wait on each other."""
    resolved = sorted({parse_feed_type(feed_type) for feed_type in feed_types}, key=lambda t: t.value)
    return {feed_type: lock_feed_stock(db, feed_type) for feed_type in resolved}


# --- Adjustment --------------------------------------------------------------

def _apply_balance(db: Session, summary: FeedStockSummary, new_kg: Decimal, today: date) -> FeedStockSummary:
    since = today - timedelta(days=TRAILING_WINDOW_DAYS)
    daily_consumption = calculate_daily_consumption(get_daily_consumption_totals(db, summary.feed_type, since))
    days_remaining, finish_date = project_stock_out(new_kg, daily_consumption, today)

    summary.quantity_kg = _q(new_kg)
    summary.quantity_buckets = _q(from_kilograms(new_kg, FeedUnit.BUCKET))
    summary.quantity_sacks = _q(from_kilograms(new_kg, FeedUnit.SACK))
    summary.daily_consumption = _q(daily_consumption)
    summary.days_remaining = days_remaining
    summary.estimated_finish_date = finish_date
    summary.updated_at = local_now()
    return summary


def adjust_feed_stock(
    db: Session,
    feed_type,
    delta_kg,
    change_type: str = "adjustment",
    changed_by: str = None,
    note: str = None,
    today: date = None,
) -> FeedStockSummary:
    """
    Apply a signed kilogram delta to a feed type's balance and recompute its projections.

    The balance is floored at zero: a delta that would drive it negative is clamped,
    logged and flagged on the audit row rather than rejected. A zero delta that leaves
    the projection as it was writes no audit row. Entries must already be flushed so
    the trailing consumption rate sees them.
    """
    today = today or local_today()
    delta_kg = Decimal(str(delta_kg))
    summary = lock_feed_stock(db, feed_type)

    old_kg = Decimal(summary.quantity_kg)
    new_kg = old_kg + delta_kg
    clamped = new_kg < 0
    if clamped:
        logger.warning(
            f"Feed stock for {summary.feed_type.value} would drop to {new_kg} kg "
            f"(balance {old_kg} kg, change {delta_kg} kg); clamped at 0."
        )
        new_kg = Decimal("0")

    old_projection = (Decimal(summary.daily_consumption), summary.days_remaining, summary.estimated_finish_date)
    _apply_balance(db, summary, new_kg, today)

    if delta_kg == 0 and old_projection == (summary.daily_consumption, summary.days_remaining, summary.estimated_finish_date):
        db.flush()
        logger.debug(f"Feed stock {summary.feed_type.value} unchanged ({change_type}); no audit row")
        return summary

    db.add(FeedStockAudit(
        feed_type=summary.feed_type,
        change_type=change_type,
        change_amount=_q(new_kg - old_kg),
        requested_amount=_q(delta_kg),
        old_quantity=_q(old_kg),
        new_quantity=_q(new_kg),
        clamped=clamped,
        changed_by=changed_by,
        note=note,
    ))
    db.flush()

    logger.info(
        f"Feed stock {summary.feed_type.value}: {old_kg} kg -> {summary.quantity_kg} kg ({change_type}), "
        f"daily consumption {summary.daily_consumption} kg, days remaining {summary.days_remaining}"
    )
    return summary


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error committing {action}: {e}")
        raise StoreError(f"Could not save {action}.") from e


def record_feed_intake(db: Session, feed_type, quantity, unit="kg", changed_by: str = None, note: str = None) -> FeedStockSummary:
    """Book a feed purchase/delivery: a positive adjustment in kg."""
    feed_type = parse_feed_type(feed_type)
    unit = parse_unit(unit)
    quantity = Decimal(str(quantity))
    if quantity <= 0:
        raise InvalidInputError("Intake quantity must be greater than zero.")

    quantity_kg = _q(to_kilograms(quantity, unit))
    if quantity_kg <= 0:
        raise InvalidInputError(f"Intake of {quantity} {unit.value} is below 0.001 kg.")
    try:
        summary = adjust_feed_stock(
            db, feed_type, quantity_kg,
            change_type="intake",
            changed_by=changed_by,
            note=note or f"Intake of {quantity} {unit.value}.",
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error recording feed intake for {feed_type.value}: {e}")
        raise StoreError("Could not record feed intake.") from e
    _commit(db, "feed intake")
    db.refresh(summary)
    return summary


def set_feed_stock_quantity(db: Session, feed_type, quantity_kg, changed_by: str = None, note: str = None) -> FeedStockSummary:
    """Manual stock correction: set the balance outright and recompute the derived columns."""
    feed_type = parse_feed_type(feed_type)
    quantity_kg = Decimal(str(quantity_kg))
    if quantity_kg < 0:
        raise InvalidInputError("Stock quantity cannot be negative.")

    try:
        summary = lock_feed_stock(db, feed_type)
        delta_kg = quantity_kg - Decimal(summary.quantity_kg)
        summary = adjust_feed_stock(
            db, feed_type, delta_kg,
            change_type="manual",
            changed_by=changed_by,
            note=note or "Manual edit: feed stock quantity set.",
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error setting feed stock for {feed_type.value}: {e}")
        raise StoreError("Could not update feed stock quantity.") from e
    _commit(db, "feed stock quantity")
    db.refresh(summary)
    return summary


def refresh_feed_stock_projections(db: Session, changed_by: str = None, today: date = None) -> List[FeedStockSummary]:
    """Recompute rate and stock-out projection for every feed type without moving any balance."""
    try:
        for summary in get_feed_stock_summary(db):
            adjust_feed_stock(db, summary.feed_type, 0, change_type="refresh", changed_by=changed_by, today=today)
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception(f"Error refreshing feed stock projections: {e}")
        raise StoreError("Could not refresh feed stock projections.") from e
    _commit(db, "feed stock projections")
    return get_feed_stock_summary(db)
