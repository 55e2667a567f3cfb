from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Header, Query
from sqlalchemy.orm import Session

from database import get_db
import crud.feed_stock as crud_feed_stock
from errors import FeedLedgerError
from schemas.feed_stock import (
    AvailableStock,
    DailyConsumption,
    FeedIntakeCreate,
    FeedStockAudit,
    FeedStockQuantityUpdate,
    FeedStockRefresh,
    FeedStockSummary,
)
from utils.feed_units import parse_feed_type

router = APIRouter(prefix="/feed-stock", tags=["Feed Stock"])
logger = logging.getLogger(__name__)


def _http_error(e: FeedLedgerError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/", response_model=List[FeedStockSummary])
def get_feed_stock_summary(db: Session = Depends(get_db)):
    """Current balance, daily consumption and stock-out projection per feed type."""
    return crud_feed_stock.get_feed_stock_summary(db)


@router.post("/refresh", response_model=FeedStockRefresh)
def refresh_feed_stock(db: Session = Depends(get_db), x_user_id: Optional[str] = Header(None)):
    """Recompute daily consumption and days remaining for every feed type as of today."""
    try:
        summaries = crud_feed_stock.refresh_feed_stock_projections(db, changed_by=x_user_id)
    except FeedLedgerError as e:
        raise _http_error(e)
    return {"message": "Feed stock projections refreshed", "summaries": summaries}


@router.get("/{feed_type}/available", response_model=AvailableStock)
def get_available_stock(feed_type: str, db: Session = Depends(get_db)):
    try:
        feed_type = parse_feed_type(feed_type)
        available = crud_feed_stock.get_available_stock(db, feed_type)
    except FeedLedgerError as e:
        raise _http_error(e)
    return {"feed_type": feed_type, "available_kg": float(available)}


@router.get("/{feed_type}/trend", response_model=List[DailyConsumption])
def get_daily_consumption_trend(
    feed_type: str,
    days: int = Query(30, ge=1, le=366, description="Number of days to look back"),
    db: Session = Depends(get_db),
):
    """Kilograms consumed per day for a feed type, oldest first."""
    try:
        return crud_feed_stock.get_daily_consumption_trend(db, feed_type, days=days)
    except FeedLedgerError as e:
        raise _http_error(e)


@router.get("/{feed_type}/audit", response_model=List[FeedStockAudit])
def get_feed_stock_audit(
    feed_type: str,
    start_date: Optional[date] = Query(None, description="Start date for filtering audit history"),
    end_date: Optional[date] = Query(None, description="End date for filtering audit history"),
    db: Session = Depends(get_db),
):
    try:
        return crud_feed_stock.get_feed_stock_audit(db, feed_type, start_date=start_date, end_date=end_date)
    except FeedLedgerError as e:
        raise _http_error(e)


@router.post("/{feed_type}/intake", response_model=FeedStockSummary)
def record_feed_intake(
    feed_type: str,
    intake: FeedIntakeCreate,
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
):
    """Add purchased/delivered feed to stock."""
    try:
        summary = crud_feed_stock.record_feed_intake(
            db, feed_type, intake.quantity, intake.unit, changed_by=x_user_id, note=intake.note
        )
    except FeedLedgerError as e:
        raise _http_error(e)
    logger.info(f"Feed intake of {intake.quantity} {intake.unit} for {feed_type} recorded by {x_user_id}")
    return summary


@router.put("/{feed_type}", response_model=FeedStockSummary)
def set_feed_stock_quantity(
    feed_type: str,
    update: FeedStockQuantityUpdate,
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
):
    """Manually set the stock balance (kg) for a feed type, e.g. after a physical count."""
    try:
        summary = crud_feed_stock.set_feed_stock_quantity(
            db, feed_type, update.quantity_kg, changed_by=x_user_id, note=update.note
        )
    except FeedLedgerError as e:
        raise _http_error(e)
    logger.info(f"Feed stock for {feed_type} set to {update.quantity_kg} kg by {x_user_id}")
    return summary
