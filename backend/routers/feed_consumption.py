from datetime import date
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException, Header, Query, status
from sqlalchemy.orm import Session

from database import get_db
import crud.feed_consumption as crud_consumption
from errors import FeedLedgerError
from schemas.feed_consumption import (
    BatchConsumptionTotal,
    FeedConsumption,
    FeedConsumptionCreate,
    FeedConsumptionCreated,
    FeedConsumptionUpdate,
)

router = APIRouter(prefix="/feed-consumption", tags=["Feed Consumption"])
logger = logging.getLogger(__name__)


def _http_error(e: FeedLedgerError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.detail)


@router.get("/", response_model=List[FeedConsumption])
def list_consumption_records(
    batch: Optional[str] = None,
    feed_type: Optional[str] = None,
    start_date: Optional[date] = Query(None, description="Start of consumption date range (inclusive)"),
    end_date: Optional[date] = Query(None, description="End of consumption date range (inclusive)"),
    db: Session = Depends(get_db),
):
    """
    List consumption records, newest consumption date first.
    Filters combine: batch, feed type and a date range (both ends required) narrow the
    result together; without filters all records are returned.
    """
    if (start_date or end_date) and not (start_date and end_date):
        raise HTTPException(status_code=400, detail="Both start_date and end_date are required for a date range.")
    try:
        return crud_consumption.get_consumption_records(
            db, batch=batch, feed_type=feed_type, start_date=start_date, end_date=end_date
        )
    except FeedLedgerError as e:
        raise _http_error(e)


@router.get("/batch/{batch}/total", response_model=BatchConsumptionTotal)
def get_batch_total(batch: str, db: Session = Depends(get_db)):
    """Total feed (kg) consumed by a batch."""
    total = crud_consumption.get_total_consumption_by_batch(db, batch)
    return {"batch": batch, "total_kg": float(total)}


@router.get("/{record_id}", response_model=FeedConsumption)
def get_consumption_record(record_id: int, db: Session = Depends(get_db)):
    try:
        return crud_consumption.get_consumption_record(db, record_id)
    except FeedLedgerError as e:
        raise _http_error(e)


@router.post("/", response_model=FeedConsumptionCreated, status_code=status.HTTP_201_CREATED)
def create_consumption_record(
    consumption: FeedConsumptionCreate,
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
):
    """
    Record feed taken from stock. The quantity is converted to kg and checked against the
    available balance; the balance and the stock-out projection are updated in the same transaction.
    """
    try:
        record_id = crud_consumption.create_consumption_record(db, consumption, changed_by=x_user_id)
    except FeedLedgerError as e:
        raise _http_error(e)
    return {"id": record_id, "message": "Consumption recorded and feed stock updated"}


@router.patch("/{record_id}", response_model=FeedConsumption)
def update_consumption_record(
    record_id: int,
    consumption: FeedConsumptionUpdate,
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
):
    """Update a consumption record; quantity, unit and feed type changes are reconciled against stock."""
    try:
        return crud_consumption.update_consumption_record(
            db, record_id, consumption.model_dump(exclude_unset=True), changed_by=x_user_id
        )
    except FeedLedgerError as e:
        raise _http_error(e)


@router.delete("/{record_id}")
def delete_consumption_record(
    record_id: int,
    db: Session = Depends(get_db),
    x_user_id: Optional[str] = Header(None),
):
    """Delete a consumption record and return its feed to stock."""
    try:
        crud_consumption.delete_consumption_record(db, record_id, changed_by=x_user_id)
    except FeedLedgerError as e:
        raise _http_error(e)
    return {"message": "Consumption record deleted and feed stock restored"}
