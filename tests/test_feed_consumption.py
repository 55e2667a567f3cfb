from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from crud.feed_consumption import (
    create_consumption_record,
    delete_consumption_record,
    get_all_consumption_records,
    get_consumption_record,
    get_consumption_records,
    get_consumption_records_by_batch,
    get_consumption_records_by_date_range,
    get_consumption_records_by_feed_type,
    get_total_consumption_by_batch,
    update_consumption_record,
)
from crud.feed_stock import get_available_stock, get_feed_stock, get_feed_stock_audit
from errors import InsufficientStockError, InvalidInputError, NotFoundError, StoreError
from models.feed_consumption import FeedConsumption, FeedType, FeedUnit
from schemas.feed_consumption import FeedConsumptionCreate


def _entry(today, **overrides):
    values = dict(
        batch="Batch-1",
        feed_type="B0",
        feed_name="Starter Mash",
        quantity_used=Decimal("25"),
        unit="kg",
        consumption_date=today,
    )
    values.update(overrides)
    return FeedConsumptionCreate(**values)


def test_stock_scenario_purchase_consume_and_revert(db, stock, consume):
    summary = stock("B0", 500)
    assert summary.quantity_kg == Decimal("500")
    assert summary.quantity_buckets == Decimal("40")
    assert summary.quantity_sacks == Decimal("10")

    consume("B0", 25, "kg")
    assert get_available_stock(db, "B0") == Decimal("475")

    second_id = consume("B0", 2, "bucket")
    assert get_available_stock(db, "B0") == Decimal("450")

    delete_consumption_record(db, second_id, changed_by="tester")
    assert get_available_stock(db, "B0") == Decimal("475")


def test_create_then_delete_restores_balance(db, stock, consume):
    stock("B1", 3, "sack")
    before = get_available_stock(db, "B1")

    record_id = consume("B1", Decimal("1.5"), "sack")
    assert get_available_stock(db, "B1") == before - Decimal("75")

    delete_consumption_record(db, record_id)
    assert get_available_stock(db, "B1") == before


def test_create_persists_entry(db, stock, consume, today):
    stock("B0", 100)
    record_id = consume("B0", 2, "bucket", batch="Batch-7")

    record = get_consumption_record(db, record_id)
    assert record.batch == "Batch-7"
    assert record.feed_type is FeedType.B0
    assert record.unit is FeedUnit.BUCKET
    assert record.quantity_used == Decimal("2")
    assert record.consumption_date == today
    assert record.created_by == "tester"


def test_create_rejects_more_than_available(db, stock, consume):
    stock("B0", 10)

    with pytest.raises(InsufficientStockError) as exc_info:
        consume("B0", Decimal("10.01"))

    assert exc_info.value.available_kg == Decimal("10")
    assert exc_info.value.required_kg == Decimal("10.01")
    assert get_available_stock(db, "B0") == Decimal("10")
    assert db.query(FeedConsumption).count() == 0


def test_create_allows_exactly_the_available_amount(db, stock, consume):
    stock("B0", 10)
    consume("B0", 10)
    summary = get_feed_stock(db, "B0")
    assert summary.quantity_kg == Decimal("0")
    assert summary.days_remaining is None


def test_sack_request_rejected_against_small_balance(db, stock, consume):
    stock("B2", 20)

    with pytest.raises(InsufficientStockError) as exc_info:
        consume("B2", 2, "sack")

    assert exc_info.value.available_kg == Decimal("20")
    assert exc_info.value.required_kg == Decimal("100")
    assert exc_info.value.detail["available_kg"] == 20.0
    assert exc_info.value.detail["required_kg"] == 100.0
    assert get_available_stock(db, "B2") == Decimal("20")


def test_create_without_any_stock(db, consume):
    with pytest.raises(InsufficientStockError) as exc_info:
        consume("B1", 1)
    assert exc_info.value.available_kg == Decimal("0")
    assert get_feed_stock(db, "B1") is None


@pytest.mark.parametrize("overrides", [
    {"quantity_used": Decimal("0")},
    {"quantity_used": Decimal("-5")},
    {"quantity_used": Decimal("0.0004")},
    {"unit": "ton"},
    {"feed_type": "B7"},
    {"batch": "  "},
])
def test_create_rejects_invalid_input(db, stock, today, overrides):
    stock("B0", 100)

    with pytest.raises(InvalidInputError):
        create_consumption_record(db, _entry(today, **overrides))

    assert db.query(FeedConsumption).count() == 0
    assert get_available_stock(db, "B0") == Decimal("100")


def test_create_accepts_legacy_unit_labels(db, stock, today):
    stock("B0", 100)
    create_consumption_record(db, _entry(today, quantity_used=Decimal("1"), unit="बोरा"), today=today)
    assert get_available_stock(db, "B0") == Decimal("50")


def test_update_quantity_reconciles_balance(db, stock, consume, today):
    stock("B0", 100)
    record_id = consume("B0", 20)

    update_consumption_record(db, record_id, {"quantity_used": Decimal("30")}, changed_by="editor", today=today)
    assert get_available_stock(db, "B0") == Decimal("70")

    update_consumption_record(db, record_id, {"quantity_used": Decimal("1"), "unit": "bucket"}, today=today)
    assert get_available_stock(db, "B0") == Decimal("87.5")

    record = get_consumption_record(db, record_id)
    assert record.unit is FeedUnit.BUCKET
    assert record.updated_by is None


def test_update_feed_type_moves_withdrawal(db, stock, consume, today):
    stock("B0", 100)
    stock("B1", 100)
    record_id = consume("B0", 40)

    record = update_consumption_record(db, record_id, {"feed_type": "B1"}, today=today)

    assert record.feed_type is FeedType.B1
    assert get_available_stock(db, "B0") == Decimal("100")
    assert get_available_stock(db, "B1") == Decimal("60")
    assert get_feed_stock(db, "B0").daily_consumption == Decimal("0")
    assert get_feed_stock(db, "B1").daily_consumption == Decimal("40")


def test_update_counts_own_withdrawal_as_available(db, stock, consume, today):
    stock("B0", 50)
    record_id = consume("B0", 50)

    update_consumption_record(db, record_id, {"quantity_used": Decimal("1"), "unit": "sack"}, today=today)
    assert get_available_stock(db, "B0") == Decimal("0")

    with pytest.raises(InsufficientStockError) as exc_info:
        update_consumption_record(db, record_id, {"quantity_used": Decimal("51"), "unit": "kg"}, today=today)
    assert exc_info.value.available_kg == Decimal("50")
    assert exc_info.value.required_kg == Decimal("51")
    assert get_consumption_record(db, record_id).quantity_used == Decimal("1")


def test_update_to_other_feed_type_checks_its_stock(db, stock, consume, today):
    stock("B0", 100)
    stock("B2", 10)
    record_id = consume("B0", 40)

    with pytest.raises(InsufficientStockError):
        update_consumption_record(db, record_id, {"feed_type": "B2"}, today=today)

    assert get_consumption_record(db, record_id).feed_type is FeedType.B0
    assert get_available_stock(db, "B0") == Decimal("60")
    assert get_available_stock(db, "B2") == Decimal("10")


def test_update_non_stock_fields_keeps_balance(db, stock, consume, today):
    stock("B0", 100)
    record_id = consume("B0", 20, days_ago=2)
    audits_before = len(get_feed_stock_audit(db, "B0"))

    record = update_consumption_record(db, record_id, {"batch": "Batch-2", "feed_name": "Grower"}, today=today)
    assert record.batch == "Batch-2"
    assert record.feed_name == "Grower"
    assert get_available_stock(db, "B0") == Decimal("80")
    assert len(get_feed_stock_audit(db, "B0")) == audits_before

    update_consumption_record(db, record_id, {"consumption_date": today - timedelta(days=40)}, today=today)
    summary = get_feed_stock(db, "B0")
    assert summary.quantity_kg == Decimal("80")
    assert summary.daily_consumption == Decimal("0")


@pytest.mark.parametrize("changes", [
    {"quantity_used": None},
    {"unit": "ton"},
    {"quantity_used": Decimal("0")},
    {"quantity_used": Decimal("1.0005")},
    {"id": 5},
])
def test_update_rejects_invalid_changes(db, stock, consume, today, changes):
    stock("B0", 100)
    record_id = consume("B0", 20)

    with pytest.raises(InvalidInputError):
        update_consumption_record(db, record_id, changes, today=today)
    assert get_available_stock(db, "B0") == Decimal("80")


def test_update_missing_record(db):
    with pytest.raises(NotFoundError):
        update_consumption_record(db, 999, {"batch": "Batch-2"})


def test_delete_missing_record(db):
    with pytest.raises(NotFoundError):
        delete_consumption_record(db, 999)


def test_delete_removes_entry(db, stock, consume):
    stock("B0", 100)
    record_id = consume("B0", 20)

    delete_consumption_record(db, record_id)

    with pytest.raises(NotFoundError):
        get_consumption_record(db, record_id)
    assert get_feed_stock(db, "B0").daily_consumption == Decimal("0")


def test_reads_are_newest_first_and_filtered(db, stock, consume, today):
    stock("B0", 1000)
    stock("B1", 1000)
    oldest = consume("B0", 10, batch="Batch-1", days_ago=5)
    middle = consume("B1", 10, batch="Batch-2", days_ago=3)
    newest = consume("B0", 10, batch="Batch-2", days_ago=1)

    assert [r.id for r in get_all_consumption_records(db)] == [newest, middle, oldest]
    assert [r.id for r in get_consumption_records_by_batch(db, "Batch-2")] == [newest, middle]
    assert [r.id for r in get_consumption_records_by_feed_type(db, "B0")] == [newest, oldest]

    in_range = get_consumption_records_by_date_range(db, today - timedelta(days=4), today - timedelta(days=1))
    assert [r.id for r in in_range] == [newest, middle]


def test_date_range_must_be_ordered(db, today):
    with pytest.raises(InvalidInputError):
        get_consumption_records_by_date_range(db, today, today - timedelta(days=1))


def test_total_consumption_by_batch(db, stock, consume):
    stock("B0", 1000)
    stock("B1", 1000)
    consume("B0", 10, batch="Batch-1")
    consume("B0", 2, "bucket", batch="Batch-1")
    consume("B1", 1, "sack", batch="Batch-1")
    consume("B1", 1, "sack", batch="Batch-9")

    assert get_total_consumption_by_batch(db, "Batch-1") == Decimal("85")
    assert get_total_consumption_by_batch(db, "Batch-404") == Decimal("0")


def test_sub_precision_quantity_is_rejected_before_touching_stock(db, stock, consume):
    stock("B0", 10)

    with pytest.raises(InvalidInputError):
        consume("B0", Decimal("0.0004"), "bucket")

    assert get_available_stock(db, "B0") == Decimal("10")
    assert db.query(FeedConsumption).count() == 0


def test_create_then_delete_restores_balance_for_smallest_bucket_quantity(db, stock, consume):
    stock("B0", 10)

    record_id = consume("B0", Decimal("0.001"), "bucket")
    assert get_consumption_record(db, record_id).quantity_used == Decimal("0.001")
    assert get_available_stock(db, "B0") == Decimal("9.988")

    delete_consumption_record(db, record_id)
    assert get_available_stock(db, "B0") == Decimal("10")


def _failing_adjustment(*args, **kwargs):
    raise SQLAlchemyError("connection lost while adjusting feed stock")


def test_failed_adjustment_leaves_no_entry_behind(db, stock, today, monkeypatch):
    stock("B0", 100)
    monkeypatch.setattr("crud.feed_consumption.adjust_feed_stock", _failing_adjustment)

    with pytest.raises(StoreError):
        create_consumption_record(db, _entry(today), today=today)

    assert db.query(FeedConsumption).count() == 0
    assert get_available_stock(db, "B0") == Decimal("100")


def test_failed_adjustment_keeps_deleted_entry(db, stock, consume, monkeypatch):
    stock("B0", 100)
    record_id = consume("B0", 20)
    monkeypatch.setattr("crud.feed_consumption.adjust_feed_stock", _failing_adjustment)

    with pytest.raises(StoreError):
        delete_consumption_record(db, record_id)

    assert get_consumption_record(db, record_id).quantity_used == Decimal("20")
    assert get_available_stock(db, "B0") == Decimal("80")


def test_failed_adjustment_keeps_original_edit(db, stock, consume, today, monkeypatch):
    stock("B0", 100)
    record_id = consume("B0", 20)
    monkeypatch.setattr("crud.feed_consumption.adjust_feed_stock", _failing_adjustment)

    with pytest.raises(StoreError):
        update_consumption_record(db, record_id, {"quantity_used": Decimal("30")}, today=today)

    assert get_consumption_record(db, record_id).quantity_used == Decimal("20")
    assert get_available_stock(db, "B0") == Decimal("80")


def test_combined_filters_narrow_together(db, stock, consume, today):
    stock("B0", 1000)
    stock("B1", 1000)
    consume("B0", 10, batch="Batch-1", days_ago=5)
    match = consume("B1", 10, batch="Batch-1", days_ago=2)
    consume("B1", 10, batch="Batch-2", days_ago=2)
    consume("B1", 10, batch="Batch-1", days_ago=20)

    records = get_consumption_records(
        db, batch="Batch-1", feed_type="B1",
        start_date=today - timedelta(days=7), end_date=today,
    )
    assert [r.id for r in records] == [match]
    assert len(get_consumption_records(db)) == 4

    with pytest.raises(InvalidInputError):
        get_consumption_records(db, start_date=today, end_date=today - timedelta(days=1))
