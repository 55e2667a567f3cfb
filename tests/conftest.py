import os
import tempfile

# must be set before the application modules read them
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="feed-ledger-logs-"))

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from database import Base, build_engine, get_db
import models  # noqa: F401
from crud.feed_consumption import create_consumption_record
from crud.feed_stock import record_feed_intake
from schemas.feed_consumption import FeedConsumptionCreate
from utils.time_utils import local_today


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def today():
    return local_today()


@pytest.fixture
def stock(db):
    """Put feed into stock: stock("B0", 500) or stock("B1", 2, "sack")."""
    def _stock(feed_type, quantity, unit="kg"):
        return record_feed_intake(db, feed_type, quantity, unit, changed_by="tester")
    return _stock


@pytest.fixture
def consume(db, today):
    """Record consumption, dated `days_ago` days before today."""
    def _consume(feed_type, quantity, unit="kg", batch="Batch-1", days_ago=0, feed_name="Starter Mash"):
        entry = FeedConsumptionCreate(
            batch=batch,
            feed_type=feed_type,
            feed_name=feed_name,
            quantity_used=Decimal(str(quantity)),
            unit=unit,
            consumption_date=today - timedelta(days=days_ago),
        )
        return create_consumption_record(db, entry, changed_by="tester", today=today)
    return _consume
