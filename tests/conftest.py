"""Shared test fixtures and helpers."""

import os

# Keep the application engine off the on-disk development database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Optional  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from opsuite.database import Base, get_db  # noqa: E402
from opsuite.domain.scheduling.availability_service import AvailabilityService  # noqa: E402
from opsuite.domain.scheduling.errors import ScheduleStoreError  # noqa: E402
from opsuite.domain.scheduling.repository import ScheduleRepository  # noqa: E402
from opsuite.main import app  # noqa: E402
from opsuite.models import Business, Job, TimeBlock  # noqa: E402

# 2025-03-03 is a Monday; US DST starts 2025-03-09
MONDAY = "2025-03-03"
SATURDAY = "2025-03-08"


def utc(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def repo(db):
    return ScheduleRepository(db)


@pytest.fixture
def availability(repo):
    return AvailabilityService(repo, slot_granularity_minutes=30, default_job_duration=60)


@pytest.fixture
def business(db):
    """UTC business with no configured hours (Mon-Fri 09:00-17:00 defaults)"""
    record = Business(name="Sparkle Cleaning", email="owner@sparkle.test", timezone="UTC")
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def other_business(db):
    record = Business(name="Other Co", timezone="UTC")
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def chicago_business(db):
    record = Business(name="Windy City Maids", timezone="America/Chicago")
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_job(
    db,
    business_id: int,
    start: Optional[datetime],
    duration: Optional[int] = 60,
    status: str = "scheduled",
    title: str = "Deep clean",
    timed: bool = True,
) -> Job:
    """Insert a job directly, bypassing the booking guard. ``timed=False`` leaves scheduled_end unset."""
    end = start + timedelta(minutes=duration or 60) if start is not None and timed else None
    job = Job(
        business_id=business_id,
        title=title,
        scheduled_date=start,
        scheduled_end=end,
        estimated_duration=duration,
        status=status,
    )
    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def add_block(db, business_id: int, start: datetime, end: datetime, **extra) -> TimeBlock:
    block = make_block(business_id, start, end, **extra)
    db.add(block)
    db.commit()
    db.refresh(block)
    return block


def make_block(
    business_id: int,
    start: datetime,
    end: datetime,
    title: str = "Blocked",
    block_type: str = "unavailable",
    is_recurring: bool = False,
    recurrence_pattern: Optional[str] = None,
    recurrence_end_date: Optional[datetime] = None,
    recurrence_count: Optional[int] = None,
    block_id: Optional[int] = None,
) -> TimeBlock:
    """Transient TimeBlock; pass ``block_id`` when it is never persisted"""
    return TimeBlock(
        id=block_id,
        business_id=business_id,
        title=title,
        type=block_type,
        start_time=start,
        end_time=end,
        is_recurring=is_recurring,
        recurrence_pattern=recurrence_pattern,
        recurrence_end_date=recurrence_end_date,
        recurrence_count=recurrence_count,
    )


class FailingStore:
    """Store whose every read fails, as if the database were unreachable"""

    def _fail(self, *args, **kwargs):
        raise ScheduleStoreError()

    get_business = _fail
    get_business_hours = _fail
    list_time_blocks = _fail
    list_active_jobs = _fail
    get_job = _fail
