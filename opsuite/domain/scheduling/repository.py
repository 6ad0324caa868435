"""Schedule repository - Database operations for the scheduling engine"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import ACTIVE_JOB_STATUSES, Business, Job, TimeBlock
from .errors import ScheduleStoreError, SlotUnavailableError, TenantAccessError
from .time_calculator import as_utc

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for an EXCLUDE constraint violation
EXCLUSION_VIOLATION = "23P01"


class ScheduleStore(Protocol):
    """Store operations the scheduling engine depends on"""

    def get_business(self, business_id: int) -> Optional[Business]: ...

    def get_business_hours(self, business_id: int) -> Optional[dict]: ...

    def list_time_blocks(self, business_id: int) -> list[TimeBlock]: ...

    def list_active_jobs(self, business_id: int, range_start: datetime, range_end: datetime) -> list[Job]: ...

    def insert_time_block(self, business_id: int, **data) -> TimeBlock: ...

    def delete_time_block(self, block_id: int, business_id: int) -> bool: ...

    def update_job_scheduled_date(
        self, job: Job, new_start: Optional[datetime], new_end: Optional[datetime]
    ) -> Job: ...

    def get_job(self, job_id: int, business_id: int) -> Optional[Job]: ...

    def insert_job(self, business_id: int, **data) -> Job: ...

    def update_job_status(self, job: Job, status: str, completed_at: Optional[datetime] = None) -> Job: ...

    def update_business_hours(self, business: Business, hours: dict) -> Business: ...


def _is_exclusion_violation(error: IntegrityError) -> bool:
    orig = getattr(error, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == EXCLUSION_VIOLATION


class ScheduleRepository:
    """SQLAlchemy-backed schedule store. Every query is scoped to one business."""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _store_errors(self, action: str):
        """Translate driver failures into domain errors and leave the session usable"""
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            if _is_exclusion_violation(e):
                logger.warning(f"⚠️ Overlap rejected by database constraint while {action}")
                raise SlotUnavailableError() from e
            logger.error(f"❌ Integrity error while {action}: {e}")
            raise ScheduleStoreError(f"Failed while {action}") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"❌ Database error while {action}: {e}")
            raise ScheduleStoreError() from e

    # Business

    def get_business(self, business_id: int) -> Optional[Business]:
        with self._store_errors("loading business"):
            return self.db.query(Business).filter(Business.id == business_id).first()

    def get_business_hours(self, business_id: int) -> Optional[dict]:
        business = self.get_business(business_id)
        return business.business_hours if business else None

    def update_business_hours(self, business: Business, hours: dict) -> Business:
        with self._store_errors("updating business hours"):
            business.business_hours = hours
            self.db.commit()
            self.db.refresh(business)
            return business

    def _lock_business(self, business_id: int) -> Business:
        """Serialize calendar writes for one business for the rest of the transaction"""
        business = (
            self.db.query(Business).filter(Business.id == business_id).with_for_update().first()
        )
        if not business:
            raise TenantAccessError("Business not found")
        return business

    # Time blocks

    def list_time_blocks(self, business_id: int) -> list[TimeBlock]:
        """All templates for a business, unexpanded"""
        with self._store_errors("loading time blocks"):
            return (
                self.db.query(TimeBlock)
                .filter(TimeBlock.business_id == business_id)
                .order_by(TimeBlock.start_time.asc(), TimeBlock.id.asc())
                .all()
            )

    def get_time_block(self, block_id: int, business_id: int) -> Optional[TimeBlock]:
        with self._store_errors("loading time block"):
            return (
                self.db.query(TimeBlock)
                .filter(TimeBlock.id == block_id, TimeBlock.business_id == business_id)
                .first()
            )

    def insert_time_block(self, business_id: int, **data) -> TimeBlock:
        with self._store_errors("creating time block"):
            block = TimeBlock(business_id=business_id, **data)
            self.db.add(block)
            self.db.commit()
            self.db.refresh(block)
            return block

    def delete_time_block(self, block_id: int, business_id: int) -> bool:
        """Delete a template or one-off block. Returns False when nothing matched."""
        with self._store_errors("deleting time block"):
            deleted = (
                self.db.query(TimeBlock)
                .filter(TimeBlock.id == block_id, TimeBlock.business_id == business_id)
                .delete(synchronize_session=False)
            )
            self.db.commit()
            return deleted > 0

    # Jobs

    def list_active_jobs(self, business_id: int, range_start: datetime, range_end: datetime) -> list[Job]:
        """Scheduled and in-progress jobs whose start falls within ``[range_start, range_end]``"""
        with self._store_errors("loading jobs"):
            return (
                self.db.query(Job)
                .filter(
                    Job.business_id == business_id,
                    Job.status.in_(ACTIVE_JOB_STATUSES),
                    Job.scheduled_date.isnot(None),
                    Job.scheduled_date >= as_utc(range_start),
                    Job.scheduled_date <= as_utc(range_end),
                )
                .order_by(Job.scheduled_date.asc(), Job.id.asc())
                .all()
            )

    def get_job(self, job_id: int, business_id: int) -> Optional[Job]:
        with self._store_errors("loading job"):
            return (
                self.db.query(Job)
                .filter(Job.id == job_id, Job.business_id == business_id)
                .first()
            )

    def _find_overlapping_jobs(
        self, business_id: int, start: datetime, end: datetime, exclude_job_id: Optional[int] = None
    ) -> list[Job]:
        query = self.db.query(Job).filter(
            Job.business_id == business_id,
            Job.status.in_(ACTIVE_JOB_STATUSES),
            Job.scheduled_end.isnot(None),
            Job.scheduled_date < as_utc(end),
            Job.scheduled_end > as_utc(start),
        )
        if exclude_job_id is not None:
            query = query.filter(Job.id != exclude_job_id)
        return query.all()

    def insert_job(self, business_id: int, **data) -> Job:
        """
        Insert a job, re-checking overlap in the same transaction as the write.

        The business row lock serializes concurrent bookings for one business,
        so two requests that both passed the advisory availability check
        cannot both commit overlapping intervals.
        """
        with self._store_errors("creating job"):
            self._lock_business(business_id)
            start = as_utc(data.get("scheduled_date"))
            end = as_utc(data.get("scheduled_end"))
            if start is not None and end is not None:
                conflicts = self._find_overlapping_jobs(business_id, start, end)
                if conflicts:
                    self.db.rollback()
                    logger.info(
                        f"⛔ Booking for business {business_id} at {start.isoformat()} "
                        f"overlaps job(s) {[job.id for job in conflicts]}"
                    )
                    raise SlotUnavailableError()
            data["scheduled_date"] = start
            data["scheduled_end"] = end
            job = Job(business_id=business_id, **data)
            self.db.add(job)
            self.db.commit()
            self.db.refresh(job)
            return job

    def update_job_scheduled_date(
        self, job: Job, new_start: Optional[datetime], new_end: Optional[datetime]
    ) -> Job:
        """Move a job, with the same in-transaction overlap re-check as ``insert_job``"""
        with self._store_errors("updating job date"):
            self._lock_business(job.business_id)
            start = as_utc(new_start)
            end = as_utc(new_end)
            if start is not None and end is not None and job.status in ACTIVE_JOB_STATUSES:
                conflicts = self._find_overlapping_jobs(job.business_id, start, end, exclude_job_id=job.id)
                if conflicts:
                    self.db.rollback()
                    raise SlotUnavailableError(
                        "The new time overlaps another scheduled job. Please choose another time."
                    )
            job.scheduled_date = start
            job.scheduled_end = end
            self.db.commit()
            self.db.refresh(job)
            return job

    def update_job_status(self, job: Job, status: str, completed_at: Optional[datetime] = None) -> Job:
        with self._store_errors("updating job status"):
            job.status = status
            if completed_at is not None:
                job.completed_at = as_utc(completed_at)
            self.db.commit()
            self.db.refresh(job)
            return job
