"""
Add storage-level double-booking protection to the jobs table

Migration to add:
- scheduled_end column (derived end of the occupied interval), backfilled
  with the same rule the availability engine applies at read time
- btree_gist extension
- jobs_no_overlap EXCLUDE constraint: two active jobs of the same business
  may not have overlapping [scheduled_date, scheduled_end) ranges

Date-only jobs (local midnight in the business timezone, no end yet) keep
scheduled_end NULL and stay outside the constraint, matching how availability
treats them.

PostgreSQL only. Run with: python migrations/add_job_overlap_exclusion.py
"""

import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import text

from opsuite.database import SessionLocal, engine
from opsuite.domain.scheduling.availability_service import job_interval
from opsuite.domain.scheduling.time_calculator import get_zone
from opsuite.models import Business, Job

CONSTRAINT_NAME = "jobs_no_overlap"


def backfill_scheduled_end(db) -> int:
    """Give timed jobs their derived end; date-only placeholders are left NULL"""
    zones = {
        business.id: get_zone(business.timezone)
        for business in db.query(Business).all()
    }
    jobs = (
        db.query(Job)
        .filter(Job.scheduled_date.isnot(None), Job.scheduled_end.is_(None))
        .all()
    )

    updated = 0
    for job in jobs:
        interval = job_interval(job, zones.get(job.business_id) or get_zone(None))
        if interval is None:
            continue
        job.scheduled_end = interval[1]
        updated += 1

    db.commit()
    return updated


def upgrade():
    """Add scheduled_end and the overlap exclusion constraint"""
    if engine.dialect.name != "postgresql":
        print(f"ℹ️  Skipping: exclusion constraints need PostgreSQL (dialect is {engine.dialect.name})")
        return

    with engine.connect() as conn:
        result = conn.execute(text("""
            SELECT column_name
            FROM information_schema.columns
            WHERE table_name = 'jobs'
            AND column_name = 'scheduled_end'
        """))
        if result.first() is None:
            conn.execute(text("""
                ALTER TABLE jobs
                ADD COLUMN scheduled_end TIMESTAMP WITH TIME ZONE
            """))
            print("✅ Added scheduled_end column")
        else:
            print("ℹ️  scheduled_end column already exists")
        conn.commit()

    db = SessionLocal()
    try:
        updated = backfill_scheduled_end(db)
        print(f"✅ Backfilled scheduled_end on {updated} job(s)")
    finally:
        db.close()

    with engine.connect() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS btree_gist"))
        print("✅ btree_gist extension available")

        result = conn.execute(
            text("SELECT 1 FROM pg_constraint WHERE conname = :name"),
            {"name": CONSTRAINT_NAME},
        )
        if result.first() is None:
            conn.execute(text(f"""
                ALTER TABLE jobs
                ADD CONSTRAINT {CONSTRAINT_NAME}
                EXCLUDE USING gist (
                    business_id WITH =,
                    tstzrange(scheduled_date, scheduled_end, '[)') WITH &&
                )
                WHERE (status IN ('scheduled', 'in_progress') AND scheduled_end IS NOT NULL)
            """))
            print(f"✅ Added {CONSTRAINT_NAME} exclusion constraint")
        else:
            print(f"ℹ️  {CONSTRAINT_NAME} constraint already exists")

        conn.commit()
        print("\n✅ Migration completed successfully!")


def downgrade():
    """Remove the exclusion constraint and scheduled_end"""
    if engine.dialect.name != "postgresql":
        print(f"ℹ️  Skipping: nothing to roll back on {engine.dialect.name}")
        return

    with engine.connect() as conn:
        conn.execute(text(f"ALTER TABLE jobs DROP CONSTRAINT IF EXISTS {CONSTRAINT_NAME}"))
        conn.execute(text("ALTER TABLE jobs DROP COLUMN IF EXISTS scheduled_end"))
        conn.commit()
        print("✅ Migration rolled back successfully!")


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Manage job overlap exclusion migration")
    parser.add_argument("--down", action="store_true", help="Rollback the migration")
    args = parser.parse_args()

    if args.down:
        print("Rolling back migration...")
        downgrade()
    else:
        print("Running migration...")
        upgrade()
