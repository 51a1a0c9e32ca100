"""Background scheduler — periodic counter reconciliation.

Jobs:
  - reconcile_counters: every RECONCILE_INTERVAL_MIN minutes, recomputes
    product counters and vendor aggregates from their sources of truth

Started from main.py's lifespan unless TESTING is set or
SCHEDULER_ENABLED is false.
"""

import logging
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

log = logging.getLogger("wedstay.scheduler")

scheduler = AsyncIOScheduler(
    job_defaults={"coalesce": True, "max_instances": 1, "misfire_grace_time": 300}
)


def configure_scheduler():
    """Register all jobs. Call once before scheduler.start()."""
    from .config import settings

    scheduler.add_job(
        _job_reconcile_counters,
        IntervalTrigger(minutes=settings.reconcile_interval_min),
        id="reconcile_counters",
        name="Reconcile product and vendor counters",
        replace_existing=True,
    )
    log.info(f"Scheduler configured: reconcile every {settings.reconcile_interval_min} min")


def _job_reconcile_counters():
    """Runs in the scheduler's thread pool; the session work is blocking."""
    from .database import SessionLocal
    from .services.metrics_service import reconcile_all

    started = datetime.now(timezone.utc)
    db = SessionLocal()
    try:
        summary = reconcile_all(db)
        elapsed = (datetime.now(timezone.utc) - started).total_seconds()
        log.info(f"Scheduled reconciliation finished in {elapsed:.1f}s: {summary}")
        return summary
    except Exception as e:
        log.error(f"Scheduled reconciliation failed: {e}")
        db.rollback()
        raise
    finally:
        db.close()
