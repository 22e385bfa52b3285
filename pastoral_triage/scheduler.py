"""
APScheduler job runner for periodic email triage.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from pastoral_triage.config import settings
from pastoral_triage.core.errors import CycleInProgressError
from pastoral_triage.core.logging import get_logger
from pastoral_triage.processors.triage import TriageProcessor, get_processor

log = get_logger(__name__)

JOB_ID = "triage_cycle"

# Global scheduler instance
_scheduler: BackgroundScheduler | None = None


def triage_job(processor: TriageProcessor | None = None) -> None:
    """Scheduled job: run one triage cycle.

    Errors are logged and never propagate, so a failing cycle cannot take
    the scheduler down. A tick that arrives while a cycle is still running
    is skipped.
    """
    processor = processor or get_processor()

    log.info("scheduled_job_starting", job=JOB_ID)
    try:
        result = processor.run_cycle()
        log.info("scheduled_job_complete", job=JOB_ID, **result.to_dict())
    except CycleInProgressError:
        log.info("scheduled_job_skipped", job=JOB_ID, reason="cycle_in_progress")
    except Exception as e:
        log.error("scheduled_job_error", job=JOB_ID, error=str(e), error_type=type(e).__name__)


def start_scheduler(
    schedule: str | None = None,
    processor: TriageProcessor | None = None,
) -> BackgroundScheduler:
    """
    Start the background triage scheduler.

    Args:
        schedule: Crontab expression (default: settings.triage_schedule, every 5 minutes)
        processor: Processor to run (default: the shared processor)

    Returns:
        The scheduler instance
    """
    global _scheduler

    if _scheduler is not None:
        log.warning("scheduler_already_running")
        return _scheduler

    schedule = schedule or settings.triage_schedule
    trigger = CronTrigger.from_crontab(schedule)

    _scheduler = BackgroundScheduler()

    _scheduler.add_job(
        triage_job,
        trigger=trigger,
        kwargs={"processor": processor},
        id=JOB_ID,
        name="Triage recent email",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    _scheduler.start()
    log.info("scheduler_started", schedule=schedule)

    return _scheduler


def stop_scheduler() -> None:
    """Stop the background scheduler.

    No further ticks fire; a cycle already running is left to finish.
    """
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        log.info("scheduler_stopped")


def get_scheduler() -> BackgroundScheduler | None:
    """Get the current scheduler instance."""
    return _scheduler


def run_now() -> None:
    """Manually trigger the triage job."""
    triage_job()
