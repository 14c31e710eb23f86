import logging
from typing import Callable

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from app.config import settings
from app.services import blocked_ips, devices, notifications, tasks

logger = logging.getLogger(__name__)


def run_job(db_factory: Callable[[], Session], name: str, job: Callable[[Session], object]):
    """Runs one maintenance job in its own session."""
    db = db_factory()
    try:
        result = job(db)
        logger.info("Scheduled job finished", extra={"job": name})
        return result
    except Exception:
        db.rollback()
        logger.exception("Scheduled job %s failed", name)
        return None
    finally:
        db.close()


def process_notifications_job(db_factory: Callable[[], Session]):
    return run_job(db_factory, "process_due_notifications", notifications.process_due_notifications)


def expire_tasks_job(db_factory: Callable[[], Session]):
    return run_job(db_factory, "expire_overdue_tasks", tasks.expire_overdue_tasks)


def cleanup_devices_job(db_factory: Callable[[], Session]):
    return run_job(db_factory, "cleanup_inactive_devices", devices.cleanup_inactive_devices)


def cleanup_blocks_job(db_factory: Callable[[], Session]):
    return run_job(db_factory, "cleanup_expired_ip_blocks", blocked_ips.cleanup_expired_blocks)


_global_scheduler = None


def build_scheduler(db_factory: Callable[[], Session]) -> BackgroundScheduler:
    sched = BackgroundScheduler()

    sched.add_job(
        process_notifications_job,
        trigger="interval",
        seconds=settings.notification_poll_seconds,
        args=[db_factory],
        id="process_due_notifications",
        replace_existing=True,
        max_instances=1
    )
    sched.add_job(
        expire_tasks_job,
        trigger="interval",
        hours=1,
        args=[db_factory],
        id="expire_overdue_tasks",
        replace_existing=True,
        max_instances=1
    )
    sched.add_job(
        cleanup_devices_job,
        trigger=CronTrigger(hour=3, minute=0, timezone="UTC"),
        args=[db_factory],
        id="cleanup_inactive_devices",
        replace_existing=True,
        max_instances=1
    )
    sched.add_job(
        cleanup_blocks_job,
        trigger=CronTrigger(hour=3, minute=30, timezone="UTC"),
        args=[db_factory],
        id="cleanup_expired_ip_blocks",
        replace_existing=True,
        max_instances=1
    )
    return sched


def start_scheduler(db_factory: Callable[[], Session]) -> BackgroundScheduler:
    """Starts the background maintenance jobs."""
    global _global_scheduler
    sched = build_scheduler(db_factory)
    sched.start()
    _global_scheduler = sched
    logger.info("Scheduler started", extra={"jobs": [job.id for job in sched.get_jobs()]})
    return sched


def shutdown_scheduler():
    global _global_scheduler
    if _global_scheduler:
        _global_scheduler.shutdown(wait=False)
        _global_scheduler = None
