import atexit
from typing import Optional
from apscheduler.schedulers.background import BackgroundScheduler
from config.config import Config
from peerreview.utils.logger import get_logger

logger = get_logger(__name__)

_scheduler: Optional[BackgroundScheduler] = None


def get_scheduler() -> Optional[BackgroundScheduler]:
    """Return the running background scheduler, if any"""
    if _scheduler is not None and _scheduler.running:
        return _scheduler
    return None


def start_scheduler() -> BackgroundScheduler:
    """Start the background scheduler with the assignment expiry sweep"""
    global _scheduler

    if get_scheduler() is not None:
        return _scheduler

    from peerreview.services.assignment_service import ReviewAssignmentEngine
    engine = ReviewAssignmentEngine()

    _scheduler = BackgroundScheduler()
    _scheduler.add_job(
        func=engine.expire_overdue,
        trigger='interval',
        minutes=Config.EXPIRY_SWEEP_MINUTES,
        id='expire_overdue_assignments',
        replace_existing=True
    )
    _scheduler.start()
    atexit.register(shutdown_scheduler)

    logger.info(f"Scheduler started, expiry sweep every {Config.EXPIRY_SWEEP_MINUTES} minutes")
    return _scheduler


def shutdown_scheduler():
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None
