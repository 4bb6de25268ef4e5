# citymarket/scheduler.py
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from .utils import logger

def build_scheduler(auth, refresh_minutes):
    """Schedule periodic token refresh for the signed-in session.

    Returns ``None`` when ``refresh_minutes`` is 0, which disables the job.
    """
    if refresh_minutes <= 0:
        return None
    scheduler = AsyncIOScheduler()
    scheduler.add_job(auth.refresh_session, 'interval', minutes=refresh_minutes, id="refresh_session")
    return scheduler

def start_scheduler(auth, refresh_minutes):
    scheduler = build_scheduler(auth, refresh_minutes)
    if scheduler is not None:
        scheduler.start()
        logger.info("Scheduler started (session refresh every %s min)", refresh_minutes)
    return scheduler
