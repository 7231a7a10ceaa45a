# app/worker/scheduler.py
from __future__ import annotations

import logging
import os

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from tzlocal import get_localzone

from app.db.session import SessionLocal
from app.services.cleanup import cleanup_expired_invitations, CLEANUP_EXPIRATION_DAYS

logger = logging.getLogger("app.scheduler")


def run_daily_cleanup() -> dict:
    """
    One-shot daily job: remove invited accounts still pending after
    CLEANUP_EXPIRATION_DAYS. Opens its own DB session.
    """
    days = int(os.getenv("CLEANUP_EXPIRATION_DAYS", str(CLEANUP_EXPIRATION_DAYS)))
    db = SessionLocal()
    try:
        return cleanup_expired_invitations(db, expiration_days=days).as_dict()
    except Exception:
        db.rollback()
        logger.exception("daily cleanup crashed")
        return {"success": False}
    finally:
        db.close()


def _resolve_timezone() -> str:
    tzname = os.getenv("APP_TIMEZONE")
    if tzname:
        return tzname
    try:
        return str(get_localzone())
    except Exception:
        return "UTC"


def make_scheduler() -> BackgroundScheduler:
    """
    Create and return a BackgroundScheduler instance configured from env:
      - APP_TIMEZONE           (default: system tz via tzlocal or 'UTC')
      - APP_SCHEDULER_HOUR     (default: 3)
      - APP_SCHEDULER_MINUTE   (default: 0)
    """
    hour = int(os.getenv("APP_SCHEDULER_HOUR", "3"))  # default 03:00 local time
    minute = int(os.getenv("APP_SCHEDULER_MINUTE", "0"))

    sched = BackgroundScheduler(timezone=_resolve_timezone())

    sched.add_job(
        run_daily_cleanup,
        CronTrigger(hour=hour, minute=minute),
        id="cleanup_expired_invitations",
        replace_existing=True,
    )

    return sched
