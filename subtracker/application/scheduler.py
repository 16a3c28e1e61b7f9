"""
Background scheduler — runs periodic jobs inside the FastAPI process.

Jobs:
  - Renewal rollover (daily at ROLLOVER_HOUR_UTC)
  - Alert digest (daily, right after the rollover): logs the alerts due today
"""
import logging
from datetime import date

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from subtracker.config import get_settings

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_rollover():
    from subtracker.infrastructure.db.session import get_session_factory
    from subtracker.application.subscriptions import RolloverRenewalsUseCase

    Session = get_session_factory()
    db = Session()
    try:
        RolloverRenewalsUseCase(db).execute(date.today())
    except Exception:
        logger.exception("Renewal rollover job failed")
    finally:
        db.close()


def _run_alert_digest():
    from subtracker.infrastructure.db.session import get_session_factory
    from subtracker.application.dashboard import DashboardService

    Session = get_session_factory()
    db = Session()
    try:
        alerts = DashboardService(db).get_alerts(date.today())
        for a in alerts:
            logger.info(
                "Renewal alert [%s]: %s renews on %s (%d day(s)), %.2f",
                a["urgency"], a["subscription_name"], a["renewal_date"], a["days_until"], a["amount"],
            )
        logger.info("Alert digest: %d alert(s) due", len(alerts))
    except Exception:
        logger.exception("Alert digest job failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    hour = get_settings().ROLLOVER_HOUR_UTC

    scheduler.add_job(
        _run_rollover,
        CronTrigger(hour=hour, minute=0, timezone="UTC"),
        id="renewal_rollover",
        replace_existing=True,
    )

    scheduler.add_job(
        _run_alert_digest,
        CronTrigger(hour=hour, minute=5, timezone="UTC"),
        id="alert_digest",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(
        "Scheduler started: renewal_rollover (%02d:00 UTC), alert_digest (%02d:05 UTC)", hour, hour
    )


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
