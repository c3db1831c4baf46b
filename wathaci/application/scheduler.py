"""
Background scheduler, runs periodic jobs inside the FastAPI process.

Jobs:
  - Subscription expiry (every 15 minutes)
  - Signup health check (hourly, logs a warning below 100%)
"""
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

scheduler = BackgroundScheduler(daemon=True)


def _run_subscription_expiry():
    from wathaci.infrastructure.db.session import get_session_factory
    from wathaci.application.subscriptions import expire_due_subscriptions

    Session = get_session_factory()
    db = Session()
    try:
        expire_due_subscriptions(db)
    except Exception:
        logger.exception("Subscription expiry job failed")
    finally:
        db.close()


def _run_signup_health_check():
    from wathaci.infrastructure.db.session import get_session_factory
    from wathaci.application.monitoring import monitor_signup_health

    Session = get_session_factory()
    db = Session()
    try:
        health = monitor_signup_health(db)
        if health["signups_missing_profiles"]:
            logger.warning(
                "Signup health %s%%: %d of %d recent signups have no profile",
                health["health_percentage"],
                health["signups_missing_profiles"],
                health["recent_signups_count"],
            )
    except Exception:
        logger.exception("Signup health check failed")
    finally:
        db.close()


def start_scheduler():
    """Start the background scheduler with all periodic jobs."""
    scheduler.add_job(
        _run_subscription_expiry,
        "interval",
        minutes=15,
        id="subscription_expiry",
        replace_existing=True,
    )

    scheduler.add_job(
        _run_signup_health_check,
        CronTrigger(minute=5),
        id="signup_health",
        replace_existing=True,
    )

    scheduler.start()
    logger.info("Scheduler started: subscription_expiry (every 15 min), signup_health (hourly at :05)")


def shutdown_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
