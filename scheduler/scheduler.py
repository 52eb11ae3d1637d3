"""Hourly scheduled newsletter delivery on Celery beat."""

import asyncio
import logging
from datetime import datetime, timezone

from celery import Celery
from celery.schedules import crontab

from soulthread.models.settings import Settings

logger = logging.getLogger(__name__)

settings = Settings()

app = Celery("soulthread-scheduler")

app.conf.update(
    broker_url=settings.celery_broker_url,
    result_backend=settings.celery_broker_url,
    timezone="UTC",
    enable_utc=True,
    beat_schedule={
        "send-scheduled-newsletters": {
            "task": "scheduler.scheduler.send_scheduled_newsletters_task",
            "schedule": crontab(minute=0),  # top of every hour, UTC
        },
    },
)


@app.task
def send_scheduled_newsletters_task(hour: int = None) -> dict:
    """Generate and send every newsletter due in the current UTC hour."""
    from soulthread.core.newsletter import NewsletterService

    try:
        logger.info("Starting scheduled newsletter delivery")
        summary = asyncio.run(NewsletterService(Settings()).scheduled_job.run(hour=hour))
        if summary.get("success"):
            logger.info(
                f"Scheduled delivery finished: {summary['sent']} sent, {summary['failed']} failed"
            )
        else:
            logger.error(f"Scheduled delivery failed: {summary.get('error')}")
        return summary
    except Exception as e:
        logger.error(f"Unexpected error in scheduled delivery task: {e}")
        return {
            "success": False,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "error": str(e),
        }


@app.task
def health_check_task() -> dict:
    """Report which external services are configured."""
    from soulthread.core.newsletter import NewsletterService

    status = NewsletterService(Settings()).service_status()
    return {
        "status": "success" if status["curated_dataset"] else "warning",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": status,
    }


if __name__ == "__main__":
    app.start()
