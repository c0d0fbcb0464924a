"""
Celery Application Configuration
Background worker and beat schedule for periodic finance jobs.
"""

from celery import Celery
from celery.schedules import crontab

from ..api.config import get_settings

settings = get_settings()

app = Celery(
    "picx",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["picx.tasks.finance"],
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=7 * 24 * 3600,
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=10 * 60,
    task_soft_time_limit=8 * 60,
    worker_prefetch_multiplier=1,
)

# Beat: the previous month's artist reports, 01:00 UTC on the 1st
app.conf.beat_schedule = {
    "generate-monthly-financial-reports": {
        "task": "tasks.generate_monthly_financial_reports",
        "schedule": crontab(minute=0, hour=1, day_of_month=1),
    },
}

if __name__ == "__main__":
    app.start()
