"""Celery application configuration."""

from datetime import timedelta

from celery import Celery

from app.core.config import settings

# Create Celery application
celery_app = Celery(
    "postboard",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.workers.tasks"],
)

# Celery configuration
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max per task
    task_soft_time_limit=240,
    worker_prefetch_multiplier=1,  # Fetch one task at a time
    worker_max_tasks_per_child=50,  # Restart worker after 50 tasks
    beat_schedule_filename="/tmp/celerybeat-schedule",  # Celery Beat schedule file
)


# Celery Beat schedule
# Purge expired refresh tokens and revoked ones past the retention window
celery_app.conf.beat_schedule = {
    "cleanup-expired-refresh-tokens": {
        "task": "app.workers.tasks.cleanup_expired_refresh_tokens",
        "schedule": timedelta(minutes=settings.REFRESH_TOKEN_CLEANUP_MINUTES),
    },
}

if __name__ == "__main__":
    celery_app.start()
