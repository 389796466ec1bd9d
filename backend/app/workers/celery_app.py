"""Celery application configuration."""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as setup_logging_signal

from app.config import settings

# Create Celery app
celery_app = Celery(
    "master-parenthood",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    # Beat crontabs are evaluated in this zone
    timezone=settings.DECAY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,   # 5 minutes max
    task_soft_time_limit=270,  # 4.5 minutes soft limit
    # Reliability: re-queue tasks if a worker crashes mid-execution
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_retry_delay=60,   # 60 seconds base delay before first retry
)


class RetryableTask(celery_app.Task):
    """
    Base task class with automatic exponential-backoff retry on failure.

    Reactive handlers inherit this so transient store errors are retried.
    Override max_retries=0 on tasks that must not run twice (pet stat decay).
    """

    abstract = True
    autoretry_for = (Exception,)
    max_retries = 3
    retry_backoff = True        # Exponential: 60s → 120s → 240s
    retry_backoff_max = 600     # Cap at 10 minutes
    retry_jitter = True         # Add jitter to prevent thundering herd on retry wave


celery_app.Task = RetryableTask


@setup_logging_signal.connect
def _configure_worker_logging(**kwargs):
    """Use the application's structured logging in workers instead of Celery's default."""
    from app.core.logging_config import setup_logging

    setup_logging()


# Import tasks here as they're created
from app.workers.tasks import achievement_tasks  # noqa: F401,E402
from app.workers.tasks import pet_stats_tasks  # noqa: F401,E402
from app.workers.tasks import story_tasks  # noqa: F401,E402

# Beat schedule (periodic tasks)
celery_app.conf.beat_schedule = {
    "decay-pet-stats-daily": {
        "task": "decay_pet_stats",
        "schedule": crontab(hour=settings.DECAY_HOUR, minute=settings.DECAY_MINUTE),
    },
}
