"""Celery task for the daily pet stat decay."""

import logging
from dataclasses import asdict

from app.workers.celery_app import celery_app
from app.workers.runtime import invocation_store, run_task

logger = logging.getLogger(__name__)


@celery_app.task(name="decay_pet_stats", autoretry_for=(), max_retries=0)
def decay_pet_stats():
    """
    Celery Beat entry point (fires daily at DECAY_HOUR:DECAY_MINUTE in DECAY_TIMEZONE).

    Never retried: a second run in the same period would decay stats twice.
    Partial failures are reported in the returned summary and in the logs.
    """
    return run_task("decay_pet_stats", _decay_pet_stats_async)


async def _decay_pet_stats_async() -> dict:
    from app.services.pet_stats_service import PetStatsService

    async with invocation_store() as store:
        report = await PetStatsService.decay_all(store)
    return asdict(report)
