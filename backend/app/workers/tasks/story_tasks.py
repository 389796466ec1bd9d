"""Celery task enforcing story retention after a story is created."""

import logging
from typing import Optional

from app.workers.celery_app import celery_app
from app.workers.runtime import invocation_store, run_task

logger = logging.getLogger(__name__)


@celery_app.task(name="prune_account_stories")
def prune_account_stories(account_id: str, story_id: Optional[str] = None):
    """
    Delete stories beyond the retention cap for one account.

    Fired on every story creation; safe to retry since pruning an account that
    is already within the cap deletes nothing.
    """
    logger.debug("prune_account_stories: account=%s story=%s", account_id, story_id)

    async def _run() -> int:
        from app.services.story_retention_service import StoryRetentionService

        async with invocation_store() as store:
            return await StoryRetentionService.prune_account(store, account_id)

    return run_task("prune_account_stories", _run)
