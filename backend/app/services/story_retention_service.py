"""Story retention: keeps only the most recent stories per account.

Called by a Celery task whenever a story document is created. The triggering
story is already stored, so the cap applies to the post-insert count.
"""

import logging
from typing import Optional

from app.config import settings
from app.core.metrics import track_stories_pruned
from app.store.document_store import DocumentStore
from app.store.paths import STORIES, account_collection

logger = logging.getLogger(__name__)


class StoryRetentionService:
    """Enforce the per-account story cap."""

    @staticmethod
    async def prune_account(
        store: DocumentStore,
        account_id: str,
        *,
        cap: Optional[int] = None,
    ) -> int:
        """
        Delete every story beyond the ``cap`` newest for one account.

        Stories are ranked by ``createdAt`` descending; all deletions are
        committed in one atomic batch.

        Args:
            store: Document store for this invocation
            account_id: Owning account local id
            cap: Number of stories to keep (defaults to STORY_RETENTION_CAP)

        Returns:
            Number of stories deleted
        """
        cap = cap if cap is not None else settings.STORY_RETENTION_CAP
        collection = account_collection(account_id, STORIES)

        # Only the overflow needs to be read: everything past the newest `cap`
        overflow = await store.list_collection(collection, descending=True, offset=cap)
        if not overflow:
            logger.debug("Story retention: account=%s within cap=%d", account_id, cap)
            return 0

        batch = store.batch()
        for story in overflow:
            batch.delete(story.path)
        await batch.commit()

        track_stories_pruned(len(overflow))
        logger.info(
            "Story retention: deleted %d old stories for account=%s (cap=%d)",
            len(overflow),
            account_id,
            cap,
        )
        return len(overflow)
