"""Store-event triggers: route created documents to their reactive Celery tasks.

The document store announces every durable create; this module decides which
handler, if any, runs for it. "When it runs" (the trigger) stays separate from
"what it does" (the service the task calls).
"""

import logging
from typing import Callable

from app.store.document_store import DocumentSnapshot
from app.store.paths import ACHIEVEMENT_TEMPLATE, STORY_TEMPLATE, match_path

logger = logging.getLogger(__name__)


def _enqueue_story_pruning(params: dict[str, str], snapshot: DocumentSnapshot) -> None:
    from app.workers.tasks.story_tasks import prune_account_stories

    prune_account_stories.delay(params["accountId"], params["storyId"])


def _enqueue_achievement_notification(params: dict[str, str], snapshot: DocumentSnapshot) -> None:
    from app.workers.tasks.achievement_tasks import notify_achievement_unlocked

    notify_achievement_unlocked.delay(params["accountId"], params["achievementId"], snapshot.data)


TRIGGER_ROUTES: tuple[tuple[str, Callable[[dict[str, str], DocumentSnapshot], None]], ...] = (
    (STORY_TEMPLATE, _enqueue_story_pruning),
    (ACHIEVEMENT_TEMPLATE, _enqueue_achievement_notification),
)


def dispatch_document_created(snapshot: DocumentSnapshot) -> bool:
    """
    Enqueue the handler for a newly created document.

    Returns:
        True if a handler was enqueued, False if no trigger matches the path
    """
    for template, enqueue in TRIGGER_ROUTES:
        params = match_path(template, snapshot.path)
        if params is None:
            continue
        enqueue(params, snapshot)
        logger.info("Trigger %s enqueued for %s", template, snapshot.path)
        return True
    return False
