"""Helpers for running async handlers inside synchronous Celery tasks."""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from app.core.database import AsyncSessionLocal
from app.core.metrics import track_celery_task
from app.store.document_store import DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


@asynccontextmanager
async def invocation_store() -> AsyncIterator[DocumentStore]:
    """
    Open a document store for one task invocation.

    Documents created by handlers are routed through the same triggers as
    API writes.
    """
    from app.workers.triggers import dispatch_document_created

    async with AsyncSessionLocal() as db:
        yield DocumentStore(db, on_create=dispatch_document_created)


def run_task(task_name: str, handler: Callable[[], Awaitable[T]]) -> T:
    """
    Run an async handler in a fresh event loop (Celery worker context).

    Records duration and outcome metrics; exceptions propagate so the task's
    retry policy applies.
    """
    start = time.monotonic()
    try:
        result = asyncio.run(handler())
    except Exception:
        track_celery_task(task_name, "failure", time.monotonic() - start)
        logger.error("Task %s failed", task_name, exc_info=True)
        raise

    track_celery_task(task_name, "success", time.monotonic() - start)
    return result
