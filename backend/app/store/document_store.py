"""Document store over SQLAlchemy.

Exposes the primitives the identity bridge and the maintenance jobs rely on:
get-by-key, create-if-absent, merge/overwrite writes, delete, ordered
collection scans and atomic multi-write batches. Every public write commits
its own transaction; a ``WriteBatch`` commits all of its operations in one.

Documents created through the store are announced to an optional
``on_create`` sink after the commit that made them durable. The API wires
the sink to the Celery trigger router so that story and achievement
creation fan out to the reactive handlers.
"""

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AlreadyExistsError,
    DocumentNotFoundError,
    StoreUnavailableError,
)
from app.models.document import Document
from app.store.paths import document_path, split_path
from app.utils.datetime_utils import isoformat, parse_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass
class DocumentSnapshot:
    """Read-only view of a stored document."""

    path: str
    id: str
    data: dict[str, Any]
    created_at: datetime

    @property
    def collection(self) -> str:
        return split_path(self.path)[0]


OnCreate = Callable[[DocumentSnapshot], None]


def to_document_data(value: Any) -> Any:
    """Convert a value into JSON-storable form (datetimes become ISO strings)."""
    if isinstance(value, dict):
        return {str(k): to_document_data(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document_data(v) for v in value]
    if isinstance(value, datetime):
        return isoformat(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def merge_data(base: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``changes`` into a copy of ``base``; nested maps merge, other values replace."""
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_data(merged[key], value)
        else:
            merged[key] = value
    return merged


class _Op(str, enum.Enum):
    CREATE = "create"
    SET = "set"
    UPDATE = "update"
    DELETE = "delete"


@dataclass
class _Write:
    op: _Op
    path: str
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False


class DocumentStore:
    """Async document store bound to one database session (one invocation)."""

    def __init__(self, db: AsyncSession, on_create: Optional[OnCreate] = None) -> None:
        self._db = db
        self._on_create = on_create

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, path: str) -> Optional[DocumentSnapshot]:
        """Fetch one document, or None if it does not exist."""
        split_path(path)
        try:
            result = await self._db.execute(
                select(Document.path, Document.doc_id, Document.data, Document.created_at).where(
                    Document.path == path
                )
            )
            row = result.first()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to read {path}: {exc}") from exc

        if row is None:
            return None
        return DocumentSnapshot(path=row.path, id=row.doc_id, data=dict(row.data or {}), created_at=row.created_at)

    async def list_collection(
        self,
        collection: str,
        *,
        descending: bool = False,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[DocumentSnapshot]:
        """
        Scan a collection ordered by creation time.

        Args:
            collection: Collection path, e.g. ``accounts/vk:42/stories``
            descending: Newest first when True
            limit: Maximum number of documents to return
            offset: Number of documents to skip

        Returns:
            Snapshots in creation order (path breaks ties)
        """
        if descending:
            order = (Document.created_at.desc(), Document.path.desc())
        else:
            order = (Document.created_at.asc(), Document.path.asc())

        query = (
            select(Document.path, Document.doc_id, Document.data, Document.created_at)
            .where(Document.collection == collection)
            .order_by(*order)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await self._db.execute(query)
            rows = result.all()
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(f"Failed to scan {collection}: {exc}") from exc

        return [
            DocumentSnapshot(path=row.path, id=row.doc_id, data=dict(row.data or {}), created_at=row.created_at)
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Single-document writes
    # ------------------------------------------------------------------

    async def create(self, path: str, data: dict[str, Any]) -> DocumentSnapshot:
        """
        Create a document only if it does not exist yet.

        Raises:
            AlreadyExistsError: If a document already lives at ``path``
            StoreUnavailableError: On any other persistence failure
        """
        batch = self.batch()
        batch.create(path, data)
        created = await batch.commit()
        return created[0]

    async def add(self, collection: str, data: dict[str, Any]) -> DocumentSnapshot:
        """Create a document with a generated id inside ``collection``."""
        return await self.create(document_path(collection, uuid.uuid4().hex), data)

    async def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        """Write a document, creating it if needed; ``merge`` keeps fields not in ``data``."""
        batch = self.batch()
        batch.set(path, data, merge=merge)
        await batch.commit()

    async def update(self, path: str, data: dict[str, Any]) -> None:
        """
        Replace top-level fields of an existing document.

        Raises:
            DocumentNotFoundError: If nothing lives at ``path``
        """
        batch = self.batch()
        batch.update(path, data)
        await batch.commit()

    async def delete(self, path: str) -> None:
        """Delete a document; deleting a missing document is a no-op."""
        batch = self.batch()
        batch.delete(path)
        await batch.commit()

    def batch(self) -> "WriteBatch":
        """Start an atomic multi-document write."""
        return WriteBatch(self)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _apply(self, write: _Write, now: datetime) -> Optional[DocumentSnapshot]:
        """Execute one staged write inside the current transaction."""
        collection, doc_id = split_path(write.path)

        if write.op is _Op.DELETE:
            await self._db.execute(delete(Document).where(Document.path == write.path))
            return None

        data = to_document_data(write.data)

        if write.op is _Op.CREATE:
            created_at = parse_timestamp(data.get("createdAt")) or now
            await self._db.execute(
                insert(Document).values(
                    path=write.path,
                    collection=collection,
                    doc_id=doc_id,
                    data=data,
                    created_at=created_at,
                    updated_at=now,
                )
            )
            return DocumentSnapshot(path=write.path, id=doc_id, data=data, created_at=created_at)

        result = await self._db.execute(
            select(Document.data).where(Document.path == write.path).with_for_update()
        )
        current = result.scalar_one_or_none()

        if current is None:
            if write.op is _Op.UPDATE:
                raise DocumentNotFoundError(write.path)
            created_at = parse_timestamp(data.get("createdAt")) or now
            await self._db.execute(
                insert(Document).values(
                    path=write.path,
                    collection=collection,
                    doc_id=doc_id,
                    data=data,
                    created_at=created_at,
                    updated_at=now,
                )
            )
            return DocumentSnapshot(path=write.path, id=doc_id, data=data, created_at=created_at)

        if write.op is _Op.UPDATE:
            new_data = {**current, **data}
        elif write.merge:
            new_data = merge_data(current, data)
        else:
            new_data = data

        await self._db.execute(
            update(Document).where(Document.path == write.path).values(data=new_data, updated_at=now)
        )
        return None

    async def _commit(self, writes: list[_Write]) -> list[DocumentSnapshot]:
        now = utc_now()
        created: list[DocumentSnapshot] = []
        current: Optional[_Write] = None
        try:
            for current in writes:
                snapshot = await self._apply(current, now)
                if snapshot is not None:
                    created.append(snapshot)
            await self._db.commit()
        except IntegrityError as exc:
            await self._db.rollback()
            if current is not None and current.op is _Op.CREATE:
                raise AlreadyExistsError(current.path) from exc
            raise StoreUnavailableError(f"Write rejected: {exc}") from exc
        except DocumentNotFoundError:
            await self._db.rollback()
            raise
        except SQLAlchemyError as exc:
            await self._db.rollback()
            raise StoreUnavailableError(f"Write failed: {exc}") from exc

        for snapshot in created:
            await self._announce(snapshot)
        return created

    async def _announce(self, snapshot: DocumentSnapshot) -> None:
        if self._on_create is None:
            return
        try:
            # Sinks may block on a broker round-trip
            await asyncio.to_thread(self._on_create, snapshot)
        except Exception:
            # The document is already durable; the missed trigger must be visible in logs
            logger.exception("Failed to dispatch create event for %s", snapshot.path)


class WriteBatch:
    """Staged writes committed atomically by ``commit()``."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store
        self._writes: list[_Write] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._writes)

    def create(self, path: str, data: dict[str, Any]) -> "WriteBatch":
        split_path(path)
        self._writes.append(_Write(_Op.CREATE, path, dict(data)))
        return self

    def set(self, path: str, data: dict[str, Any], *, merge: bool = False) -> "WriteBatch":
        split_path(path)
        self._writes.append(_Write(_Op.SET, path, dict(data), merge=merge))
        return self

    def update(self, path: str, data: dict[str, Any]) -> "WriteBatch":
        split_path(path)
        self._writes.append(_Write(_Op.UPDATE, path, dict(data)))
        return self

    def delete(self, path: str) -> "WriteBatch":
        split_path(path)
        self._writes.append(_Write(_Op.DELETE, path))
        return self

    @property
    def paths(self) -> list[str]:
        return [w.path for w in self._writes]

    async def commit(self) -> list[DocumentSnapshot]:
        """
        Apply every staged write in one transaction.

        Returns:
            Snapshots of documents created by the batch

        Raises:
            AlreadyExistsError: A staged create hit an existing document
            DocumentNotFoundError: A staged update targeted a missing document
            StoreUnavailableError: Any other persistence failure
        """
        if self._committed:
            raise RuntimeError("WriteBatch already committed")
        self._committed = True
        if not self._writes:
            return []
        return await self._store._commit(self._writes)
