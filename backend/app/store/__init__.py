"""Hierarchical document store (accounts and their owned collections)."""

from app.store.document_store import DocumentSnapshot, DocumentStore, WriteBatch

__all__ = [
    "DocumentSnapshot",
    "DocumentStore",
    "WriteBatch",
]
