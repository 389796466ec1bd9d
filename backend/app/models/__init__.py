"""SQLAlchemy models package."""

from app.models.document import Document

__all__ = [
    "Document",
]
