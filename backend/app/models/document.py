"""Document model backing the hierarchical document store."""

from sqlalchemy import JSON, Column, DateTime, Index, String

from app.core.database import Base
from app.utils.datetime_utils import utc_now_lambda


class Document(Base):
    """One JSON document addressed by a slash-separated path.

    Paths alternate collection and document segments, e.g.::

        accounts/vk:42
        accounts/vk:42/children/c1
        accounts/vk:42/stories/8f3c...

    ``collection`` holds the parent collection path so that a collection can be
    scanned with a single indexed query ordered by ``created_at``.
    """

    __tablename__ = "documents"

    path = Column(String(512), primary_key=True)
    collection = Column(String(512), nullable=False)
    doc_id = Column(String(255), nullable=False)
    data = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=utc_now_lambda, nullable=False)
    updated_at = Column(DateTime, default=utc_now_lambda, onupdate=utc_now_lambda, nullable=False)

    __table_args__ = (
        Index("ix_documents_collection_created_at", "collection", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Document {self.path}>"
