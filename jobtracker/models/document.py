"""Document table for the SQL storage backend.

Each row holds one JSON document (an application, an interview, or the
preferences record) keyed by collection name and document id.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from jobtracker.models.base import Base


class DocumentRecord(Base):
    """Stored JSON document."""

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(50), primary_key=True)
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_modified_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
