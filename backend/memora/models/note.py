"""
Memora Backend — Note SQLAlchemy Model
=======================================

What:  ORM model representing the `notes` table.
Who:   Used by NoteService for CRUD and by AttachmentService for the
       ownership check (`notes.user_id == caller`).

Table Design Rationale:
    - UUID primary key: Non-sequential, so ids cannot be enumerated
    - title is optional (NULL when blank), content is required
    - updated_at starts equal to created_at and is refreshed only by updates
    - user_id cascades: removing a user removes their notes

    Index on (user_id, updated_at DESC):
        The note list is always "my notes, most recently modified first".
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memora.database import Base

if TYPE_CHECKING:
    from memora.models.attachment import Attachment
    from memora.models.user import User


class Note(Base):
    """
    A text note owned by one user.

    Lifecycle:
        1. Created by POST /api/notes (created_at == updated_at)
        2. Updated by PUT /api/notes/{id} (updated_at refreshed)
        3. Deleted by its owner together with all of its attachments
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    user: Mapped["User"] = relationship(back_populates="notes", lazy="raise")

    attachments: Mapped[List["Attachment"]] = relationship(
        back_populates="note",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        Index("idx_notes_user_updated_at", "user_id", updated_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Note(id={self.id}, user_id={self.user_id}, updated_at='{self.updated_at}')>"
