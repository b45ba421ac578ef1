"""
Memora Backend — Attachment SQLAlchemy Model
=============================================

What:  ORM model for the `attachments` table (images and videos bound to a note).
Why:   Attachments are stored inline as BLOBs next to their metadata, so one
       transaction covers both and a note delete cascades to its files.

Invariants (enforced by AttachmentService, the only writer):
    - size_bytes == len(data)
    - mime_type is the validator's canonical MIME and agrees with file_kind
    - note_id always references an existing note (ON DELETE CASCADE)

`data` is a deferred column: metadata queries never pull the payload.
"""

import enum
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    LargeBinary,
    String,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memora.database import Base

if TYPE_CHECKING:
    from memora.models.note import Note


class FileKind(str, enum.Enum):
    """Coarse classification derived from the validated MIME type."""

    IMAGEN = "Imagen"
    VIDEO = "Video"


class Attachment(Base):
    """A validated binary file attached to exactly one note."""

    __tablename__ = "attachments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    data: Mapped[bytes] = mapped_column(
        LargeBinary,
        nullable=False,
        deferred=True,
        comment="Raw file payload",
    )

    original_filename: Mapped[str] = mapped_column(String(255), nullable=False)

    file_kind: Mapped[FileKind] = mapped_column(
        SAEnum(
            FileKind,
            name="file_kind",
            native_enum=False,
            length=10,
            values_callable=lambda kinds: [k.value for k in kinds],
        ),
        nullable=False,
    )

    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)

    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)

    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    note_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("notes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    note: Mapped["Note"] = relationship(back_populates="attachments", lazy="raise")

    def __repr__(self) -> str:
        return (
            f"<Attachment(id={self.id}, note_id={self.note_id}, "
            f"mime_type='{self.mime_type}', size_bytes={self.size_bytes})>"
        )
