"""
Memora Backend — User SQLAlchemy Model
=======================================

What:  ORM model for the `users` table.
Why:   Users are the ownership anchor: every note, and through it every
       attachment, belongs to exactly one user.

Table Design Rationale:
    - email is unique and stored lower-cased, so lookups are exact matches
    - password_hash holds a bcrypt hash produced by passlib, never plaintext
"""

import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from memora.database import Base

if TYPE_CHECKING:
    from memora.models.note import Note


class User(Base):
    """A registered account."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    full_name: Mapped[str] = mapped_column(String(100), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Login identifier, stored lower-cased",
    )

    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # lazy="raise": async sessions cannot lazy-load
    notes: Mapped[List["Note"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"
