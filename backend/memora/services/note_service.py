"""
Memora Backend — Note Service
==============================

What:  CRUD for the caller's notes.
Who:   Called by the note route handlers.

Design Decision:
    NoteService is stateless. It receives the request's session for each
    call and filters every query on `notes.user_id = :caller`, so a foreign
    note behaves exactly like a missing one.

Deletion:
    Attachments are deleted explicitly before their note. The foreign key
    also cascades, but SQLite only honours it with PRAGMA foreign_keys on.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import delete, desc, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memora.exceptions import DatabaseError, NotFoundError
from memora.models.attachment import Attachment
from memora.models.note import Note
from memora.schemas.attachment import AttachmentDetail
from memora.schemas.note import (
    NoteCreate,
    NoteDetailResponse,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class NoteService:
    """
    Business logic layer for note operations.

    Responsibilities:
        - create_note(): New note owned by the caller
        - get_note(): Single note with its attachment metadata
        - list_notes(): Paginated, searchable listing
        - update_note(): Replace title/content, refresh updated_at
        - delete_note(): Remove a note and its attachments
    """

    async def create_note(
        self, db: AsyncSession, user_id: UUID, payload: NoteCreate
    ) -> NoteResponse:
        now = datetime.now(timezone.utc)
        note = Note(
            title=payload.title,
            content=payload.content,
            created_at=now,
            updated_at=now,
            user_id=user_id,
        )
        try:
            db.add(note)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error creating note for user %s: %s", user_id, str(e))
            raise DatabaseError(
                message="Could not save the note. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("Note created: %s", note.id)
        return NoteResponse.model_validate(note)

    async def _get_owned(self, db: AsyncSession, note_id: UUID, user_id: UUID) -> Note:
        result = await db.execute(
            select(Note).where(Note.id == note_id, Note.user_id == user_id)
        )
        note = result.scalar_one_or_none()
        if note is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))
        return note

    async def get_note(
        self, db: AsyncSession, note_id: UUID, user_id: UUID
    ) -> NoteDetailResponse:
        """
        Retrieve a single note with the metadata of its attachments.

        Query plan:
            SELECT * FROM notes WHERE id = :id AND user_id = :caller
            SELECT attachments.* (minus data) WHERE note_id = :id
            ORDER BY uploaded_at

        Raises:
            NotFoundError: Missing, or owned by another user (→ 404)
            DatabaseError: Query execution failed (→ 500)
        """
        try:
            note = await self._get_owned(db, note_id, user_id)
            result = await db.execute(
                select(Attachment)
                .where(Attachment.note_id == note.id)
                .order_by(Attachment.uploaded_at)
            )
            attachments = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error fetching note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        return NoteDetailResponse(
            **NoteResponse.model_validate(note).model_dump(),
            attachments=[AttachmentDetail.model_validate(a) for a in attachments],
        )

    async def list_notes(
        self,
        db: AsyncSession,
        user_id: UUID,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
        search: Optional[str] = None,
    ) -> NoteListResponse:
        """
        One page of the caller's notes, most recently modified first.

        Query plan:
            SELECT * FROM notes WHERE user_id = :caller
              [AND (title ILIKE :term OR content ILIKE :term)]
            ORDER BY updated_at DESC LIMIT :page_size OFFSET :offset
            → idx_notes_user_updated_at

        Args:
            page: 1-based page number
            page_size: Items per page, clamped to [1, 100]
            search: Case-insensitive substring over title and content;
                blank means no filter
        """
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        filters = [Note.user_id == user_id]
        term = search.strip() if search else ""
        if term:
            pattern = f"%{_escape_like(term)}%"
            filters.append(
                or_(
                    Note.title.ilike(pattern, escape="\\"),
                    Note.content.ilike(pattern, escape="\\"),
                )
            )

        try:
            count_result = await db.execute(select(func.count(Note.id)).where(*filters))
            total_count = count_result.scalar() or 0

            result = await db.execute(
                select(Note)
                .where(*filters)
                .order_by(desc(Note.updated_at), desc(Note.id))
                .offset((page - 1) * page_size)
                .limit(page_size)
            )
            notes = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            )

        total_pages = math.ceil(total_count / page_size) if total_count else 0
        return NoteListResponse(
            notes=[NoteResponse.model_validate(n) for n in notes],
            total_count=total_count,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next=page < total_pages,
        )

    async def update_note(
        self, db: AsyncSession, note_id: UUID, user_id: UUID, payload: NoteUpdate
    ) -> NoteResponse:
        """
        Replace title and content of an owned note.

        Raises:
            NotFoundError: Missing, or owned by another user
        """
        try:
            note = await self._get_owned(db, note_id, user_id)
            note.title = payload.title
            note.content = payload.content
            note.updated_at = datetime.now(timezone.utc)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Database error updating note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not update the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        logger.info("Note updated: %s", note_id)
        return NoteResponse.model_validate(note)

    async def delete_note(self, db: AsyncSession, note_id: UUID, user_id: UUID) -> bool:
        """
        Delete an owned note and all of its attachments.

        Returns:
            True if the note was removed; False if it does not exist or
            belongs to another user.
        """
        try:
            owned = await db.execute(
                select(Note.id).where(Note.id == note_id, Note.user_id == user_id)
            )
            if owned.scalar_one_or_none() is None:
                return False

            removed_attachments = await db.execute(
                delete(Attachment)
                .where(Attachment.note_id == note_id)
                .execution_options(synchronize_session=False)
            )
            result = await db.execute(
                delete(Note)
                .where(Note.id == note_id, Note.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not delete the note. Please try again.",
                context={"note_id": str(note_id)},
            )

        removed = (result.rowcount or 0) > 0
        if removed:
            logger.info(
                "Note deleted: %s (%d attachments)",
                note_id,
                removed_attachments.rowcount or 0,
            )
        return removed


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService()
