"""
Memora Backend — Attachment Store
==================================

What:  Persists validated attachments as BLOBs and serves them back, always
       scoped to the caller through the User → Note → Attachment chain.
Who:   Called by the attachment route handlers.

Upload Flow:
    ┌──────────────┐    ┌─────────────────┐    ┌─────────────┐    ┌──────────┐
    │ Owned note?  │───▶│ Validate EVERY  │───▶│ Compress    │───▶│ db.add + │
    │ (one query)  │    │ file (pure)     │    │ (images)    │    │ flush    │
    └──────────────┘    └─────────────────┘    └─────────────┘    └──────────┘

    All files of a request are validated before the first one is added, and
    the request's session commits once at the end (see database.py). A batch
    is therefore stored completely or not at all.

Ownership:
    Every read and delete filters on `notes.user_id = :caller` in the same
    query that looks up the attachment. A foreign attachment and a missing
    one produce the same result, so ids cannot be probed.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from memora.exceptions import DatabaseError, NotFoundError, ValidationError
from memora.models.attachment import Attachment, FileKind
from memora.models.note import Note
from memora.schemas.attachment import AttachmentDetail, AttachmentSummary
from memora.services.compression import ImageCompressor, image_compressor
from memora.services.file_validator import FileValidator, ValidationOutcome, file_validator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UploadCandidate:
    """One file of an upload request, exactly as the client sent it."""

    filename: str
    content: bytes
    content_type: Optional[str]


@dataclass(frozen=True)
class AttachmentContent:
    """Payload plus the headers needed to serve it."""

    data: bytes
    mime_type: str
    filename: str


class AttachmentService:
    """
    Ownership-scoped storage for attachment BLOBs.

    Responsibilities:
        - persist() / persist_many(): validated, all-or-nothing uploads
        - get_metadata(): attachment details without the payload
        - get_content(): payload for download
        - delete(): remove one attachment

    Error Handling Strategy:
        Validator rejections become FileValidationError (400/413/415).
        Missing or foreign notes/attachments become NotFoundError (404).
        SQLAlchemy failures are wrapped in DatabaseError (500).
    """

    def __init__(
        self,
        validator: Optional[FileValidator] = None,
        compressor: Optional[ImageCompressor] = None,
    ):
        self.validator = validator or file_validator
        self.compressor = compressor or image_compressor

    # ── Upload ────────────────────────────────────────────────────────────

    async def persist(
        self,
        db: AsyncSession,
        note_id: uuid.UUID,
        user_id: uuid.UUID,
        filename: str,
        content: bytes,
        content_type: Optional[str],
    ) -> AttachmentSummary:
        """Validate and store a single file. See persist_many()."""
        summaries = await self.persist_many(
            db,
            note_id=note_id,
            user_id=user_id,
            uploads=[UploadCandidate(filename=filename, content=content, content_type=content_type)],
        )
        return summaries[0]

    async def persist_many(
        self,
        db: AsyncSession,
        note_id: uuid.UUID,
        user_id: uuid.UUID,
        uploads: Sequence[UploadCandidate],
    ) -> List[AttachmentSummary]:
        """
        Validate every upload, then store them all on the caller's note.

        Args:
            db: Request-scoped session; this method flushes but never commits
            note_id: Target note
            user_id: Authenticated caller
            uploads: Files in request order

        Returns:
            One AttachmentSummary per upload, in request order.

        Raises:
            ValidationError: No files were provided
            NotFoundError: Note missing or owned by someone else
            FileValidationError: First file (in request order) that failed
            DatabaseError: Query or flush failed
        """
        if not uploads:
            raise ValidationError(message="No files were provided", field="files")

        try:
            await self._require_owned_note(db, note_id, user_id)

            outcomes = [self._validate(upload, note_id) for upload in uploads]

            summaries = []
            for upload, outcome in zip(uploads, outcomes):
                summaries.append(await self._add(db, note_id, upload, outcome))
            await db.flush()

        except SQLAlchemyError as e:
            logger.error("Database error storing attachments on note %s: %s", note_id, str(e))
            raise DatabaseError(
                message="Could not store the uploaded files. Please try again.",
                context={"note_id": str(note_id), "error_type": type(e).__name__},
            )

        for summary in summaries:
            logger.info(
                "Attachment stored: %s on note %s (%s, %d bytes)",
                summary.attachment_id,
                note_id,
                summary.mime_type,
                summary.size_bytes,
            )
        return summaries

    async def _require_owned_note(
        self, db: AsyncSession, note_id: uuid.UUID, user_id: uuid.UUID
    ) -> None:
        result = await db.execute(
            select(Note.id).where(Note.id == note_id, Note.user_id == user_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError(resource="note", resource_id=str(note_id))

    def _validate(self, upload: UploadCandidate, note_id: uuid.UUID) -> ValidationOutcome:
        outcome = self.validator.validate(upload.content, upload.filename, upload.content_type)
        if not outcome.accepted:
            logger.warning(
                "Upload rejected for note %s: file=%r reason=%s size=%d",
                note_id,
                upload.filename,
                outcome.reason.value,
                len(upload.content),
            )
            outcome.raise_for_rejection(upload.filename)
        return outcome

    async def _add(
        self,
        db: AsyncSession,
        note_id: uuid.UUID,
        upload: UploadCandidate,
        outcome: ValidationOutcome,
    ) -> AttachmentSummary:
        data = upload.content
        if outcome.file_kind is FileKind.IMAGEN:
            data = await self.compressor.compress(data, outcome.mime_type)

        attachment = Attachment(
            id=uuid.uuid4(),
            data=data,
            original_filename=upload.filename,
            file_kind=outcome.file_kind,
            mime_type=outcome.mime_type,
            size_bytes=len(data),
            uploaded_at=datetime.now(timezone.utc),
            note_id=note_id,
        )
        db.add(attachment)

        return AttachmentSummary(
            attachment_id=attachment.id,
            original_filename=attachment.original_filename,
            size_bytes=attachment.size_bytes,
            mime_type=attachment.mime_type,
            file_kind=attachment.file_kind,
            uploaded_at=attachment.uploaded_at,
        )

    # ── Retrieval ─────────────────────────────────────────────────────────

    async def get_metadata(
        self, db: AsyncSession, attachment_id: uuid.UUID, user_id: uuid.UUID
    ) -> AttachmentDetail:
        """
        Attachment metadata for its owner.

        Query plan:
            SELECT attachments.* (minus data) FROM attachments
            JOIN notes ON notes.id = attachments.note_id
            WHERE attachments.id = :id AND notes.user_id = :caller

        Raises:
            NotFoundError: Missing, or owned by another user
        """
        try:
            result = await db.execute(
                select(Attachment)
                .join(Note, Attachment.note_id == Note.id)
                .where(Attachment.id == attachment_id, Note.user_id == user_id)
            )
            attachment = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error fetching attachment %s: %s", attachment_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the file. Please try again.",
                context={"attachment_id": str(attachment_id)},
            )

        if attachment is None:
            raise NotFoundError(resource="attachment", resource_id=str(attachment_id))
        return AttachmentDetail.model_validate(attachment)

    async def get_content(
        self, db: AsyncSession, attachment_id: uuid.UUID, user_id: uuid.UUID
    ) -> AttachmentContent:
        """
        Attachment payload for its owner.

        Selects only the three columns needed to serve the file.

        Raises:
            NotFoundError: Missing, or owned by another user
        """
        try:
            result = await db.execute(
                select(Attachment.data, Attachment.mime_type, Attachment.original_filename)
                .join(Note, Attachment.note_id == Note.id)
                .where(Attachment.id == attachment_id, Note.user_id == user_id)
            )
            row = result.one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error reading attachment %s: %s", attachment_id, str(e))
            raise DatabaseError(
                message="Could not retrieve the file. Please try again.",
                context={"attachment_id": str(attachment_id)},
            )

        if row is None:
            raise NotFoundError(resource="attachment", resource_id=str(attachment_id))
        return AttachmentContent(data=row.data, mime_type=row.mime_type, filename=row.original_filename)

    # ── Deletion ──────────────────────────────────────────────────────────

    async def delete(
        self, db: AsyncSession, attachment_id: uuid.UUID, user_id: uuid.UUID
    ) -> bool:
        """
        Delete an attachment owned by the caller.

        Returns:
            True if a row was removed; False if the attachment does not exist
            or belongs to another user.
        """
        owned_notes = select(Note.id).where(Note.user_id == user_id)
        try:
            result = await db.execute(
                delete(Attachment)
                .where(Attachment.id == attachment_id, Attachment.note_id.in_(owned_notes))
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            logger.error("Database error deleting attachment %s: %s", attachment_id, str(e))
            raise DatabaseError(
                message="Could not delete the file. Please try again.",
                context={"attachment_id": str(attachment_id)},
            )

        removed = (result.rowcount or 0) > 0
        if removed:
            logger.info("Attachment deleted: %s", attachment_id)
        return removed


attachment_service = AttachmentService()
