"""
Memora Backend — Attachment Schemas
====================================

What:  API contracts for attachment upload responses and metadata.
Why:   The payload bytes never appear in JSON; they are only served by the
       download endpoint with their own Content-Type.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field

from memora.models.attachment import FileKind


class AttachmentSummary(BaseModel):
    """
    What:  One entry of the upload response (HTTP 201).
    Who:   Returned by POST /api/notes/{note_id}/attachments, one per file,
           in the order the files were sent.
    """
    attachment_id: uuid.UUID = Field(description="Identifier of the stored attachment")
    original_filename: str = Field(description="File name as uploaded")
    size_bytes: int = Field(description="Stored payload size in bytes")
    mime_type: str = Field(description="Validated MIME type")
    file_kind: FileKind = Field(description="Imagen or Video")
    uploaded_at: datetime = Field(description="Upload timestamp (UTC)")


class AttachmentDetail(BaseModel):
    """
    What:  Attachment metadata without the payload.
    Who:   Returned by GET /api/attachments/{id} and embedded in note details.
    """
    id: uuid.UUID = Field(description="Attachment identifier")
    original_filename: str
    file_kind: FileKind
    mime_type: str
    size_bytes: int
    uploaded_at: datetime
    note_id: uuid.UUID

    model_config = {"from_attributes": True}
