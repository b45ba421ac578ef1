"""
Memora Backend — Note Schemas
==============================

What:  Request/response models for the notes API.
How:   Inputs are trimmed here so the service never stores padding:
       a blank title becomes null, blank content is rejected.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from memora.schemas.attachment import AttachmentDetail

MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 10_000


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class NoteWrite(BaseModel):
    """Shared body of create and update requests."""
    title: Optional[str] = Field(default=None, description="Optional title (max 200 chars)")
    content: str = Field(description="Note body (required, max 10,000 chars)")

    @field_validator("title")
    @classmethod
    def normalize_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        v = v.strip()
        if len(v) > MAX_TITLE_LENGTH:
            raise ValueError(f"Title cannot exceed {MAX_TITLE_LENGTH} characters")
        return v

    @field_validator("content")
    @classmethod
    def normalize_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Note content is required")
        if len(v) > MAX_CONTENT_LENGTH:
            raise ValueError(f"Content cannot exceed {MAX_CONTENT_LENGTH:,} characters")
        return v


class NoteCreate(NoteWrite):
    pass


class NoteUpdate(NoteWrite):
    pass


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteResponse(BaseModel):
    id: uuid.UUID
    title: Optional[str]
    content: str
    created_at: datetime
    updated_at: datetime
    user_id: uuid.UUID

    model_config = {"from_attributes": True}


class NoteDetailResponse(NoteResponse):
    """Note plus metadata of its attachments (payloads are never inlined)."""
    attachments: List[AttachmentDetail] = Field(default_factory=list)


class NoteListResponse(BaseModel):
    """
    What:  One page of the caller's notes, most recently modified first.

    Pagination strategy:
        Page-number pagination (page, page_size). Note lists are per-user
        and small, and clients jump to arbitrary pages.
    """
    notes: List[NoteResponse]
    total_count: int = Field(description="Notes matching the filter")
    page: int
    page_size: int
    total_pages: int
    has_next: bool
