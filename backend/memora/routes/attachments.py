"""
Memora Backend — Attachment Route Handlers
===========================================

What:  Upload, inspect, download and delete note attachments.
Who:   Called by the note editor in the frontend.

Upload contract:
    POST /api/notes/{note_id}/attachments, multipart/form-data, one or more
    parts named `files`. Parts are validated in request order; the first
    rejected part fails the whole request and nothing is stored.

Error responses (rendered by the global handler):
    400  no files, bad file name, size below minimum, corrupted content,
         content that does not match its declared type
    401  missing or invalid bearer token
    404  note or attachment missing, or owned by another user
    413  file above the configured maximum size
    415  extension or declared content type not supported
"""

import logging
from typing import List, Optional
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from memora.database import get_db_session
from memora.exceptions import NotFoundError, ValidationError
from memora.schemas.attachment import AttachmentDetail, AttachmentSummary
from memora.schemas.common import ErrorResponse
from memora.security import get_current_user_id
from memora.services.attachment_service import UploadCandidate, attachment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Attachments"])

_unauthenticated = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}
_not_found = {404: {"description": "Attachment not found", "model": ErrorResponse}}


def content_disposition(filename: str) -> str:
    """
    `attachment` disposition header for a stored file name.

    ASCII names are sent as a quoted `filename`; anything else also gets an
    RFC 5987 `filename*` so browsers keep the original characters.
    """
    try:
        filename.encode("ascii")
        ascii_safe = '"' not in filename
    except UnicodeEncodeError:
        ascii_safe = False

    if ascii_safe:
        return f'attachment; filename="{filename}"'

    fallback = filename.encode("ascii", "replace").decode("ascii").replace("?", "_").replace('"', "_")
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(filename, safe='')}"


@router.post(
    "/notes/{note_id}/attachments",
    status_code=201,
    response_model=List[AttachmentSummary],
    responses={
        400: {"description": "No files, or a file failed validation", "model": ErrorResponse},
        **_unauthenticated,
        404: {"description": "Note not found", "model": ErrorResponse},
        413: {"description": "File too large", "model": ErrorResponse},
        415: {"description": "File type not supported", "model": ErrorResponse},
    },
    summary="Attach images or videos to a note",
    description=(
        "Upload one or more files (JPEG, PNG, GIF, WebP, MP4, MOV, AVI, WMV, WebM). "
        "Each file is checked by name, declared type, size and content signature. "
        "Either every file is stored or none is."
    ),
)
async def upload_attachments(
    note_id: UUID,
    files: Optional[List[UploadFile]] = File(
        default=None,
        description="One or more image/video files",
    ),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> List[AttachmentSummary]:
    if not files:
        raise ValidationError(message="At least one file is required", field="files")

    uploads = []
    try:
        for upload in files:
            uploads.append(
                UploadCandidate(
                    filename=upload.filename or "",
                    content=await upload.read(),
                    content_type=upload.content_type,
                )
            )
    finally:
        for upload in files:
            await upload.close()

    logger.info(
        "Received %d file(s) for note %s (%d bytes total)",
        len(uploads),
        note_id,
        sum(len(u.content) for u in uploads),
    )

    return await attachment_service.persist_many(
        db=db,
        note_id=note_id,
        user_id=user_id,
        uploads=uploads,
    )


@router.get(
    "/attachments/{attachment_id}",
    response_model=AttachmentDetail,
    responses={**_unauthenticated, **_not_found},
    summary="Get attachment metadata",
)
async def get_attachment(
    attachment_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> AttachmentDetail:
    return await attachment_service.get_metadata(
        db=db, attachment_id=attachment_id, user_id=user_id
    )


@router.get(
    "/attachments/{attachment_id}/download",
    response_class=Response,
    responses={
        200: {"description": "Raw file content with its stored MIME type"},
        **_unauthenticated,
        **_not_found,
    },
    summary="Download an attachment",
)
async def download_attachment(
    attachment_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    """
    Serves the stored bytes with the validated MIME type.

    `X-Content-Type-Options: nosniff` stops browsers from second-guessing the
    type; `private` keeps shared caches from storing per-user content.
    """
    content = await attachment_service.get_content(
        db=db, attachment_id=attachment_id, user_id=user_id
    )
    return Response(
        content=content.data,
        media_type=content.mime_type,
        headers={
            "Content-Disposition": content_disposition(content.filename),
            "X-Content-Type-Options": "nosniff",
            "Cache-Control": "private, max-age=3600",
        },
    )


@router.delete(
    "/attachments/{attachment_id}",
    status_code=204,
    responses={**_unauthenticated, **_not_found},
    summary="Delete an attachment",
)
async def delete_attachment(
    attachment_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    if not await attachment_service.delete(db=db, attachment_id=attachment_id, user_id=user_id):
        raise NotFoundError(resource="attachment", resource_id=str(attachment_id))
    return Response(status_code=204)
