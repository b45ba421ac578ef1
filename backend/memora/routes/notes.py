"""
Memora Backend — Notes Route Handlers
======================================

What:  CRUD for the caller's notes.
How:   Extracts parameters, resolves the caller from the bearer token,
       delegates to NoteService.

Caching:
    Notes are mutable and per-user, so responses carry
    `Cache-Control: private, no-cache`.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from memora.database import get_db_session
from memora.exceptions import NotFoundError
from memora.schemas.common import ErrorResponse
from memora.schemas.note import (
    NoteCreate,
    NoteDetailResponse,
    NoteListResponse,
    NoteResponse,
    NoteUpdate,
)
from memora.security import get_current_user_id
from memora.services.note_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, note_service

router = APIRouter(prefix="/api", tags=["Notes"])

NO_CACHE = "private, no-cache"

_not_found = {404: {"description": "Note not found", "model": ErrorResponse}}
_unauthenticated = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}


@router.get(
    "/notes",
    response_model=NoteListResponse,
    responses={**_unauthenticated},
    summary="List my notes",
    description=(
        "Returns one page of the caller's notes, most recently modified first. "
        "`search` filters case-insensitively on title and content. The total "
        "number of matches is also returned in the X-Total-Count header."
    ),
)
async def list_notes(
    response: Response,
    page: int = Query(default=1, ge=1, description="1-based page number"),
    page_size: int = Query(
        default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE, description="Items per page"
    ),
    search: Optional[str] = Query(default=None, max_length=200),
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteListResponse:
    result = await note_service.list_notes(
        db=db,
        user_id=user_id,
        page=page,
        page_size=page_size,
        search=search,
    )
    response.headers["X-Total-Count"] = str(result.total_count)
    response.headers["Cache-Control"] = NO_CACHE
    return result


@router.post(
    "/notes",
    status_code=201,
    response_model=NoteResponse,
    responses={**_unauthenticated},
    summary="Create a note",
)
async def create_note(
    payload: NoteCreate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.create_note(db=db, user_id=user_id, payload=payload)


@router.get(
    "/notes/{note_id}",
    response_model=NoteDetailResponse,
    responses={**_unauthenticated, **_not_found},
    summary="Get a note with its attachment list",
)
async def get_note(
    note_id: UUID,
    response: Response,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteDetailResponse:
    """
    Attachment payloads are not included; each entry's `id` can be passed to
    GET /api/attachments/{id}/download.
    """
    result = await note_service.get_note(db=db, note_id=note_id, user_id=user_id)
    response.headers["Cache-Control"] = NO_CACHE
    return result


@router.put(
    "/notes/{note_id}",
    response_model=NoteResponse,
    responses={**_unauthenticated, **_not_found},
    summary="Update a note",
)
async def update_note(
    note_id: UUID,
    payload: NoteUpdate,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> NoteResponse:
    return await note_service.update_note(
        db=db, note_id=note_id, user_id=user_id, payload=payload
    )


@router.delete(
    "/notes/{note_id}",
    status_code=204,
    responses={**_unauthenticated, **_not_found},
    summary="Delete a note and all of its attachments",
)
async def delete_note(
    note_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> Response:
    if not await note_service.delete_note(db=db, note_id=note_id, user_id=user_id):
        raise NotFoundError(resource="note", resource_id=str(note_id))
    return Response(status_code=204)
