"""
Memora Backend — Authentication Route Handlers
===============================================

What:  Account registration and login. Both return a bearer JWT.
Who:   The only routes that do not require `Authorization: Bearer`.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from memora.database import get_db_session
from memora.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from memora.schemas.common import ErrorResponse
from memora.services.auth_service import auth_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    status_code=201,
    response_model=AuthResponse,
    responses={
        409: {"description": "Email already registered", "model": ErrorResponse},
        422: {"description": "Registration rules not met"},
    },
    summary="Create an account",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await auth_service.register(db=db, payload=payload)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid email or password", "model": ErrorResponse}},
    summary="Sign in with email and password",
)
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    """
    Unknown email and wrong password produce the same 401 response, so the
    endpoint cannot be used to discover registered addresses.
    """
    return await auth_service.login(db=db, payload=payload)
