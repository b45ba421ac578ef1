"""
Memora Backend — Authentication Service
========================================

What:  Account registration and credential login, both returning a bearer JWT.
Who:   Called by the /api/auth route handlers.

Failure policy:
    Registration with a taken email → ConflictError (409).
    Login with an unknown email or a wrong password → the same
    AuthenticationError (401), so the response does not reveal which.

bcrypt is CPU-bound; hashing and verification run in Starlette's thread
pool so they do not stall the event loop.
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from memora.exceptions import AuthenticationError, ConflictError, DatabaseError
from memora.models.user import User
from memora.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from memora.security import create_access_token, hash_password, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    return hash_password("unused-placeholder-password")


def _issue(user: User) -> AuthResponse:
    token, expires_at = create_access_token(user.id, user.full_name, user.email)
    return AuthResponse(
        token=token,
        expires_at=expires_at,
        user=UserResponse.model_validate(user),
    )


class AuthService:
    """Registration and login. Stateless; one instance is shared."""

    async def register(self, db: AsyncSession, payload: RegisterRequest) -> AuthResponse:
        """
        Create an account and sign it in.

        Raises:
            ConflictError: The email is already registered
            DatabaseError: Query or insert failed
        """
        try:
            existing = await db.execute(select(User.id).where(User.email == payload.email))
            if existing.scalar_one_or_none() is not None:
                raise ConflictError(
                    message="An account with this email already exists",
                    context={"field": "email"},
                )

            user = User(
                full_name=payload.full_name,
                email=payload.email,
                password_hash=await run_in_threadpool(hash_password, payload.password),
                created_at=datetime.now(timezone.utc),
            )
            db.add(user)
            await db.flush()

        except IntegrityError:
            # Lost a race with a concurrent registration of the same email
            raise ConflictError(
                message="An account with this email already exists",
                context={"field": "email"},
            )
        except SQLAlchemyError as e:
            logger.error("Database error during registration: %s", str(e))
            raise DatabaseError(
                message="Could not create the account. Please try again.",
                context={"error_type": type(e).__name__},
            )

        logger.info("User registered: %s", user.id)
        return _issue(user)

    async def login(self, db: AsyncSession, payload: LoginRequest) -> AuthResponse:
        """
        Verify credentials and issue a token.

        Raises:
            AuthenticationError: Unknown email or wrong password
        """
        try:
            result = await db.execute(select(User).where(User.email == payload.email))
            user = result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Database error during login: %s", str(e))
            raise DatabaseError(
                message="Could not sign in. Please try again.",
                context={"error_type": type(e).__name__},
            )

        # Unknown emails cost one bcrypt verify, same as a wrong password
        password_hash = user.password_hash if user is not None else _dummy_password_hash()
        password_ok = await run_in_threadpool(verify_password, payload.password, password_hash)

        if user is None or not password_ok:
            logger.warning("Failed login attempt")
            raise AuthenticationError(message=INVALID_CREDENTIALS_MESSAGE)

        logger.info("User logged in: %s", user.id)
        return _issue(user)


auth_service = AuthService()
