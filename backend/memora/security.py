"""
Memora Backend — Credentials: Password Hashing and JWT
=======================================================

What:  bcrypt password hashing (passlib) and HS256 bearer tokens (python-jose),
       plus the FastAPI dependency that turns a bearer token into a user id.
Who:   AuthService issues tokens; every note/attachment route depends on
       `get_current_user_id`.

Token claims:
    sub    user id (UUID string): the only claim used for authorization
    name   display name, email: informational
    iat    issued-at, exp expiry: seconds since epoch (UTC)
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext

from memora.config import settings
from memora.exceptions import AuthenticationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds,
)

# auto_error=False: missing credentials raise our AuthenticationError (401)
# instead of FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


# ── Passwords ─────────────────────────────────────────────────────────────

def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """True when `plain` matches `hashed`; malformed hashes never match."""
    try:
        return pwd_context.verify(plain, hashed)
    except ValueError:
        logger.warning("Stored password hash could not be parsed")
        return False


# ── Tokens ────────────────────────────────────────────────────────────────

def create_access_token(
    user_id: uuid.UUID,
    full_name: str,
    email: str,
    now: Optional[datetime] = None,
) -> Tuple[str, datetime]:
    """
    Issue a signed access token.

    Returns:
        (token, expires_at); expires_at is also embedded as `exp`.
    """
    now = now or datetime.now(timezone.utc)
    expires_at = now + timedelta(minutes=settings.jwt_expiration_minutes)
    payload: Dict[str, Any] = {
        "sub": str(user_id),
        "name": full_name,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, expires_at


def decode_access_token(token: str) -> uuid.UUID:
    """
    Verify signature and expiry, and return the user id from `sub`.

    Raises:
        AuthenticationError: invalid signature, expired token, or a `sub`
            that is missing or not a UUID.
    """
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as e:
        logger.info("Rejected bearer token: %s", str(e))
        raise AuthenticationError(message="Invalid or expired token")

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError(message="Invalid token")
    try:
        return uuid.UUID(str(subject))
    except ValueError:
        raise AuthenticationError(message="Invalid token")


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> uuid.UUID:
    """
    FastAPI dependency: caller identity from `Authorization: Bearer <jwt>`.

    Raises:
        AuthenticationError (401): header missing, wrong scheme, or bad token.
    """
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError(message="Missing bearer credentials")
    return decode_access_token(credentials.credentials)
