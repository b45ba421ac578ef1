"""
Memora Backend — Authentication Schemas
========================================

What:  Register/login request bodies and the token response.
Why:   Registration rules live on the request model so FastAPI rejects bad
       input (422) before the service touches the database.
"""

import re
import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

BLOCKED_EMAIL_DOMAINS = frozenset({
    "temp-mail.org", "10minutemail.com", "guerrillamail.com", "mailinator.com",
    "throwaway.email", "yopmail.com", "tempmail.org", "disposable.com",
})

COMMON_PASSWORD_PATTERNS = (
    "123456", "password", "qwerty", "abc123", "admin", "letmein",
    "welcome", "monkey", "dragon", "master", "hello", "freedom",
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
FULL_NAME_PATTERN = re.compile(r"^[a-zA-ZñÑáéíóúÁÉÍÓÚüÜ\s.\-]+$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])")


def _normalize_email(v: str) -> str:
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("A valid email address is required")
    local, domain = v.rsplit("@", 1)
    if len(local) > 64:
        raise ValueError("Email format is not valid")
    if domain[0] in ".-" or domain[-1] in ".-":
        raise ValueError("Email format is not valid")
    return v


class RegisterRequest(BaseModel):
    full_name: str = Field(min_length=2, max_length=100)
    email: str = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        if not FULL_NAME_PATTERN.match(v):
            raise ValueError("Full name can only contain letters, spaces, dots, and dashes")
        if v != v.strip():
            raise ValueError("Full name cannot start or end with spaces")
        if "  " in v:
            raise ValueError("Full name cannot contain consecutive spaces")
        if len(v.split()) < 2:
            raise ValueError("Full name must contain at least two words")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = _normalize_email(v)
        if v.rsplit("@", 1)[1] in BLOCKED_EMAIL_DOMAINS:
            raise ValueError("Disposable email addresses are not allowed")
        return v

    @field_validator("password")
    @classmethod
    def validate_password_strength(cls, v: str) -> str:
        if not PASSWORD_PATTERN.match(v):
            raise ValueError(
                "Password must contain at least one lowercase letter, one uppercase letter, "
                "one digit, and one special character (@$!%*?&)"
            )
        lowered = v.lower()
        if any(pattern in lowered for pattern in COMMON_PASSWORD_PATTERNS):
            raise ValueError("Password contains common patterns that are not secure")
        return v

    @model_validator(mode="after")
    def password_excludes_user_info(self) -> "RegisterRequest":
        lowered = self.password.lower()
        name_parts = [p for p in self.full_name.lower().split() if len(p) >= 3]
        local_part = self.email.split("@", 1)[0]
        if any(part in lowered for part in name_parts) or (
            len(local_part) >= 3 and local_part in lowered
        ):
            raise ValueError("Password cannot contain parts of your name or email")
        return self


class LoginRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserResponse(BaseModel):
    id: uuid.UUID
    full_name: str
    email: str
    created_at: datetime

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register (201) and login (200)."""
    token: str = Field(description="Bearer JWT for the Authorization header")
    token_type: str = Field(default="bearer")
    expires_at: datetime = Field(description="Token expiry (UTC)")
    user: UserResponse
