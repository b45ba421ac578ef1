"""
Memora Backend — Authentication Tests
======================================

What we test:
    ✅ Password hashing round-trip (passlib bcrypt)
    ✅ Token issue/verify, expiry and tampering (python-jose)
    ✅ Registration: success, duplicate email → ConflictError, input rules
    ✅ Login: success, and one generic error for unknown email / bad password
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from pydantic import ValidationError as SchemaValidationError

from memora.config import settings
from memora.exceptions import AuthenticationError, ConflictError, ErrorKind
from memora.schemas.auth import LoginRequest, RegisterRequest
from memora.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from memora.services.auth_service import INVALID_CREDENTIALS_MESSAGE, AuthService

VALID_REGISTRATION = {
    "full_name": "Grace Hopper",
    "email": "Grace@Example.com",
    "password": "Cobol@1959x",
}


class TestPasswords:

    def test_hash_and_verify(self):
        hashed = hash_password("Str0ng!Secret")

        assert hashed != "Str0ng!Secret"
        assert verify_password("Str0ng!Secret", hashed)
        assert not verify_password("wrong", hashed)

    def test_malformed_hash_never_matches(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()
        token, expires_at = create_access_token(user_id, "Grace Hopper", "grace@example.com")

        assert decode_access_token(token) == user_id
        assert expires_at > datetime.now(timezone.utc)

    def test_claims(self):
        user_id = uuid.uuid4()
        token, _ = create_access_token(user_id, "Grace Hopper", "grace@example.com")

        claims = jwt.get_unverified_claims(token)
        assert claims["sub"] == str(user_id)
        assert claims["name"] == "Grace Hopper"
        assert claims["email"] == "grace@example.com"
        assert claims["exp"] - claims["iat"] == settings.jwt_expiration_minutes * 60

    def test_expired_token_rejected(self):
        issued = datetime.now(timezone.utc) - timedelta(minutes=settings.jwt_expiration_minutes + 5)
        token, _ = create_access_token(uuid.uuid4(), "Grace Hopper", "g@example.com", now=issued)

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)
        assert exc_info.value.kind is ErrorKind.UNAUTHENTICATED

    def test_token_signed_with_other_key_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4())}, "another-secret-key-of-enough-length!!", algorithm="HS256"
        )
        with pytest.raises(AuthenticationError):
            decode_access_token(token)

    def test_non_uuid_subject_rejected(self):
        token = jwt.encode({"sub": "admin"}, settings.jwt_secret_key, algorithm="HS256")
        with pytest.raises(AuthenticationError):
            decode_access_token(token)


class TestRegistrationRules:

    def test_email_is_lowercased(self):
        assert RegisterRequest(**VALID_REGISTRATION).email == "grace@example.com"

    @pytest.mark.parametrize("field,value", [
        ("full_name", "Grace"),
        ("full_name", "Grace  Hopper"),
        ("full_name", "Grace H0pper"),
        ("email", "not-an-email"),
        ("email", "someone@mailinator.com"),
        ("password", "short1!"),
        ("password", "alllowercase1!"),
        ("password", "NoDigits!!"),
        ("password", "Password1!"),
        ("password", "Grace@2024xy"),
    ])
    def test_invalid_registration_rejected(self, field, value):
        data = {**VALID_REGISTRATION, field: value}
        with pytest.raises(SchemaValidationError):
            RegisterRequest(**data)


class TestAuthService:

    def setup_method(self):
        self.service = AuthService()

    async def test_register_returns_token_for_new_user(self, db_session):
        response = await self.service.register(db_session, RegisterRequest(**VALID_REGISTRATION))

        assert response.user.email == "grace@example.com"
        assert response.token_type == "bearer"
        assert decode_access_token(response.token) == response.user.id

    async def test_duplicate_email_conflicts(self, db_session, create_user):
        await create_user(email="grace@example.com")

        with pytest.raises(ConflictError) as exc_info:
            await self.service.register(db_session, RegisterRequest(**VALID_REGISTRATION))
        assert exc_info.value.kind is ErrorKind.CONFLICT

    async def test_login_success(self, db_session):
        await self.service.register(db_session, RegisterRequest(**VALID_REGISTRATION))
        await db_session.commit()

        response = await self.service.login(
            db_session,
            LoginRequest(email="GRACE@example.com", password=VALID_REGISTRATION["password"]),
        )

        assert response.user.full_name == "Grace Hopper"

    async def test_wrong_password_and_unknown_email_look_the_same(self, db_session):
        await self.service.register(db_session, RegisterRequest(**VALID_REGISTRATION))
        await db_session.commit()

        with pytest.raises(AuthenticationError) as wrong_password:
            await self.service.login(
                db_session, LoginRequest(email="grace@example.com", password="Wrong#Pass1")
            )
        with pytest.raises(AuthenticationError) as unknown_email:
            await self.service.login(
                db_session, LoginRequest(email="nobody@example.com", password="Wrong#Pass1")
            )

        assert wrong_password.value.message == INVALID_CREDENTIALS_MESSAGE
        assert unknown_email.value.message == INVALID_CREDENTIALS_MESSAGE

    async def test_unknown_email_still_verifies_a_password(self, db_session, monkeypatch):
        from memora.services import auth_service as auth_module

        verified = []

        def recording_verify(password, password_hash):
            verified.append(password_hash)
            return False

        monkeypatch.setattr(auth_module, "verify_password", recording_verify)

        with pytest.raises(AuthenticationError):
            await self.service.login(
                db_session, LoginRequest(email="nobody@example.com", password="Wrong@Pass1")
            )

        assert len(verified) == 1
        assert verified[0].startswith("$2")
