"""
Unit Tests for Security Module
Tests for: JWT verification, caller identity
"""
from datetime import timedelta
import uuid

import jwt
import pytest

from app.core.config import settings
from app.core.errors import AuthorizationError
from app.core.security import (
    Identity,
    SecurityError,
    create_access_token,
    decode_token,
    identity_from_token,
    security_utils,
    token_manager,
)


class TestTokens:

    def test_round_trip(self):
        user_id = uuid.uuid4()
        token = create_access_token({"sub": str(user_id), "email": "t@school.in", "user_role": "school"})

        claims = decode_token(token)

        assert claims["sub"] == str(user_id)
        assert claims["aud"] == settings.JWT_AUDIENCE
        assert claims["user_role"] == "school"

    def test_expired_token(self):
        token = create_access_token({"sub": str(uuid.uuid4())}, expires_delta=timedelta(seconds=-5))
        with pytest.raises(AuthorizationError, match="expired"):
            decode_token(token)

    def test_wrong_secret(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "aud": settings.JWT_AUDIENCE},
            "another-secret-that-is-long-enough-0123456789",
            algorithm="HS256",
        )
        with pytest.raises(AuthorizationError):
            decode_token(token)

    def test_wrong_audience(self):
        token = jwt.encode({"sub": str(uuid.uuid4()), "aud": "someone-else"}, settings.JWT_SECRET, algorithm="HS256")
        with pytest.raises(AuthorizationError):
            decode_token(token)

    def test_garbage(self):
        with pytest.raises(AuthorizationError):
            decode_token("not-a-jwt")

    def test_reserved_claims_cannot_be_overridden(self):
        with pytest.raises(SecurityError):
            token_manager.create_access_token("abc", additional_claims={"exp": 0})

    def test_subject_is_required(self):
        with pytest.raises(SecurityError):
            create_access_token({"email": "x@y.z"})


class TestIdentity:

    def test_from_token(self):
        user_id = uuid.uuid4()
        identity = identity_from_token(create_access_token({"sub": str(user_id), "user_role": "admin"}))

        assert identity.id == user_id
        assert identity.is_admin

    def test_unknown_role_is_teacher(self):
        identity = Identity.from_claims({"sub": str(uuid.uuid4()), "user_role": "superuser"})
        assert identity.role == "teacher"
        assert not identity.is_admin

    @pytest.mark.parametrize("claims", [{}, {"sub": "not-a-uuid"}])
    def test_bad_subject(self, claims):
        with pytest.raises(AuthorizationError):
            Identity.from_claims(claims)


class TestSecurityUtils:

    def test_sanitize_filename(self):
        assert security_utils.sanitize_filename("../../etc/passwd") == ".._.._etc_passwd"
        assert security_utils.sanitize_filename("") == "unnamed_file"

    def test_mask_sensitive_data(self):
        assert security_utils.mask_sensitive_data("secret-token") == "********oken"
