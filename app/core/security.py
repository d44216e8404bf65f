# app/core/security.py - Authentication utilities (JWT verification, caller identity)
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Union
import secrets
import uuid

import jwt

from app.core.config import settings
from app.core.errors import AuthorizationError


class SecurityError(Exception):
    """Custom exception for security-related errors"""
    pass


ROLE_ADMIN = "admin"
ROLE_SCHOOL = "school"
ROLE_TEACHER = "teacher"
KNOWN_ROLES = (ROLE_ADMIN, ROLE_SCHOOL, ROLE_TEACHER)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, passed explicitly to anything that needs it"""
    id: uuid.UUID
    email: Optional[str] = None
    role: str = ROLE_TEACHER
    can_manage_users: bool = False
    can_manage_school: bool = False

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_claims(cls, claims: Dict[str, Any]) -> "Identity":
        subject = claims.get("sub")
        if not subject:
            raise AuthorizationError("Token missing user ID")
        try:
            user_id = uuid.UUID(str(subject))
        except ValueError:
            raise AuthorizationError("Invalid user ID format")

        role = claims.get("user_role") or ROLE_TEACHER
        if role not in KNOWN_ROLES:
            role = ROLE_TEACHER
        return cls(
            id=user_id,
            email=claims.get("email"),
            role=role,
            can_manage_users=bool(claims.get("can_manage_users", False)),
            can_manage_school=bool(claims.get("can_manage_school", False)),
        )


class TokenManager:
    """
    Verifies access tokens issued by the hosted authentication service.

    Tokens are HS256-signed with the shared ``JWT_SECRET``; audience is always
    checked, issuer only when ``JWT_ISSUER`` is set.
    """

    def __init__(self):
        self.secret_key = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.audience = settings.JWT_AUDIENCE
        self.access_token_expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(
        self,
        subject: Union[str, Any],
        expires_delta: Optional[timedelta] = None,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a JWT access token in the same shape the auth service issues.

        Used by tooling and tests; production tokens come from the auth service.

        Raises:
            SecurityError: If token creation fails
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))

        payload = {
            "sub": str(subject),
            "iat": now,
            "exp": expire,
            "aud": self.audience,
            "role": "authenticated",
            "jti": secrets.token_hex(16),
        }
        if self.issuer:
            payload["iss"] = self.issuer

        if additional_claims:
            reserved_claims = {"sub", "iat", "exp", "iss", "aud", "jti"}
            for claim in additional_claims:
                if claim in reserved_claims:
                    raise SecurityError(f"Cannot override reserved JWT claim: {claim}")
            payload.update(additional_claims)

        try:
            return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        except jwt.PyJWTError as e:
            raise SecurityError(f"Failed to create access token: {e}")

    def decode_token(self, token: str, verify_exp: bool = True) -> Dict[str, Any]:
        """
        Decode and validate a JWT token.

        Raises:
            AuthorizationError: If token is invalid or expired
        """
        options = {"verify_exp": verify_exp}
        kwargs = {"audience": self.audience}
        if self.issuer:
            kwargs["issuer"] = self.issuer

        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options=options,
                **kwargs,
            )
        except jwt.ExpiredSignatureError:
            raise AuthorizationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthorizationError(f"Invalid token: {e}")

    def get_token_subject(self, token: str) -> str:
        """
        Extract subject from token without full validation.
        Useful for logging/debugging.
        """
        try:
            payload = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False}
            )
            return payload.get("sub", "unknown")
        except jwt.PyJWTError:
            return "invalid"


class SecurityUtils:
    """Utility functions for security operations"""

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """
        Sanitize filename for safe storage.

        Args:
            filename: Original filename

        Returns:
            Sanitized filename
        """
        if not filename:
            return "unnamed_file"

        # Remove directory traversal attempts
        filename = filename.replace("/", "_").replace("\\", "_")
        # Remove null bytes and control characters
        filename = "".join(c for c in filename if ord(c) > 31)
        # Limit length
        if len(filename) > 255:
            name, ext = filename.rsplit(".", 1) if "." in filename else (filename, "")
            filename = name[:250] + ("." + ext if ext else "")

        return filename or "unnamed_file"

    @staticmethod
    def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
        """
        Mask sensitive data for logging (e.g., API keys, tokens).
        """
        if not data or len(data) <= visible_chars:
            return "*" * len(data) if data else ""

        return "*" * (len(data) - visible_chars) + data[-visible_chars:]


# Create global instances
token_manager = TokenManager()
security_utils = SecurityUtils()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create access token from a claims dict containing 'sub'"""
    subject = data.get("sub")
    if not subject:
        raise SecurityError("Token data must include 'sub' (subject)")

    additional_claims = {k: v for k, v in data.items() if k != "sub"}
    return token_manager.create_access_token(subject, expires_delta, additional_claims)


def decode_token(token: str) -> Dict[str, Any]:
    return token_manager.decode_token(token)


def identity_from_token(token: str) -> Identity:
    return Identity.from_claims(decode_token(token))


__all__ = [
    "Identity", "TokenManager", "SecurityUtils",
    "token_manager", "security_utils",
    "create_access_token", "decode_token", "identity_from_token",
    "SecurityError", "ROLE_ADMIN", "ROLE_SCHOOL", "ROLE_TEACHER",
]
