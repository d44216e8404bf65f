# app/api/deps/auth.py - Caller identity from the bearer token
from typing import Optional
import logging

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.errors import AuthorizationError
from app.core.security import Identity, identity_from_token, token_manager

logger = logging.getLogger(__name__)

# auto_error is off so a missing header becomes our 401, not FastAPI's 403
security = HTTPBearer(auto_error=False)


def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Identity:
    """
    Decode the JWT and return the caller.
    No database lookup: the auth service owns the user table.
    """
    if credentials is None or not credentials.credentials:
        raise AuthorizationError("Unauthorized")

    token = credentials.credentials
    try:
        return identity_from_token(token)
    except AuthorizationError as e:
        logger.info(f"Rejected token for subject {token_manager.get_token_subject(token)}: {e.message}")
        raise
