"""
Bearer token verification for the protected routes.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.config import config

logger = structlog.get_logger(__name__)

TOKEN_MISSING_MESSAGE = "Auth token is not supplied"
TOKEN_INVALID_MESSAGE = "Token is not valid"

# Security scheme; missing headers are reported by verify_token itself
security = HTTPBearer(auto_error=False)


def create_access_token(
    claims: Dict[str, Any],
    expires_minutes: Optional[int] = None
) -> str:
    """
    Issue a signed token.

    Args:
        claims: Claims to embed
        expires_minutes: Lifetime in minutes (defaults to config)

    Returns:
        Encoded JWT
    """
    lifetime = expires_minutes if expires_minutes is not None else config.access_token_expire_minutes
    payload = dict(claims)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=lifetime)
    return jwt.encode(payload, config.secret_key, algorithm=config.algorithm)


async def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Dict[str, Any]:
    """
    Verify the bearer token of the request.

    Returns:
        Decoded token claims

    Raises:
        HTTPException: 401 if no token was supplied, 403 if it does not verify
    """
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=TOKEN_MISSING_MESSAGE,
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return jwt.decode(
            credentials.credentials,
            config.secret_key,
            algorithms=[config.algorithm],
        )
    except jwt.PyJWTError as e:
        logger.warning("Invalid token attempted", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=TOKEN_INVALID_MESSAGE,
        )
