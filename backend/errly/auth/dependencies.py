"""
FastAPI dependency for dashboard (session token) authentication.

Flow:
  1. Extract Bearer token from Authorization header
  2. Verify the JWT signature, expiry and audience (HS256, shared secret
     of the external identity provider)
  3. Read the `sub` claim: the opaque authenticated-user id
  4. Return AuthContext(user_id)

Security:
  • Generic 401 for ALL failure modes (missing, malformed, expired, forged)
  • Tokens are NEVER logged

SDK ingestion does not use this: it authenticates with the project API
key carried in the request body (services/ingestion.py).
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import jwt
from fastapi import Header, status

from errly.auth.errors import AuthenticationError
from errly.core.config import settings
from errly.core.errors import APIError

logger = logging.getLogger(__name__)

_JWT_ALGORITHMS = ["HS256"]


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Authenticated dashboard request context.

    Attributes:
        user_id: Subject of the verified session token.
    """

    user_id: uuid.UUID


def decode_session_token(token: str) -> uuid.UUID:
    """Verify a session token and return its subject as a UUID."""
    if not settings.AUTH_JWT_SECRET:
        raise AuthenticationError("AUTH_JWT_SECRET is not configured")

    try:
        claims = jwt.decode(
            token,
            settings.AUTH_JWT_SECRET,
            algorithms=_JWT_ALGORITHMS,
            audience=settings.AUTH_JWT_AUDIENCE,
            options={"require": ["exp", "sub"]},
        )
    except jwt.InvalidTokenError as exc:
        raise AuthenticationError(f"Invalid session token: {exc}") from exc

    try:
        return uuid.UUID(str(claims["sub"]))
    except ValueError as exc:
        raise AuthenticationError("Token subject is not a UUID") from exc


async def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> AuthContext:
    """
    FastAPI dependency: resolves a Bearer session token to an AuthContext.

    Usage in routers:
        CurrentUser = Annotated[AuthContext, Depends(get_current_user)]
    """
    unauthorized = APIError(
        status_code=status.HTTP_401_UNAUTHORIZED,
        error="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if not authorization:
        raise unauthorized

    parts = authorization.split(" ", maxsplit=1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise unauthorized

    try:
        user_id = decode_session_token(parts[1])
    except AuthenticationError as exc:
        logger.info("Session authentication failed: %s", exc)
        raise unauthorized from exc

    return AuthContext(user_id=user_id)
