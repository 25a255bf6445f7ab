"""
pagecraft.api.deps — FastAPI dependency injection
===================================================
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from pagecraft.config import PagecraftConfig, load_config
from pagecraft.database.engine import create_db_engine
from pagecraft.database.models import User
from pagecraft.services.audit_service import RequestContext

logger = logging.getLogger(__name__)

_WEAK_SECRETS = frozenset({
    "pagecraft-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "").strip()
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_config() -> PagecraftConfig:
    return load_config(os.getenv("PAGECRAFT_CONFIG", "config.yaml"))


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine(get_config().database)


def get_session(engine: Annotated[Engine, Depends(get_engine)]):
    with Session(engine) as session:
        yield session


# ---------------------------------------------------------------------------
# Authentication gate
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CurrentUser:
    id: int
    email: str
    name: str


def get_current_user(
    authorization: Annotated[str | None, Header()] = None,
    engine: Engine = Depends(get_engine),
) -> CurrentUser:
    """Validate the bearer JWT and load its user.

    401 for a missing or invalid token, 403 for an unknown or disabled user.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
        user_id = int(payload["sub"])
    except (InvalidTokenError, KeyError, TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    with Session(engine) as session:
        user = session.get(User, user_id)
        if user is None or not user.is_active:
            logger.warning("Rejected token for unknown or inactive user %s", user_id)
            raise HTTPException(status.HTTP_403_FORBIDDEN, "User not found or inactive")
        return CurrentUser(id=user.id, email=user.email, name=user.name)


def get_request_context(request: Request) -> RequestContext:
    """Caller IP and user agent, recorded on project audit logs."""
    return RequestContext(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
