"""
pagecraft.api.auth — JWT issuance + current-user endpoint
===========================================================

Registration and login belong to the account service; this module only
mints tokens for it (and for tests) and exposes who the caller is.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta

import jwt
from fastapi import APIRouter, Depends

from pagecraft.api.deps import JWT_ALGORITHM, JWT_SECRET, CurrentUser, get_current_user

router = APIRouter(prefix="/auth", tags=["auth"])


def issue_token(user_id: int, *, expires_hours: float | None = None) -> str:
    """Sign a bearer token for *user_id* (``sub`` claim)."""
    if expires_hours is None:
        expires_hours = float(os.getenv("JWT_EXPIRES_HOURS", "24"))
    payload = {
        "sub": str(user_id),
        "iat": datetime.now(UTC),
        "exp": datetime.now(UTC) + timedelta(hours=expires_hours),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGORITHM)


@router.get("/me")
async def me(user: CurrentUser = Depends(get_current_user)):
    """Return the current authenticated user's info."""
    return {"id": user.id, "email": user.email, "name": user.name}
