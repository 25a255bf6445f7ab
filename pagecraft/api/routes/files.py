"""
pagecraft.api.routes.files -- Caller's file metadata
======================================================

    GET /files   — Files uploaded by the caller, newest first
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pagecraft.api.deps import CurrentUser, get_current_user, get_session
from pagecraft.services import file_service

router = APIRouter(prefix="/files", tags=["files"])


@router.get("")
def list_files(
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    files = file_service.list_files_for_owner(session, user.id)
    return {"success": True, "files": files, "total": len(files)}
