"""Repository status API."""
from __future__ import annotations

from fastapi import APIRouter, Query

from backend.models import RepoStatus
from backend.services.conversations import get_conversation_service

git_router = APIRouter(prefix="/api/git", tags=["git"])


@git_router.get("/status", response_model=RepoStatus)
async def get_git_status(path: str = Query(..., min_length=1, description="Absolute directory path")):
    """Cached repository status; non-repositories and lookup failures report ``isRepo=false``."""
    return get_conversation_service().get_directory_status(path)
