"""Read-only chat and conversation API."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from backend.models import Chat, ChatListResponse, NormalizedMessage, SessionDescriptor
from backend.services.conversations import get_conversation_service

logger = logging.getLogger("agentboard.chats")

chats_router = APIRouter(prefix="/api/chats", tags=["chats"])
sessions_router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@chats_router.get("", response_model=ChatListResponse)
async def list_chats(
    limit: int = Query(50, ge=0, le=500),
    offset: int = Query(0, ge=0),
    include_git_info: bool = Query(True, alias="gitInfo"),
):
    """Return one page of chats, newest session log first."""
    try:
        return get_conversation_service().list_chats(limit, offset, include_git_info=include_git_info)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@chats_router.get("/{chat_id}", response_model=Chat)
async def get_chat(chat_id: str):
    chat = get_conversation_service().find_chat(chat_id)
    if chat is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return chat


@chats_router.get("/{chat_id}/messages", response_model=list[NormalizedMessage])
async def get_chat_messages(chat_id: str):
    """Merged parent and subagent timeline for every session of a chat."""
    messages = get_conversation_service().get_chat_messages(chat_id)
    if messages is None:
        raise HTTPException(status_code=404, detail="Chat not found")
    return messages


@sessions_router.get("")
async def list_sessions(
    limit: int = Query(50, ge=0, le=500),
    offset: int = Query(0, ge=0),
):
    try:
        sessions, total = get_conversation_service().list_sessions(limit, offset)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"items": sessions, "total": total, "offset": offset, "limit": limit}


@sessions_router.get("/timeline", response_model=list[NormalizedMessage])
async def get_sessions_timeline(ids: list[str] = Query(..., description="Ordered session ids")):
    return get_conversation_service().get_conversation_timeline(ids)


@sessions_router.get("/{session_id}", response_model=SessionDescriptor)
async def get_session(session_id: str):
    service = get_conversation_service()
    log_path = service.files.find_log_file(session_id)
    if log_path is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return service.locator.describe_path(log_path)
