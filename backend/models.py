"""Pydantic models matching the frontend TypeScript types."""
from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal, Optional

# ── Message models ─────────────────────────────────────────────────

MessageRole = Literal["user", "assistant", "system"]
MessageType = Literal["text", "thinking", "tool_use", "tool_result", "system"]


class MessageMetadata(BaseModel):
    model: Optional[str] = None
    gitBranch: Optional[str] = None
    inputTokens: Optional[int] = None
    outputTokens: Optional[int] = None
    cacheCreationInputTokens: Optional[int] = None
    cacheReadInputTokens: Optional[int] = None
    serviceTier: Optional[str] = None

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


class NormalizedMessage(BaseModel):
    role: MessageRole
    type: MessageType
    content: str = ""
    timestamp: Optional[str] = None
    toolName: Optional[str] = None
    toolUseId: Optional[str] = None
    teamName: Optional[str] = None  # set when the message came from a subagent log
    metadata: Optional[MessageMetadata] = None


# ── Session listing models ─────────────────────────────────────────

class SessionDescriptor(BaseModel):
    sessionId: str
    folder: str  # working directory as recorded on disk (may be a worktree)
    displayFolder: str  # main repository directory used for grouping
    logPath: str
    createdAt: str = ""
    updatedAt: str = ""


class RepoStatus(BaseModel):
    isRepo: bool = False
    branch: Optional[str] = None


# ── Chat models ────────────────────────────────────────────────────

class Chat(BaseModel):
    id: str
    folder: str
    displayFolder: Optional[str] = None
    session_id: str
    session_log_path: Optional[str] = None
    metadata: str = "{}"
    created_at: str = ""
    updated_at: str = ""
    # Augmented at response time
    preview: Optional[str] = None
    is_git_repo: Optional[bool] = None
    git_branch: Optional[str] = None


class ChatListResponse(BaseModel):
    chats: list[Chat] = Field(default_factory=list)
    hasMore: bool = False
    total: int = 0
