"""Read-side facade over the session log store."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Optional

from backend import config
from backend.chat_store import ChatStore, session_ids_for_chat
from backend.date_utils import file_metadata_dates
from backend.models import Chat, ChatListResponse, NormalizedMessage, RepoStatus, SessionDescriptor
from backend.parsers.preview import get_preview
from backend.parsers.timeline import TimelineMerger
from backend.services.repo_status_cache import RepoStatusCache
from backend.services.session_files import SessionFileIndex
from backend.services.session_locator import SessionLocator, WorktreeResolutionCache, worktree_cache

logger = logging.getLogger("agentboard.chats")


class ConversationService:
    """Lists sessions and materializes conversations for the API layer."""

    def __init__(
        self,
        projects_dir: Path | None = None,
        chat_store: ChatStore | None = None,
        locator: SessionLocator | None = None,
        files: SessionFileIndex | None = None,
        repo_status: RepoStatusCache | None = None,
        worktrees: WorktreeResolutionCache | None = None,
        preview_max_chars: int = config.PREVIEW_MAX_CHARS,
    ):
        root = Path(projects_dir) if projects_dir is not None else config.PROJECTS_DIR
        self.worktrees = worktrees if worktrees is not None else worktree_cache
        self.files = files if files is not None else SessionFileIndex(root)
        self.locator = locator if locator is not None else SessionLocator(root, worktrees=self.worktrees)
        self.chat_store = chat_store if chat_store is not None else ChatStore()
        self.repo_status = repo_status if repo_status is not None else RepoStatusCache()
        self.preview_max_chars = preview_max_chars
        self.timeline = TimelineMerger(self.files.find_log_file, self.files.find_subagent_files)

    # ── Core operations ─────────────────────────────────────────────

    def list_sessions(self, limit: int, offset: int = 0) -> tuple[list[SessionDescriptor], int]:
        return self.locator.list_sessions(limit, offset)

    def get_conversation_timeline(self, session_ids: Iterable[str]) -> list[NormalizedMessage]:
        return self.timeline.build(session_ids)

    def get_preview(self, log_path: str | Path, max_chars: int | None = None) -> Optional[str]:
        limit = self.preview_max_chars if max_chars is None else max_chars
        return get_preview(Path(log_path), limit)

    def get_directory_status(self, directory: str) -> RepoStatus:
        return self.repo_status.get(directory)

    # ── Chats ───────────────────────────────────────────────────────

    def _stored_chat(self, chat_id: str) -> Optional[Chat]:
        try:
            return self.chat_store.get_chat(chat_id)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Error reading chat from file storage: {exc}")
            return None

    def _with_git_info(self, chat: Chat, folder: str, include_git_info: bool) -> Chat:
        if not include_git_info:
            return chat
        status = self.get_directory_status(folder)
        return chat.model_copy(update={"is_git_repo": status.isRepo, "git_branch": status.branch})

    def find_chat(self, chat_id: str, include_git_info: bool = True) -> Optional[Chat]:
        """Look up a stored chat, falling back to a bare session log on disk."""
        stored = self._stored_chat(chat_id)
        if stored:
            log_path = self.files.find_log_file(stored.session_id)
            chat = stored.model_copy(
                update={
                    "displayFolder": self.worktrees.resolve(stored.folder).canonical_path,
                    "session_log_path": str(log_path) if log_path else None,
                }
            )
            return self._with_git_info(chat, stored.folder, include_git_info)

        log_path = self.files.find_log_file(chat_id)
        if log_path is None:
            return None
        folder = self.locator.decode_folder(log_path.parent.name)
        dates = file_metadata_dates(log_path)
        chat = Chat(
            id=chat_id,
            folder=folder,
            displayFolder=self.worktrees.resolve(folder).canonical_path,
            session_id=chat_id,
            session_log_path=str(log_path),
            metadata=json.dumps({"session_ids": [chat_id]}),
            created_at=dates["createdAt"],
            updated_at=dates["updatedAt"],
        )
        return self._with_git_info(chat, folder, include_git_info)

    def get_chat_messages(self, chat_id: str) -> Optional[list[NormalizedMessage]]:
        """Full timeline for a chat, or ``None`` when the chat is unknown."""
        chat = self.find_chat(chat_id, include_git_info=False)
        if chat is None:
            return None
        return self.get_conversation_timeline(session_ids_for_chat(chat))

    def _chat_for_descriptor(self, descriptor: SessionDescriptor, include_git_info: bool) -> Chat:
        try:
            stored = self.chat_store.get_by_session_id(descriptor.sessionId)
        except Exception as exc:  # noqa: BLE001
            logger.error(f"Error reading chat for session {descriptor.sessionId}: {exc}")
            stored = None
        chat = Chat(
            id=stored.id if stored else descriptor.sessionId,
            folder=descriptor.folder,
            displayFolder=descriptor.displayFolder,
            session_id=descriptor.sessionId,
            session_log_path=descriptor.logPath,
            metadata=stored.metadata if stored else json.dumps({"session_ids": [descriptor.sessionId]}),
            created_at=descriptor.createdAt,
            updated_at=descriptor.updatedAt,
            preview=self.get_preview(descriptor.logPath),
        )
        return self._with_git_info(chat, descriptor.folder, include_git_info)

    def list_chats(self, limit: int, offset: int = 0, include_git_info: bool = True) -> ChatListResponse:
        descriptors, total = self.list_sessions(limit, offset)
        chats = [self._chat_for_descriptor(descriptor, include_git_info) for descriptor in descriptors]
        return ChatListResponse(chats=chats, total=total, hasMore=offset + len(chats) < total)


_service: ConversationService | None = None


def get_conversation_service() -> ConversationService:
    global _service
    if _service is None:
        _service = ConversationService()
    return _service
