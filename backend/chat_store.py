"""JSON-file store for chat records (title, bookmarks, resumed session ids)."""
from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from backend import config
from backend.date_utils import format_datetime_utc
from backend.models import Chat
from backend.services.session_files import is_safe_session_id

logger = logging.getLogger("agentboard.chats")


def _now_iso() -> str:
    return format_datetime_utc(datetime.now(timezone.utc))


def parse_chat_metadata(raw: str | dict | None) -> dict[str, Any]:
    if not raw:
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def session_ids_for_chat(chat: Chat) -> list[str]:
    """Ordered, de-duplicated session ids making up a chat's conversation."""
    metadata = parse_chat_metadata(chat.metadata)
    raw_ids = metadata.get("session_ids")
    candidates: list[str] = []
    if isinstance(raw_ids, list):
        candidates = [value for value in raw_ids if isinstance(value, str) and value.strip()]
    if not candidates and chat.session_id:
        candidates = [chat.session_id]

    seen: set[str] = set()
    ordered: list[str] = []
    for value in candidates:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


class ChatStore:
    """One ``<session_id>.json`` file per chat under ``chats_dir``."""

    def __init__(self, chats_dir: Path | None = None):
        self.chats_dir = Path(chats_dir) if chats_dir is not None else config.CHATS_DIR

    def _path_for(self, session_id: str) -> Path:
        if not is_safe_session_id(session_id):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.chats_dir / f"{session_id}.json"

    def _load(self, path: Path) -> Optional[Chat]:
        try:
            return Chat(**json.loads(path.read_text(encoding="utf-8")))
        except FileNotFoundError:
            return None
        except (OSError, ValueError, TypeError, ValidationError) as e:
            logger.error(f"Error reading chat file {path.name}: {e}")
            return None

    def _iter_files(self) -> list[Path]:
        if not self.chats_dir.is_dir():
            return []
        return sorted(self.chats_dir.glob("*.json"))

    def _save(self, chat: Chat) -> None:
        self.chats_dir.mkdir(parents=True, exist_ok=True)
        payload = chat.model_dump(include={"id", "folder", "session_id", "session_log_path", "metadata", "created_at", "updated_at"})
        self._path_for(chat.session_id).write_text(json.dumps(payload, indent=2), encoding="utf-8")

    def list_chats(self, limit: int | None = None, offset: int = 0) -> list[Chat]:
        chats = [chat for chat in (self._load(path) for path in self._iter_files()) if chat]
        chats.sort(key=lambda chat: chat.updated_at, reverse=True)
        end = offset + limit if limit is not None else None
        return chats[offset:end]

    def get_chat(self, chat_id: str) -> Optional[Chat]:
        """Find a chat by session id (file name) or by its own id."""
        if is_safe_session_id(chat_id):
            chat = self._load(self._path_for(chat_id))
            if chat:
                return chat
        for path in self._iter_files():
            chat = self._load(path)
            if chat and chat.id == chat_id:
                return chat
        return None

    def get_by_session_id(self, session_id: str) -> Optional[Chat]:
        if not is_safe_session_id(session_id):
            return None
        return self._load(self._path_for(session_id))

    def create_chat(self, folder: str, session_id: str, metadata: str = "{}") -> Chat:
        logger.debug(f"create_chat folder={folder} session_id={session_id}")
        now = _now_iso()
        chat = Chat(
            id=str(uuid.uuid4()),
            folder=folder,
            session_id=session_id,
            session_log_path=None,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )
        self._save(chat)
        return chat

    def update_chat_metadata(self, chat_id: str, fields: dict[str, Any]) -> bool:
        """Merge ``fields`` into the chat's metadata blob."""
        chat = self.get_chat(chat_id)
        if not chat:
            return False
        merged = {**parse_chat_metadata(chat.metadata), **fields}
        updated = chat.model_copy(update={"metadata": json.dumps(merged), "updated_at": _now_iso()})
        self._save(updated)
        return True

    def delete_chat(self, session_id: str) -> bool:
        logger.debug(f"delete_chat session_id={session_id}")
        try:
            self._path_for(session_id).unlink()
        except FileNotFoundError:
            return False
        except (OSError, ValueError) as e:
            logger.error(f"Error deleting chat file {session_id}: {e}")
            return False
        return True
