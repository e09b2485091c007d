"""First-prompt previews for session list entries."""
from __future__ import annotations

import logging
from pathlib import Path

from backend.parsers.records import Record, RecordKind, TextBlock, decode_line

logger = logging.getLogger("agentboard.preview")


def _user_text(record: Record) -> str:
    if record.kind is not RecordKind.USER or record.message is None:
        return ""
    if record.fields.get("isMeta") is True:
        return ""
    content = record.message.content
    if isinstance(content, str):
        return content.strip()
    for block in content:
        if isinstance(block, TextBlock) and block.text.strip():
            return block.text.strip()
    return ""


def truncate_preview(text: str, max_chars: int) -> str:
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars].rstrip() + "…"


def get_preview(path: Path, max_chars: int) -> str | None:
    """Return the first user-authored text in a log, truncated to ``max_chars``.

    Only reads as far as the first match. Missing files and logs without any
    user text yield ``None``.
    """
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            for line in handle:
                record = decode_line(line)
                if record is None:
                    continue
                text = _user_text(record)
                if text:
                    return truncate_preview(text, max_chars)
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning(f"Failed to read preview from {path}: {exc}")
    return None
