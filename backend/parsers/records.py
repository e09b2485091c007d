"""Decode session log lines into typed records.

Each non-blank line of a session ``.jsonl`` file is one JSON object written by
the session runner. Records and their content blocks are modelled as frozen
dataclasses, one per variant, with explicit ``UNKNOWN`` / ``UnknownBlock``
variants for shapes we do not interpret. Decoding never raises: malformed
lines are reported as ``None`` and the caller moves on to the next line.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Union

from backend.observability import record_decode_failure

logger = logging.getLogger("agentboard.records")

COMPACT_BOUNDARY_SUBTYPE = "compact_boundary"


class RecordKind(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    SUMMARY = "summary"
    QUEUE_OPERATION = "queue-operation"
    UNKNOWN = "unknown"


_KIND_BY_TYPE = {kind.value: kind for kind in RecordKind if kind is not RecordKind.UNKNOWN}


@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class ThinkingBlock:
    thinking: str


@dataclass(frozen=True)
class ToolUseBlock:
    id: str
    name: str
    input: Any = None


@dataclass(frozen=True)
class ToolResultBlock:
    tool_use_id: str
    content: Any = None
    is_error: bool = False


@dataclass(frozen=True)
class UnknownBlock:
    type: str
    raw: Any = None


ContentBlock = Union[TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock, UnknownBlock]


@dataclass(frozen=True)
class Usage:
    input_tokens: int | None = None
    output_tokens: int | None = None
    cache_creation_input_tokens: int | None = None
    cache_read_input_tokens: int | None = None
    service_tier: str | None = None


@dataclass(frozen=True)
class RecordMessage:
    role: str
    # Either the raw string content or the decoded block list.
    content: Union[str, tuple[ContentBlock, ...]]
    model: str | None = None
    usage: Usage | None = None


@dataclass(frozen=True)
class Record:
    kind: RecordKind
    raw_type: str = ""
    subtype: str | None = None
    message: RecordMessage | None = None
    timestamp: str | None = None
    git_branch: str | None = None
    session_id: str | None = None
    agent_id: str | None = None  # toolUseResult.agentId
    # Read-only view of the raw entry for fields not modelled above.
    fields: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({}), compare=False, hash=False, repr=False
    )

    @property
    def blocks(self) -> tuple[ContentBlock, ...]:
        if self.message is None or isinstance(self.message.content, str):
            return ()
        return self.message.content


def _as_str(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    return None


def _decode_block(raw: Any) -> ContentBlock:
    if isinstance(raw, str):
        return TextBlock(text=raw)
    if not isinstance(raw, dict):
        return UnknownBlock(type="", raw=raw)

    block_type = str(raw.get("type") or "")
    if block_type == "text":
        return TextBlock(text=_as_str(raw.get("text")) or "")
    if block_type == "thinking":
        return ThinkingBlock(thinking=_as_str(raw.get("thinking")) or "")
    if block_type == "tool_use":
        return ToolUseBlock(
            id=_as_str(raw.get("id")) or "",
            name=_as_str(raw.get("name")) or "",
            input=raw.get("input"),
        )
    if block_type == "tool_result":
        return ToolResultBlock(
            tool_use_id=_as_str(raw.get("tool_use_id")) or "",
            content=raw.get("content"),
            is_error=bool(raw.get("is_error", False)),
        )
    return UnknownBlock(type=block_type, raw=raw)


def _decode_usage(raw: Any) -> Usage | None:
    if not isinstance(raw, dict):
        return None
    return Usage(
        input_tokens=_as_int(raw.get("input_tokens")),
        output_tokens=_as_int(raw.get("output_tokens")),
        cache_creation_input_tokens=_as_int(raw.get("cache_creation_input_tokens")),
        cache_read_input_tokens=_as_int(raw.get("cache_read_input_tokens")),
        service_tier=_as_str(raw.get("service_tier")),
    )


def _decode_message(entry: dict[str, Any]) -> RecordMessage | None:
    raw = entry.get("message")
    if isinstance(raw, dict):
        role = _as_str(raw.get("role")) or _as_str(entry.get("type")) or ""
        content = raw.get("content")
        model = _as_str(raw.get("model"))
        usage = _decode_usage(raw.get("usage"))
    elif "content" in entry and isinstance(entry.get("role"), str):
        # Older logs put role/content at the top level.
        role = entry["role"]
        content = entry.get("content")
        model = None
        usage = None
    else:
        return None

    if isinstance(content, str):
        return RecordMessage(role=role, content=content, model=model, usage=usage)
    if isinstance(content, list):
        blocks = tuple(_decode_block(block) for block in content)
        return RecordMessage(role=role, content=blocks, model=model, usage=usage)
    return RecordMessage(role=role, content=(), model=model, usage=usage)


def decode_entry(entry: Any) -> Record | None:
    """Build a record from an already-parsed JSON value."""
    if not isinstance(entry, dict):
        return None

    raw_type = _as_str(entry.get("type")) or ""
    kind = _KIND_BY_TYPE.get(raw_type)
    if kind is None:
        role = _as_str(entry.get("role"))
        kind = _KIND_BY_TYPE.get(role or "", RecordKind.UNKNOWN)
        if kind not in (RecordKind.USER, RecordKind.ASSISTANT):
            kind = RecordKind.UNKNOWN

    agent_id = None
    tool_use_result = entry.get("toolUseResult")
    if isinstance(tool_use_result, dict):
        raw_agent_id = _as_str(tool_use_result.get("agentId"))
        if raw_agent_id and raw_agent_id.strip():
            agent_id = raw_agent_id.strip()

    return Record(
        kind=kind,
        raw_type=raw_type,
        subtype=_as_str(entry.get("subtype")),
        message=_decode_message(entry) if kind in (RecordKind.USER, RecordKind.ASSISTANT) else None,
        timestamp=_as_str(entry.get("timestamp")),
        git_branch=_as_str(entry.get("gitBranch")),
        session_id=_as_str(entry.get("sessionId")),
        agent_id=agent_id,
        fields=MappingProxyType(entry),
    )


def decode_line(line: str) -> Record | None:
    """Decode one log line. Blank and malformed lines yield ``None``."""
    stripped = line.strip()
    if not stripped:
        return None
    try:
        entry = json.loads(stripped)
    except (ValueError, RecursionError):
        logger.debug(f"Skipping malformed log line: {stripped[:100]}")
        return None
    return decode_entry(entry)


def decode_lines(lines: Iterable[str]) -> list[Record]:
    records: list[Record] = []
    skipped = 0
    for line in lines:
        record = decode_line(line)
        if record is not None:
            records.append(record)
        elif line.strip():
            skipped += 1
    if skipped:
        record_decode_failure("session_log", skipped)
    return records


def read_records(path: Path) -> list[Record]:
    """Decode every line of a session log. Missing or unreadable files are empty."""
    try:
        with path.open("r", encoding="utf-8", errors="replace") as handle:
            return decode_lines(handle)
    except FileNotFoundError:
        return []
    except OSError as exc:
        logger.warning(f"Failed to read session log {path}: {exc}")
        return []
