"""Flatten decoded session records into UI-ready messages."""
from __future__ import annotations

import json
from typing import Any, Iterable

from backend.models import MessageMetadata, NormalizedMessage
from backend.parsers.records import (
    COMPACT_BOUNDARY_SUBTYPE,
    Record,
    RecordKind,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
)

COMPACT_BOUNDARY_TEXT = "Conversation compacted"


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        return str(value)


def tool_result_to_text(content: Any) -> str:
    """Flatten a tool_result payload to a single string.

    Lists are joined with newlines, using each element's ``text`` when it is a
    text sub-block and its JSON form otherwise.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        chunks: list[str] = []
        for item in content:
            if isinstance(item, str):
                chunks.append(item)
            elif isinstance(item, dict) and item.get("type") == "text" and isinstance(item.get("text"), str):
                chunks.append(item["text"])
            else:
                chunks.append(_to_json(item))
        return "\n".join(chunks)
    return _to_json(content)


def _record_metadata(record: Record) -> MessageMetadata | None:
    message = record.message
    usage = message.usage if message else None
    metadata = MessageMetadata(
        model=message.model if message else None,
        gitBranch=record.git_branch or None,
        inputTokens=usage.input_tokens if usage else None,
        outputTokens=usage.output_tokens if usage else None,
        cacheCreationInputTokens=usage.cache_creation_input_tokens if usage else None,
        cacheReadInputTokens=usage.cache_read_input_tokens if usage else None,
        serviceTier=usage.service_tier if usage else None,
    )
    return None if metadata.is_empty() else metadata


def _record_role(record: Record) -> str:
    role = record.message.role if record.message else ""
    if role in ("user", "assistant"):
        return role
    return "assistant" if record.kind is RecordKind.ASSISTANT else "user"


def _normalize_record(record: Record, team_name: str | None) -> list[NormalizedMessage]:
    if record.kind is RecordKind.SYSTEM:
        if record.subtype != COMPACT_BOUNDARY_SUBTYPE:
            return []
        return [
            NormalizedMessage(
                role="system",
                type="system",
                content=COMPACT_BOUNDARY_TEXT,
                timestamp=record.timestamp,
                teamName=team_name,
            )
        ]

    if record.kind not in (RecordKind.USER, RecordKind.ASSISTANT) or record.message is None:
        return []

    role = _record_role(record)
    metadata = _record_metadata(record)
    common = {"timestamp": record.timestamp, "teamName": team_name, "metadata": metadata}

    content = record.message.content
    if isinstance(content, str):
        if not content:
            return []
        return [NormalizedMessage(role=role, type="text", content=content, **common)]

    result: list[NormalizedMessage] = []
    for block in content:
        if isinstance(block, TextBlock):
            if block.text:
                result.append(NormalizedMessage(role=role, type="text", content=block.text, **common))
        elif isinstance(block, ThinkingBlock):
            if block.thinking:
                result.append(NormalizedMessage(role="assistant", type="thinking", content=block.thinking, **common))
        elif isinstance(block, ToolUseBlock):
            result.append(
                NormalizedMessage(
                    role="assistant",
                    type="tool_use",
                    content=_to_json(block.input if block.input is not None else {}),
                    toolName=block.name or None,
                    toolUseId=block.id or None,
                    **common,
                )
            )
        elif isinstance(block, ToolResultBlock):
            text = tool_result_to_text(block.content)
            if text:
                result.append(
                    NormalizedMessage(
                        role="assistant",
                        type="tool_result",
                        content=text,
                        toolName=block.tool_use_id or None,
                        toolUseId=block.tool_use_id or None,
                        **common,
                    )
                )
    return result


def normalize_records(records: Iterable[Record], team_name: str | None = None) -> list[NormalizedMessage]:
    """Convert records to messages, preserving file order.

    ``team_name`` is stamped onto every emitted message; it is used for
    messages that originate from a subagent log.
    """
    messages: list[NormalizedMessage] = []
    for record in records:
        messages.extend(_normalize_record(record, team_name))
    return messages
