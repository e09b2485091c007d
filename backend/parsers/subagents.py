"""Map spawned subagent ids to human-readable labels."""
from __future__ import annotations

from typing import Iterable

from backend.parsers.records import Record, ToolResultBlock, ToolUseBlock

TASK_TOOL_NAME = "Task"
_EMBEDDED_LABEL_KEYS = ("agentName", "teamName")


def fallback_agent_label(agent_id: str) -> str:
    return f"Agent {agent_id}"


def correlate_subagents(records: Iterable[Record]) -> dict[str, str]:
    """Return ``agentId -> label`` for every subagent spawned in ``records``.

    Single forward pass: a Task invocation's ``input.description`` is remembered
    by invocation id, and a later record carrying ``toolUseResult.agentId``
    resolves its tool_result block back to that description. Results whose
    invocation was not seen earlier in the stream get the generic label.
    """
    descriptions: dict[str, str] = {}
    labels: dict[str, str] = {}

    for record in records:
        for block in record.blocks:
            if isinstance(block, ToolUseBlock) and block.name == TASK_TOOL_NAME and block.id:
                payload = block.input if isinstance(block.input, dict) else {}
                description = payload.get("description")
                if isinstance(description, str) and description.strip():
                    descriptions[block.id] = description.strip()

        if not record.agent_id:
            continue

        label = None
        for block in record.blocks:
            if isinstance(block, ToolResultBlock) and block.tool_use_id in descriptions:
                label = descriptions[block.tool_use_id]
                break
        if label is None and record.agent_id in labels:
            continue
        labels[record.agent_id] = label or fallback_agent_label(record.agent_id)

    return labels


def embedded_agent_label(records: Iterable[Record]) -> str | None:
    """Return the first agent/team name recorded inside a subagent log."""
    for record in records:
        for key in _EMBEDDED_LABEL_KEYS:
            value = record.fields.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None
