"""Merge a conversation's session logs and subagent logs into one timeline."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable, Optional

from backend.date_utils import iso_to_epoch
from backend.models import NormalizedMessage
from backend.observability import start_span
from backend.parsers.messages import normalize_records
from backend.parsers.records import Record, read_records
from backend.parsers.subagents import correlate_subagents, embedded_agent_label, fallback_agent_label

logger = logging.getLogger("agentboard.timeline")

LogFileFinder = Callable[[str], Optional[Path]]
SubagentFileFinder = Callable[[str], list[tuple[str, Path]]]


def _unique(values: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def _sort_keys(messages: list[NormalizedMessage]) -> list[float]:
    # Untimestamped messages inherit the key of the closest earlier message
    # from the same log so they stay next to it after sorting.
    keys: list[float] = []
    previous = float("-inf")
    for message in messages:
        epoch = iso_to_epoch(message.timestamp)
        if epoch is not None:
            previous = epoch
        keys.append(previous)
    return keys


class TimelineMerger:
    """Builds the chronological message list for a conversation."""

    def __init__(self, find_log_file: LogFileFinder, find_subagent_files: SubagentFileFinder):
        self._find_log_file = find_log_file
        self._find_subagent_files = find_subagent_files

    def _load_parent_records(self, session_ids: list[str]) -> list[Record]:
        records: list[Record] = []
        for session_id in session_ids:
            try:
                path = self._find_log_file(session_id)
            except Exception as exc:  # noqa: BLE001
                logger.warning(f"Log lookup failed for session {session_id}: {exc}")
                continue
            if path is None:
                continue
            records.extend(read_records(path))
        return records

    def _subagent_files(self, session_id: str) -> list[tuple[str, Path]]:
        try:
            return list(self._find_subagent_files(session_id))
        except Exception as exc:  # noqa: BLE001
            logger.warning(f"Subagent lookup failed for session {session_id}: {exc}")
            return []

    @staticmethod
    def _label_for(agent_id: str, correlated: dict[str, str], records: list[Record]) -> str:
        bare = agent_id[len("agent-"):] if agent_id.startswith("agent-") else agent_id
        for key in (agent_id, bare, f"agent-{bare}"):
            if key in correlated:
                return correlated[key]
        return embedded_agent_label(records) or fallback_agent_label(bare)

    def build(self, session_ids: Iterable[str]) -> list[NormalizedMessage]:
        ordered_ids = _unique(session_ids)
        with start_span("timeline.build", {"session_count": len(ordered_ids)}):
            parent_records = self._load_parent_records(ordered_ids)
            parent_messages = normalize_records(parent_records)
            correlated = correlate_subagents(parent_records)

            combined = list(parent_messages)
            keys: list[float] | None = None
            for session_id in ordered_ids:
                for agent_id, path in self._subagent_files(session_id):
                    records = read_records(path)
                    label = self._label_for(agent_id, correlated, records)
                    messages = normalize_records(records, team_name=label)
                    if not messages:
                        continue
                    if keys is None:
                        keys = _sort_keys(parent_messages)
                    combined.extend(messages)
                    keys.extend(_sort_keys(messages))

            if keys is None:
                return parent_messages

            order = sorted(range(len(combined)), key=keys.__getitem__)
            return [combined[idx] for idx in order]
