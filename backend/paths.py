"""Encode/decode working directories to session log folder names.

The session runner names each log folder after its working directory with
every non-alphanumeric character replaced by ``-``, so ``/home/me/my-app`` and
``/home/me/my.app`` both become ``-home-me-my-app``. Decoding is therefore a
best-effort search against the live filesystem.
"""
from __future__ import annotations

import os
import re
from itertools import product

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_MAX_DASHES_ENUMERATED = 6
_MAX_MERGE = 6
_MAX_MIXED_MERGE = 4


def encode_project_dir(folder: str) -> str:
    return _NON_ALNUM.sub("-", folder)


def _is_dir(path: str) -> bool:
    try:
        return os.path.isdir(path)
    except (OSError, ValueError):
        return False


def _exists(path: str) -> bool:
    try:
        return os.path.exists(path)
    except (OSError, ValueError):
        return False


def _dot_variants(segment: str) -> list[str]:
    """Variants of ``segment`` with some or all dashes turned into dots.

    All-dots comes first; the unchanged segment is never included.
    """
    positions = [idx for idx, char in enumerate(segment) if char == "-"]
    if not positions:
        return []
    all_dots = segment.replace("-", ".")
    if len(positions) > _MAX_DASHES_ENUMERATED:
        return [all_dots]

    variants = [all_dots]
    for mask in range(1, (1 << len(positions)) - 1):
        chars = list(segment)
        for bit, pos in enumerate(positions):
            if mask & (1 << bit):
                chars[pos] = "."
        variants.append("".join(chars))
    return variants


def _join(segments: list[str]) -> str:
    return "/" + "/".join(segments)


def _try_dot_recovery(segments: list[str]) -> str | None:
    # Dashes inside one segment that were dots, e.g. "repo-name" -> "repo.name".
    for seg_idx in range(len(segments) - 1, -1, -1):
        for variant in _dot_variants(segments[seg_idx]):
            candidate = _join(segments[:seg_idx] + [variant] + segments[seg_idx + 1:])
            if _exists(candidate):
                return candidate

    # Trailing segments wrongly split at a coincidental directory.
    for merge_count in range(2, min(len(segments), _MAX_MERGE) + 1):
        prefix = _join(segments[:-merge_count]) if len(segments) > merge_count else ""
        tail = segments[-merge_count:]
        candidate = f"{prefix}/{'.'.join(tail)}"
        if _exists(candidate):
            return candidate
        if merge_count > _MAX_MIXED_MERGE:
            continue
        separators = list(product("./", repeat=merge_count - 1))
        for combo in separators:
            if all(sep == "." for sep in combo) or all(sep == "/" for sep in combo):
                continue
            merged = tail[0] + "".join(sep + part for sep, part in zip(combo, tail[1:]))
            if _exists(f"{prefix}/{merged}"):
                return f"{prefix}/{merged}"

    # Merge and then fix dashes inside the merged name.
    for merge_count in range(2, min(len(segments), _MAX_MIXED_MERGE) + 1):
        prefix = _join(segments[:-merge_count]) if len(segments) > merge_count else ""
        dot_joined = ".".join(segments[-merge_count:])
        for variant in _dot_variants(dot_joined):
            if _exists(f"{prefix}/{variant}"):
                return f"{prefix}/{variant}"

    return None


def project_dir_to_folder(dir_name: str) -> str:
    """Recover the working directory a log folder name was derived from."""
    parts = dir_name[1:].split("-") if dir_name.startswith("-") else dir_name.split("-")
    if not parts or parts == [""]:
        return "/"

    resolved: list[str] = []
    current = parts[0]
    for part in parts[1:]:
        if _is_dir(_join(resolved + [current])):
            resolved.append(current)
            current = part
        else:
            current = f"{current}-{part}"
    resolved.append(current)

    greedy = _join(resolved)
    if _exists(greedy):
        return greedy
    return _try_dot_recovery(resolved) or greedy
