"""
Per-file prefix lookup for entries with a `prefixPattern`.

`prefixPattern` has the form `<glob>@<dotted.field>`, e.g.
`.claude-plugin/plugin.json@name`. Starting from the matched file's
directory, each ancestor inside the entry root is searched for `<glob>`;
the first directory with a hit supplies the prefix from that JSON file.
"""

from __future__ import annotations

import json
import logging
import os
from collections import OrderedDict
from pathlib import Path
from typing import NamedTuple

logger = logging.getLogger(__name__)

PREFIX_CACHE_MAX_SIZE = 100


class PrefixPattern(NamedTuple):
    """A prefixPattern split at its last '@'."""

    glob_pattern: str
    field_path: str


def parse_prefix_pattern(pattern: str) -> PrefixPattern | None:
    """Split `<glob>@<field>`; None when there is no '@'."""
    glob_pattern, at, field_path = pattern.rpartition("@")
    if not at:
        return None
    return PrefixPattern(glob_pattern, field_path)


def _common_path_length(first: str, second: str) -> int:
    common = 0
    for left, right in zip(Path(first).parts, Path(second).parts):
        if left != right:
            break
        common += 1
    return common


def find_closest_match(matches: list[str], target_path: str) -> str | None:
    """Pick the match sharing the most leading path parts with `target_path`."""
    if not matches:
        return None
    closest = matches[0]
    for candidate in matches[1:]:
        if _common_path_length(candidate, target_path) > _common_path_length(closest, target_path):
            closest = candidate
    return closest


def extract_json_field(json_path: str, field_path: str) -> str:
    """
    Read a dotted field from a JSON file.

    Returns '' for unreadable files, invalid JSON, missing keys and
    non-string values.
    """
    try:
        with open(json_path, encoding="utf-8") as f:
            value: object = json.load(f)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError, RecursionError) as e:
        logger.debug(
            "Failed to read prefix file",
            extra={"path": json_path, "error": str(e), "error_type": type(e).__name__},
        )
        return ""

    for key in field_path.split("."):
        if not isinstance(value, dict) or key not in value:
            return ""
        value = value[key]

    return value if isinstance(value, str) else ""


def _glob_files(directory: str, glob_pattern: str) -> list[str]:
    try:
        return sorted(
            str(match) for match in Path(directory).glob(glob_pattern) if match.is_file()
        )
    except (ValueError, NotImplementedError, OSError) as e:
        # Empty or absolute glob patterns are rejected by pathlib
        logger.debug(
            "Prefix glob failed",
            extra={"directory": directory, "pattern": glob_pattern, "error": str(e)},
        )
        return []


class PrefixResolver:
    """Resolves and memoises `{prefix}` values."""

    def __init__(self, max_size: int = PREFIX_CACHE_MAX_SIZE) -> None:
        self.max_size = max_size
        self._cache: OrderedDict[str, str] = OrderedDict()

    def clear(self) -> None:
        self._cache.clear()

    def _remember(self, key: str, prefix: str) -> str:
        # Runs in worker threads while clear() may empty the cache from the loop
        if key not in self._cache and len(self._cache) >= self.max_size:
            try:
                self._cache.popitem(last=False)
            except KeyError:
                pass
        self._cache[key] = prefix
        return prefix

    def resolve(self, file_path: str, prefix_pattern: str, base_path: str) -> str:
        """
        Resolve the prefix for one file.

        Args:
            file_path: Matched file
            prefix_pattern: `<glob>@<field>`
            base_path: Expanded entry root; the upward search stops there

        Returns:
            Prefix string ('' when nothing is found)
        """
        parsed = parse_prefix_pattern(prefix_pattern)
        if parsed is None:
            return ""

        file_dir = os.path.dirname(file_path)
        cache_key = f"{file_dir}:{prefix_pattern}"
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        base = os.path.normpath(os.path.expanduser(base_path))
        search_dir = file_dir

        while search_dir == base or search_dir.startswith(base + os.sep):
            matches = _glob_files(search_dir, parsed.glob_pattern)
            if matches:
                json_path = find_closest_match(matches, file_path)
                if json_path is not None:
                    prefix = extract_json_field(json_path, parsed.field_path)
                    return self._remember(cache_key, prefix)

            parent = os.path.dirname(search_dir)
            if parent == search_dir:
                break
            search_dir = parent

        return self._remember(cache_key, "")
