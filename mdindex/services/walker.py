"""Directory walking for entry patterns."""

from __future__ import annotations

import logging
import os

from mdindex.services.pattern import (
    CompiledPattern,
    PatternKind,
    compile_patterns,
    matches_glob,
)

logger = logging.getLogger(__name__)


def _scan(directory: str) -> list[os.DirEntry[str]]:
    """List a directory sorted by name; unreadable directories yield nothing."""
    try:
        with os.scandir(directory) as iterator:
            entries = list(iterator)
    except OSError as e:
        logger.warning(
            "Failed to read directory",
            extra={
                "directory": directory,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        return []
    entries.sort(key=lambda entry: entry.name)
    return entries


def _is_dir(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def _is_file(entry: os.DirEntry[str]) -> bool:
    try:
        return entry.is_file()
    except OSError:
        return False


def find_files_in_dir(directory: str, file_pattern: str) -> list[str]:
    """Non-recursive lookup of files in `directory` matching `file_pattern`."""
    return [
        entry.path
        for entry in _scan(directory)
        if _is_file(entry) and matches_glob(entry.name, file_pattern)
    ]


def _walk(directory: str, compiled: CompiledPattern, relative_path: str, files: list[str]) -> None:
    for entry in _scan(directory):
        entry_relative_path = f"{relative_path}/{entry.name}" if relative_path else entry.name

        if _is_dir(entry):
            if not compiled.is_recursive:
                continue
            if compiled.matches_directory(entry_relative_path):
                files.extend(find_files_in_dir(entry.path, compiled.file_pattern))
            _walk(entry.path, compiled, entry_relative_path, files)
        elif _is_file(entry) and compiled.matches_file(entry.name):
            files.append(entry.path)


def find_files_with_pattern(directory: str, compiled: CompiledPattern) -> list[str]:
    """
    Collect files under `directory` for one compiled (brace-free) pattern.

    Directory symlinks are not followed, so link cycles cannot recurse.
    """
    if compiled.kind is PatternKind.NEVER:
        logger.debug("Unsupported pattern matches nothing", extra={"pattern": compiled.source})
        return []

    files: list[str] = []
    _walk(directory, compiled, "", files)
    return files


def find_files(directory: str, pattern: str) -> list[str]:
    """
    Find files under `directory` matching an entry pattern.

    Brace alternatives are walked independently and unioned; a path found
    by more than one alternative is returned once, at its first position.

    Args:
        directory: Expanded root directory
        pattern: Entry pattern, e.g. `**/{commands,agents}/*.md`

    Returns:
        Absolute (root-joined) file paths
    """
    found: dict[str, None] = {}
    for compiled in compile_patterns(pattern):
        for file_path in find_files_with_pattern(directory, compiled):
            found.setdefault(file_path, None)
    return list(found)
