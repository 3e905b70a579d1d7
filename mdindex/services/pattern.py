"""
Pattern compiler for entry globs.

Supports a deliberately small dialect:
- `SKILL.md`                literal file name at the root
- `*.md`, `a?c.md`, `*`     single-segment wildcard at the root
- `**/<file>`               file pattern at any depth
- `**/<dirs>/<file>`        file pattern inside directories whose trailing
                            path segments match `<dirs>` segment by segment
- `{a,b}`                   brace alternation anywhere, expanded up front

Anything else compiles to a pattern that matches nothing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache

RECURSIVE_PREFIX = "**/"


class PatternKind(str, Enum):
    """Shape of a compiled pattern."""

    LITERAL = "literal"  # exact file name at the root
    GLOB = "glob"  # wildcard file name at the root
    RECURSIVE = "recursive"  # file pattern at any depth
    RECURSIVE_INTERMEDIATE = "recursive_intermediate"  # file pattern under matching dirs
    NEVER = "never"  # unsupported pattern


@dataclass(frozen=True)
class CompiledPattern:
    """A single brace-free pattern split into its matching parts."""

    source: str
    kind: PatternKind
    file_pattern: str = ""
    intermediate_pattern: str | None = None

    @property
    def is_recursive(self) -> bool:
        return self.kind in (PatternKind.RECURSIVE, PatternKind.RECURSIVE_INTERMEDIATE)

    def matches_file(self, file_name: str) -> bool:
        """
        Test a file met during the walk.

        The walker only offers root-level files for non-recursive kinds.
        Intermediate patterns never match here; their files are collected
        per matching directory instead.
        """
        if self.kind in (PatternKind.LITERAL, PatternKind.GLOB, PatternKind.RECURSIVE):
            return matches_glob(file_name, self.file_pattern)
        return False

    def matches_directory(self, relative_path: str) -> bool:
        """Test whether files directly inside `relative_path` are candidates."""
        if self.kind is not PatternKind.RECURSIVE_INTERMEDIATE or self.intermediate_pattern is None:
            return False
        return matches_intermediate_suffix(relative_path, self.intermediate_pattern)


def _has_wildcard(pattern: str) -> bool:
    return "*" in pattern or "?" in pattern


def compile_pattern(pattern: str) -> CompiledPattern:
    """
    Compile one brace-free pattern.

    Args:
        pattern: Pattern such as `*.md` or `**/commands/*.md`

    Returns:
        CompiledPattern; unsupported input yields kind NEVER
    """
    if not pattern.startswith(RECURSIVE_PREFIX):
        if not pattern or "/" in pattern:
            return CompiledPattern(source=pattern, kind=PatternKind.NEVER)
        kind = PatternKind.GLOB if _has_wildcard(pattern) else PatternKind.LITERAL
        return CompiledPattern(source=pattern, kind=kind, file_pattern=pattern)

    tail = pattern[len(RECURSIVE_PREFIX) :]
    intermediate, _, file_pattern = tail.rpartition("/")

    if not file_pattern:
        return CompiledPattern(source=pattern, kind=PatternKind.NEVER)

    if not intermediate:
        if "/" in tail:
            # `**//x.md` style input: an empty intermediate segment
            return CompiledPattern(source=pattern, kind=PatternKind.NEVER)
        return CompiledPattern(source=pattern, kind=PatternKind.RECURSIVE, file_pattern=file_pattern)

    return CompiledPattern(
        source=pattern,
        kind=PatternKind.RECURSIVE_INTERMEDIATE,
        file_pattern=file_pattern,
        intermediate_pattern=intermediate,
    )


@lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    translated = re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".")
    return re.compile(translated, re.DOTALL)


def matches_glob(name: str, pattern: str) -> bool:
    """Match a single path segment against `*`/`?` wildcards."""
    if pattern == "*":
        return True
    return _glob_regex(pattern).fullmatch(name) is not None


def matches_intermediate_suffix(relative_path: str, intermediate_pattern: str) -> bool:
    """
    Check the trailing segments of a relative directory path.

    `plugins/my-plugin/commands` satisfies `*/commands` because its last
    two segments match `*` and `commands` respectively.
    """
    path_segments = relative_path.split("/")
    pattern_segments = intermediate_pattern.split("/")

    if len(path_segments) < len(pattern_segments):
        return False

    tail = path_segments[len(path_segments) - len(pattern_segments) :]
    return all(
        matches_glob(segment, segment_pattern)
        for segment, segment_pattern in zip(tail, pattern_segments)
    )


def _find_closing_brace(pattern: str, start: int) -> int:
    depth = 0
    for index in range(start, len(pattern)):
        char = pattern[index]
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return -1


def _split_alternatives(body: str) -> list[str]:
    alternatives: list[str] = []
    depth = 0
    current: list[str] = []
    for char in body:
        if char == "," and depth == 0:
            alternatives.append("".join(current).strip())
            current = []
            continue
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        current.append(char)
    alternatives.append("".join(current).strip())
    return alternatives


def expand_braces(pattern: str) -> list[str]:
    """
    Expand `{a,b}` alternatives into separate patterns.

    The first brace group is expanded and every result is expanded again,
    so nested and repeated groups work; results keep left-to-right order.
    Empty (`{}`) or unterminated groups are kept literally.

    Example:
        expand_braces("**/{commands,agents}/*.md")
        # => ["**/commands/*.md", "**/agents/*.md"]
    """
    search_from = 0
    while True:
        start = pattern.find("{", search_from)
        if start == -1:
            return [pattern]

        end = _find_closing_brace(pattern, start)
        if end == -1:
            return [pattern]

        body = pattern[start + 1 : end]
        if not body:
            search_from = end + 1
            continue

        prefix = pattern[:start]
        suffix = pattern[end + 1 :]
        results: list[str] = []
        for alternative in _split_alternatives(body):
            results.extend(expand_braces(prefix + alternative + suffix))
        return results


def compile_patterns(pattern: str) -> list[CompiledPattern]:
    """Expand braces and compile every alternative."""
    return [compile_pattern(expanded) for expanded in expand_braces(pattern)]
