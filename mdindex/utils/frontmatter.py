"""
Lightweight front matter parsing for indexed Markdown files.

Only flat `key: value` lines are understood. Nested YAML, lists and
multiline values are ignored line by line rather than rejected, so a file
with exotic metadata still yields whatever simple keys it has.
"""

from __future__ import annotations

import re
from typing import NamedTuple

# Opening marker, interior (non-greedy), closing marker.
_FRONTMATTER_RE = re.compile(r"---\s*\n(.*?)\n---", re.DOTALL)
_FRONTMATTER_BLOCK_RE = re.compile(r"---\s*\n.*?\n---\s*\n?", re.DOTALL)
_KEY_VALUE_RE = re.compile(r"([A-Za-z0-9_-]+):\s*(.+)")
_HEADING_RE = re.compile(r"^# (.+)$", re.MULTILINE)


class ParsedFrontmatter(NamedTuple):
    """Result of parsing a Markdown file's front matter."""

    fields: dict[str, str]
    raw: str


def _normalize(content: str) -> str:
    return content.replace("\r\n", "\n")


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def parse_frontmatter(content: str) -> dict[str, str]:
    """
    Parse simple `key: value` pairs from a leading front matter block.

    Args:
        content: Raw file content

    Returns:
        Mapping of keys to values (empty if there is no block)
    """
    match = _FRONTMATTER_RE.match(_normalize(content))
    if not match or not match.group(1):
        return {}

    fields: dict[str, str] = {}
    for line in match.group(1).split("\n"):
        line_match = _KEY_VALUE_RE.fullmatch(line)
        if not line_match:
            continue
        fields[line_match.group(1)] = _strip_quotes(line_match.group(2).strip())

    return fields


def extract_raw_frontmatter(content: str) -> str:
    """Return the trimmed text between the front matter markers, or ''."""
    match = _FRONTMATTER_RE.match(_normalize(content))
    if not match:
        return ""
    return match.group(1).strip()


def read_frontmatter(content: str) -> ParsedFrontmatter:
    """Parse front matter fields and raw block in one call."""
    return ParsedFrontmatter(parse_frontmatter(content), extract_raw_frontmatter(content))


def parse_first_heading(content: str) -> str:
    """
    Return the text of the first level-one heading after the front matter.

    Args:
        content: Raw Markdown content

    Returns:
        Heading text without the leading '# ', or '' if there is none
    """
    body = _normalize(content)
    block = _FRONTMATTER_BLOCK_RE.match(body)
    if block:
        body = body[block.end() :]

    heading = _HEADING_RE.search(body)
    return heading.group(1).strip() if heading else ""
