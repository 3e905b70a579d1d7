"""
Template resolution for entry name/description/argument-hint strings.

Supported tokens:
- {basename}            file name without its last extension
- {dirname}             parent directory name (left as-is when unknown)
- {dirname:N}           directory name N levels above the file
- {prefix}              per-entry prefix (left as-is when unknown)
- {frontmatter@field}   front matter value ('' when missing)
- {heading}             first level-one heading ('' when missing)
- {filepath}            absolute file path
- {content}             full file content

`a|b` resolves `a` and falls back to `b` when `a` comes out empty.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePath

_TOKEN_RE = re.compile(r"\{([^{}]+)\}")
_DIRNAME_LEVEL_RE = re.compile(r"dirname:(\d+)")
_EXTENSION_RE = re.compile(r"\.[^.]+$")

FRONTMATTER_TOKEN_PREFIX = "frontmatter@"


@dataclass
class TemplateContext:
    """Values available to a template for one file."""

    basename: str
    frontmatter: dict[str, str] = field(default_factory=dict)
    prefix: str | None = None
    dirname: str | None = None
    file_path: str | None = None
    heading: str | None = None
    content: str | None = None


def get_basename(file_path: str) -> str:
    """File name without its final extension (`a.test.js` -> `a.test`)."""
    file_name = PurePath(file_path).as_posix().split("/")[-1]
    return _EXTENSION_RE.sub("", file_name)


def get_dirname(file_path: str, level: int = 1) -> str:
    """
    Name of the directory `level` steps above the file.

    Args:
        file_path: Path to the file
        level: 1 for the parent, 2 for the grandparent, ...

    Returns:
        Directory name, or '' when the path is not that deep
    """
    parts = PurePath(file_path).as_posix().split("/")
    index = len(parts) - 1 - level
    if index < 0:
        return ""
    return parts[index]


def _resolve_token(token: str, context: TemplateContext) -> str | None:
    """Value for a token body, or None to keep the token verbatim."""
    if token == "basename":
        return context.basename
    if token == "dirname":
        return context.dirname
    if token == "prefix":
        return context.prefix
    if token == "heading":
        return context.heading or ""
    if token == "content":
        return context.content or ""
    if token == "filepath":
        return context.file_path or ""
    if token.startswith(FRONTMATTER_TOKEN_PREFIX):
        return context.frontmatter.get(token[len(FRONTMATTER_TOKEN_PREFIX) :], "")

    level_match = _DIRNAME_LEVEL_RE.fullmatch(token)
    if level_match:
        if not context.file_path:
            return None
        return get_dirname(context.file_path, int(level_match.group(1)))

    return None


def resolve_template(template: str, context: TemplateContext) -> str:
    """
    Resolve all tokens in a template.

    Tokens are replaced in a single pass, so substituted values are never
    scanned for further tokens. Unknown tokens are kept verbatim.

    Example:
        resolve_template(
            "{basename}-{frontmatter@type}",
            TemplateContext(basename="foo", frontmatter={"type": "x"}),
        )
        # => "foo-x"
    """
    primary, pipe, fallback = template.partition("|")
    if pipe:
        return resolve_template(primary, context) or resolve_template(fallback, context)

    def replace(match: re.Match[str]) -> str:
        value = _resolve_token(match.group(1), context)
        return match.group(0) if value is None else value

    return _TOKEN_RE.sub(replace, template)
