"""Models for configured index entries and the items they produce."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MAX_SUGGESTIONS = 20


class EntryType(str, Enum):
    """Namespace an entry contributes to."""

    COMMAND = "command"  # "/command" completion
    MENTION = "mention"  # "@mention" completion


class SortOrder(str, Enum):
    """Sort direction applied to item names."""

    ASC = "asc"
    DESC = "desc"


DEFAULT_SORT_ORDER = SortOrder.ASC


class InputFormat(str, Enum):
    """What the caller inserts when an item is picked."""

    NAME = "name"
    PATH = "path"


class Entry(BaseModel):
    """
    A configured Markdown source.

    Loaded from the `mdSearch` list of config.yaml:
        - name: "{basename}"
          type: command
          description: "{frontmatter@description}|{heading}"
          path: ~/.claude/commands
          pattern: "**/*.md"
          argumentHint: "{frontmatter@argument-hint}"
          maxSuggestions: 20
          sortOrder: asc
          searchPrefix: "agent:"
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Name template resolved per matched file")
    type: EntryType = Field(..., description="Namespace (command/mention)")
    description: str = Field("", description="Description template resolved per matched file")
    path: str = Field(..., description="Root directory (supports ~)")
    pattern: str = Field(..., description="Glob pattern relative to the root")
    argument_hint: str | None = Field(
        default=None,
        description="Argument hint template",
        alias="argumentHint",
    )
    max_suggestions: int | None = Field(
        default=None,
        description="Maximum suggestions shown for this entry",
        alias="maxSuggestions",
        ge=1,
    )
    sort_order: SortOrder | None = Field(
        default=None,
        description="Sort order for item names (asc/desc)",
        alias="sortOrder",
    )
    search_prefix: str | None = Field(
        default=None,
        description="Query prefix required for this entry's items to be searched",
        alias="searchPrefix",
    )
    input_format: InputFormat | None = Field(
        default=None,
        description="Inserted text when an item is picked (name/path)",
        alias="inputFormat",
    )
    prefix_pattern: str | None = Field(
        default=None,
        description="'<glob>@<field>' locating a JSON file that supplies {prefix}",
        alias="prefixPattern",
    )
    enable: list[str] | None = Field(default=None, description="Item names to keep")
    disable: list[str] | None = Field(default=None, description="Item names to drop")

    @field_validator("sort_order", mode="before")
    @classmethod
    def normalize_sort_order(cls, value: object) -> object:
        """Accept 'ASC'/'Desc' spellings from hand-written YAML."""
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def source_id(self) -> str:
        """Identifier shared by the entry and every item it produces."""
        return f"{self.path}:{self.pattern}"


class Item(BaseModel):
    """One resolved, display-ready suggestion derived from a matched file."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Resolved name")
    description: str = Field(..., description="Resolved description")
    type: EntryType = Field(..., description="Namespace inherited from the entry")
    file_path: str = Field(..., description="Absolute path of the matched file")
    source_id: str = Field(..., description="Source id of the owning entry")
    frontmatter: str | None = Field(None, description="Raw front matter block")
    argument_hint: str | None = Field(None, description="Resolved argument hint")
    input_format: InputFormat | None = Field(None, description="Copied from the entry")


class NameFilter(BaseModel):
    """
    Enable/disable policy for item names.

    Patterns ending in '*' match by prefix, anything else matches exactly.
    """

    model_config = ConfigDict(frozen=True)

    enable: list[str] | None = Field(default=None, description="Allow-list of name patterns")
    disable: list[str] | None = Field(default=None, description="Deny-list of name patterns")


def default_entries() -> list[Entry]:
    """Entries used when no `mdSearch` configuration is supplied."""
    return [
        Entry(
            name="{basename}",
            type=EntryType.COMMAND,
            description="{frontmatter@description}",
            path="~/.claude/commands",
            pattern="*.md",
            argument_hint="{frontmatter@argument-hint}",
            max_suggestions=DEFAULT_MAX_SUGGESTIONS,
            sort_order=DEFAULT_SORT_ORDER,
        ),
        Entry(
            name="agent-{basename}",
            type=EntryType.MENTION,
            description="{frontmatter@description}",
            path="~/.claude/agents",
            pattern="*.md",
            max_suggestions=DEFAULT_MAX_SUGGESTIONS,
            sort_order=DEFAULT_SORT_ORDER,
        ),
    ]
