"""Models for the Markdown entry index."""

from mdindex.models.entry import (
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_SORT_ORDER,
    Entry,
    EntryType,
    InputFormat,
    Item,
    NameFilter,
    SortOrder,
    default_entries,
)

__all__ = [
    "DEFAULT_MAX_SUGGESTIONS",
    "DEFAULT_SORT_ORDER",
    "Entry",
    "EntryType",
    "InputFormat",
    "Item",
    "NameFilter",
    "SortOrder",
    "default_entries",
]
