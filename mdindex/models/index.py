"""Models for the index query API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from mdindex.models.entry import EntryType, Item  # noqa: TC001


class ItemListResponse(BaseModel):
    """Response for listing or searching items of one type."""

    type: EntryType = Field(..., description="Requested namespace")
    query: str | None = Field(None, description="Search query, if any")
    items: list[Item] = Field(default_factory=list, description="Matching items in display order")
    total: int = Field(..., description="Number of items returned")


class ItemPathResponse(BaseModel):
    """Response for resolving an item name to its file."""

    name: str = Field(..., description="Item name")
    file_path: str = Field(..., description="Absolute path of the source file")


class MaxSuggestionsResponse(BaseModel):
    """Largest per-entry suggestion limit for a type."""

    type: EntryType = Field(..., description="Requested namespace")
    max_suggestions: int = Field(..., description="Maximum suggestions to display")


class SearchPrefixesResponse(BaseModel):
    """Configured search prefixes for a type."""

    type: EntryType = Field(..., description="Requested namespace")
    prefixes: list[str] = Field(default_factory=list, description="Search prefixes in config order")


class InvalidateResponse(BaseModel):
    """Acknowledgement of a cache invalidation."""

    status: str = Field(..., description="Always 'invalidated'")
