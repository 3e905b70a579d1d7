"""
Cached index of Markdown entries for "/command" and "@mention" completion.

The whole configuration is loaded as one unit into a single cache record
that expires after a TTL. Queries against an expired or missing record
trigger one coalesced rebuild; concurrent queries wait for it instead of
walking the filesystem again.
"""

from __future__ import annotations

import asyncio
import logging
import time
import unicodedata
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass

from mdindex.exceptions import IndexLoadError
from mdindex.models.entry import (
    DEFAULT_MAX_SUGGESTIONS,
    DEFAULT_SORT_ORDER,
    Entry,
    EntryType,
    Item,
    NameFilter,
    SortOrder,
    default_entries,
)
from mdindex.services.entry_loader import load_entry
from mdindex.services.name_filter import filter_items
from mdindex.services.prefix import PrefixResolver

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 5.0


@dataclass(frozen=True)
class CacheRecord:
    """Snapshot of every loaded item and when it was built."""

    items: tuple[Item, ...]
    timestamp: float


def collation_key(value: str) -> tuple[str, str]:
    """
    Sort key approximating locale-aware comparison.

    Letters compare case- and accent-insensitively first; ties are broken
    so that unaccented before accented and lowercase before uppercase.
    """
    decomposed = unicodedata.normalize("NFD", value)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), value.swapcase()


def sort_items(items: Sequence[Item], sort_order: SortOrder) -> list[Item]:
    """Sort by name; equal names keep their load order in both directions."""
    return sorted(
        items,
        key=lambda item: collation_key(item.name),
        reverse=sort_order is SortOrder.DESC,
    )


def deduplicate_items(items: Sequence[Item]) -> list[Item]:
    """Drop items whose (type, name) was already seen; the first one wins."""
    seen: set[tuple[EntryType, str]] = set()
    deduplicated: list[Item] = []
    for item in items:
        key = (item.type, item.name)
        if key in seen:
            continue
        seen.add(key)
        deduplicated.append(item)
    return deduplicated


def _effective_entries(entries: Sequence[Entry] | None) -> list[Entry]:
    if not entries:
        return default_entries()
    return list(entries)


class MdIndex:
    """
    Query surface over configured Markdown entries.

    Args:
        entries: Configured entries; None or empty selects the built-in defaults
        cache_ttl_seconds: Lifetime of a loaded snapshot
        name_filters: Enable/disable policy per type, applied at query time
        clock: Monotonic time source (seconds)
    """

    def __init__(
        self,
        entries: Sequence[Entry] | None = None,
        cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        name_filters: Mapping[EntryType, NameFilter] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._entries = _effective_entries(entries)
        self.cache_ttl_seconds = cache_ttl_seconds
        self._name_filters: dict[EntryType, NameFilter] = dict(name_filters or {})
        self._clock = clock
        self._cache: CacheRecord | None = None
        self._generation = 0
        self._lock: asyncio.Lock | None = None
        self.prefix_resolver = PrefixResolver()

    @property
    def entries(self) -> list[Entry]:
        return list(self._entries)

    def _get_lock(self) -> asyncio.Lock:
        # Created lazily so it belongs to the running event loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def update_config(self, entries: Sequence[Entry] | None) -> bool:
        """
        Replace the configured entries.

        The cache is invalidated only when the new configuration differs
        by value from the current one.

        Returns:
            True if the configuration changed
        """
        new_entries = _effective_entries(entries)
        if new_entries == self._entries:
            return False

        self._entries = new_entries
        self.invalidate_cache()
        logger.debug("Index config updated", extra={"entry_count": len(new_entries)})
        return True

    def update_name_filters(self, name_filters: Mapping[EntryType, NameFilter] | None) -> None:
        """Replace the per-type enable/disable policy."""
        self._name_filters = dict(name_filters or {})

    def invalidate_cache(self) -> None:
        """Drop the cached snapshot; the next query rebuilds it."""
        self._cache = None
        self._generation += 1
        self.prefix_resolver.clear()
        logger.debug("Index cache invalidated")

    def _is_fresh(self, record: CacheRecord | None) -> bool:
        return record is not None and self._clock() - record.timestamp < self.cache_ttl_seconds

    async def load_all(self) -> list[Item]:
        """
        Return every loaded item, rebuilding the snapshot if it has expired.

        An entry whose root cannot be inspected is logged and contributes
        no items; the other entries still load.
        """
        record = self._cache
        if self._is_fresh(record):
            return list(record.items)  # type: ignore[union-attr]

        async with self._get_lock():
            record = self._cache
            if self._is_fresh(record):
                return list(record.items)  # type: ignore[union-attr]

            generation = self._generation
            items = await self._rebuild(self._entries)

            if generation == self._generation:
                self._cache = CacheRecord(items=tuple(items), timestamp=self._clock())
            else:
                logger.debug("Index changed during rebuild, result not cached")

            return items

    async def _rebuild(self, entries: Sequence[Entry]) -> list[Item]:
        start_time = time.monotonic()
        loaded: list[Item] = []

        for entry in entries:
            try:
                loaded.extend(await load_entry(entry, self.prefix_resolver))
            except IndexLoadError as e:
                logger.error(
                    "Failed to load entry",
                    extra={
                        "source_id": entry.source_id,
                        **e.context,
                    },
                )
                continue

        items = sort_items(deduplicate_items(loaded), SortOrder.ASC)
        duration_ms = int((time.monotonic() - start_time) * 1000)

        logger.info(
            "Index items loaded",
            extra={
                "total": len(items),
                "commands": sum(1 for item in items if item.type is EntryType.COMMAND),
                "mentions": sum(1 for item in items if item.type is EntryType.MENTION),
                "entry_count": len(entries),
                "duration_ms": duration_ms,
            },
        )
        return items

    def _entries_of_type(self, item_type: EntryType) -> list[Entry]:
        return [entry for entry in self._entries if entry.type is item_type]

    def find_entry_for_item(self, item: Item) -> Entry | None:
        """Locate the first configured entry that produced `item`."""
        for entry in self._entries:
            if entry.type is item.type and entry.source_id == item.source_id:
                return entry
        return None

    async def _items_of_type(self, item_type: EntryType) -> list[Item]:
        items = [item for item in await self.load_all() if item.type is item_type]
        return filter_items(items, self._name_filters.get(item_type))

    async def get_items(self, item_type: EntryType) -> list[Item]:
        """All enabled items of a type in the type's sort order."""
        items = await self._items_of_type(item_type)
        return sort_items(items, self.get_sort_order(item_type))

    async def search_items(self, item_type: EntryType, query: str) -> list[Item]:
        """
        Items of a type matching a query.

        Items of entries with a search prefix are only eligible when the
        query starts with that prefix, and the prefix is removed before
        matching. The remaining query is matched case-insensitively as a
        substring of name or description; an empty remainder matches all.
        """
        candidates: list[tuple[Item, str]] = []
        for item in await self._items_of_type(item_type):
            entry = self.find_entry_for_item(item)
            prefix = entry.search_prefix if entry is not None and entry.search_prefix else ""
            if prefix and not query.startswith(prefix):
                continue
            candidates.append((item, query[len(prefix) :]))

        sort_order = self.get_sort_order_for_query(item_type, query)

        matched: list[Item] = []
        for item, actual_query in candidates:
            if not actual_query:
                matched.append(item)
                continue
            lowered = actual_query.lower()
            if lowered in item.name.lower() or lowered in item.description.lower():
                matched.append(item)

        return sort_items(matched, sort_order)

    async def find_item(self, item_type: EntryType, name: str) -> Item | None:
        """Enabled item of a type with exactly this name."""
        for item in await self._items_of_type(item_type):
            if item.name == name:
                return item
        return None

    def get_max_suggestions(self, item_type: EntryType) -> int:
        """Largest configured suggestion limit for a type (default 20)."""
        entries = self._entries_of_type(item_type)
        if not entries:
            return DEFAULT_MAX_SUGGESTIONS
        return max(entry.max_suggestions or DEFAULT_MAX_SUGGESTIONS for entry in entries)

    def get_search_prefixes(self, item_type: EntryType) -> list[str]:
        """Configured search prefixes of a type, in configuration order."""
        return [
            entry.search_prefix
            for entry in self._entries_of_type(item_type)
            if entry.search_prefix
        ]

    def get_sort_order(self, item_type: EntryType) -> SortOrder:
        """Sort order of the first entry of a type."""
        entries = self._entries_of_type(item_type)
        if not entries:
            return DEFAULT_SORT_ORDER
        return entries[0].sort_order or DEFAULT_SORT_ORDER

    def get_sort_order_for_query(self, item_type: EntryType, query: str) -> SortOrder:
        """
        Sort order for a query.

        Uses the entry whose search prefix starts the query, else the first
        entry without a prefix, else the first entry of the type.
        """
        entries = self._entries_of_type(item_type)
        if not entries:
            return DEFAULT_SORT_ORDER

        for entry in entries:
            if entry.search_prefix and query.startswith(entry.search_prefix):
                return entry.sort_order or DEFAULT_SORT_ORDER

        for entry in entries:
            if not entry.search_prefix:
                return entry.sort_order or DEFAULT_SORT_ORDER

        return entries[0].sort_order or DEFAULT_SORT_ORDER
