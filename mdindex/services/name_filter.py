"""Enable/disable filtering of item names."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from mdindex.models.entry import Item, NameFilter


def matches_name(pattern: str, name: str) -> bool:
    """Prefix match for patterns ending in '*', exact match otherwise."""
    if pattern.endswith("*"):
        return name.startswith(pattern[:-1])
    return pattern == name


def is_name_enabled(
    name: str,
    enable: Sequence[str] | None = None,
    disable: Sequence[str] | None = None,
) -> bool:
    """
    Decide whether a name passes enable/disable lists.

    A non-empty enable list admits only matching names; any match in the
    disable list excludes the name. With neither list, everything passes.
    """
    if enable and not any(matches_name(pattern, name) for pattern in enable):
        return False
    if disable and any(matches_name(pattern, name) for pattern in disable):
        return False
    return True


def filter_items(items: Iterable[Item], name_filter: NameFilter | None) -> list[Item]:
    """Keep items whose names pass `name_filter` (all of them when None)."""
    if name_filter is None or not (name_filter.enable or name_filter.disable):
        return list(items)
    return [
        item
        for item in items
        if is_name_enabled(item.name, name_filter.enable, name_filter.disable)
    ]
