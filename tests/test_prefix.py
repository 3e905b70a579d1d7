"""Tests for {prefix} resolution from JSON files."""

from __future__ import annotations

import json
from collections import OrderedDict
from pathlib import Path

import pytest

from mdindex.services.prefix import (
    PrefixResolver,
    extract_json_field,
    find_closest_match,
    parse_prefix_pattern,
)


def _write_json(path: Path, data: object) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def plugin_tree(tmp_path: Path) -> Path:
    """
    plugins/
      tools/.claude-plugin/plugin.json   {"name": "tools"}
      tools/commands/deploy.md
      bare/commands/lint.md              (no plugin.json)
    """
    root = tmp_path / "plugins"
    _write_json(root / "tools" / ".claude-plugin" / "plugin.json", {"name": "tools"})
    (root / "tools" / "commands").mkdir(parents=True)
    (root / "tools" / "commands" / "deploy.md").write_text("# Deploy\n")
    (root / "bare" / "commands").mkdir(parents=True)
    (root / "bare" / "commands" / "lint.md").write_text("# Lint\n")
    return root


def test_parse_prefix_pattern_splits_at_last_at() -> None:
    parsed = parse_prefix_pattern("a@b/plugin.json@meta.name")
    assert parsed is not None
    assert parsed.glob_pattern == "a@b/plugin.json"
    assert parsed.field_path == "meta.name"


def test_parse_prefix_pattern_without_at() -> None:
    assert parse_prefix_pattern("plugin.json") is None


def test_find_closest_match_prefers_longest_common_path() -> None:
    matches = ["/r/a/plugin.json", "/r/b/c/plugin.json"]
    assert find_closest_match(matches, "/r/b/c/commands/x.md") == "/r/b/c/plugin.json"
    assert find_closest_match([], "/r/x.md") is None


def test_extract_json_field(tmp_path: Path) -> None:
    path = _write_json(tmp_path / "p.json", {"meta": {"name": "deep"}, "n": 3, "top": "t"})
    assert extract_json_field(str(path), "top") == "t"
    assert extract_json_field(str(path), "meta.name") == "deep"
    assert extract_json_field(str(path), "meta.missing") == ""
    assert extract_json_field(str(path), "n") == ""


def test_extract_json_field_invalid_file(tmp_path: Path) -> None:
    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    assert extract_json_field(str(bad), "name") == ""
    assert extract_json_field(str(tmp_path / "missing.json"), "name") == ""


def test_resolve_walks_up_to_plugin_json(plugin_tree: Path) -> None:
    resolver = PrefixResolver()
    prefix = resolver.resolve(
        str(plugin_tree / "tools" / "commands" / "deploy.md"),
        ".claude-plugin/plugin.json@name",
        str(plugin_tree),
    )
    assert prefix == "tools"


def test_resolve_stops_at_base_path(plugin_tree: Path, tmp_path: Path) -> None:
    # A plugin.json above the base path must not be used
    _write_json(tmp_path / ".claude-plugin" / "plugin.json", {"name": "outside"})
    resolver = PrefixResolver()
    prefix = resolver.resolve(
        str(plugin_tree / "bare" / "commands" / "lint.md"),
        ".claude-plugin/plugin.json@name",
        str(plugin_tree),
    )
    assert prefix == ""


def test_resolve_without_at_is_empty(plugin_tree: Path) -> None:
    resolver = PrefixResolver()
    file_path = str(plugin_tree / "tools" / "commands" / "deploy.md")
    assert resolver.resolve(file_path, "plugin.json", str(plugin_tree)) == ""


def test_results_are_cached_per_directory(plugin_tree: Path) -> None:
    resolver = PrefixResolver()
    file_path = str(plugin_tree / "tools" / "commands" / "deploy.md")
    pattern = ".claude-plugin/plugin.json@name"

    assert resolver.resolve(file_path, pattern, str(plugin_tree)) == "tools"

    _write_json(plugin_tree / "tools" / ".claude-plugin" / "plugin.json", {"name": "renamed"})
    assert resolver.resolve(file_path, pattern, str(plugin_tree)) == "tools"

    resolver.clear()
    assert resolver.resolve(file_path, pattern, str(plugin_tree)) == "renamed"


def test_cache_evicts_oldest(plugin_tree: Path) -> None:
    resolver = PrefixResolver(max_size=1)
    pattern = ".claude-plugin/plugin.json@name"
    tools_file = str(plugin_tree / "tools" / "commands" / "deploy.md")
    bare_file = str(plugin_tree / "bare" / "commands" / "lint.md")

    resolver.resolve(tools_file, pattern, str(plugin_tree))
    resolver.resolve(bare_file, pattern, str(plugin_tree))

    _write_json(plugin_tree / "tools" / ".claude-plugin" / "plugin.json", {"name": "renamed"})
    assert resolver.resolve(tools_file, pattern, str(plugin_tree)) == "renamed"


def test_extract_json_field_deeply_nested(tmp_path: Path) -> None:
    depth = 100_000
    path = tmp_path / "plugin.json"
    path.write_text("[" * depth + "]" * depth)
    assert extract_json_field(str(path), "name") == ""


class _ClearedDuringEviction(OrderedDict):
    """Cache emptied by another thread between the size check and eviction."""

    def popitem(self, last: bool = True):  # type: ignore[no-untyped-def, override]
        self.clear()
        return super().popitem(last=last)


def test_eviction_tolerates_concurrent_clear(plugin_tree: Path) -> None:
    resolver = PrefixResolver(max_size=1)
    resolver._cache = _ClearedDuringEviction({"other:pattern": "x"})
    file_path = str(plugin_tree / "tools" / "commands" / "deploy.md")

    assert resolver.resolve(file_path, ".claude-plugin/plugin.json@name", str(plugin_tree)) == "tools"
    assert list(resolver._cache.values()) == ["tools"]
