"""Tests for the cached index and its query API."""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from unittest.mock import patch

import pytest

from mdindex.exceptions import IndexLoadError
from mdindex.models.entry import (
    DEFAULT_MAX_SUGGESTIONS,
    Entry,
    EntryType,
    Item,
    NameFilter,
    SortOrder,
    default_entries,
)
from mdindex.services import md_index as md_index_module
from mdindex.services.md_index import (
    MdIndex,
    collation_key,
    deduplicate_items,
    sort_items,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def _write(path: Path, content: str = "") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


def _entry(path: Path, item_type: EntryType = EntryType.COMMAND, **overrides: object) -> Entry:
    fields: dict[str, object] = {
        "name": "{basename}",
        "type": item_type,
        "description": "{frontmatter@description}",
        "path": str(path),
        "pattern": "*.md",
    }
    fields.update(overrides)
    return Entry(**fields)


def _item(name: str, item_type: EntryType = EntryType.COMMAND) -> Item:
    return Item(
        name=name,
        description="",
        type=item_type,
        file_path=f"/r/{name}.md",
        source_id="/r:*.md",
    )


def _names(items: list[Item]) -> list[str]:
    return [item.name for item in items]


class TestSortingHelpers:
    def test_collation_is_case_insensitive_lowercase_first(self) -> None:
        names = ["beta", "Alpha", "alpha", "Beta"]
        assert sorted(names, key=collation_key) == ["alpha", "Alpha", "beta", "Beta"]

    def test_collation_ignores_accents_first(self) -> None:
        names = ["eclair", "ezra", "éclair"]
        assert sorted(names, key=collation_key) == ["eclair", "éclair", "ezra"]

    def test_sort_items_desc(self) -> None:
        items = [_item("b"), _item("a"), _item("c")]
        assert _names(sort_items(items, SortOrder.DESC)) == ["c", "b", "a"]
        assert _names(sort_items(items, SortOrder.ASC)) == ["a", "b", "c"]

    def test_deduplicate_first_wins_per_type(self) -> None:
        first = _item("x")
        duplicate = Item(
            name="x",
            description="later",
            type=EntryType.COMMAND,
            file_path="/other/x.md",
            source_id="/other:*.md",
        )
        mention = _item("x", EntryType.MENTION)
        assert deduplicate_items([first, duplicate, mention]) == [first, mention]


class TestConfiguration:
    def test_empty_config_uses_defaults(self) -> None:
        assert MdIndex().entries == default_entries()
        assert MdIndex(entries=[]).entries == default_entries()

    @pytest.mark.asyncio
    async def test_default_entries_load_items(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        _write(
            tmp_path / ".claude" / "commands" / "x.md",
            "---\ndescription: Run x\nargument-hint: <target>\n---\n",
        )
        _write(tmp_path / ".claude" / "agents" / "y.md", "---\ndescription: Agent y\n---\n")

        index = MdIndex()
        commands = await index.get_items(EntryType.COMMAND)
        mentions = await index.get_items(EntryType.MENTION)

        assert _names(commands) == ["x"]
        assert commands[0].description == "Run x"
        assert commands[0].argument_hint == "<target>"
        assert _names(mentions) == ["agent-y"]

    @pytest.mark.asyncio
    async def test_update_config_invalidates_only_on_change(self, md_index: MdIndex) -> None:
        await md_index.load_all()
        entries = md_index.entries

        assert md_index.update_config(list(entries)) is False
        assert md_index._cache is not None

        assert md_index.update_config(entries[:1]) is True
        assert md_index._cache is None
        assert md_index.entries == entries[:1]

    def test_update_config_empty_restores_defaults(self, md_index: MdIndex) -> None:
        assert md_index.update_config([]) is True
        assert md_index.entries == default_entries()

    def test_max_suggestions(self, tmp_path: Path) -> None:
        index = MdIndex(
            entries=[
                _entry(tmp_path, max_suggestions=5),
                _entry(tmp_path / "b", max_suggestions=30),
                _entry(tmp_path, EntryType.MENTION),
            ]
        )
        assert index.get_max_suggestions(EntryType.COMMAND) == 30
        assert index.get_max_suggestions(EntryType.MENTION) == DEFAULT_MAX_SUGGESTIONS

    def test_max_suggestions_without_entries_of_type(self, tmp_path: Path) -> None:
        index = MdIndex(entries=[_entry(tmp_path)])
        assert index.get_max_suggestions(EntryType.MENTION) == DEFAULT_MAX_SUGGESTIONS

    def test_search_prefixes(self, tmp_path: Path) -> None:
        index = MdIndex(
            entries=[
                _entry(tmp_path, EntryType.MENTION, search_prefix="agent:"),
                _entry(tmp_path / "b", EntryType.MENTION),
                _entry(tmp_path / "c", EntryType.MENTION, search_prefix="skill:"),
            ]
        )
        assert index.get_search_prefixes(EntryType.MENTION) == ["agent:", "skill:"]
        assert index.get_search_prefixes(EntryType.COMMAND) == []

    def test_sort_order_for_query(self, tmp_path: Path) -> None:
        index = MdIndex(
            entries=[
                _entry(tmp_path, EntryType.MENTION, search_prefix="z:", sort_order="desc"),
                _entry(tmp_path / "b", EntryType.MENTION, sort_order="asc"),
            ]
        )
        assert index.get_sort_order_for_query(EntryType.MENTION, "z:foo") is SortOrder.DESC
        assert index.get_sort_order_for_query(EntryType.MENTION, "foo") is SortOrder.ASC
        assert index.get_sort_order(EntryType.MENTION) is SortOrder.DESC

    def test_sort_order_for_query_falls_back_to_first_entry(self, tmp_path: Path) -> None:
        index = MdIndex(
            entries=[
                _entry(tmp_path, EntryType.MENTION, search_prefix="a:", sort_order="DESC"),
                _entry(tmp_path / "b", EntryType.MENTION, search_prefix="b:"),
            ]
        )
        assert index.get_sort_order_for_query(EntryType.MENTION, "plain") is SortOrder.DESC


class TestLoading:
    @pytest.mark.asyncio
    async def test_load_all_merges_types(self, md_index: MdIndex) -> None:
        items = await md_index.load_all()
        assert _names(items) == [
            "agent-planner",
            "agent-reviewer",
            "build",
            "deploy",
        ]

    @pytest.mark.asyncio
    async def test_duplicates_across_entries_first_wins(self, tmp_path: Path) -> None:
        _write(tmp_path / "one" / "same.md", "---\ndescription: first\n---\n")
        _write(tmp_path / "two" / "same.md", "---\ndescription: second\n---\n")
        index = MdIndex(entries=[_entry(tmp_path / "one"), _entry(tmp_path / "two")])

        items = await index.get_items(EntryType.COMMAND)

        assert len(items) == 1
        assert items[0].description == "first"
        assert items[0].file_path == str(tmp_path / "one" / "same.md")

    @pytest.mark.asyncio
    async def test_same_name_allowed_across_types(self, tmp_path: Path) -> None:
        _write(tmp_path / "same.md")
        index = MdIndex(
            entries=[_entry(tmp_path), _entry(tmp_path, EntryType.MENTION)],
        )
        assert _names(await index.get_items(EntryType.COMMAND)) == ["same"]
        assert _names(await index.get_items(EntryType.MENTION)) == ["same"]

    @pytest.mark.asyncio
    async def test_missing_roots_contribute_nothing(self, tmp_path: Path) -> None:
        index = MdIndex(entries=[_entry(tmp_path / "missing")])
        assert await index.load_all() == []

    @pytest.mark.asyncio
    async def test_failing_entry_does_not_drop_siblings(self, md_index: MdIndex) -> None:
        real_load_entry = md_index_module.load_entry
        error = IndexLoadError("Failed to inspect entry root", context={"path": "/x"})

        async def fail_for_commands(entry, prefix_resolver=None):  # type: ignore[no-untyped-def]
            if entry.type is EntryType.COMMAND:
                raise error
            return await real_load_entry(entry, prefix_resolver)

        with patch.object(md_index_module, "load_entry", side_effect=fail_for_commands):
            items = await md_index.load_all()

        assert _names(items) == ["agent-planner", "agent-reviewer"]

    @pytest.mark.asyncio
    async def test_looping_root_does_not_drop_siblings(self, tmp_path: Path) -> None:
        _write(tmp_path / "good" / "build.md")
        loop = tmp_path / "loop"
        os.symlink(loop, loop)

        index = MdIndex(entries=[_entry(loop), _entry(tmp_path / "good")])

        assert _names(await index.get_items(EntryType.COMMAND)) == ["build"]


class TestCaching:
    @pytest.mark.asyncio
    async def test_results_cached_within_ttl(self, commands_dir: Path) -> None:
        clock = FakeClock()
        index = MdIndex(entries=[_entry(commands_dir)], clock=clock)

        assert _names(await index.get_items(EntryType.COMMAND)) == ["build", "deploy"]

        _write(commands_dir / "added.md")
        clock.advance(4.9)
        assert _names(await index.get_items(EntryType.COMMAND)) == ["build", "deploy"]

        clock.advance(0.2)
        assert _names(await index.get_items(EntryType.COMMAND)) == ["added", "build", "deploy"]

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self, commands_dir: Path) -> None:
        index = MdIndex(entries=[_entry(commands_dir)], clock=FakeClock())
        await index.load_all()

        (commands_dir / "build.md").unlink()
        index.invalidate_cache()

        assert _names(await index.get_items(EntryType.COMMAND)) == ["deploy"]

    @pytest.mark.asyncio
    async def test_invalidate_clears_prefix_cache(self, md_index: MdIndex) -> None:
        md_index.prefix_resolver._cache["k"] = "v"
        md_index.invalidate_cache()
        assert md_index.prefix_resolver._cache == {}

    @pytest.mark.asyncio
    async def test_concurrent_queries_share_one_rebuild(self, md_index: MdIndex) -> None:
        calls = 0
        original = md_index_module.load_entry

        async def counting_load_entry(*args: object, **kwargs: object) -> list[Item]:
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.01)
            return await original(*args, **kwargs)

        with patch.object(md_index_module, "load_entry", side_effect=counting_load_entry):
            results = await asyncio.gather(*(md_index.load_all() for _ in range(5)))

        # One rebuild loads each of the two entries once
        assert calls == 2
        assert all(_names(r) == _names(results[0]) for r in results)

    @pytest.mark.asyncio
    async def test_invalidate_during_rebuild_discards_result(self, md_index: MdIndex) -> None:
        original = md_index_module.load_entry

        async def invalidating_load_entry(*args: object, **kwargs: object) -> list[Item]:
            md_index.invalidate_cache()
            return await original(*args, **kwargs)

        with patch.object(md_index_module, "load_entry", side_effect=invalidating_load_entry):
            items = await md_index.load_all()

        assert len(items) == 4
        assert md_index._cache is None


class TestQueries:
    @pytest.mark.asyncio
    async def test_get_items_desc(self, commands_dir: Path) -> None:
        index = MdIndex(entries=[_entry(commands_dir, sort_order=SortOrder.DESC)])
        assert _names(await index.get_items(EntryType.COMMAND)) == ["deploy", "build"]

    @pytest.mark.asyncio
    async def test_get_items_applies_type_filter(self, md_index: MdIndex) -> None:
        md_index.update_name_filters({EntryType.COMMAND: NameFilter(disable=["deploy"])})
        assert _names(await md_index.get_items(EntryType.COMMAND)) == ["build"]
        assert _names(await md_index.get_items(EntryType.MENTION)) == [
            "agent-planner",
            "agent-reviewer",
        ]

    @pytest.mark.asyncio
    async def test_search_matches_name_or_description(self, md_index: MdIndex) -> None:
        assert _names(await md_index.search_items(EntryType.COMMAND, "DEP")) == ["deploy"]
        assert _names(await md_index.search_items(EntryType.COMMAND, "everything")) == ["build"]
        assert await md_index.search_items(EntryType.COMMAND, "nothing-matches") == []

    @pytest.mark.asyncio
    async def test_empty_query_matches_all(self, md_index: MdIndex) -> None:
        assert _names(await md_index.search_items(EntryType.MENTION, "")) == [
            "agent-planner",
            "agent-reviewer",
        ]

    @pytest.mark.asyncio
    async def test_search_prefix_gating(self, tmp_path: Path) -> None:
        _write(tmp_path / "skills" / "pdf.md", "---\ndescription: Read PDFs\n---\n")
        _write(tmp_path / "agents" / "reviewer.md", "---\ndescription: Reviews\n---\n")
        index = MdIndex(
            entries=[
                _entry(tmp_path / "skills", EntryType.MENTION, search_prefix="skill:"),
                _entry(tmp_path / "agents", EntryType.MENTION),
            ]
        )

        # Without the prefix only unprefixed entries are eligible
        assert _names(await index.search_items(EntryType.MENTION, "")) == ["reviewer"]
        assert await index.search_items(EntryType.MENTION, "pdf") == []

        # The prefix is stripped before matching; a bare prefix matches all
        assert _names(await index.search_items(EntryType.MENTION, "skill:")) == ["pdf"]
        assert _names(await index.search_items(EntryType.MENTION, "skill:PD")) == ["pdf"]
        assert await index.search_items(EntryType.MENTION, "skill:zzz") == []

    @pytest.mark.asyncio
    async def test_search_uses_sort_order_of_prefixed_entry(self, tmp_path: Path) -> None:
        for name in ("a1", "a2", "a3"):
            _write(tmp_path / "p" / f"{name}.md")
        index = MdIndex(
            entries=[
                _entry(tmp_path / "p", EntryType.MENTION, search_prefix="p:", sort_order="desc"),
            ]
        )
        assert _names(await index.search_items(EntryType.MENTION, "p:a")) == ["a3", "a2", "a1"]

    @pytest.mark.asyncio
    async def test_long_query_degrades_to_no_matches(self, md_index: MdIndex) -> None:
        assert await md_index.search_items(EntryType.COMMAND, "x" * 5000) == []

    @pytest.mark.asyncio
    async def test_find_item(self, md_index: MdIndex, commands_dir: Path) -> None:
        item = await md_index.find_item(EntryType.COMMAND, "deploy")
        assert item is not None
        assert item.file_path == str(commands_dir / "deploy.md")
        assert item.argument_hint == "<env>"
        assert await md_index.find_item(EntryType.MENTION, "deploy") is None

    @pytest.mark.asyncio
    async def test_find_entry_for_item(self, md_index: MdIndex) -> None:
        items = await md_index.get_items(EntryType.MENTION)
        entry = md_index.find_entry_for_item(items[0])
        assert entry is not None
        assert entry.type is EntryType.MENTION
        assert entry.source_id == items[0].source_id
