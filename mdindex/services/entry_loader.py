"""Loading of configured entries into display-ready items."""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING

from mdindex.exceptions import IndexLoadError
from mdindex.models.entry import Entry, Item
from mdindex.services.name_filter import is_name_enabled
from mdindex.services.template import TemplateContext, get_basename, get_dirname, resolve_template
from mdindex.services.walker import find_files
from mdindex.utils.frontmatter import parse_first_heading, read_frontmatter

if TYPE_CHECKING:
    from mdindex.services.prefix import PrefixResolver

logger = logging.getLogger(__name__)


def expand_entry_path(entry_path: str) -> str:
    """Expand a leading '~' and make the path absolute."""
    return os.path.abspath(os.path.expanduser(entry_path))


def validate_directory(entry_path: str) -> str | None:
    """
    Expand an entry root and check that it is a directory.

    Args:
        entry_path: Root as configured (may start with '~')

    Returns:
        Expanded path, or None when it is missing or not a directory

    Raises:
        IndexLoadError: If the root cannot be inspected for another reason
    """
    expanded = expand_entry_path(entry_path)

    try:
        is_directory = stat.S_ISDIR(os.stat(expanded).st_mode)
    except (FileNotFoundError, NotADirectoryError):
        logger.debug("Entry directory does not exist", extra={"path": expanded})
        return None
    except OSError as e:
        msg = "Failed to inspect entry root"
        raise IndexLoadError(
            msg,
            context={
                "path": expanded,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        ) from e

    if not is_directory:
        logger.warning("Entry path is not a directory", extra={"path": expanded})
        return None

    return expanded


def build_item(
    file_path: str,
    content: str,
    entry: Entry,
    prefix: str | None = None,
) -> Item:
    """
    Resolve an entry's templates against one file.

    Args:
        file_path: Matched file
        content: File content
        entry: Owning entry
        prefix: Resolved prefix, or None when the entry has no prefixPattern

    Returns:
        Item tagged with the entry's source id
    """
    parsed = read_frontmatter(content)
    context = TemplateContext(
        basename=get_basename(file_path),
        frontmatter=parsed.fields,
        prefix=prefix,
        dirname=get_dirname(file_path),
        file_path=file_path,
        heading=parse_first_heading(content),
        content=content,
    )

    argument_hint = None
    if entry.argument_hint:
        argument_hint = resolve_template(entry.argument_hint, context) or None

    return Item(
        name=resolve_template(entry.name, context),
        description=resolve_template(entry.description, context),
        type=entry.type,
        file_path=file_path,
        source_id=entry.source_id,
        frontmatter=parsed.raw or None,
        argument_hint=argument_hint,
        input_format=entry.input_format,
    )


def load_markdown_file(
    file_path: str,
    entry: Entry,
    root: str,
    prefix_resolver: PrefixResolver | None = None,
) -> Item | None:
    """
    Read one file and build its item.

    Any failure while reading the file or resolving its prefix is logged
    and the file is skipped (None); it never aborts the entry.
    """
    try:
        content = Path(file_path).read_text(encoding="utf-8")

        prefix = None
        if entry.prefix_pattern and prefix_resolver is not None:
            prefix = prefix_resolver.resolve(file_path, entry.prefix_pattern, root)

        return build_item(file_path, content, entry, prefix)
    except Exception as e:
        logger.warning(
            "Failed to parse file",
            extra={
                "file": file_path,
                "source_id": entry.source_id,
                "error": str(e),
                "error_type": type(e).__name__,
            },
        )
        return None


async def load_entry(entry: Entry, prefix_resolver: PrefixResolver | None = None) -> list[Item]:
    """
    Load all items contributed by one entry.

    A missing or non-directory root yields no items. Items are returned in
    walk order and filtered by the entry's own enable/disable lists.

    Raises:
        IndexLoadError: If the root cannot be inspected (see validate_directory)
    """
    root = await asyncio.to_thread(validate_directory, entry.path)
    if root is None:
        return []

    files = await asyncio.to_thread(find_files, root, entry.pattern)

    items: list[Item] = []
    for file_path in files:
        item = await asyncio.to_thread(load_markdown_file, file_path, entry, root, prefix_resolver)
        if item is None:
            continue
        if not is_name_enabled(item.name, entry.enable, entry.disable):
            continue
        items.append(item)

    logger.debug(
        "Entry loaded",
        extra={
            "source_id": entry.source_id,
            "files": len(files),
            "count": len(items),
        },
    )
    return items
