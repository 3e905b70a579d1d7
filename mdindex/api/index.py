"""Index query endpoints for /command and @mention completion."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from mdindex.dependencies import get_md_index, verify_token
from mdindex.exceptions import MdIndexError
from mdindex.models.entry import EntryType
from mdindex.models.index import (
    InvalidateResponse,
    ItemListResponse,
    ItemPathResponse,
    MaxSuggestionsResponse,
    SearchPrefixesResponse,
)
from mdindex.utils.error_handling import format_exception_for_response

if TYPE_CHECKING:
    from mdindex.services.md_index import MdIndex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["index"], dependencies=[Depends(verify_token)])

MAX_QUERY_LENGTH = 1024


def _to_http_exception(exc: Exception, item_type: EntryType) -> HTTPException:
    if isinstance(exc, MdIndexError):
        logger.error(
            "Index query failed",
            extra={"type": item_type.value, **exc.context},
        )
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=format_exception_for_response(exc),
        )

    logger.exception(
        "Unexpected error querying index",
        extra={"type": item_type.value, "error_type": type(exc).__name__},
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Unexpected error querying index",
    )


@router.get("/{item_type}/items", response_model=ItemListResponse)
async def list_items(
    item_type: EntryType,
    query: Annotated[
        str | None,
        Query(description="Search text; omit to list every item", max_length=MAX_QUERY_LENGTH),
    ] = None,
    md_index: MdIndex = Depends(get_md_index),
) -> ItemListResponse:
    """
    List or search items of one type.

    Without `query` every enabled item is returned in the type's sort
    order. With `query` (even an empty one) items are searched, which
    applies search-prefix gating.
    """
    try:
        if query is None:
            items = await md_index.get_items(item_type)
        else:
            items = await md_index.search_items(item_type, query)
    except Exception as exc:
        raise _to_http_exception(exc, item_type) from exc

    return ItemListResponse(type=item_type, query=query, items=items, total=len(items))


@router.get("/{item_type}/items/{name}/path", response_model=ItemPathResponse)
async def get_item_path(
    item_type: EntryType,
    name: str,
    md_index: MdIndex = Depends(get_md_index),
) -> ItemPathResponse:
    """Resolve an item name to the Markdown file it came from."""
    try:
        item = await md_index.find_item(item_type, name)
    except Exception as exc:
        raise _to_http_exception(exc, item_type) from exc

    if item is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{item_type.value} not found: {name}",
        )

    return ItemPathResponse(name=item.name, file_path=item.file_path)


@router.get("/{item_type}/max-suggestions", response_model=MaxSuggestionsResponse)
async def get_max_suggestions(
    item_type: EntryType,
    md_index: MdIndex = Depends(get_md_index),
) -> MaxSuggestionsResponse:
    """Largest suggestion limit configured for a type."""
    return MaxSuggestionsResponse(
        type=item_type,
        max_suggestions=md_index.get_max_suggestions(item_type),
    )


@router.get("/{item_type}/search-prefixes", response_model=SearchPrefixesResponse)
async def get_search_prefixes(
    item_type: EntryType,
    md_index: MdIndex = Depends(get_md_index),
) -> SearchPrefixesResponse:
    """Search prefixes configured for a type."""
    return SearchPrefixesResponse(
        type=item_type,
        prefixes=md_index.get_search_prefixes(item_type),
    )


@router.post("/index/invalidate", response_model=InvalidateResponse)
async def invalidate_index(
    md_index: MdIndex = Depends(get_md_index),
) -> InvalidateResponse:
    """Drop the cached index; the next query reloads from disk."""
    md_index.invalidate_cache()
    logger.info("Index cache invalidated via API")
    return InvalidateResponse(status="invalidated")
