"""Configuration reload endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from mdindex.config import get_config_manager
from mdindex.dependencies import get_md_index, verify_token
from mdindex.utils.error_handling import log_errors

if TYPE_CHECKING:
    from mdindex.services.md_index import MdIndex

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["config"], dependencies=[Depends(verify_token)])


class ReloadResponse(BaseModel):
    """Response from config reload endpoint."""

    status: str = Field(description="Status of the reload operation")
    entries: int = Field(description="Number of index entries in effect after the reload")
    index_changed: bool = Field(description="Whether the index configuration changed")


@log_errors("config_reload")
def _reload_into(md_index: MdIndex) -> bool:
    config_manager = get_config_manager()
    config_manager.reload()

    current = config_manager.get_settings()
    index_changed = md_index.update_config(current.md_search)
    md_index.update_name_filters(current.name_filters())
    md_index.cache_ttl_seconds = current.cache_ttl_seconds
    return index_changed


@router.post("/config/reload", response_model=ReloadResponse)
async def reload_config(
    md_index: MdIndex = Depends(get_md_index),
) -> ReloadResponse:
    """
    Force immediate reload of config.yaml.

    An invalid file keeps the previous configuration in effect. The index
    is invalidated only when its entries changed.
    """
    index_changed = _reload_into(md_index)

    logger.info(
        "Configuration reloaded via API endpoint",
        extra={"entry_count": len(md_index.entries), "index_changed": index_changed},
    )
    return ReloadResponse(
        status="success",
        entries=len(md_index.entries),
        index_changed=index_changed,
    )
