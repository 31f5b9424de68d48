"""
Chain Reload Router
Drops cached chains so the next request rebuilds them from stored text
"""

from fastapi import APIRouter
from pydantic import BaseModel
from typing import List, Optional
import logging

from parrot.services.chain_cache import get_chain_cache

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reload", tags=["reload"])


class ReloadRequest(BaseModel):
    """Request body for reload endpoint"""
    user_ids: Optional[List[str]] = None  # None drops every cached chain


class ReloadResponse(BaseModel):
    """Response from reload endpoint"""
    success: bool
    message: str
    dropped_chains: int


@router.post("/chains", response_model=ReloadResponse)
async def reload_chains(request: ReloadRequest):
    """
    Drop cached Markov chains.

    - **user_ids**: Only drop chains containing any of these users; omit for all
    """
    cache = get_chain_cache()
    if request.user_ids is None:
        dropped = cache.invalidate()
    else:
        dropped = sum(cache.invalidate(uid) for uid in request.user_ids)

    logger.info(f"[Reload] Dropped {dropped} cached chains")
    return ReloadResponse(
        success=True,
        message=f"Dropped {dropped} chains, they rebuild on next use",
        dropped_chains=dropped,
    )


@router.get("/status")
async def reload_status():
    """List the user sets that currently have a built chain."""
    cache = get_chain_cache()
    return {
        "cached_chains": len(cache),
        "max_size": cache.max_size,
        "sessions": cache.keys(),
    }
