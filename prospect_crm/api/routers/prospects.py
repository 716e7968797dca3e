"""
Prospect collection endpoints: list/search, create, update, delete, refresh
from the remote sheet and the dashboard summary.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query

from prospect_crm.api.dependencies import get_store
from prospect_crm.api.schemas.prospects import (
    DeleteProspectResponse,
    ProspectCreate,
    ProspectListResponse,
    ProspectResponse,
    ProspectStatsResponse,
)
from prospect_crm.domain.prospects.analytics import search_prospects, summarize_prospects
from prospect_crm.domain.prospects.store import ProspectStore, ProspectValidationError

router = APIRouter(prefix="/prospects", tags=["prospects"])

logger = logging.getLogger(__name__)


def _list_response(store: ProspectStore, query: Optional[str] = None) -> ProspectListResponse:
    matches = search_prospects(store.prospects, query)
    return ProspectListResponse(
        success=True,
        total=len(matches),
        loading=store.loading,
        error=store.error,
        prospects=[p.to_wire() for p in matches],
    )


@router.get("", response_model=ProspectListResponse)
async def list_prospects(
    q: Optional[str] = Query(None, description="Case-insensitive match on company, industry or address"),
    store: ProspectStore = Depends(get_store),
):
    return _list_response(store, q)


@router.get("/stats", response_model=ProspectStatsResponse)
async def prospect_stats(store: ProspectStore = Depends(get_store)):
    """Dashboard numbers: totals, industry mix, shortlist and map center."""
    return summarize_prospects(store.prospects)


@router.post("/refresh", response_model=ProspectListResponse)
async def refresh_prospects(store: ProspectStore = Depends(get_store)):
    """Reload the collection from the remote sheet (bundled snapshot on failure)."""
    await store.fetch()
    return _list_response(store)


@router.post("", response_model=ProspectResponse, status_code=201)
async def create_prospect(
    payload: ProspectCreate,
    store: ProspectStore = Depends(get_store),
):
    """
    Add a hand-entered prospect.

    The record is available immediately; the remote write happens in the
    background and its failure does not undo the local add.
    """
    try:
        prospect = await store.create(payload.model_dump(by_alias=True, exclude_none=True))
    except ProspectValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    return ProspectResponse(success=True, prospect=prospect.to_wire())


@router.patch("/{cid}", response_model=ProspectResponse)
async def update_prospect(
    cid: str,
    updates: Dict[str, Any] = Body(...),
    store: ProspectStore = Depends(get_store),
):
    """
    Update fields on a prospect.

    The remote sheet is updated first; the local record is updated whether
    or not that succeeds, and ``remote_error`` reports a remote failure.
    """
    if store.get(cid) is None:
        raise HTTPException(status_code=404, detail=f"Prospect '{cid}' not found")

    try:
        prospect, remote = await store.update_with_result(cid, updates)
    except ProspectValidationError as e:
        raise HTTPException(status_code=422, detail=e.message)
    if prospect is None:
        # Removed by a concurrent delete while the remote call was in flight
        raise HTTPException(status_code=404, detail=f"Prospect '{cid}' not found")
    remote_error = None if remote.get("success") else (remote.get("message") or "updateProspect failed")
    return ProspectResponse(success=True, prospect=prospect.to_wire(), remote_error=remote_error)


@router.delete("/{cid}", response_model=DeleteProspectResponse)
async def delete_prospect(cid: str, store: ProspectStore = Depends(get_store)):
    """Remove a prospect from the working collection. The remote sheet keeps it."""
    if not store.delete(cid):
        raise HTTPException(status_code=404, detail=f"Prospect '{cid}' not found")
    return DeleteProspectResponse(
        success=True,
        message=f"Prospect '{cid}' removed locally; it will return on the next refresh",
    )
