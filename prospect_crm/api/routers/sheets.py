"""
Remote-backed endpoints outside the prospect collection: price list,
sales insights and visit logging.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from prospect_crm.api.dependencies import get_cache, get_client
from prospect_crm.api.schemas.prospects import (
    InsightsResponse,
    PriceListResponse,
    RemoteWriteResponse,
    VisitLogRequest,
)
from prospect_crm.integrations.cache import LocalCache
from prospect_crm.integrations.sheets import SheetsClient

router = APIRouter(tags=["sheets"])

logger = logging.getLogger(__name__)


@router.get("/prices", response_model=PriceListResponse)
async def list_prices(
    refresh: bool = Query(False, description="Ignore the cache and read the remote price sheet"),
    cache: LocalCache = Depends(get_cache),
    client: SheetsClient = Depends(get_client),
):
    """Cached price list, or the remote one when nothing is cached or ``refresh`` is set."""
    if not refresh:
        cached = cache.load_prices()
        if cached is not None:
            return PriceListResponse(success=True, source="cache", prices=[p.to_wire() for p in cached])

    prices = await client.get_prices()
    cache.save_prices(prices)
    return PriceListResponse(success=True, source="remote", prices=[p.to_wire() for p in prices])


@router.get("/insights", response_model=InsightsResponse)
async def get_insights(client: SheetsClient = Depends(get_client)):
    insights = await client.get_insights()
    return InsightsResponse(success=insights is not None, insights=insights)


@router.post("/visits", response_model=RemoteWriteResponse)
async def log_visit(
    visit: VisitLogRequest,
    client: SheetsClient = Depends(get_client),
):
    """Forward a field visit to the remote visit log."""
    result = await client.log_visit(visit.model_dump(by_alias=True, exclude_none=True))
    if not result.get("success"):
        logger.warning("Visit for %s was not logged: %s", visit.cid, result.get("message"))
        raise HTTPException(status_code=502, detail=result.get("message") or "Failed to log visit")
    return RemoteWriteResponse(success=True, message=result.get("message"))
