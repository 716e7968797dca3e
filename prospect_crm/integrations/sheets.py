"""
Client for the spreadsheet-backed system of record.

The remote side is a single Apps Script web app endpoint. Reads are GET
requests selecting an ``action`` query parameter; writes are POST requests
carrying a ``{"action": ..., "payload": ...}`` envelope. Writes are sent as
``text/plain`` so the script host does not demand a CORS preflight.

Nothing here raises to callers. Reads fall back to the bundled snapshot
(prospects, prices) or ``None`` (insights); writes return a
``{"success": False, "message": ...}`` result.
"""
import asyncio
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from prospect_crm.domain.defaults import default_prices, default_prospects
from prospect_crm.domain.entities import Price, Prospect
from prospect_crm.domain.imports.mapper import normalize_price, normalize_prospect
from prospect_crm.utils.ids import new_remote_cid

logger = logging.getLogger(__name__)

WRITE_CONTENT_TYPE = "text/plain;charset=utf-8"
NOT_CONFIGURED_MESSAGE = "API URL not configured"


class RemoteCallError(Exception):
    """Raised internally when a remote call fails or answers with the wrong shape."""
    pass


def _rows_from_response(body: Any) -> List[Dict[str, Any]]:
    """Accept a raw array or a ``{"status": "success", "data": [...]}`` envelope."""
    if isinstance(body, list):
        return [row for row in body if isinstance(row, dict)]
    if isinstance(body, dict):
        if body.get("status") == "success" and isinstance(body.get("data"), list):
            return [row for row in body["data"] if isinstance(row, dict)]
        if body.get("status") == "error":
            raise RemoteCallError(body.get("message") or "Remote returned status=error")
    raise RemoteCallError(f"Unexpected response shape: {type(body).__name__}")


def _write_result(body: Any) -> Dict[str, Any]:
    """Normalize a write response to a dict with a boolean ``success`` key."""
    if not isinstance(body, dict):
        return {"success": False, "message": f"Unexpected response shape: {type(body).__name__}"}
    if "success" in body:
        return {**body, "success": bool(body["success"])}
    status = body.get("status")
    if status == "success":
        return {**body, "success": True}
    if status == "error":
        return {**body, "success": False, "message": body.get("message") or "Remote returned status=error"}
    return {"success": False, "message": "Response carried neither 'success' nor 'status'"}


def _remote_prospect(row: Dict[str, Any]) -> Optional[Prospect]:
    # Sheet rows are trusted more than uploads: a row without a company name
    # is still a prospect, just an unnamed one.
    if not (row.get("company") or row.get("Company")):
        row = {**row, "company": "Unknown"}
    return normalize_prospect(row, cid_factory=new_remote_cid)


class SheetsClient:
    """Async client for the remote sheet; one instance per process."""

    def __init__(self, base_url: str, timeout: float = 15.0):
        self.base_url = (base_url or "").strip()
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _request_json(
        self,
        method: str,
        *,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Perform one HTTP round trip and decode the JSON answer.

        Raises:
            RemoteCallError: Transport failure, timeout, HTTP error or non-JSON body
        """
        session = await self._get_session()
        kwargs: Dict[str, Any] = {"params": params}
        if body is not None:
            kwargs["data"] = json.dumps(body)
            kwargs["headers"] = {"Content-Type": WRITE_CONTENT_TYPE}
        try:
            async with session.request(method, self.base_url, **kwargs) as response:
                response.raise_for_status()
                # Apps Script answers JSON as text/plain or text/html
                return await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise RemoteCallError(f"{method} {params or body.get('action')}: {str(e) or type(e).__name__}") from e

    async def _get_action(self, action: str) -> Any:
        return await self._request_json("GET", params={"action": action})

    async def _post_action(self, action: str, payload: Any) -> Dict[str, Any]:
        if not self.configured:
            return {"success": False, "message": NOT_CONFIGURED_MESSAGE}
        try:
            body = await self._request_json("POST", body={"action": action, "payload": payload})
        except RemoteCallError as e:
            logger.warning("Remote write '%s' failed: %s", action, e)
            return {"success": False, "message": str(e)}
        result = _write_result(body)
        if not result["success"]:
            logger.warning("Remote write '%s' rejected: %s", action, result.get("message"))
        return result

    # -- reads -----------------------------------------------------------------

    async def get_prospects(self) -> List[Prospect]:
        if not self.configured:
            return default_prospects()
        try:
            rows = _rows_from_response(await self._get_action("getProspects"))
        except RemoteCallError as e:
            logger.warning("Falling back to bundled prospects: %s", e)
            return default_prospects()
        prospects = [p for p in (_remote_prospect(row) for row in rows) if p is not None]
        logger.info("Fetched %d prospects from remote sheet", len(prospects))
        return prospects

    async def get_prices(self) -> List[Price]:
        if not self.configured:
            return default_prices()
        try:
            rows = _rows_from_response(await self._get_action("getPricing"))
        except RemoteCallError as e:
            logger.warning("Falling back to bundled prices: %s", e)
            return default_prices()
        return [p for p in (normalize_price(row) for row in rows) if p is not None]

    async def get_insights(self) -> Optional[Dict[str, Any]]:
        if not self.configured:
            return None
        try:
            body = await self._get_action("getInsights")
        except RemoteCallError as e:
            logger.warning("Insights unavailable: %s", e)
            return None
        if isinstance(body, dict) and body.get("status") == "success":
            return body.get("data")
        return None

    # -- writes ----------------------------------------------------------------

    async def add_prospect(self, prospect: Prospect) -> Dict[str, Any]:
        return await self._post_action("addProspect", prospect.to_wire())

    async def update_prospect(self, cid: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        wire_updates = {Prospect.wire_name(key): value for key, value in updates.items()}
        return await self._post_action("updateProspect", {"cid": cid, "updates": wire_updates})

    async def sync_prospects(self, prospects: List[Prospect]) -> Dict[str, Any]:
        return await self._post_action("syncProspects", [p.to_wire() for p in prospects])

    async def log_visit(self, visit: Dict[str, Any]) -> Dict[str, Any]:
        return await self._post_action("logVisit", visit)
