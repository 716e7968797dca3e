"""
Pytest configuration and fixtures for the prospect CRM tests.

Nothing here touches the network: the remote sheet is replaced by
``FakeSheetsClient`` and the durable cache lives under ``tmp_path``.
"""
import asyncio
from typing import Any, Dict, List, Optional

import pytest

from prospect_crm.domain.defaults import default_prices, default_prospects
from prospect_crm.domain.prospects.store import ProspectStore
from prospect_crm.integrations.cache import LocalCache


class FakeSheetsClient:
    """
    Records every remote call and answers with canned results.

    ``write_result`` is returned from every write; ``write_error`` is raised
    instead when set. ``write_delay`` lets tests hold a write in flight.
    """

    configured = True

    def __init__(
        self,
        *,
        write_result: Optional[Dict[str, Any]] = None,
        write_error: Optional[Exception] = None,
        write_delay: float = 0.0,
        prospects=None,
        prices=None,
        insights=None,
        read_error: Optional[Exception] = None,
    ):
        self.write_result = write_result if write_result is not None else {"success": True}
        self.write_error = write_error
        self.write_delay = write_delay
        self.prospects = prospects if prospects is not None else default_prospects()
        self.prices = prices if prices is not None else default_prices()
        self.insights = insights
        self.read_error = read_error
        self.calls: List[tuple] = []
        self.closed = False

    async def _write(self, action: str, payload: Any) -> Dict[str, Any]:
        self.calls.append((action, payload))
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.write_error is not None:
            raise self.write_error
        return dict(self.write_result)

    async def add_prospect(self, prospect):
        return await self._write("addProspect", prospect.to_wire())

    async def update_prospect(self, cid, updates):
        return await self._write("updateProspect", {"cid": cid, "updates": updates})

    async def sync_prospects(self, prospects):
        return await self._write("syncProspects", [p.to_wire() for p in prospects])

    async def log_visit(self, visit):
        return await self._write("logVisit", visit)

    async def get_prospects(self):
        self.calls.append(("getProspects", None))
        if self.read_error is not None:
            raise self.read_error
        return list(self.prospects)

    async def get_prices(self):
        self.calls.append(("getPricing", None))
        return list(self.prices)

    async def get_insights(self):
        self.calls.append(("getInsights", None))
        return self.insights

    async def close(self):
        self.closed = True

    def actions(self) -> List[str]:
        return [action for action, _ in self.calls]


@pytest.fixture
def cache(tmp_path):
    return LocalCache(str(tmp_path / "crm_cache.json"))


@pytest.fixture
def fake_client():
    return FakeSheetsClient()


@pytest.fixture
def store(fake_client, cache):
    return ProspectStore(fake_client, cache, remote_timeout=1.0)


@pytest.fixture
def make_client():
    """Build a ``FakeSheetsClient`` with custom canned answers."""
    return FakeSheetsClient
