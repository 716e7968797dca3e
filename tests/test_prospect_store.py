"""
Optimistic writes against the remote sheet: local state always moves first
or regardless, and remote failures never escape.
"""
import asyncio

import pytest

from prospect_crm.domain.entities import Prospect
from prospect_crm.domain.prospects.store import ProspectStore, ProspectValidationError


def _prospect(cid="CID-1", company="Acme", **fields):
    return Prospect(cid=cid, company=company, **fields)


@pytest.mark.asyncio
async def test_add_is_visible_before_remote_failure(make_client, cache):
    client = make_client(write_result={"success": False, "message": "sheet locked"})
    store = ProspectStore(client, cache, remote_timeout=1.0)

    added = await store.add(_prospect())

    assert store.get("CID-1") is added
    assert [p.cid for p in cache.load_prospects()] == ["CID-1"]

    await store.drain()
    assert store.get("CID-1") is added
    assert store.error == "sheet locked"
    assert client.actions() == ["addProspect"]


@pytest.mark.asyncio
async def test_add_survives_remote_exception(make_client, cache):
    store = ProspectStore(make_client(write_error=ConnectionError("down")), cache, remote_timeout=1.0)

    await store.add(_prospect())
    await store.drain()

    assert [p.cid for p in store.prospects] == ["CID-1"]
    assert "ConnectionError" in store.error


@pytest.mark.asyncio
async def test_add_does_not_wait_for_remote(make_client, cache):
    store = ProspectStore(make_client(write_delay=0.2), cache, remote_timeout=1.0)

    await store.add(_prospect())

    assert store.pending_remote_calls == 1
    await store.drain()
    assert store.pending_remote_calls == 0


@pytest.mark.parametrize(
    "client_kwargs",
    [
        {"write_result": {"success": True}},
        {"write_result": {"success": False, "message": "nope"}},
        {"write_error": RuntimeError("boom")},
    ],
)
@pytest.mark.asyncio
async def test_update_applies_locally_whatever_the_remote_says(make_client, cache, client_kwargs):
    client = make_client(**client_kwargs)
    store = ProspectStore(client, cache, remote_timeout=1.0)
    store.prospects = [_prospect(contact_status="Cold")]

    updated = await store.update("CID-1", {"contactStatus": "Hot", "priority_score": 90})

    assert updated.contact_status == "Hot"
    assert updated.priority_score == 90
    assert store.get("CID-1").contact_status == "Hot"
    assert cache.load_prospects()[0].contact_status == "Hot"
    assert client.calls == [("updateProspect", {"cid": "CID-1", "updates": {"contactStatus": "Hot", "priority_score": 90}})]


@pytest.mark.asyncio
async def test_update_timeout_still_applies_locally(make_client, cache):
    store = ProspectStore(make_client(write_delay=1.0), cache, remote_timeout=0.05)
    store.prospects = [_prospect()]

    updated = await store.update("CID-1", {"industry": "Auto"})

    assert updated.industry == "Auto"
    assert "timed out" in store.error


@pytest.mark.asyncio
async def test_update_unknown_cid_returns_none(store, fake_client):
    assert await store.update("missing", {"industry": "Auto"}) is None
    assert fake_client.actions() == ["updateProspect"]


@pytest.mark.asyncio
async def test_update_cannot_change_identity_or_blank_company(store, fake_client):
    store.prospects = [_prospect()]

    updated = await store.update("CID-1", {"cid": "OTHER"})
    assert updated.cid == "CID-1"

    with pytest.raises(ProspectValidationError):
        await store.update("CID-1", {"company": ""})
    assert fake_client.actions() == ["updateProspect"]


@pytest.mark.asyncio
async def test_update_racing_with_delete_returns_none(make_client, cache):
    store = ProspectStore(make_client(write_delay=0.05), cache, remote_timeout=1.0)
    store.prospects = [_prospect()]

    pending = asyncio.ensure_future(store.update("CID-1", {"industry": "Auto"}))
    await asyncio.sleep(0)
    store.delete("CID-1")

    assert await pending is None
    assert store.prospects == []


def test_delete_is_local_only(store, fake_client, cache):
    store.prospects = [_prospect(), _prospect(cid="CID-2", company="Beta")]

    assert store.delete("CID-1") is True
    assert store.delete("CID-1") is False

    assert [p.cid for p in store.prospects] == ["CID-2"]
    assert [p.cid for p in cache.load_prospects()] == ["CID-2"]
    assert fake_client.calls == []


@pytest.mark.asyncio
async def test_fetch_replaces_collection(make_client, cache):
    remote = [_prospect(cid="R-1", company="Remote Co")]
    store = ProspectStore(make_client(prospects=remote), cache, remote_timeout=1.0)
    store.prospects = [_prospect()]

    result = await store.fetch()

    assert [p.cid for p in result] == ["R-1"]
    assert store.loading is False
    assert store.error is None
    assert [p.cid for p in cache.load_prospects()] == ["R-1"]


@pytest.mark.asyncio
async def test_fetch_failure_falls_back_to_bundled_snapshot(make_client, cache):
    store = ProspectStore(make_client(read_error=RuntimeError("unreachable")), cache, remote_timeout=1.0)

    result = await store.fetch()

    assert [p.cid for p in result] == ["CID-001"]
    assert store.error == "unreachable"
    assert store.loading is False


@pytest.mark.asyncio
async def test_create_generates_id_and_applies_defaults(store, fake_client):
    prospect = await store.create({"company": "Hand Entered", "industry": "Auto"})

    assert prospect.cid.startswith("GEN-")
    assert prospect.contact_status == "Cold"
    assert prospect.urgency_band == "Medium"
    assert prospect.priority_score == 50
    assert prospect.close_probability == 50
    assert store.get(prospect.cid) is prospect

    second = await store.create({"company": "Another", "industry": "Auto"})
    assert second.cid != prospect.cid

    await store.drain()
    assert fake_client.actions() == ["addProspect", "addProspect"]


@pytest.mark.asyncio
async def test_create_requires_company_and_industry(store):
    with pytest.raises(ProspectValidationError) as excinfo:
        await store.create({"company": "No Industry"})
    assert excinfo.value.message == "Please fill in Company Name and Industry"
    assert store.prospects == []


@pytest.mark.asyncio
async def test_create_rejects_duplicate_cid(store):
    store.prospects = [_prospect()]
    with pytest.raises(ProspectValidationError):
        await store.create({"cid": "CID-1", "company": "Dup", "industry": "Metal"})


@pytest.mark.asyncio
async def test_replace_all_syncs_in_background(store, fake_client, cache):
    store.prospects = [_prospect()]
    incoming = [_prospect(cid="N-1", company="New"), _prospect(cid="N-2", company="Newer")]

    await store.replace_all(incoming)

    assert [p.cid for p in store.prospects] == ["N-1", "N-2"]
    assert [p.cid for p in cache.load_prospects()] == ["N-1", "N-2"]
    await store.drain()
    action, payload = fake_client.calls[0]
    assert action == "syncProspects"
    assert [row["cid"] for row in payload] == ["N-1", "N-2"]


def test_load_cached(store, cache):
    cache.save_prospects([_prospect()])

    assert store.load_cached() == 1
    assert store.get("CID-1").company == "Acme"


@pytest.mark.asyncio
async def test_update_result_is_not_mixed_with_background_failures(make_client, cache):
    class AddRejectingClient(make_client):
        async def add_prospect(self, prospect):
            self.calls.append(("addProspect", prospect.to_wire()))
            return {"success": False, "message": "add rejected"}

    store = ProspectStore(AddRejectingClient(write_delay=0.01), cache, remote_timeout=1.0)
    store.prospects = [_prospect()]

    await store.add(_prospect(cid="CID-2", company="Beta"))
    updated, remote = await store.update_with_result("CID-1", {"industry": "Auto"})

    assert updated.industry == "Auto"
    assert remote["success"] is True
    assert store.error == "add rejected"
