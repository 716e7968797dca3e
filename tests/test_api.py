"""
HTTP surface: two-phase import round trip and the prospect endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from prospect_crm.api.routers import imports as imports_router
from prospect_crm.core.config import settings
from prospect_crm.domain.entities import Price
from prospect_crm.main import app

PROSPECT_CSV = b"company,address,industry\nAcme Co,12 Main St,Metal\n"


@pytest.fixture
def api(tmp_path, monkeypatch, make_client):
    monkeypatch.setattr(settings, "cache_path", str(tmp_path / "crm_cache.json"))
    monkeypatch.setattr(settings, "google_script_url", "")
    fake = make_client()
    with TestClient(app) as client:
        app.state.client = fake
        app.state.store.client = fake
        yield client, fake


def test_root(api):
    client, _ = api
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Prospect CRM API", "version": "1.0.0"}


def test_two_phase_import_round_trip(api):
    client, fake = api

    processed = client.post("/imports/process", files={"file": ("leads.csv", PROSPECT_CSV, "text/csv")})
    assert processed.status_code == 200
    body = processed.json()
    assert body["success"] is True
    assert body["message"] == "Successfully imported 1 prospects, 0 prices, and 0 outreach records."
    assert body["counts"] == {"prospects": 1, "prices": 0, "outreach": 0}
    assert body["prospects"][0]["company"] == "Acme Co"

    # Nothing is applied before commit
    assert client.get("/prospects").json()["total"] == 0

    committed = client.post("/imports/commit")
    assert committed.status_code == 200
    assert committed.json()["message"] == "Data imported and saved successfully!"

    listing = client.get("/prospects").json()
    assert [p["company"] for p in listing["prospects"]] == ["Acme Co"]
    assert "syncProspects" in fake.actions()


def test_commit_without_process_is_conflict(api):
    client, _ = api
    response = client.post("/imports/commit")
    assert response.status_code == 409


def test_unsupported_upload_is_rejected(api):
    client, _ = api
    response = client.post("/imports/process", files={"file": ("notes.txt", b"hello", "text/plain")})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please upload a CSV or JSON file."


def test_undecodable_json_returns_failed_result(api):
    client, _ = api
    response = client.post("/imports/process", files={"file": ("data.json", b"{oops", "application/json")})
    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["message"].startswith("Error processing file:")


def test_oversized_upload(api, monkeypatch):
    client, _ = api
    monkeypatch.setattr(imports_router, "MAX_UPLOAD_BYTES", 10)
    response = client.post("/imports/process", files={"file": ("leads.csv", PROSPECT_CSV, "text/csv")})
    assert response.status_code == 413


def test_commit_callback_failure_keeps_import_staged(api, monkeypatch):
    client, _ = api
    client.post("/imports/process", files={"file": ("leads.csv", PROSPECT_CSV, "text/csv")})

    async def broken_replace_all(prospects):
        raise RuntimeError("store unavailable")

    monkeypatch.setattr(app.state.store, "replace_all", broken_replace_all)
    response = client.post("/imports/commit")
    assert response.status_code == 502
    assert "retry" in response.json()["detail"]

    staged = client.get("/imports/staged")
    assert staged.status_code == 200
    assert staged.json()["counts"]["prospects"] == 1


def test_discard_and_template(api):
    client, _ = api
    client.post("/imports/process", files={"file": ("leads.csv", PROSPECT_CSV, "text/csv")})

    assert client.delete("/imports/staged").json()["success"] is True
    assert client.get("/imports/staged").status_code == 404

    template = client.get("/imports/template")
    assert template.status_code == 200
    assert template.headers["content-type"].startswith("text/csv")
    assert template.text.startswith("company,address,industry")


def test_prospect_crud(api):
    client, fake = api

    created = client.post("/prospects", json={"company": "Hand Co", "industry": "Auto", "priorityScore": 80})
    assert created.status_code == 201
    cid = created.json()["prospect"]["cid"]
    assert cid.startswith("GEN-")
    assert created.json()["prospect"]["priorityScore"] == 80

    updated = client.patch(f"/prospects/{cid}", json={"contactStatus": "Hot"})
    assert updated.status_code == 200
    assert updated.json()["prospect"]["contactStatus"] == "Hot"
    assert updated.json()["remote_error"] is None

    app.state.store.error = "addProspect failed elsewhere"
    again = client.patch(f"/prospects/{cid}", json={"industry": "Metal"})
    assert again.json()["remote_error"] is None

    assert client.get("/prospects", params={"q": "hand"}).json()["total"] == 1
    assert client.delete(f"/prospects/{cid}").status_code == 200
    assert client.delete(f"/prospects/{cid}").status_code == 404
    assert "addProspect" in fake.actions()


def test_create_requires_company_and_industry(api):
    client, _ = api
    response = client.post("/prospects", json={"company": "Only Company"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Please fill in Company Name and Industry"


def test_update_reports_remote_failure_but_applies(api, make_client):
    client, _ = api
    created = client.post("/prospects", json={"company": "Hand Co", "industry": "Auto"}).json()["prospect"]
    failing = make_client(write_result={"success": False, "message": "sheet locked"})
    app.state.store.client = failing

    response = client.patch(f"/prospects/{created['cid']}", json={"industry": "Metal"})

    assert response.status_code == 200
    assert response.json()["prospect"]["industry"] == "Metal"
    assert response.json()["remote_error"] == "sheet locked"


def test_refresh_and_stats(api):
    client, _ = api

    refreshed = client.post("/prospects/refresh").json()
    assert [p["cid"] for p in refreshed["prospects"]] == ["CID-001"]

    stats = client.get("/prospects/stats").json()
    assert stats["total"] == 1
    assert stats["hot"] == 1
    assert stats["high_priority"] == [{"id": "CID-001", "name": "Tyler Metal Fab"}]


def test_prices_cache_then_remote(api):
    client, fake = api

    first = client.get("/prices").json()
    assert first["source"] == "remote"
    assert [p["item"] for p in first["prices"]] == ["Bare Bright", "Cans"]

    second = client.get("/prices").json()
    assert second["source"] == "cache"
    assert fake.actions().count("getPricing") == 1


def test_log_visit(api, make_client):
    client, fake = api

    response = client.post("/visits", json={"cid": "CID-001", "company": "Tyler Metal Fab", "outcome": "Interested"})
    assert response.status_code == 200
    action, payload = fake.calls[-1]
    assert action == "logVisit"
    assert payload["cid"] == "CID-001"

    assert client.post("/visits", json={"cid": "CID-001", "company": "Tyler Metal Fab"}).status_code == 422

    app.state.client = make_client(write_result={"success": False, "message": "API URL not configured"})
    assert client.post("/visits", json={"cid": "CID-001", "company": "T", "outcome": "Won"}).status_code == 502


def test_retried_commit_does_not_duplicate_prices(api, monkeypatch):
    client, _ = api
    app.state.cache.save_prices([Price(category="Copper", item="#2", min=3.5, max=3.7)])
    client.post("/imports/process", files={"file": ("prices.csv", b"category,item,min,max\nSteel,HMS,0.1,0.2\n", "text/csv")})

    async def broken_replace_all(prospects):
        raise RuntimeError("store unavailable")

    with monkeypatch.context() as patched:
        patched.setattr(app.state.store, "replace_all", broken_replace_all)
        assert client.post("/imports/commit").status_code == 502

    assert client.post("/imports/commit").status_code == 200
    assert [p.item for p in app.state.cache.load_prices()] == ["#2", "HMS"]
