import json

from prospect_crm.domain.entities import Outreach, Price, Prospect
from prospect_crm.integrations.cache import LocalCache


def test_empty_cache(cache):
    assert cache.load_prospects() is None
    assert cache.load_prices() is None
    assert cache.get_last_sync() is None
    assert cache.has_data() is False


def test_prospects_round_trip_with_last_sync(cache):
    cache.save_prospects([Prospect(cid="CID-1", company="Acme", priority_score=80)])

    loaded = cache.load_prospects()

    assert loaded[0].cid == "CID-1"
    assert loaded[0].priority_score == 80
    assert cache.get_last_sync() is not None
    assert cache.has_data() is True


def test_keys_are_written_independently(cache):
    cache.save_prices([Price(category="Metal", item="Copper", min=1, max=2)])
    cache.save_outreach([Outreach(outreach_id="LID-1", cid="CID-1")])

    assert cache.load_prospects() is None
    assert [p.item for p in cache.load_prices()] == ["Copper"]
    assert [o.outreach_id for o in cache.load_outreach()] == ["LID-1"]
    assert cache.has_data() is True


def test_document_uses_canonical_field_names(tmp_path):
    path = tmp_path / "cache.json"
    LocalCache(str(path)).save_prospects([Prospect(cid="CID-1", company="Acme")])

    document = json.loads(path.read_text())

    assert set(document) == {"crm_prospects", "crm_last_sync"}
    assert document["crm_prospects"][0]["contactStatus"] == "Never Contacted"


def test_clear_all(cache):
    cache.save_prospects([Prospect(cid="CID-1", company="Acme")])
    cache.save_prices([])

    cache.clear_all()

    assert cache.has_data() is False
    assert cache.get_last_sync() is None


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text("{not json")
    cache = LocalCache(str(path))

    assert cache.load_prospects() is None

    cache.save_prices([Price(item="Cans")])
    assert [p.item for p in cache.load_prices()] == ["Cans"]


def test_invalid_entries_are_dropped(tmp_path):
    path = tmp_path / "cache.json"
    path.write_text(json.dumps({"crm_prospects": [{"cid": "CID-1", "company": "Acme"}, {"cid": "", "company": ""}]}))

    loaded = LocalCache(str(path)).load_prospects()

    assert [p.cid for p in loaded] == ["CID-1"]
