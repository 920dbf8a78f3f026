"""
Tests for the JSON-file repositories used in local storage mode
"""
import json

import pytest

from factories import NOW, make_record
from geoplaces.core.exceptions import RecordNotFoundError
from geoplaces.repos.local_repo import LocalPlacesRepository


@pytest.mark.asyncio
async def test_put_then_get_round_trips_a_record(store):
    record = make_record()

    await store.put(record)

    assert await store.get("ChIJabc") == record


@pytest.mark.asyncio
async def test_get_missing_returns_none(store):
    assert await store.get("nope") is None


@pytest.mark.asyncio
async def test_put_replaces_whole_record(store):
    await store.put(make_record(name="First"))
    await store.put(make_record(name="Second"))

    assert (await store.get("ChIJabc")).upstream.name == "Second"


@pytest.mark.asyncio
async def test_update_applies_dotted_set_and_inc(store):
    await store.put(make_record())

    await store.update(
        "ChIJabc",
        set_fields={"platform.analytics.last_viewed": NOW},
        inc_fields={"platform.analytics.total_views": 1, "platform.total_adds": 2},
    )
    await store.update("ChIJabc", inc_fields={"platform.analytics.total_views": 1})

    record = await store.get("ChIJabc")
    assert record.platform.analytics.total_views == 2
    assert record.platform.analytics.last_viewed == NOW
    assert record.platform.total_adds == 2


@pytest.mark.asyncio
async def test_update_missing_record_raises(store):
    with pytest.raises(RecordNotFoundError) as excinfo:
        await store.update("nope", inc_fields={"platform.analytics.total_views": 1})

    assert excinfo.value.place_id == "nope"
    assert await store.get("nope") is None


@pytest.mark.asyncio
async def test_get_many_skips_missing_ids(store):
    await store.put(make_record(place_id="a"))
    await store.put(make_record(place_id="b"))

    found = await store.get_many(["a", "missing", "b"])

    assert sorted(found) == ["a", "b"]


@pytest.mark.asyncio
async def test_ids_with_path_separators_stay_inside_data_dir(tmp_path):
    store = LocalPlacesRepository(tmp_path)
    await store.put(make_record(place_id="weird/id:1"))

    assert (await store.get("weird/id:1")).id == "weird/id:1"
    assert [p.name for p in (tmp_path / "places").iterdir()] == ["weird%2Fid%3A1.json"]


@pytest.mark.asyncio
async def test_ids_differing_only_in_separators_get_their_own_files(tmp_path):
    store = LocalPlacesRepository(tmp_path)
    for place_id in ["a/b", "a:b", "a_b", "a%2Fb"]:
        await store.put(make_record(place_id=place_id, name=f"Place {place_id}"))

    for place_id in ["a/b", "a:b", "a_b", "a%2Fb"]:
        assert (await store.get(place_id)).upstream.name == f"Place {place_id}"
    assert len(list((tmp_path / "places").iterdir())) == 4


@pytest.mark.asyncio
async def test_records_are_written_as_plain_json(store, tmp_path):
    await store.put(make_record())

    with open(tmp_path / "places" / "ChIJabc.json", encoding="utf-8") as f:
        doc = json.load(f)

    assert doc["id"] == "ChIJabc"
    assert doc["upstream"]["name"] == "Café Azul"
    assert doc["sync"]["is_active"] is True


@pytest.mark.asyncio
async def test_analytics_events_are_appended(analytics_repo):
    await analytics_repo.append_event({"place_id": "a", "action": "view_details"})
    await analytics_repo.append_event({"place_id": "b", "action": "view_details"})

    assert [e["place_id"] for e in analytics_repo.read_events()] == ["a", "b"]


@pytest.mark.asyncio
async def test_latest_reviews_are_newest_first_and_limited(reviews_repo):
    await reviews_repo.save_reviews("p", [
        {"id": str(i), "createdAt": f"2025-03-0{i}T00:00:00+00:00"} for i in range(1, 6)
    ])

    latest = await reviews_repo.latest_for_place("p", limit=2)

    assert [r["id"] for r in latest] == ["5", "4"]
    assert await reviews_repo.latest_for_place("other") == []
