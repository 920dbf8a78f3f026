"""
Unit tests for merging fetched provider data into cached place records
"""
from datetime import timedelta

import pytest

from factories import NOW, make_payload, make_record
from geoplaces.models.places_model import DEFAULT_CATEGORY
from geoplaces.services.merge_policy import (
    categorize_place,
    extract_subcategories,
    generate_search_keywords,
    merge,
)

LATER = NOW + timedelta(days=10)


def _customized(record):
    """A record whose platform fields have been changed by platform activity."""
    record.platform.created_by = "user-1"
    record.platform.average_rating = 8.7
    record.platform.total_reviews = 12
    record.platform.category = "bar"
    record.platform.search_keywords = ["curated"]
    record.platform.total_adds = 4
    record.platform.added_by = ["user-1", "user-2"]
    record.platform.analytics.total_views = 99
    return record


def test_new_record_from_payload():
    record = merge(None, make_payload(), NOW, place_id="ChIJabc", created_by="user-9")

    assert record.id == "ChIJabc"
    assert record.upstream.name == "Café Azul"
    assert record.platform.category == "cafe"
    assert record.platform.created_by == "user-9"
    assert record.platform.total_adds == 0
    assert record.platform.total_reviews == 0
    assert record.platform.average_rating == 0
    assert record.platform.analytics.total_views == 0
    assert record.platform.created_at == NOW
    assert record.sync.last_synced_at == NOW
    assert record.sync.is_active is True


def test_new_record_requires_place_id():
    with pytest.raises(ValueError):
        merge(None, make_payload(), NOW)


def test_refresh_replaces_upstream_and_keeps_platform():
    existing = _customized(make_record())
    fetched = make_payload(name="Café Azul Novo", rating=3.9, types=["restaurant"], lat=-23.51, lng=-46.61)

    merged = merge(existing, fetched, LATER)

    assert merged.upstream == fetched
    assert merged.platform == existing.platform
    assert merged.platform.category == "bar"
    assert merged.sync.last_synced_at == LATER
    assert merged.platform.created_at == NOW


def test_refresh_overwrites_upstream_with_empty_values():
    existing = make_record()
    fetched = make_payload(phone=None, website=None, photos=[], rating=None)

    merged = merge(existing, fetched, LATER)

    assert merged.upstream.phone is None
    assert merged.upstream.website is None
    assert merged.upstream.photos == []
    assert merged.upstream.rating is None


def test_sentinel_category_adopts_new_category():
    existing = make_record(types=["establishment"])
    assert existing.platform.category == DEFAULT_CATEGORY

    merged = merge(existing, make_payload(types=["bar", "establishment"]), LATER)

    assert merged.platform.category == "bar"


def test_refresh_keeps_inactive_flag():
    existing = make_record()
    existing.sync.is_active = False

    merged = merge(existing, make_payload(), LATER)

    assert merged.sync.is_active is False


def test_merge_is_idempotent():
    existing = _customized(make_record())
    fetched = make_payload(types=["museum"])

    once = merge(existing, fetched, LATER)
    twice = merge(once, fetched, LATER)

    assert twice == once


def test_merge_does_not_mutate_inputs():
    existing = make_record()
    before = existing.model_copy(deep=True)
    fetched = make_payload(name="Other")

    merge(existing, fetched, LATER)

    assert existing == before


@pytest.mark.parametrize(
    "types,expected",
    [
        (["cafe"], "cafe"),
        (["food", "cafe"], "restaurant"),
        (["point_of_interest", "night_club"], "nightlife"),
        (["museum"], "attraction"),
        (["atm", "bank"], "services"),
        (["beauty_salon"], "wellness"),
        (["unknown_type"], "other"),
        ([], "other"),
    ],
)
def test_categorize_place_first_known_type_wins(types, expected):
    assert categorize_place(types) == expected


def test_subcategories_drop_generic_types_and_cap_at_five():
    types = ["establishment", "cafe", "point_of_interest", "food", "bakery", "store", "bar", "meal_takeaway"]
    assert extract_subcategories(types) == ["cafe", "food", "bakery", "store", "bar"]


def test_search_keywords_are_lowercase_deduplicated_and_skip_short_words():
    keywords = generate_search_keywords("Café Azul", "Av. Paulista, 10", "cafe", ["cafe", "point_of_interest"])

    assert keywords == ["café", "azul", "paulista", "cafe", "point", "interest"]
