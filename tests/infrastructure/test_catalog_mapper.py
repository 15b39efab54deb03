from datetime import datetime, timedelta, timezone

from edumatch.infrastructure.repositories.catalog_mapper import days_left, entity_id, parse_timestamp, to_facets


def test_entity_id_prefers_post_id():
    assert entity_id({"id": 7, "postId": "abc"}) == "abc"
    assert entity_id({"id": 7}) == "7"
    assert entity_id({}) == ""


def test_days_left_uses_field_when_present():
    assert days_left({"daysLeft": "4"}) == 4


def test_days_left_derived_from_deadline():
    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    row = {"deadline": (now + timedelta(days=10, hours=1)).isoformat()}

    assert days_left(row, now=now) == 10


def test_days_left_negative_when_past():
    now = datetime(2024, 1, 10, tzinfo=timezone.utc)

    assert days_left({"date": "2024-01-05"}, now=now) < 0


def test_parse_timestamp_handles_garbage():
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None
    assert parse_timestamp("2024-02-03").tzinfo is timezone.utc


def test_to_facets_tolerates_missing_keys():
    facets = to_facets({"countries": ["Germany", None, ""]})

    assert facets.countries == ("Germany",)
    assert facets.disciplines == ()
    assert to_facets(None).attendance_types == ()
