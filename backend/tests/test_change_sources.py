"""
Guardian Realtime - Upstream change sources (Mongo queries + projections)
Run: cd backend && pytest tests/test_change_sources.py -v
"""

from datetime import timedelta

import pytest

from models.realtime import EventKind
from services.change_sources import (
    CUSTOMER_SOURCE,
    DEFAULT_SOURCES,
    HIGH_VALUE_LEAD_SCORE,
    INTEL_SOURCE,
    STORM_SOURCE,
    mongo_sources,
    project_weather_event,
)
from tests.fakes import FakeDB, FakeCollection, T0


def iso(seconds):
    return (T0 + timedelta(seconds=seconds)).isoformat()


class TestQueries:

    def test_query_is_strictly_after_cursor(self):
        assert STORM_SOURCE.build_query(T0) == {"created_at": {"$gt": T0.isoformat()}}

    def test_customer_query_keeps_high_value_filter(self):
        query = CUSTOMER_SOURCE.build_query(T0)
        assert query["updated_at"] == {"$gt": T0.isoformat()}
        assert query["lead_score"] == {"$gte": HIGH_VALUE_LEAD_SCORE}

    def test_default_order_and_limits(self):
        assert [s.kind for s in DEFAULT_SOURCES] == [EventKind.STORM, EventKind.INTEL, EventKind.CUSTOMER]
        assert STORM_SOURCE.limit == 10
        assert INTEL_SOURCE.limit == 10
        assert CUSTOMER_SOURCE.limit == 5

    @pytest.mark.asyncio
    async def test_storm_changes_newest_first_and_capped(self):
        db = FakeDB()
        db["weather_events"] = FakeCollection(
            [{"id": "old", "created_at": iso(-5), "event_type": "hail"}]
            + [{"id": f"w-{i}", "created_at": iso(i), "event_type": "hail"} for i in range(1, 13)]
        )

        records = await STORM_SOURCE.fetch_changes(db, T0)

        assert len(records) == 10
        assert records[0]["id"] == "w-12"
        assert "old" not in [r["id"] for r in records]

    @pytest.mark.asyncio
    async def test_record_at_cursor_is_excluded(self):
        db = FakeDB()
        db["intel_items"] = FakeCollection([
            {"id": "same", "created_at": iso(0)},
            {"id": "after", "created_at": iso(1)},
        ])

        records = await INTEL_SOURCE.fetch_changes(db, T0)

        assert [r["id"] for r in records] == ["after"]

    @pytest.mark.asyncio
    async def test_customer_changes(self):
        db = FakeDB()
        db["customers"] = FakeCollection(
            [{"id": "low", "updated_at": iso(5), "lead_score": 40}]
            + [{"id": f"c-{i}", "updated_at": iso(i), "lead_score": 70 + i} for i in range(1, 8)]
        )

        records = await CUSTOMER_SOURCE.fetch_changes(db, T0)

        assert len(records) == 5
        assert "low" not in [r["id"] for r in records]
        assert records[0]["leadScore"] == 77

    @pytest.mark.asyncio
    async def test_mongo_sources_bind_db(self):
        db = FakeDB()
        db["weather_events"] = FakeCollection([{"id": "w-1", "created_at": iso(3)}])

        sources = mongo_sources(db)
        storm = sources[0]

        assert storm.kind == EventKind.STORM
        records = await storm.fetch_changes(T0)
        assert records[0]["id"] == "w-1"
        assert db["weather_events"].queries == [{"created_at": {"$gt": T0.isoformat()}}]


class TestProjections:

    def test_weather_event_is_flattened(self):
        payload = project_weather_event({
            "id": "w-1",
            "event_type": "hail",
            "severity": "severe",
            "city": "Dallas",
            "state": "TX",
            "county": "Dallas",
            "zip_code": "75201",
            "hail_size": 1.75,
            "wind_speed": 60.0,
            "event_date": T0,
            "raw_data": "{...}",
        })
        assert payload == {
            "id": "w-1",
            "eventType": "hail",
            "severity": "severe",
            "city": "Dallas",
            "state": "TX",
            "county": "Dallas",
            "zipCode": "75201",
            "hailSize": 1.75,
            "windSpeed": 60.0,
            "eventDate": T0.isoformat(),
        }

    def test_missing_fields_are_null(self):
        payload = INTEL_SOURCE.project({"id": "i-1", "title": "Roof permit filed"})
        assert payload["customerId"] is None
        assert payload["title"] == "Roof permit filed"

    def test_customer_projection(self):
        payload = CUSTOMER_SOURCE.project({
            "id": "c-1", "first_name": "Ann", "last_name": "Lee",
            "city": "Tulsa", "state": "OK", "lead_score": 88, "status": "lead",
            "phone": "555-0100",
        })
        assert payload == {
            "id": "c-1", "firstName": "Ann", "lastName": "Lee",
            "city": "Tulsa", "state": "OK", "leadScore": 88, "status": "lead",
        }

    def test_event_date_string_passes_through(self):
        payload = project_weather_event({"id": "w-2", "event_date": "2026-03-01T11:00:00+00:00"})
        assert payload["eventDate"] == "2026-03-01T11:00:00+00:00"

    def test_cursor_bound_is_iso_string(self):
        for source in DEFAULT_SOURCES:
            bound = source.build_query(T0)[source.changed_field]["$gt"]
            assert isinstance(bound, str)
            assert bound == T0.isoformat()
