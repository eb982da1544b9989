"""
Guardian Realtime - Upstream change sources

Read-only queries polled by the ChangePoller, one per event kind.
Each returns the records changed strictly after a cursor, newest first,
capped to a small limit so an outage never turns into an event burst.

Storage assumption: `created_at` / `updated_at` are written as UTC ISO strings
(`now_iso()`) and the cursor is compared as a string. A field stored as a
BSON date never matches a string bound. Payload dates (`event_date`) may be
either type and go through `to_iso()` before leaving the service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List

from config import to_iso
from models.realtime import EventKind

# Only high-value leads are pushed to the dashboards
HIGH_VALUE_LEAD_SCORE = 70


@dataclass(frozen=True)
class ChangeSource:
    kind: EventKind
    collection: str
    changed_field: str
    project: Callable[[Dict[str, Any]], Dict[str, Any]]
    limit: int = 10
    extra_filter: Dict[str, Any] = field(default_factory=dict)

    def build_query(self, since: datetime) -> Dict[str, Any]:
        return {**self.extra_filter, self.changed_field: {"$gt": to_iso(since)}}

    async def fetch_changes(self, db, since: datetime) -> List[Dict[str, Any]]:
        docs = await db[self.collection].find(
            self.build_query(since), {"_id": 0}
        ).sort(self.changed_field, -1).limit(self.limit).to_list(self.limit)
        return [self.project(doc) for doc in docs]


class MongoChangeSource:
    """Binds a ChangeSource to a database handle (what the poller calls)"""

    def __init__(self, source: ChangeSource, db):
        self.source = source
        self.db = db

    @property
    def kind(self) -> EventKind:
        return self.source.kind

    async def fetch_changes(self, since: datetime) -> List[Dict[str, Any]]:
        return await self.source.fetch_changes(self.db, since)


# ==================== PROJECTIONS ====================

def project_weather_event(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "eventType": doc.get("event_type"),
        "severity": doc.get("severity"),
        "city": doc.get("city"),
        "state": doc.get("state"),
        "county": doc.get("county"),
        "zipCode": doc.get("zip_code"),
        "hailSize": doc.get("hail_size"),
        "windSpeed": doc.get("wind_speed"),
        "eventDate": to_iso(doc.get("event_date")),
    }


def project_intel_item(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "customerId": doc.get("customer_id"),
        "category": doc.get("category"),
        "title": doc.get("title"),
        "content": doc.get("content"),
        "priority": doc.get("priority"),
    }


def project_customer(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": doc.get("id"),
        "firstName": doc.get("first_name"),
        "lastName": doc.get("last_name"),
        "city": doc.get("city"),
        "state": doc.get("state"),
        "leadScore": doc.get("lead_score"),
        "status": doc.get("status"),
    }


# ==================== SOURCES ====================

STORM_SOURCE = ChangeSource(
    kind=EventKind.STORM,
    collection="weather_events",
    changed_field="created_at",
    project=project_weather_event,
    limit=10,
)

INTEL_SOURCE = ChangeSource(
    kind=EventKind.INTEL,
    collection="intel_items",
    changed_field="created_at",
    project=project_intel_item,
    limit=10,
)

CUSTOMER_SOURCE = ChangeSource(
    kind=EventKind.CUSTOMER,
    collection="customers",
    changed_field="updated_at",
    project=project_customer,
    limit=5,
    extra_filter={"lead_score": {"$gte": HIGH_VALUE_LEAD_SCORE}},
)

# Broadcast order within a tick
DEFAULT_SOURCES = [STORM_SOURCE, INTEL_SOURCE, CUSTOMER_SOURCE]


def mongo_sources(db) -> List[MongoChangeSource]:
    return [MongoChangeSource(source, db) for source in DEFAULT_SOURCES]
