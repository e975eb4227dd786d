"""Shared test fixtures and configuration.

Sets up fake environment variables before any triage imports, and provides
common fixtures: a temp-dir repository, a controllable clock, a raw action
factory and an in-memory action source.
"""

import os

# Patch env vars BEFORE any triage imports
os.environ.setdefault("DAYAI_CLIENT_ID", "fake-client-id")
os.environ.setdefault("DAYAI_REFRESH_TOKEN", "fake-refresh-token")
os.environ.setdefault("NOISE_RULES_PATH", "")

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeActionSource:
    """ActionSource returning canned raw records."""

    def __init__(self, actions=None, meetings=None, contexts=None) -> None:
        self.actions = list(actions or [])
        self.meetings = list(meetings or [])
        self.contexts = dict(contexts or {})
        self.fetch_calls = 0
        self.context_calls = 0

    async def fetch_actions(self, lookback_days):
        from triage.core.ingest import parse_actions

        self.fetch_calls += 1
        return parse_actions(self.actions)

    async def fetch_meetings(self, lookback_days):
        return list(self.meetings)

    async def fetch_meeting_context(self, meeting_id):
        self.context_calls += 1
        return self.contexts.get(meeting_id)


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


def make_action(object_id="A1", title="Follow up on pricing", **overrides) -> dict:
    """Build a raw Day.ai action record (camelCase, as returned upstream)."""
    record = {
        "objectId": object_id,
        "title": title,
        "description": "",
        "type": "followup",
        "status": "UNREAD",
        "createdAt": "2026-03-01T09:00:00Z",
        "updatedAt": "2026-03-01T09:00:00Z",
        "properties": {},
        "relationships": [],
    }
    record.update(overrides)
    return record


def contact(email: str, name: str | None = None) -> dict:
    rel = {"targetObjectId": email, "targetObjectType": "native_contact", "relationshipType": "involves"}
    if name:
        rel["targetObjectProperties"] = {"name": name}
    return rel


def organization(domain: str, name: str | None = None) -> dict:
    rel = {"targetObjectId": domain, "targetObjectType": "native_organization",
           "relationshipType": "is for organization"}
    if name:
        rel["targetObjectProperties"] = {"name": name}
    return rel


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def repo(tmp_path):
    """Return a JsonTaskRepository backed by a temp directory."""
    from triage.adapters.json_repository import JsonTaskRepository
    return JsonTaskRepository(data_dir=tmp_path / "data")


@pytest.fixture
def directory():
    """A small client directory with one known client."""
    from triage.data.models import ClientDirectory, ClientEntry, FolderList, SpaceEntry

    return ClientDirectory(
        own_domain="acme.com",
        clients={
            "globex.com": ClientEntry(
                name="Globex", folder_id="F-GLOBEX", list_id="L-GLOBEX",
                list_name="Projects", space="Clients",
            ),
        },
        spaces={
            "Clients": SpaceEntry(id="S1", folders={
                "Globex": "F-GLOBEX",
                "Initech": "F-INITECH",
                "Umbrella Corporation": "F-UMBRELLA",
            }),
            "Internal": SpaceEntry(id="S2", folders={"Operations": "F-OPS"}),
        },
        folder_lists={"F-INITECH": FolderList(list_id="L-INITECH", list_name="Projects")},
    )
