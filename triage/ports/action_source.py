"""Action source port - abstract interface for the upstream action API.

Core modules depend on this protocol, never on a specific provider.
"""

from __future__ import annotations

from typing import Protocol

from triage.core.ingest import RawAction
from triage.data.models import Meeting, MeetingContext


class ActionSourceError(Exception):
    """Raised when the upstream action source cannot be queried at all."""


class ActionSource(Protocol):
    """Abstract upstream interface used by the refresh cycle.

    Implementations tolerate partial failure: if one sub-query (one status,
    one object type) fails, they log it and return what did succeed. They
    raise ActionSourceError only when nothing can be fetched (bad
    credentials, token endpoint down).
    """

    async def fetch_actions(self, lookback_days: int) -> list[RawAction]: ...

    async def fetch_meetings(self, lookback_days: int) -> list[Meeting]: ...

    async def fetch_meeting_context(self, meeting_id: str) -> MeetingContext | None: ...
