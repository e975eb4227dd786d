"""Task repository port - abstract interface for persisted triage state.

Covers the task store, the client directory, the sync ledger, the
dismissed set and the meeting context cache.
"""

from __future__ import annotations

from typing import Protocol

from triage.data.models import ClientDirectory, MeetingContext, SyncEntry, TaskStore


class PersistenceError(Exception):
    """Raised when triage state cannot be written."""


class TaskRepository(Protocol):
    """Abstract storage interface used by core modules."""

    def read_store(self) -> TaskStore:
        """Return the task store, or an empty one if absent or corrupt."""
        ...

    def write_store_atomic(self, store: TaskStore) -> None:
        """Replace the task store so readers never see a partial write."""
        ...

    def read_directory(self) -> ClientDirectory: ...

    def write_directory(self, directory: ClientDirectory) -> None: ...

    def read_ledger(self) -> dict[str, SyncEntry]: ...

    def append_ledger_entry(self, task_id: str, entry: SyncEntry) -> None: ...

    def read_dismissed(self) -> set[str]: ...

    def add_dismissed(self, task_ids: list[str]) -> None: ...

    def read_meeting_cache(self) -> dict[str, MeetingContext]: ...

    def write_meeting_cache(self, cache: dict[str, MeetingContext]) -> None: ...
