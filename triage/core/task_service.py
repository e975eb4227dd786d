"""
Action Triage - Triage Service.

UI-agnostic service layer for everything a user does to tasks between
refreshes: read the enriched view, dismiss, edit, assign a folder, look up
folder suggestions, record a successful push, open meeting context.

Each UI adapter (CLI today) calls this service and renders the returned
objects in its own way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable

from triage.core.client_resolver import (
    list_folder_options,
    record_assignment,
    resolve_client_suggestions,
    suggest_folders,
)
from triage.core.dates import parse_timestamp, to_iso, utc_now
from triage.core.transformer import normalize_priority
from triage.core.view_builder import DEFAULT_OVERDUE_DAYS, build_view
from triage.data.models import (
    PRIORITIES,
    ClientEntry,
    EnrichedTask,
    FolderOption,
    MeetingContext,
    SyncEntry,
    Task,
    TaskStats,
)

if TYPE_CHECKING:
    from triage.ports.action_source import ActionSource
    from triage.ports.task_repository import TaskRepository

logger = logging.getLogger(__name__)

_UNSET = object()


class TaskNotFoundError(KeyError):
    """Raised when an operation names a task id that is not in the store."""


@dataclass
class TaskView:
    tasks: list[EnrichedTask] = field(default_factory=list)
    stats: TaskStats = field(default_factory=TaskStats)
    refreshed_at: str | None = None


@dataclass
class ClientSuggestion:
    domain: str
    entry: ClientEntry
    score: float


class TriageService:
    """Reads and mutates triage state through a TaskRepository."""

    def __init__(
        self,
        repository: TaskRepository,
        source: ActionSource | None = None,
        clock: Callable[[], datetime] = utc_now,
        overdue_days: int = DEFAULT_OVERDUE_DAYS,
        match_threshold: float = 0.25,
        meeting_cache_ttl_hours: int = 24,
    ) -> None:
        self._repository = repository
        self._source = source
        self._clock = clock
        self._overdue_days = overdue_days
        self._match_threshold = match_threshold
        self._meeting_cache_ttl = timedelta(hours=meeting_cache_ttl_hours)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_view(self) -> TaskView:
        """Build the enriched task list and stats from current state."""
        store = self._repository.read_store()
        ledger = self._repository.read_ledger()
        tasks, stats = build_view(
            store, ledger, store.dismissed, now=self._clock(), overdue_days=self._overdue_days,
        )
        return TaskView(tasks=tasks, stats=stats, refreshed_at=store.refreshed_at)

    def get_task(self, task_id: str) -> Task:
        for task in self._repository.read_store().tasks:
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

    # ------------------------------------------------------------------
    # Dismiss
    # ------------------------------------------------------------------

    def dismiss_tasks(self, task_ids: list[str]) -> list[str]:
        """Mark pending tasks as dismissed. Returns the ids actually dismissed.

        Pushed tasks and unknown ids are skipped: a task can only be
        dismissed while it has not been pushed.
        """
        store_ids = {t.id for t in self._repository.read_store().tasks}
        ledger = self._repository.read_ledger()

        accepted: list[str] = []
        for task_id in task_ids:
            if task_id not in store_ids:
                logger.warning("Cannot dismiss unknown task %s", task_id)
            elif task_id in ledger:
                logger.warning("Cannot dismiss task %s: already pushed", task_id)
            elif task_id not in accepted:
                accepted.append(task_id)

        if accepted:
            self._repository.add_dismissed(accepted)
            logger.info("Dismissed %d tasks", len(accepted))
        return accepted

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def edit_task(
        self,
        task_id: str,
        title: str | None = None,
        priority: str | None = None,
        due_date: str | None | object = _UNSET,
    ) -> Task:
        """Update title, priority and/or due date. Pass due_date=None to clear it."""
        if priority is not None and priority.upper() not in PRIORITIES:
            raise ValueError(f"Invalid priority {priority!r}. Use one of: {', '.join(PRIORITIES)}")
        if due_date is not _UNSET and due_date is not None and parse_timestamp(due_date) is None:
            raise ValueError(f"Invalid due date {due_date!r}, expected YYYY-MM-DD")

        store = self._repository.read_store()
        task = next((t for t in store.tasks if t.id == task_id), None)
        if task is None:
            raise TaskNotFoundError(task_id)

        if title is not None:
            task.title = title.strip() or task.title
        if priority is not None:
            task.priority = normalize_priority(priority)
        if due_date is not _UNSET:
            task.due_date = due_date

        self._repository.write_store_atomic(store)
        return task

    # ------------------------------------------------------------------
    # Folder routing
    # ------------------------------------------------------------------

    def list_folder_options(self) -> list[FolderOption]:
        return list_folder_options(self._repository.read_directory())

    def suggest_folders(self, task_id: str) -> list[tuple[FolderOption, float]]:
        task = self.get_task(task_id)
        return suggest_folders(task, self.list_folder_options(), self._match_threshold)

    def suggest_clients(self, hint: str) -> list[ClientSuggestion]:
        """Rank known clients by how well their names match hint."""
        directory = self._repository.read_directory()
        domains = list(directory.clients)
        labels = [f"{directory.clients[d].name} {d}" for d in domains]
        return [
            ClientSuggestion(domain=domains[m.index], entry=directory.clients[domains[m.index]], score=m.score)
            for m in resolve_client_suggestions(hint, labels, self._match_threshold)
        ]

    def assign_folder(
        self,
        task_id: str,
        list_id: str,
        folder_id: str,
        folder_name: str,
        space_name: str,
    ) -> Task:
        """Route a task to a folder and remember it for the task's client.

        The directory only gains an entry for a domain it does not know yet;
        use update_client_entry to change an existing mapping.
        """
        store = self._repository.read_store()
        task = next((t for t in store.tasks if t.id == task_id), None)
        if task is None:
            raise TaskNotFoundError(task_id)

        task.list_id = list_id
        task.folder_name = folder_name
        task.space_name = space_name
        self._repository.write_store_atomic(store)

        directory = self._repository.read_directory()
        if record_assignment(directory, task, folder_id, list_id, folder_name, space_name):
            self._repository.write_directory(directory)
        return task

    def update_client_entry(self, domain: str, entry: ClientEntry) -> None:
        """Explicitly set (or replace) the directory entry for a domain."""
        directory = self._repository.read_directory()
        previous = directory.clients.get(domain)
        directory.clients[domain] = entry
        self._repository.write_directory(directory)
        if previous is not None:
            logger.info("Replaced directory entry for %s (%s -> %s)", domain, previous.name, entry.name)
        else:
            logger.info("Added directory entry for %s", domain)

    # ------------------------------------------------------------------
    # Sync ledger
    # ------------------------------------------------------------------

    def record_push(self, task_id: str, remote_task_id: str, remote_url: str) -> SyncEntry:
        """Record that a task was created downstream.

        Raises ValueError if the task has no routing list or is already
        in the ledger.
        """
        task = self.get_task(task_id)
        if not task.list_id:
            raise ValueError(f"Task {task_id} has no routing list")
        if task_id in self._repository.read_ledger():
            raise ValueError(f"Task {task_id} was already pushed")

        entry = SyncEntry(
            remote_task_id=remote_task_id,
            remote_url=remote_url,
            routing_list_id=task.list_id,
            client_domain=task.client_domain or "",
            client_name=task.client_name or "",
            synced_at=to_iso(self._clock()),
            title=task.title,
        )
        self._repository.append_ledger_entry(task_id, entry)
        logger.info("Recorded push of %s as %s", task_id, remote_task_id)
        return entry

    # ------------------------------------------------------------------
    # Meeting context
    # ------------------------------------------------------------------

    async def get_meeting_context(self, meeting_id: str) -> MeetingContext | None:
        """Return meeting context, from cache while younger than the TTL."""
        cache = self._repository.read_meeting_cache()
        cached = cache.get(meeting_id)
        if cached is not None:
            fetched_at = parse_timestamp(cached.fetched_at)
            if fetched_at is not None and self._clock() - fetched_at < self._meeting_cache_ttl:
                return cached

        if self._source is None:
            return cached

        context = await self._source.fetch_meeting_context(meeting_id)
        if context is None:
            # Fall back to the stale entry, if any
            return cached

        cache[meeting_id] = context
        self._repository.write_meeting_cache(cache)
        return context
