"""
Action Triage - View Builder.

Projects the persisted task store, the sync ledger and the dismissed set
into the list the dashboard shows, plus aggregate stats. No I/O and no
caching: the view is recomputed on every read.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from triage.core.dates import reference_time, utc_now
from triage.core.fuzzy_match import extract_org_name
from triage.data.models import (
    STATUS_DISMISSED,
    STATUS_PENDING,
    STATUS_PUSHED,
    EnrichedTask,
    SyncEntry,
    Task,
    TaskStats,
    TaskStore,
)

UNKNOWN_DOMAIN = "unknown"
DEFAULT_OVERDUE_DAYS = 7


def compute_status(task_id: str, ledger: dict[str, SyncEntry], dismissed: set[str]) -> str:
    """pushed beats dismissed beats pending."""
    if task_id in ledger:
        return STATUS_PUSHED
    if task_id in dismissed:
        return STATUS_DISMISSED
    return STATUS_PENDING


def task_age(task: Task, now: datetime) -> timedelta | None:
    """Time since the task's reference date, or None when it has none."""
    ref = reference_time(task.created_at, task.meeting_date)
    if ref is None:
        return None
    return now - ref


def is_overdue(task: EnrichedTask, now: datetime, overdue_days: int = DEFAULT_OVERDUE_DAYS) -> bool:
    if task.sync_status != STATUS_PENDING:
        return False
    age = task_age(task, now)
    return age is not None and age >= timedelta(days=overdue_days)


def enrich_task(task: Task, ledger: dict[str, SyncEntry], dismissed: set[str]) -> EnrichedTask:
    status = compute_status(task.id, ledger, dismissed)
    enriched = EnrichedTask(**task.to_dict(), sync_status=status)

    if status == STATUS_PUSHED:
        entry = ledger[task.id]
        enriched.remote_task_id = entry.remote_task_id
        enriched.remote_url = entry.remote_url
        enriched.synced_at = entry.synced_at

    if not task.client_domain:
        enriched.inferred_org = extract_org_name(task.title, task.description)

    return enriched


def build_stats(
    tasks: list[EnrichedTask],
    now: datetime,
    overdue_days: int = DEFAULT_OVERDUE_DAYS,
) -> TaskStats:
    """Aggregate counts over an enriched task list.

    unresolved_client counts tasks with no client domain at all.
    unresolved_by_domain breaks down tasks still lacking a routing list,
    keyed by their client domain (or first extracted domain, or "unknown").
    """
    stats = TaskStats(total=len(tasks))
    for task in tasks:
        if task.sync_status == STATUS_PUSHED:
            stats.pushed += 1
        elif task.sync_status == STATUS_DISMISSED:
            stats.dismissed += 1
        else:
            stats.pending += 1

        if not task.client_domain:
            stats.unresolved_client += 1

        if not task.list_id:
            key = task.client_domain or (task.domains[0] if task.domains else UNKNOWN_DOMAIN)
            stats.unresolved_by_domain[key] = stats.unresolved_by_domain.get(key, 0) + 1

        if is_overdue(task, now, overdue_days):
            stats.overdue += 1

    return stats


def build_view(
    store: TaskStore,
    ledger: dict[str, SyncEntry],
    dismissed: set[str] | list[str] | None = None,
    now: datetime | None = None,
    overdue_days: int = DEFAULT_OVERDUE_DAYS,
) -> tuple[list[EnrichedTask], TaskStats]:
    """Merge store, ledger and dismissed set into (enriched tasks, stats).

    dismissed defaults to the store's own dismissed list.
    """
    dismissed_set = set(store.dismissed if dismissed is None else dismissed)
    now = now or utc_now()

    enriched = [enrich_task(task, ledger, dismissed_set) for task in store.tasks]
    return enriched, build_stats(enriched, now, overdue_days)
