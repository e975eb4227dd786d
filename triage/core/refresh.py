"""
Action Triage - Refresh Orchestrator.

One refresh cycle:

    Idle -> (RateLimited: reject) -> Fetching -> Deduping -> Transforming
         -> Resolving -> Linking -> Pruning -> Persisting -> Idle

The orchestrator is the single writer of the task store. It owns the
last-refresh timestamp and an in-flight flag; together they form the gate
that keeps a second cycle from starting while one is running or shortly
after one finished. A rejected request is a normal result, not an error.

The cycle is all-or-nothing at the persistence boundary: if anything fails
before the atomic write, nothing is written and the previous store stays
authoritative.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING, Callable

from triage.core.client_resolver import apply_directory
from triage.core.dates import reference_time, to_iso, utc_now
from triage.core.meeting_linker import index_meetings_by_day, link_meeting
from triage.core.noise import DEFAULT_NOISE_RULES, NoiseRules
from triage.core.transformer import transform_action
from triage.data.models import RefreshResult, Task, TaskStore

if TYPE_CHECKING:
    from triage.ports.action_source import ActionSource
    from triage.ports.task_repository import TaskRepository

logger = logging.getLogger(__name__)


class RefreshState(Enum):
    IDLE = "idle"
    RATE_LIMITED = "rate_limited"
    FETCHING = "fetching"
    DEDUPING = "deduping"
    TRANSFORMING = "transforming"
    RESOLVING = "resolving"
    LINKING = "linking"
    PRUNING = "pruning"
    PERSISTING = "persisting"


def dedupe_tasks(tasks: list[Task]) -> tuple[list[Task], set[str]]:
    """Collapse repeated ids, keeping the first occurrence.

    Returns (unique tasks, set of ids).
    """
    seen: set[str] = set()
    unique: list[Task] = []
    for task in tasks:
        if task.id in seen:
            logger.warning("Dropping duplicate task %s already in store", task.id)
            continue
        seen.add(task.id)
        unique.append(task)
    return unique, seen


def prune_dismissed(store: TaskStore, now: datetime, retention_days: int) -> int:
    """Drop dismissed tasks older than the retention window, in place.

    Age is measured from created_at, falling back to meeting_date. Tasks
    with no usable date are kept. Dismissed ids whose task is gone are
    removed too. Returns the number of tasks removed.
    """
    cutoff = now - timedelta(days=retention_days)
    dismissed = set(store.dismissed)

    kept: list[Task] = []
    for task in store.tasks:
        if task.id in dismissed:
            ref = reference_time(task.created_at, task.meeting_date)
            if ref is not None and ref < cutoff:
                continue
        kept.append(task)

    removed = len(store.tasks) - len(kept)
    store.tasks = kept
    remaining = {t.id for t in kept}
    store.dismissed = [tid for tid in store.dismissed if tid in remaining]
    return removed


class RefreshService:
    """Runs refresh cycles against an ActionSource and a TaskRepository."""

    def __init__(
        self,
        source: ActionSource,
        repository: TaskRepository,
        clock: Callable[[], datetime] = utc_now,
        cooldown_seconds: int = 60,
        lookback_days: int = 14,
        retention_days: int = 30,
        noise_rules: NoiseRules = DEFAULT_NOISE_RULES,
    ) -> None:
        self._source = source
        self._repository = repository
        self._clock = clock
        self._cooldown = timedelta(seconds=cooldown_seconds)
        self._lookback_days = lookback_days
        self._retention_days = retention_days
        self._noise_rules = noise_rules

        self._last_refresh: datetime | None = None
        self._in_flight = False
        self.state = RefreshState.IDLE

    # ------------------------------------------------------------------
    # Rate-limit gate
    # ------------------------------------------------------------------

    def seconds_until_next_refresh(self) -> int:
        if self._last_refresh is None:
            return 0
        remaining = (self._last_refresh + self._cooldown - self._clock()).total_seconds()
        return max(0, math.ceil(remaining))

    def is_rate_limited(self) -> bool:
        return self._in_flight or self.seconds_until_next_refresh() > 0

    def _rejected(self) -> RefreshResult:
        """Last known counts, without touching the upstream API."""
        retry_after = self.seconds_until_next_refresh()
        if self._in_flight:
            retry_after = max(1, retry_after)
        else:
            self.state = RefreshState.RATE_LIMITED
        logger.info("Refresh rejected, retry in %ds", retry_after)

        store = self._repository.read_store()
        return RefreshResult(
            added_count=0,
            total_count=len(store.tasks),
            refreshed_at=store.refreshed_at,
            rate_limited=True,
            retry_after=retry_after,
        )

    # ------------------------------------------------------------------
    # Cycle
    # ------------------------------------------------------------------

    async def refresh(self) -> RefreshResult:
        """Run one refresh cycle, or reject it if the gate is closed.

        Raises ActionSourceError or PersistenceError when the cycle aborts;
        the stored state is unchanged in that case.
        """
        if self.is_rate_limited():
            return self._rejected()

        self._in_flight = True
        try:
            result = await self._run_cycle()
        finally:
            self._in_flight = False
            self.state = RefreshState.IDLE
        return result

    async def _run_cycle(self) -> RefreshResult:
        now = self._clock()

        self.state = RefreshState.FETCHING
        actions = await self._source.fetch_actions(self._lookback_days)
        meetings = await self._source.fetch_meetings(self._lookback_days)
        directory = self._repository.read_directory()
        store = self._repository.read_store()
        logger.info("Fetched %d actions and %d meetings", len(actions), len(meetings))

        self.state = RefreshState.DEDUPING
        store.tasks, known_ids = dedupe_tasks(store.tasks)

        self.state = RefreshState.TRANSFORMING
        new_tasks: list[Task] = []
        for action in actions:
            if action.object_id in known_ids:
                continue
            known_ids.add(action.object_id)
            new_tasks.append(
                transform_action(action, directory.own_domain, self._noise_rules)
            )

        self.state = RefreshState.RESOLVING
        new_tasks = [apply_directory(task, directory) for task in new_tasks]

        self.state = RefreshState.LINKING
        meetings_by_day = index_meetings_by_day(meetings)
        new_tasks = [link_meeting(task, meetings_by_day) for task in new_tasks]
        store.tasks.extend(new_tasks)

        self.state = RefreshState.PRUNING
        pruned = prune_dismissed(store, now, self._retention_days)
        if pruned:
            logger.info("Pruned %d dismissed tasks older than %d days", pruned, self._retention_days)

        self.state = RefreshState.PERSISTING
        refreshed_at = to_iso(self._clock())
        store.refreshed_at = refreshed_at
        self._repository.write_store_atomic(store)
        self._last_refresh = now

        logger.info(
            "Refresh complete: %d new, %d total, %d filtered as noise",
            len(new_tasks), len(store.tasks), sum(1 for t in new_tasks if t.is_filtered),
        )
        return RefreshResult(
            added_count=len(new_tasks),
            total_count=len(store.tasks),
            refreshed_at=refreshed_at,
        )
