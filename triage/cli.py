"""
Action Triage - Command-line interface.

Thin adapter over RefreshService and TriageService:

    python main.py refresh          # one refresh cycle
    python main.py watch            # refresh every AUTO_REFRESH_HOURS
    python main.py view [--status pending] [--show-filtered]
    python main.py folders
    python main.py suggest "Acme Corp"
    python main.py dismiss ID [ID ...]
    python main.py assign TASK_ID --folder-id F --list-id L --folder-name N --space S
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from triage.adapters.dayai_source import DayAiActionSource
from triage.adapters.json_repository import JsonTaskRepository
from triage.config import settings
from triage.core.noise import load_noise_rules
from triage.core.refresh import RefreshService
from triage.core.task_service import TaskNotFoundError, TriageService
from triage.ports.action_source import ActionSourceError
from triage.ports.task_repository import PersistenceError

logger = logging.getLogger(__name__)


def build_services() -> tuple[RefreshService, TriageService]:
    """Wire adapters and services from settings."""
    repository = JsonTaskRepository(settings.DATA_DIR)
    source = DayAiActionSource()
    refresher = RefreshService(
        source,
        repository,
        cooldown_seconds=settings.REFRESH_COOLDOWN_SECONDS,
        lookback_days=settings.LOOKBACK_DAYS,
        retention_days=settings.PRUNE_RETENTION_DAYS,
        noise_rules=load_noise_rules(settings.NOISE_RULES_PATH),
    )
    triage = TriageService(
        repository,
        source=source,
        overdue_days=settings.OVERDUE_DAYS,
        match_threshold=settings.MATCH_THRESHOLD,
        meeting_cache_ttl_hours=settings.MEETING_CACHE_TTL_HOURS,
    )
    return refresher, triage


async def run_refresh(refresher: RefreshService) -> int:
    try:
        result = await refresher.refresh()
    except (ActionSourceError, PersistenceError) as exc:
        logger.error("Refresh failed: %s", exc)
        print(f"Refresh failed: {exc}")
        return 1

    if result.rate_limited:
        print(f"Refreshed recently - try again in {result.retry_after}s "
              f"({result.total_count} tasks as of {result.refreshed_at})")
        return 0

    print(f"Refresh complete: {result.added_count} new, {result.total_count} total")
    return 0


async def run_watch(refresher: RefreshService, interval_hours: int) -> None:
    """Refresh now and then every interval_hours until interrupted."""
    logger.info("Auto-refresh scheduled every %d hours", interval_hours)
    while True:
        try:
            await run_refresh(refresher)
        except Exception as exc:
            logger.error("Scheduled refresh failed, will retry next interval: %s", exc)
        await asyncio.sleep(interval_hours * 3600)


def cmd_view(triage: TriageService, status: str | None, show_filtered: bool) -> int:
    view = triage.get_view()
    stats = view.stats

    for task in view.tasks:
        if status and task.sync_status != status:
            continue
        if task.is_filtered and not show_filtered:
            continue
        client = task.client_name or task.inferred_org or "?"
        if task.folder_name:
            route = f"{task.space_name} > {task.folder_name}" if task.space_name else task.folder_name
        else:
            route = "unrouted"
        print(f"[{task.sync_status:9}] {task.priority:6} {task.id}  {task.title}")
        print(f"            client: {client}  route: {route}")

    print()
    print(
        f"{stats.total} tasks: {stats.pending} pending, {stats.pushed} pushed, "
        f"{stats.dismissed} dismissed, {stats.overdue} overdue, "
        f"{stats.unresolved_client} without client"
    )
    for domain, count in sorted(stats.unresolved_by_domain.items(), key=lambda kv: -kv[1]):
        print(f"  unrouted {domain}: {count}")
    print(f"Last refresh: {view.refreshed_at or 'never'}")
    return 0


def cmd_folders(triage: TriageService) -> int:
    for option in triage.list_folder_options():
        list_info = option.list_id or "no list"
        print(f"{option.display_label}  (folder {option.folder_id}, {list_info})")
    return 0


def cmd_suggest(triage: TriageService, hint: str) -> int:
    suggestions = triage.suggest_clients(hint)
    if not suggestions:
        print(f"No known client matches {hint!r}")
        return 0
    for s in suggestions:
        print(f"{s.score:.2f}  {s.entry.name} ({s.domain}) -> {s.entry.space}")
    return 0


def cmd_dismiss(triage: TriageService, task_ids: list[str]) -> int:
    dismissed = triage.dismiss_tasks(task_ids)
    print(f"Dismissed {len(dismissed)} of {len(task_ids)} tasks")
    return 0 if len(dismissed) == len(set(task_ids)) else 1


def cmd_assign(triage: TriageService, args: argparse.Namespace) -> int:
    try:
        task = triage.assign_folder(
            args.task_id, args.list_id, args.folder_id, args.folder_name, args.space,
        )
    except TaskNotFoundError:
        print(f"Task {args.task_id} not found")
        return 1
    print(f"Assigned {task.id} to {task.space_name} > {task.folder_name}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Action Triage")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("refresh", help="Fetch new actions from Day.ai")
    sub.add_parser("watch", help="Refresh periodically")

    view = sub.add_parser("view", help="Show tasks and stats")
    view.add_argument("--status", choices=["pending", "pushed", "dismissed"])
    view.add_argument("--show-filtered", action="store_true", help="Include noise")

    sub.add_parser("folders", help="List routing folders")

    suggest = sub.add_parser("suggest", help="Rank known clients for a name")
    suggest.add_argument("hint")

    dismiss = sub.add_parser("dismiss", help="Dismiss pending tasks")
    dismiss.add_argument("task_ids", nargs="+")

    assign = sub.add_parser("assign", help="Route a task to a folder")
    assign.add_argument("task_id")
    assign.add_argument("--folder-id", required=True)
    assign.add_argument("--list-id", required=True)
    assign.add_argument("--folder-name", required=True)
    assign.add_argument("--space", required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = _build_parser().parse_args(argv)
    refresher, triage = build_services()

    try:
        if args.command == "refresh":
            return asyncio.run(run_refresh(refresher))
        if args.command == "watch":
            asyncio.run(run_watch(refresher, settings.AUTO_REFRESH_HOURS))
            return 0
        if args.command == "view":
            return cmd_view(triage, args.status, args.show_filtered)
        if args.command == "folders":
            return cmd_folders(triage)
        if args.command == "suggest":
            return cmd_suggest(triage, args.hint)
        if args.command == "dismiss":
            return cmd_dismiss(triage, args.task_ids)
        if args.command == "assign":
            return cmd_assign(triage, args)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except PersistenceError as exc:
        logger.error("Storage error: %s", exc)
        print(f"Storage error: {exc}")
        return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
