"""JSON file repository - implements TaskRepository on a data directory.

Layout under data_dir:
    tasks.json            task store + dismissed ids
    client-map.json       client directory
    sync-ledger.json      append-only push ledger
    meetings-cache.json   meeting context cache

Every write goes to a temp file in the same directory and is renamed over
the target, so a concurrent reader sees either the old or the new file,
never a partial one. There is no cross-process locking: a single writer
process is assumed.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Any

from triage.data.models import ClientDirectory, MeetingContext, SyncEntry, TaskStore
from triage.ports.task_repository import PersistenceError

logger = logging.getLogger(__name__)

TASKS_FILE = "tasks.json"
CLIENT_MAP_FILE = "client-map.json"
LEDGER_FILE = "sync-ledger.json"
MEETINGS_CACHE_FILE = "meetings-cache.json"


class CorruptFileError(PersistenceError):
    """A state file exists but does not contain valid JSON of the right shape."""


class JsonTaskRepository:
    """File-backed storage for triage state."""

    def __init__(self, data_dir: str | Path | None = None) -> None:
        if data_dir is None:
            from triage.config import settings
            data_dir = settings.DATA_DIR

        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, name: str) -> Path:
        return self._data_dir / name

    # ------------------------------------------------------------------
    # Low-level JSON I/O
    # ------------------------------------------------------------------

    def _read_json(self, name: str) -> Any | None:
        """Return parsed JSON, None if the file is absent.

        Raises CorruptFileError on unreadable or invalid content.
        """
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
            raise CorruptFileError(f"Cannot read {path}: {exc}") from exc

    def _write_json_atomic(self, name: str, data: Any) -> None:
        """Write to a temp file and atomically rename it into place."""
        path = self._path(name)
        temp_path: Path | None = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._data_dir, delete=False, suffix=".tmp", encoding="utf-8",
            ) as f:
                temp_path = Path(f.name)
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as exc:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {path}: {exc}") from exc
        logger.debug("Wrote %s", path)

    # ------------------------------------------------------------------
    # Task store
    # ------------------------------------------------------------------

    def read_store(self) -> TaskStore:
        """Return the task store; an empty store if absent or corrupt.

        A corrupt file is copied aside to tasks.json.corrupt before the
        empty store is returned, so the next write does not lose it.
        """
        try:
            data = self._read_json(TASKS_FILE)
            if data is None:
                return TaskStore()
            if not isinstance(data, dict):
                raise CorruptFileError(f"{TASKS_FILE} is not a JSON object")
            return TaskStore.from_dict(data)
        except (CorruptFileError, TypeError, AttributeError) as exc:
            logger.warning("Task store unreadable, starting empty: %s", exc)
            self._preserve_corrupt(TASKS_FILE)
            return TaskStore()

    def write_store_atomic(self, store: TaskStore) -> None:
        self._write_json_atomic(TASKS_FILE, store.to_dict())

    def _preserve_corrupt(self, name: str) -> None:
        path = self._path(name)
        if not path.exists():
            return
        backup = path.with_name(path.name + ".corrupt")
        try:
            shutil.copyfile(path, backup)
            logger.warning("Copied unreadable %s to %s", path, backup)
        except OSError as exc:
            logger.error("Could not back up %s: %s", path, exc)

    # ------------------------------------------------------------------
    # Client directory
    # ------------------------------------------------------------------

    def read_directory(self) -> ClientDirectory:
        """Return the client directory; an empty one if the file is absent.

        A corrupt directory raises CorruptFileError rather than being
        replaced, since writing back an empty directory would drop every
        known client.
        """
        data = self._read_json(CLIENT_MAP_FILE)
        if data is None:
            logger.info("No %s in %s, using an empty directory", CLIENT_MAP_FILE, self._data_dir)
            return ClientDirectory()
        if not isinstance(data, dict):
            raise CorruptFileError(f"{CLIENT_MAP_FILE} is not a JSON object")
        try:
            return ClientDirectory.from_dict(data)
        except (TypeError, AttributeError) as exc:
            raise CorruptFileError(f"Invalid {CLIENT_MAP_FILE}: {exc}") from exc

    def write_directory(self, directory: ClientDirectory) -> None:
        self._write_json_atomic(CLIENT_MAP_FILE, directory.to_dict())

    # ------------------------------------------------------------------
    # Sync ledger
    # ------------------------------------------------------------------

    def _load_ledger(self) -> dict[str, SyncEntry]:
        data = self._read_json(LEDGER_FILE)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise CorruptFileError(f"{LEDGER_FILE} is not a JSON object")
        try:
            return {task_id: SyncEntry.from_dict(entry) for task_id, entry in data.items()}
        except (TypeError, AttributeError) as exc:
            raise CorruptFileError(f"Invalid {LEDGER_FILE}: {exc}") from exc

    def read_ledger(self) -> dict[str, SyncEntry]:
        """Return the ledger; empty (and logged) if unreadable."""
        try:
            return self._load_ledger()
        except CorruptFileError as exc:
            logger.error("Sync ledger unreadable, treating as empty: %s", exc)
            return {}

    def append_ledger_entry(self, task_id: str, entry: SyncEntry) -> None:
        """Add a ledger entry. Existing entries are never replaced.

        Raises CorruptFileError if the current ledger cannot be read, so an
        unreadable ledger is never overwritten.
        """
        ledger = self._load_ledger()
        if task_id in ledger:
            logger.warning("Task %s already in sync ledger, keeping original entry", task_id)
            return
        ledger[task_id] = entry
        self._write_json_atomic(
            LEDGER_FILE, {tid: e.to_dict() for tid, e in ledger.items()},
        )

    # ------------------------------------------------------------------
    # Dismissed set (stored inside tasks.json)
    # ------------------------------------------------------------------

    def read_dismissed(self) -> set[str]:
        return set(self.read_store().dismissed)

    def add_dismissed(self, task_ids: list[str]) -> None:
        store = self.read_store()
        known = set(store.dismissed)
        for task_id in task_ids:
            if task_id not in known:
                store.dismissed.append(task_id)
                known.add(task_id)
        self.write_store_atomic(store)

    # ------------------------------------------------------------------
    # Meeting context cache
    # ------------------------------------------------------------------

    def read_meeting_cache(self) -> dict[str, MeetingContext]:
        try:
            data = self._read_json(MEETINGS_CACHE_FILE)
        except CorruptFileError as exc:
            logger.warning("Meeting cache unreadable, ignoring: %s", exc)
            return {}
        if not isinstance(data, dict):
            return {}
        cache: dict[str, MeetingContext] = {}
        for meeting_id, entry in data.items():
            try:
                cache[meeting_id] = MeetingContext.from_dict(entry)
            except (TypeError, AttributeError):
                logger.debug("Dropping malformed cache entry %s", meeting_id)
        return cache

    def write_meeting_cache(self, cache: dict[str, MeetingContext]) -> None:
        self._write_json_atomic(
            MEETINGS_CACHE_FILE, {mid: ctx.to_dict() for mid, ctx in cache.items()},
        )
