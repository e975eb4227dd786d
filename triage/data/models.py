"""
Action Triage - Data Models.

The persisted shapes: the task store (tasks.json), the sync ledger
(sync-ledger.json) and the client directory (client-map.json). Raw upstream
records are validated separately at the ingestion boundary
(see triage.core.ingest).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

PRIORITIES = ("URGENT", "HIGH", "MEDIUM", "LOW")
DEFAULT_PRIORITY = "MEDIUM"

STATUS_PENDING = "pending"
STATUS_PUSHED = "pushed"
STATUS_DISMISSED = "dismissed"


def _known_fields(cls: type, data: dict) -> dict:
    """Drop keys that are not dataclass fields of cls."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


@dataclass
class Task:
    """A normalized action item.

    `id` is the upstream object id and the natural key for deduplication.
    `is_filtered` is decided once at ingestion and never recomputed.
    """

    id: str
    title: str
    description: str = ""
    description_points: list[str] = field(default_factory=list)
    priority: str = DEFAULT_PRIORITY     # URGENT | HIGH | MEDIUM | LOW
    due_date: str | None = None          # ISO date YYYY-MM-DD
    source_type: str = "OTHER"
    source_id: str | None = None
    source_label: str | None = None
    people: list[str] = field(default_factory=list)
    domains: list[str] = field(default_factory=list)
    client_domain: str | None = None
    client_name: str | None = None
    list_id: str | None = None
    folder_name: str | None = None
    space_name: str | None = None
    meeting_id: str | None = None
    meeting_title: str | None = None
    meeting_attendees: list[str] = field(default_factory=list)
    meeting_date: str | None = None
    created_at: str | None = None        # ISO timestamp, reference for aging
    is_filtered: bool = False

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> Task:
        return cls(**_known_fields(cls, data))


@dataclass
class TaskStore:
    """Contents of tasks.json."""

    version: int = 1
    refreshed_at: str | None = None
    tasks: list[Task] = field(default_factory=list)
    dismissed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "refreshed_at": self.refreshed_at,
            "tasks": [t.to_dict() for t in self.tasks],
            "dismissed": list(self.dismissed),
        }

    @classmethod
    def from_dict(cls, data: dict) -> TaskStore:
        return cls(
            version=data.get("version", 1),
            refreshed_at=data.get("refreshed_at"),
            tasks=[Task.from_dict(t) for t in data.get("tasks", [])],
            dismissed=list(data.get("dismissed", [])),
        )


@dataclass
class SyncEntry:
    """One sync-ledger record: the task was created downstream."""

    remote_task_id: str
    remote_url: str
    routing_list_id: str
    client_domain: str = ""
    client_name: str = ""
    synced_at: str = ""
    title: str = ""

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> SyncEntry:
        return cls(**_known_fields(cls, data))


@dataclass
class ClientEntry:
    """Known routing target for a client domain."""

    name: str
    folder_id: str
    list_id: str
    list_name: str = "Projects"
    space: str = ""


@dataclass
class SpaceEntry:
    id: str = ""
    folders: dict[str, str] = field(default_factory=dict)  # folder name -> folder id


@dataclass
class FolderList:
    list_id: str
    list_name: str = ""


@dataclass
class ClientDirectory:
    """Contents of client-map.json."""

    own_domain: str = ""
    workspace_id: str = ""
    default_space: str = ""
    clients: dict[str, ClientEntry] = field(default_factory=dict)
    spaces: dict[str, SpaceEntry] = field(default_factory=dict)
    folder_lists: dict[str, FolderList] = field(default_factory=dict)  # folder id -> list

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> ClientDirectory:
        return cls(
            own_domain=data.get("own_domain", ""),
            workspace_id=data.get("workspace_id", ""),
            default_space=data.get("default_space", ""),
            clients={
                domain: ClientEntry(**_known_fields(ClientEntry, entry))
                for domain, entry in data.get("clients", {}).items()
            },
            spaces={
                name: SpaceEntry(**_known_fields(SpaceEntry, space))
                for name, space in data.get("spaces", {}).items()
            },
            folder_lists={
                folder_id: FolderList(**_known_fields(FolderList, info))
                for folder_id, info in data.get("folder_lists", {}).items()
            },
        )


@dataclass
class FolderOption:
    """A downstream folder the user can route a task to."""

    folder_id: str
    folder_name: str
    space_name: str
    list_id: str | None = None
    list_name: str | None = None
    display_label: str = ""


@dataclass
class EnrichedTask(Task):
    """A task merged with its computed status from the ledger and dismissed set."""

    sync_status: str = STATUS_PENDING
    remote_task_id: str | None = None
    remote_url: str | None = None
    synced_at: str | None = None
    inferred_org: str | None = None


@dataclass
class TaskStats:
    total: int = 0
    pending: int = 0
    pushed: int = 0
    dismissed: int = 0
    unresolved_client: int = 0
    overdue: int = 0
    unresolved_by_domain: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Meeting:
    """A meeting recording seen in the lookback window."""

    id: str
    title: str = ""
    created_at: str = ""
    attendees: list[str] = field(default_factory=list)


@dataclass
class MeetingContext:
    meeting_id: str
    title: str
    summary: str
    notes: str
    attendees: list[str] = field(default_factory=list)
    created_at: str = ""
    fetched_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> MeetingContext:
        return cls(**_known_fields(cls, data))


@dataclass
class RefreshResult:
    """Outcome of one refresh request."""

    added_count: int
    total_count: int
    refreshed_at: str | None
    rate_limited: bool = False
    retry_after: int = 0  # seconds until the next refresh is accepted
