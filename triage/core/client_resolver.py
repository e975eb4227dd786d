"""
Action Triage - Client Resolver.

Maps a task's provisional client hint onto the persisted client directory
(client-map.json) and its downstream routing target (list / folder / space).

The directory is authoritative: when it knows the client domain, its values
replace whatever the transformer guessed. When it does not, the task keeps
null routing fields and shows up as "unresolved" until the user assigns a
folder. The first assignment for a domain is written back so later tasks
from the same client resolve on their own.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from triage.core.fuzzy_match import DEFAULT_THRESHOLD, MatchResult, fuzzy_match
from triage.data.models import ClientDirectory, ClientEntry, FolderOption, Task

logger = logging.getLogger(__name__)

# A client name must match a folder this well before the folder is
# pre-filled without a directory entry.
FOLDER_AUTOFILL_THRESHOLD = 0.5


def apply_directory(task: Task, directory: ClientDirectory) -> Task:
    """Return a copy of task with directory values applied, if any."""
    if task.client_domain and task.client_domain in directory.clients:
        entry = directory.clients[task.client_domain]
        return replace(
            task,
            client_name=entry.name,
            list_id=entry.list_id or None,
            folder_name=entry.name,
            space_name=entry.space or None,
        )

    if task.client_name and task.folder_name is None:
        folder = _best_folder(task.client_name, directory)
        if folder is not None:
            logger.debug(
                "Task %s: client %r looks like folder %r in %r",
                task.id, task.client_name, folder.folder_name, folder.space_name,
            )
            return replace(task, folder_name=folder.folder_name, space_name=folder.space_name)

    return task


def _best_folder(name: str, directory: ClientDirectory) -> FolderOption | None:
    options = list_folder_options(directory)
    matches = fuzzy_match(name, [o.folder_name for o in options], FOLDER_AUTOFILL_THRESHOLD)
    if not matches:
        return None
    return options[matches[0].index]


def list_folder_options(directory: ClientDirectory) -> list[FolderOption]:
    """All folders in the directory's spaces, sorted by display label.

    List ids come from folder_lists, overridden by client entries that name
    both a folder and a list.
    """
    folder_to_list: dict[str, tuple[str, str]] = {
        folder_id: (info.list_id, info.list_name)
        for folder_id, info in directory.folder_lists.items()
    }
    for client in directory.clients.values():
        if client.folder_id and client.list_id:
            folder_to_list[client.folder_id] = (client.list_id, client.list_name)

    options: list[FolderOption] = []
    for space_name, space in directory.spaces.items():
        for folder_name, folder_id in space.folders.items():
            list_id, list_name = folder_to_list.get(folder_id, (None, None))
            options.append(
                FolderOption(
                    folder_id=folder_id,
                    folder_name=folder_name,
                    space_name=space_name,
                    list_id=list_id or None,
                    list_name=list_name or None,
                    display_label=f"{space_name} > {folder_name}",
                )
            )

    options.sort(key=lambda o: o.display_label.lower())
    return options


def resolve_client_suggestions(
    hint: str,
    candidates: list[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[MatchResult]:
    """Rank candidate client or folder names against a free-text hint."""
    return fuzzy_match(hint, candidates, threshold)


def suggestion_hint(task: Task) -> str:
    """The text used to look up folders for a task: client name, else domain label."""
    if task.client_name:
        return task.client_name
    if task.client_domain:
        return task.client_domain.split(".")[0]
    return ""


def suggest_folders(
    task: Task,
    options: list[FolderOption],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[tuple[FolderOption, float]]:
    """Folder options ranked by similarity to the task's client, best first."""
    hint = suggestion_hint(task)
    if not hint:
        return []
    matches = resolve_client_suggestions(hint, [o.folder_name for o in options], threshold)
    return [(options[m.index], m.score) for m in matches]


def record_assignment(
    directory: ClientDirectory,
    task: Task,
    folder_id: str,
    list_id: str,
    folder_name: str,
    space_name: str,
) -> bool:
    """Remember a folder assignment for the task's client domain.

    Write-once: an existing entry for the domain is never replaced here.
    Returns True if the directory gained a new entry.
    """
    if not task.client_domain:
        return False
    if task.client_domain in directory.clients:
        logger.debug(
            "Directory already maps %s, not overwriting", task.client_domain,
        )
        return False

    directory.clients[task.client_domain] = ClientEntry(
        name=task.client_name or folder_name,
        folder_id=folder_id,
        list_id=list_id,
        list_name="Projects",
        space=space_name,
    )
    logger.info("Mapped client domain %s to folder %s", task.client_domain, folder_name)
    return True
