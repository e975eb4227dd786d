"""
Action Triage - Meeting Linker.

Attaches a meeting to tasks that arrived without structured meeting
linkage, by matching calendar days.

Known precision limit: when several meetings fall on the task's day, the
first one in fetch order wins. There is no tie-break on attendees, time of
day or title, so a task from the second meeting of a busy day can be linked
to the wrong one.
"""

from __future__ import annotations

from dataclasses import replace

from triage.core.dates import date_key
from triage.data.models import Meeting, Task


def index_meetings_by_day(meetings: list[Meeting]) -> dict[str, Meeting]:
    """Map each UTC calendar day to the first meeting seen on it."""
    by_day: dict[str, Meeting] = {}
    for meeting in meetings:
        key = date_key(meeting.created_at)
        if key and key not in by_day:
            by_day[key] = meeting
    return by_day


def link_meeting(task: Task, meetings_by_day: dict[str, Meeting]) -> Task:
    """Return a copy of task linked to a same-day meeting, if it has none yet.

    The task's day is taken from meeting_date, else created_at.
    """
    if task.meeting_id or not meetings_by_day:
        return task

    key = date_key(task.meeting_date) or date_key(task.created_at)
    if key is None:
        return task

    meeting = meetings_by_day.get(key)
    if meeting is None:
        return task

    return replace(
        task,
        meeting_id=meeting.id,
        meeting_title=meeting.title or None,
        meeting_attendees=list(meeting.attendees),
        meeting_date=task.meeting_date or key,
    )
