"""Tests for triage.core.meeting_linker - same-day meeting linkage."""

from triage.core.meeting_linker import index_meetings_by_day, link_meeting
from triage.data.models import Meeting, Task

MEETINGS = [
    Meeting(id="M1", title="Globex weekly", created_at="2026-03-01T15:00:00Z", attendees=["dana@globex.com"]),
    Meeting(id="M2", title="Initech sync", created_at="2026-03-01T18:00:00Z"),
    Meeting(id="M3", title="Umbrella kickoff", created_at="2026-02-27T10:00:00Z"),
    Meeting(id="M4", title="No date", created_at=""),
]


class TestIndexMeetingsByDay:
    def test_first_meeting_per_day_wins(self):
        by_day = index_meetings_by_day(MEETINGS)
        assert by_day["2026-03-01"].id == "M1"
        assert by_day["2026-02-27"].id == "M3"
        assert len(by_day) == 2

    def test_offset_timestamps_use_utc_day(self):
        by_day = index_meetings_by_day([Meeting(id="M9", created_at="2026-03-01T23:30:00-05:00")])
        assert list(by_day) == ["2026-03-02"]


class TestLinkMeeting:
    def test_links_by_created_day(self):
        task = Task(id="A1", title="t", created_at="2026-03-01T09:00:00Z")
        linked = link_meeting(task, index_meetings_by_day(MEETINGS))
        assert linked.meeting_id == "M1"
        assert linked.meeting_title == "Globex weekly"
        assert linked.meeting_attendees == ["dana@globex.com"]
        assert linked.meeting_date == "2026-03-01"

    def test_meeting_date_takes_precedence(self):
        task = Task(id="A1", title="t", created_at="2026-03-01T09:00:00Z", meeting_date="2026-02-27")
        linked = link_meeting(task, index_meetings_by_day(MEETINGS))
        assert linked.meeting_id == "M3"
        assert linked.meeting_date == "2026-02-27"

    def test_existing_link_kept(self):
        task = Task(id="A1", title="t", created_at="2026-03-01T09:00:00Z",
                    meeting_id="M7", meeting_title="Direct")
        assert link_meeting(task, index_meetings_by_day(MEETINGS)) is task

    def test_no_meeting_that_day(self):
        task = Task(id="A1", title="t", created_at="2026-02-20T09:00:00Z")
        linked = link_meeting(task, index_meetings_by_day(MEETINGS))
        assert linked.meeting_id is None

    def test_no_reference_date(self):
        task = Task(id="A1", title="t")
        assert link_meeting(task, index_meetings_by_day(MEETINGS)) is task
