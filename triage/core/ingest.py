"""
Action Triage - Ingestion boundary.

Pydantic models for the raw Day.ai records. Every upstream record is
validated here exactly once; past this module the pipeline works with typed
fields and never pokes at property bags.

Upstream quirks handled here:
- keys are camelCase ("objectId", "targetObjectType")
- list properties sometimes arrive as JSON-encoded strings
  ('["a", "b"]'); they are decoded once, and anything undecodable is
  treated as an empty list
- relationships and properties may be null
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from triage.data.models import Meeting, MeetingContext

logger = logging.getLogger(__name__)

CONTACT_TYPE = "native_contact"
ORGANIZATION_TYPE = "native_organization"


def parse_string_list(value: Any) -> list[str]:
    """Decode a list that may arrive as a JSON string. Failure yields []."""
    if value is None or value == "":
        return []
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None and str(item).strip()]


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class RawRelationship(_UpstreamModel):
    """A link from an action to a contact, organization or meeting."""

    target_object_id: str = ""
    target_object_type: str = ""
    relationship_type: str = ""
    target_object_properties: dict[str, Any] = Field(default_factory=dict)

    @field_validator("target_object_id", "target_object_type", "relationship_type", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("target_object_properties", mode="before")
    @classmethod
    def _none_to_dict(cls, v: Any) -> dict:
        return v if isinstance(v, dict) else {}

    @property
    def display_name(self) -> str | None:
        return _optional_str(
            self.target_object_properties.get("name")
            or self.target_object_properties.get("title")
        )


class ActionProperties(_UpstreamModel):
    """The structured properties Day.ai attaches to an action."""

    title: str | None = None
    description: str | None = None
    type: str | None = None
    source_type: str | None = None
    source_id: str | None = None
    source_label: str | None = None
    priority: str | None = None
    due_date: str | None = None
    meeting_date: str | None = None
    assigned_at: str | None = None
    description_points: list[str] = Field(default_factory=list)
    people: list[str] = Field(default_factory=list)
    domains: list[str] = Field(default_factory=list)

    @field_validator(
        "title", "description", "type", "source_type", "source_id",
        "source_label", "priority", "due_date", "meeting_date", "assigned_at",
        mode="before",
    )
    @classmethod
    def _clean_str(cls, v: Any) -> str | None:
        return _optional_str(v)

    @field_validator("description_points", "people", "domains", mode="before")
    @classmethod
    def _decode_list(cls, v: Any) -> list[str]:
        return parse_string_list(v)


class RawAction(_UpstreamModel):
    """One native_action record as returned by search_objects."""

    object_id: str = Field(min_length=1)
    title: str = ""
    description: str = ""
    type: str = ""
    status: str = ""
    created_at: str = ""
    updated_at: str = ""
    properties: ActionProperties = Field(default_factory=ActionProperties)
    relationships: list[RawRelationship] = Field(default_factory=list)

    @field_validator("title", "description", "type", "status", "created_at", "updated_at", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("properties", mode="before")
    @classmethod
    def _none_to_properties(cls, v: Any) -> Any:
        return v if isinstance(v, (dict, ActionProperties)) else {}

    @field_validator("relationships", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []


class RawMeeting(_UpstreamModel):
    """One native_meetingrecording record."""

    object_id: str = Field(min_length=1)
    title: str = ""
    created_at: str = ""
    relationships: list[RawRelationship] = Field(default_factory=list)

    @field_validator("title", "created_at", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("relationships", mode="before")
    @classmethod
    def _none_to_list(cls, v: Any) -> Any:
        return v if isinstance(v, list) else []

    def to_meeting(self) -> Meeting:
        attendees = [
            rel.target_object_id
            for rel in self.relationships
            if rel.target_object_type == CONTACT_TYPE and rel.target_object_id
        ]
        return Meeting(
            id=self.object_id,
            title=self.title,
            created_at=self.created_at,
            attendees=attendees,
        )


def parse_actions(records: list[dict]) -> list[RawAction]:
    """Validate raw action records, skipping (and logging) invalid ones."""
    actions: list[RawAction] = []
    for record in records:
        try:
            actions.append(RawAction.model_validate(record))
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid action record %r: %s",
                record.get("objectId") if isinstance(record, dict) else record,
                exc.errors()[0]["msg"],
            )
    return actions


def parse_meetings(records: list[dict]) -> list[Meeting]:
    """Validate raw meeting records into Meeting objects, skipping invalid ones."""
    meetings: list[Meeting] = []
    for record in records:
        try:
            meetings.append(RawMeeting.model_validate(record).to_meeting())
        except ValidationError as exc:
            logger.warning("Skipping invalid meeting record: %s", exc.errors()[0]["msg"])
    return meetings


# ---------------------------------------------------------------------------
# Meeting context (get_meeting_recording_context)
# ---------------------------------------------------------------------------

_TITLE_RE = re.compile(r"^Title:\s*(.+)$", re.MULTILINE)
_PARTICIPANTS_RE = re.compile(r"^Participants:\s*(.+)$", re.MULTILINE)
_STORED_AT_RE = re.compile(r"^Stored At:\s*(.+)$", re.MULTILINE)
_SUMMARY_FALLBACK_CHARS = 500


def parse_meeting_context(meeting_id: str, context_string: str, fetched_at: str) -> MeetingContext:
    """Parse Day.ai's single contextString into a MeetingContext.

    The string carries "Title:", "Participants:" and "Stored At:" header
    lines followed by a "Transcript:" section. Everything before the
    transcript is used as the summary.
    """
    context_string = context_string or ""

    title_match = _TITLE_RE.search(context_string)
    participants_match = _PARTICIPANTS_RE.search(context_string)
    stored_at_match = _STORED_AT_RE.search(context_string)

    attendees: list[str] = []
    if participants_match:
        attendees = [p.strip() for p in participants_match.group(1).split(",") if p.strip()]

    transcript_idx = context_string.find("Transcript:")
    if transcript_idx > 0:
        summary = context_string[:transcript_idx].strip()
    else:
        summary = context_string[:_SUMMARY_FALLBACK_CHARS]

    return MeetingContext(
        meeting_id=meeting_id,
        title=title_match.group(1).strip() if title_match else "",
        summary=summary,
        notes=context_string,
        attendees=attendees,
        created_at=stored_at_match.group(1).strip() if stored_at_match else "",
        fetched_at=fetched_at,
    )
