"""
Action Triage - Action Transformer.

Turns one validated RawAction into the normalized Task shape: bullet
points, priority, provenance, people/domains, a provisional client hint,
direct meeting linkage for meeting-recording actions, and the noise flag.

transform_action is pure and deterministic. Directory lookups and
date-based meeting linking happen later in the refresh cycle.
"""

from __future__ import annotations

from triage.core.ingest import CONTACT_TYPE, ORGANIZATION_TYPE, RawAction
from triage.core.noise import DEFAULT_NOISE_RULES, NoiseRules, is_noise
from triage.data.models import DEFAULT_PRIORITY, PRIORITIES, Task

UNTITLED = "Untitled action"

# Day.ai action "type" values -> source type tags
_TYPE_MAP = {
    "meeting_followup": "MEETING_RECORDING_FOLLOWUP",
    "email_response": "EMAIL_RESPONSE",
    "support": "SUPPORT",
    "followup": "FOLLOWUP",
    "schedule_meeting": "SCHEDULE_MEETING",
}

MEETING_SOURCE_TYPES = frozenset({"MEETING_RECORDING", "MEETING_RECORDING_FOLLOWUP"})


def normalize_priority(value: str | None) -> str:
    """Map any input onto URGENT/HIGH/MEDIUM/LOW, defaulting to MEDIUM."""
    if not value:
        return DEFAULT_PRIORITY
    candidate = str(value).strip().upper()
    return candidate if candidate in PRIORITIES else DEFAULT_PRIORITY


def extract_points(text: str) -> list[str]:
    """Collect lines starting with '-' or '*' as bullet points."""
    points: list[str] = []
    for line in (text or "").splitlines():
        stripped = line.strip()
        if stripped.startswith(("-", "*")):
            point = stripped.lstrip("-*").strip()
            if point:
                points.append(point)
    return points


def resolve_source_type(structured: str | None, action_type: str) -> str:
    """Prefer the structured sourceType, else map the action's type string."""
    if structured:
        return structured.upper()
    if not action_type:
        return "OTHER"
    return _TYPE_MAP.get(action_type.lower(), action_type.upper())


def domain_of(email: str) -> str | None:
    if not email or "@" not in email:
        return None
    domain = email.rsplit("@", 1)[1].strip().lower()
    return domain or None


def provisional_client_name(domain: str) -> str:
    """'acme.com' -> 'Acme'."""
    label = domain.split(".")[0]
    return label[:1].upper() + label[1:]


def transform_action(
    action: RawAction,
    own_domain: str,
    rules: NoiseRules = DEFAULT_NOISE_RULES,
) -> Task:
    """Convert a raw upstream action into a Task."""
    props = action.properties
    own_domain = (own_domain or "").lower()

    title = (action.title or props.title or "").strip() or UNTITLED
    description = (action.description or props.description or "").strip()
    points = list(props.description_points) or extract_points(description)

    source_type = resolve_source_type(props.source_type, action.type or props.type or "")

    people: list[str] = []
    domains: list[str] = []
    client_domain: str | None = None
    client_name: str | None = None

    def _add_domain(domain: str | None) -> None:
        if domain and domain != own_domain and domain not in domains:
            domains.append(domain)

    for rel in action.relationships:
        if rel.target_object_type == CONTACT_TYPE:
            if rel.display_name:
                people.append(rel.display_name)
            _add_domain(domain_of(rel.target_object_id))
        elif rel.target_object_type == ORGANIZATION_TYPE:
            org_domain = rel.target_object_id.strip().lower()
            # A later organization relationship replaces an earlier one
            if org_domain and org_domain != own_domain:
                client_domain = org_domain
                client_name = rel.display_name or org_domain.split(".")[0]

    people.extend(props.people)
    for domain in props.domains:
        _add_domain(domain.strip().lower())

    # Fallback: first external domain in relationship order
    if client_domain is None and domains:
        client_domain = domains[0]
        client_name = provisional_client_name(client_domain)

    meeting_id: str | None = None
    meeting_title: str | None = None
    meeting_date = props.meeting_date
    if source_type in MEETING_SOURCE_TYPES and props.source_id:
        meeting_id = props.source_id
        meeting_title = props.source_label
        if not meeting_date and props.assigned_at:
            meeting_date = props.assigned_at.split("T")[0]

    return Task(
        id=action.object_id,
        title=title,
        description=description,
        description_points=points,
        priority=normalize_priority(props.priority),
        due_date=props.due_date,
        source_type=source_type,
        source_id=props.source_id,
        source_label=props.source_label,
        people=people,
        domains=domains,
        client_domain=client_domain,
        client_name=client_name,
        meeting_id=meeting_id,
        meeting_title=meeting_title,
        meeting_date=meeting_date,
        created_at=action.created_at or None,
        is_filtered=is_noise(title, description, source_type, rules),
    )
