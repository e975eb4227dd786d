"""Tests for triage.core.transformer - raw action to Task."""

import pytest

from triage.core.ingest import RawAction
from triage.core.transformer import (
    UNTITLED,
    extract_points,
    normalize_priority,
    provisional_client_name,
    resolve_source_type,
    transform_action,
)

from conftest import contact, make_action, organization


def _transform(record, own_domain="acme.com"):
    return transform_action(RawAction.model_validate(record), own_domain)


class TestHelpers:
    @pytest.mark.parametrize("value,expected", [
        ("HIGH", "HIGH"),
        ("urgent", "URGENT"),
        (" low ", "LOW"),
        ("critical", "MEDIUM"),
        ("", "MEDIUM"),
        (None, "MEDIUM"),
    ])
    def test_normalize_priority(self, value, expected):
        assert normalize_priority(value) == expected

    def test_extract_points(self):
        text = "Context line\n- first\n  * second\n-\nnot a point"
        assert extract_points(text) == ["first", "second"]

    @pytest.mark.parametrize("structured,action_type,expected", [
        ("meeting_recording", "followup", "MEETING_RECORDING"),
        (None, "meeting_followup", "MEETING_RECORDING_FOLLOWUP"),
        (None, "Feature_Request", "FEATURE_REQUEST"),
        (None, "", "OTHER"),
    ])
    def test_resolve_source_type(self, structured, action_type, expected):
        assert resolve_source_type(structured, action_type) == expected

    def test_provisional_client_name(self):
        assert provisional_client_name("globex.com") == "Globex"
        assert provisional_client_name("initech.co.uk") == "Initech"


class TestTransformAction:
    def test_basic_fields(self):
        task = _transform(make_action(
            "A1", "Follow up on pricing",
            description="Need to confirm by Friday\n- send quote\n- book call",
            properties={"priority": "high", "dueDate": "2026-03-06", "sourceLabel": "Email thread"},
        ))
        assert task.id == "A1"
        assert task.title == "Follow up on pricing"
        assert task.description.startswith("Need to confirm")
        assert task.description_points == ["send quote", "book call"]
        assert task.priority == "HIGH"
        assert task.due_date == "2026-03-06"
        assert task.source_type == "FOLLOWUP"
        assert task.source_label == "Email thread"
        assert task.created_at == "2026-03-01T09:00:00Z"
        assert task.is_filtered is False

    def test_structured_points_preferred(self):
        task = _transform(make_action(
            description="- from text",
            properties={"descriptionPoints": '["from structure"]'},
        ))
        assert task.description_points == ["from structure"]

    def test_missing_title(self):
        assert _transform(make_action(title="")).title == UNTITLED

    def test_people_and_domains(self):
        task = _transform(make_action(relationships=[
            contact("dana@globex.com", "Dana"),
            contact("me@acme.com", "Me"),
            contact("lee@globex.com", "Lee"),
            contact("sam@initech.com", "Dana"),
        ]))
        assert task.people == ["Dana", "Me", "Lee", "Dana"]
        assert task.domains == ["globex.com", "initech.com"]

    def test_structured_domains_merged(self):
        task = _transform(make_action(
            relationships=[contact("dana@globex.com", "Dana")],
            properties={"domains": '["acme.com", "hooli.com", "globex.com"]', "people": ["Pat"]},
        ))
        assert task.domains == ["globex.com", "hooli.com"]
        assert task.people == ["Dana", "Pat"]

    def test_client_from_organization(self):
        task = _transform(make_action(relationships=[
            contact("dana@initech.com", "Dana"),
            organization("globex.com", "Globex Corporation"),
        ]))
        assert task.client_domain == "globex.com"
        assert task.client_name == "Globex Corporation"

    def test_own_organization_ignored(self):
        task = _transform(make_action(relationships=[
            organization("acme.com", "Acme"),
            contact("dana@initech.com", "Dana"),
        ]))
        assert task.client_domain == "initech.com"
        assert task.client_name == "Initech"

    def test_client_falls_back_to_first_external_domain(self):
        task = _transform(make_action(relationships=[
            contact("me@acme.com"),
            contact("dana@globex.com"),
            contact("sam@initech.com"),
        ]))
        assert task.client_domain == "globex.com"
        assert task.client_name == "Globex"

    def test_no_external_domain_leaves_client_empty(self):
        task = _transform(make_action(relationships=[contact("me@acme.com")]))
        assert task.client_domain is None
        assert task.client_name is None
        assert task.domains == []

    def test_meeting_recording_links_directly(self):
        task = _transform(make_action(properties={
            "sourceType": "MEETING_RECORDING",
            "sourceId": "M1",
            "sourceLabel": "Globex weekly",
            "assignedAt": "2026-02-27T16:30:00Z",
        }))
        assert task.meeting_id == "M1"
        assert task.meeting_title == "Globex weekly"
        assert task.meeting_date == "2026-02-27"

    def test_non_meeting_source_leaves_meeting_empty(self):
        task = _transform(make_action(properties={"sourceId": "E1", "sourceType": "EMAIL_RESPONSE"}))
        assert task.meeting_id is None
        assert task.source_id == "E1"

    def test_noise_flag(self):
        assert _transform(make_action(title="Recap for Globex sync")).is_filtered is True
        assert _transform(make_action(type="nudge")).is_filtered is True

    def test_deterministic(self):
        record = make_action(relationships=[contact("dana@globex.com", "Dana")])
        assert _transform(record) == _transform(record)
