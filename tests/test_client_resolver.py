"""Tests for triage.core.client_resolver - directory lookups and write-back."""

import pytest

from triage.core.client_resolver import (
    apply_directory,
    list_folder_options,
    record_assignment,
    suggest_folders,
    suggestion_hint,
)
from triage.data.models import ClientDirectory, Task


def _task(**kwargs):
    defaults = {"id": "A1", "title": "Follow up on pricing"}
    defaults.update(kwargs)
    return Task(**defaults)


class TestApplyDirectory:
    def test_known_domain_overrides_guess(self, directory):
        task = _task(client_domain="globex.com", client_name="Globex Corporation Ltd")
        resolved = apply_directory(task, directory)
        assert resolved.client_name == "Globex"
        assert resolved.list_id == "L-GLOBEX"
        assert resolved.folder_name == "Globex"
        assert resolved.space_name == "Clients"

    def test_does_not_mutate_input(self, directory):
        task = _task(client_domain="globex.com", client_name="Globex Corp")
        apply_directory(task, directory)
        assert task.list_id is None
        assert task.client_name == "Globex Corp"

    def test_unknown_domain_autofills_folder_without_list(self, directory):
        task = _task(client_domain="initech.com", client_name="Initech")
        resolved = apply_directory(task, directory)
        assert resolved.folder_name == "Initech"
        assert resolved.space_name == "Clients"
        assert resolved.list_id is None
        assert resolved.client_name == "Initech"

    def test_autofill_threshold_is_inclusive(self, directory):
        # "umbrella" vs "umbrella corporation" scores exactly 0.5
        resolved = apply_directory(_task(client_domain="umbrella.com", client_name="Umbrella"), directory)
        assert resolved.folder_name == "Umbrella Corporation"

    def test_unknown_client_left_unresolved(self, directory):
        task = _task(client_domain="hooli.com", client_name="Hooli")
        assert apply_directory(task, directory) == task

    def test_no_client_unchanged(self, directory):
        task = _task()
        assert apply_directory(task, directory) == task


class TestFolderOptions:
    def test_lists_every_folder_sorted(self, directory):
        labels = [o.display_label for o in list_folder_options(directory)]
        assert labels == [
            "Clients > Globex",
            "Clients > Initech",
            "Clients > Umbrella Corporation",
            "Internal > Operations",
        ]

    def test_list_ids_from_clients_and_folder_lists(self, directory):
        options = {o.folder_name: o for o in list_folder_options(directory)}
        assert options["Globex"].list_id == "L-GLOBEX"
        assert options["Initech"].list_id == "L-INITECH"
        assert options["Umbrella Corporation"].list_id is None

    def test_empty_directory(self):
        assert list_folder_options(ClientDirectory()) == []


class TestSuggestFolders:
    def test_hint_prefers_client_name(self):
        assert suggestion_hint(_task(client_name="Globex", client_domain="gx.io")) == "Globex"
        assert suggestion_hint(_task(client_domain="initech.com")) == "initech"
        assert suggestion_hint(_task()) == ""

    def test_ranked_suggestions(self, directory):
        options = list_folder_options(directory)
        suggestions = suggest_folders(_task(client_name="Umbrella"), options)
        assert len(suggestions) == 1
        option, score = suggestions[0]
        assert option.folder_name == "Umbrella Corporation"
        assert score == pytest.approx(0.5)

    def test_no_hint_no_suggestions(self, directory):
        assert suggest_folders(_task(), list_folder_options(directory)) == []


class TestRecordAssignment:
    def test_first_assignment_writes_entry(self, directory):
        task = _task(client_domain="initech.com", client_name="Initech")
        assert record_assignment(directory, task, "F-INITECH", "L-INITECH", "Initech", "Clients") is True
        entry = directory.clients["initech.com"]
        assert entry.name == "Initech"
        assert entry.folder_id == "F-INITECH"
        assert entry.list_id == "L-INITECH"
        assert entry.list_name == "Projects"
        assert entry.space == "Clients"

    def test_existing_entry_not_overwritten(self, directory):
        task = _task(client_domain="globex.com", client_name="Globex")
        assert record_assignment(directory, task, "F-OPS", "L-OPS", "Operations", "Internal") is False
        assert directory.clients["globex.com"].list_id == "L-GLOBEX"

    def test_second_assignment_is_noop(self, directory):
        task = _task(client_domain="initech.com", client_name="Initech")
        record_assignment(directory, task, "F-INITECH", "L-INITECH", "Initech", "Clients")
        assert record_assignment(directory, task, "F-OPS", "L-OPS", "Operations", "Internal") is False
        assert directory.clients["initech.com"].folder_id == "F-INITECH"

    def test_no_domain_is_noop(self, directory):
        assert record_assignment(directory, _task(), "F-OPS", "L-OPS", "Operations", "Internal") is False
        assert set(directory.clients) == {"globex.com"}

    def test_name_falls_back_to_folder(self, directory):
        task = _task(client_domain="hooli.com")
        record_assignment(directory, task, "F-OPS", "L-OPS", "Operations", "Internal")
        assert directory.clients["hooli.com"].name == "Operations"
