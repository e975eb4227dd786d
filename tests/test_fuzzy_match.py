"""Tests for triage.core.fuzzy_match - tokenizing, scoring and org inference."""

import pytest

from triage.core.fuzzy_match import (
    extract_org_name,
    fuzzy_match,
    levenshtein,
    similarity,
    tokenize,
)


# ---------------------------------------------------------------------------
# tokenize
# ---------------------------------------------------------------------------


class TestTokenize:
    def test_lowercases_and_splits_whitespace(self):
        assert tokenize("Acme Corp") == ["acme", "corp"]

    def test_splits_camel_case(self):
        assert tokenize("acmeCorp") == ["acme", "corp"]

    def test_splits_acronym_boundary(self):
        assert tokenize("HTTPServer") == ["http", "server"]

    def test_splits_punctuation(self):
        assert tokenize("acme-corp.io/north_east") == ["acme", "corp", "io", "north", "east"]

    def test_drops_single_characters(self):
        assert tokenize("A B Acme") == ["acme"]

    def test_empty(self):
        assert tokenize("") == []


class TestLevenshtein:
    @pytest.mark.parametrize("a,b,expected", [
        ("", "", 0),
        ("abc", "", 3),
        ("", "abc", 3),
        ("kitten", "sitting", 3),
        ("acme", "acne", 1),
        ("same", "same", 0),
    ])
    def test_distances(self, a, b, expected):
        assert levenshtein(a, b) == expected


# ---------------------------------------------------------------------------
# similarity
# ---------------------------------------------------------------------------


class TestSimilarity:
    def test_identical_is_one(self):
        assert similarity(["acme", "corp"], ["acme", "corp"]) == 1.0

    def test_empty_is_zero(self):
        assert similarity([], ["acme"]) == 0.0
        assert similarity(["acme"], []) == 0.0

    def test_extra_target_tokens_penalized(self):
        # 1 exact match over a union of 2 tokens
        assert similarity(["acme"], ["acme", "corp"]) == pytest.approx(0.5)

    def test_substring_scores_point_eight(self):
        # "globex" is inside "globexcorp": 0.8 over a union of 2
        assert similarity(["globex"], ["globexcorp"]) == pytest.approx(0.4)

    def test_edit_distance_within_tolerance(self):
        # "initech" vs "initach": 1 edit, tolerance 7 // 4 = 1
        assert similarity(["initech"], ["initach"]) == pytest.approx((1 - 1 / 7) / 2)

    def test_edit_distance_beyond_tolerance(self):
        assert similarity(["acme"], ["zzzz"]) == 0.0

    def test_monotonic_on_better_match(self):
        exact = similarity(tokenize("Acme"), tokenize("Acme Corp"))
        near = similarity(tokenize("Acme"), tokenize("Bcme Corp"))
        assert exact > near


# ---------------------------------------------------------------------------
# fuzzy_match
# ---------------------------------------------------------------------------


class TestFuzzyMatch:
    def test_ranks_best_first(self):
        candidates = ["Umbrella Corporation", "Acme Corp", "Acme"]
        results = fuzzy_match("Acme", candidates)
        assert [r.index for r in results] == [2, 1]
        assert results[0].score == 1.0

    def test_threshold_filters(self):
        results = fuzzy_match("Acme", ["Acme Corp Holdings International"], threshold=0.5)
        assert results == []

    def test_score_equal_to_threshold_included(self):
        results = fuzzy_match("Acme", ["Acme Corp"], threshold=0.5)
        assert len(results) == 1

    def test_empty_query(self):
        assert fuzzy_match("", ["Acme"]) == []
        assert fuzzy_match("a", ["Acme"]) == []

    def test_domain_style_query(self):
        results = fuzzy_match("globex.com", ["Globex", "Initech"])
        assert results[0].index == 0


# ---------------------------------------------------------------------------
# extract_org_name
# ---------------------------------------------------------------------------


class TestExtractOrgName:
    def test_for_pattern(self):
        assert extract_org_name("Prepare proposal for Globex Corp") == "Globex Corp"

    def test_needs_pattern(self):
        assert extract_org_name("Initech needs updated invoice") == "Initech"

    def test_from_pattern_in_description(self):
        assert extract_org_name("Reply to questions", "Questions from Umbrella about SSO") == "Umbrella"

    def test_skips_weekday(self):
        assert extract_org_name("Send deck before call on Friday", "Meeting with Friday") is None

    def test_skips_stopword_then_finds_org(self):
        assert extract_org_name("Check in with Monday", "pricing questions with Hooli") == "Hooli"

    def test_no_capitalized_candidate(self):
        assert extract_org_name("follow up on pricing") is None

    def test_too_short(self):
        assert extract_org_name("Ping for Al") is None
