"""
Action Triage - Fuzzy Matcher.

Token-based similarity used to rank client and folder names against a
free-text hint ("Acme Corp", "acme-corp.io", "AcmeCorp"), plus a heuristic
that guesses an organization name from a task's free text when no
structured relationship exists.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from rapidfuzz.distance import Levenshtein

_CAMEL_RE = re.compile(r"([a-z])([A-Z])")
_ACRONYM_RE = re.compile(r"([A-Z]+)([A-Z][a-z])")
_SPLIT_RE = re.compile(r"[\s\-_./]+")

EXACT_SCORE = 1.0
SUBSTRING_SCORE = 0.8
DEFAULT_THRESHOLD = 0.25


def tokenize(text: str) -> list[str]:
    """Split a name into lowercase tokens.

    Splits camelCase ("acmeCorp") and ACRONYMWord ("HTTPServer") boundaries,
    then whitespace, hyphens, dots, underscores and slashes. Tokens of one
    character are dropped.
    """
    if not text:
        return []
    text = _CAMEL_RE.sub(r"\1 \2", text)
    text = _ACRONYM_RE.sub(r"\1 \2", text)
    return [t.lower() for t in _SPLIT_RE.split(text) if len(t) > 1]


def levenshtein(a: str, b: str) -> int:
    """Edit distance between two strings (insert, delete, substitute)."""
    return Levenshtein.distance(a, b)


def _token_score(query_token: str, target_token: str) -> float:
    if query_token == target_token:
        return EXACT_SCORE
    if query_token in target_token or target_token in query_token:
        return SUBSTRING_SCORE
    longest = max(len(query_token), len(target_token))
    distance = levenshtein(query_token, target_token)
    # Tolerate one edit per four characters
    if distance <= longest // 4:
        return 1 - distance / longest
    return 0.0


def similarity(query_tokens: list[str], target_tokens: list[str]) -> float:
    """Score how well target_tokens cover query_tokens, in [0, 1].

    Each query token takes its best score against any target token.
    The sum is divided by the size of the token union, so extra,
    unmatched target tokens lower the score.
    """
    if not query_tokens or not target_tokens:
        return 0.0

    total = 0.0
    for qt in query_tokens:
        best = 0.0
        for tt in target_tokens:
            best = max(best, _token_score(qt, tt))
            if best == EXACT_SCORE:
                break
        total += best

    union_size = len(set(query_tokens) | set(target_tokens))
    return min(1.0, total / union_size)


@dataclass
class MatchResult:
    """A candidate index and its score (0 to 1, higher is better)."""

    index: int
    score: float


def fuzzy_match(
    query: str,
    candidates: list[str],
    threshold: float = DEFAULT_THRESHOLD,
) -> list[MatchResult]:
    """Rank candidates against query, best first.

    Only candidates scoring at or above threshold are returned. Ties keep
    candidate order.
    """
    query_tokens = tokenize(query)
    if not query_tokens:
        return []

    results: list[MatchResult] = []
    for index, candidate in enumerate(candidates):
        score = similarity(query_tokens, tokenize(candidate))
        if score >= threshold:
            results.append(MatchResult(index=index, score=score))

    results.sort(key=lambda r: r.score, reverse=True)
    return results


# ---------------------------------------------------------------------------
# Organization name inference from free text
# ---------------------------------------------------------------------------

_PROPER_NOUN = r"([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){0,2})"

_ORG_PATTERNS = (
    re.compile(r"(?:for|with|at)\s+" + _PROPER_NOUN),
    re.compile(_PROPER_NOUN + r"\s+(?:needs?|wants?|requested|asked)"),
    re.compile(r"(?:[Ff]rom|[Rr][Ee]:?)\s+" + _PROPER_NOUN),
)

_ORG_STOPWORDS = frozenset({
    "the", "and", "for", "with", "from", "about", "after", "before",
    "send", "follow", "check", "update", "review", "schedule", "meeting",
    "email", "call", "recap", "next", "steps", "action", "item", "task",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "january", "february", "march", "april", "may", "june", "july",
    "august", "september", "october", "november", "december",
})


def extract_org_name(title: str, description: str | None = None) -> str | None:
    """Guess an organization name from a task's title and description.

    Looks for capitalized words after "for/with/at", before
    "needs/wants/requested/asked", or after "from/re:". Candidates made only
    of common words, weekdays or months are skipped.
    """
    text = f"{title or ''} {description or ''}"

    for pattern in _ORG_PATTERNS:
        for match in pattern.finditer(text):
            candidate = match.group(1).strip()
            words = candidate.split()
            if all(w.lower() in _ORG_STOPWORDS for w in words):
                continue
            if len(candidate) >= 3:
                return candidate
    return None
