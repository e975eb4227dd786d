"""
Action Triage - Noise Classifier.

Flags administrative, non-actionable action items (meeting recaps,
"send the notes" reminders, per-person bucket labels, nudges) so the
dashboard can hide them by default.

The patterns are data, not code: NoiseRules can be loaded from a JSON file
(NOISE_RULES_PATH) to tune the classifier without touching this module.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoiseRules:
    """Regex patterns and source types that mark an action as noise.

    Title and description patterns are matched with re.search, so anchor
    them with ^ where a prefix match is intended. Flags are part of each
    pattern (e.g. "(?i)").
    """

    title_patterns: tuple[str, ...] = ()
    description_patterns: tuple[str, ...] = ()
    noise_source_types: frozenset[str] = field(default_factory=frozenset)


# Words that start real follow-ups ("Review tasks", "Open tasks") rather
# than a person's name in a bucket label.
_TASK_VERBS = (
    "add", "all", "assign", "archive", "check", "clean", "close", "complete",
    "create", "delegate", "finish", "list", "merge", "move", "new", "open",
    "organize", "other", "outstanding", "overdue", "pending", "plan",
    "prioritize", "reassign", "remaining", "reorder", "review", "schedule",
    "sort", "split", "sync", "track", "triage", "update", "urgent",
)
_NOT_A_VERB = r"(?!(?i:" + "|".join(_TASK_VERBS) + r")\b)"

DEFAULT_NOISE_RULES = NoiseRules(
    title_patterns=(
        r"(?i)recap",
        r"(?i)^(?:send|share)\s+(?:the\s+)?(?:meeting\s+notes|summary|recap)",
        # "Krishna tasks", "Dana's tasks": per-person bucket labels
        r"^" + _NOT_A_VERB + r"[A-Z][a-z]+(?:\s+[A-Z][a-z]+)?(?:'s)?\s+[Tt]asks\s*$",
    ),
    description_patterns=(
        r"^\s*Completed -",
        r"(?i)\b(?:send|sent|sending|share|shared)\b[^.\n]*\b(?:meeting\s+)?recap\b",
    ),
    noise_source_types=frozenset({"NUDGE", "SCHEDULE_MEETING"}),
)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern:
    return re.compile(pattern)


def is_noise(
    title: str,
    description: str,
    source_type: str | None = None,
    rules: NoiseRules = DEFAULT_NOISE_RULES,
) -> bool:
    """Return True if the action looks administrative or non-actionable.

    Pure function: no I/O, no side effects.
    """
    title = title or ""
    description = description or ""

    if any(_compile(p).search(title) for p in rules.title_patterns):
        return True
    if any(_compile(p).search(description) for p in rules.description_patterns):
        return True
    if source_type and source_type.upper() in rules.noise_source_types:
        return True
    return False


def load_noise_rules(path: str | Path | None) -> NoiseRules:
    """Load NoiseRules from a JSON file, falling back to the defaults.

    Expected keys (all optional): "title_patterns", "description_patterns",
    "noise_source_types". A missing key keeps the default for that key.
    """
    if not path:
        return DEFAULT_NOISE_RULES

    rules_path = Path(path)
    if not rules_path.exists():
        logger.warning("Noise rules file %s not found, using defaults", rules_path)
        return DEFAULT_NOISE_RULES

    try:
        data = json.loads(rules_path.read_text(encoding="utf-8"))
        rules = NoiseRules(
            title_patterns=tuple(
                data.get("title_patterns", DEFAULT_NOISE_RULES.title_patterns)
            ),
            description_patterns=tuple(
                data.get("description_patterns", DEFAULT_NOISE_RULES.description_patterns)
            ),
            noise_source_types=frozenset(
                t.upper()
                for t in data.get("noise_source_types", DEFAULT_NOISE_RULES.noise_source_types)
            ),
        )
        # Compile every pattern once so a bad regex is rejected here
        for pattern in rules.title_patterns + rules.description_patterns:
            _compile(pattern)
    except (json.JSONDecodeError, OSError, TypeError, AttributeError, re.error) as exc:
        logger.warning("Invalid noise rules file %s (%s), using defaults", rules_path, exc)
        return DEFAULT_NOISE_RULES

    logger.info("Loaded noise rules from %s", rules_path)
    return rules
