"""Fuzzy matching of free-text status values against target patterns.

Scores are produced by the first applicable rule:

1. equal text scores 1.0
2. one text containing the other scores 0.8
3. shared words score 0.6 scaled by the overlap
4. otherwise same-position characters score up to 0.4
"""

import re
from collections.abc import Iterable, Sequence

import structlog

from src.status.models import Classification, MatchResult, StatusMatch


logger = structlog.get_logger()

DEFAULT_MATCH_THRESHOLD = 0.5

EXACT_SCORE = 1.0
CONTAINS_SCORE = 0.8
WORD_OVERLAP_WEIGHT = 0.6
CHARACTER_OVERLAP_WEIGHT = 0.4

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_status_text(text: str) -> str:
    """Canonicalize a status string for comparison.

    Lower-cases, treats underscores as spaces, collapses runs of
    whitespace and trims.

    Args:
        text: Raw status text.

    Returns:
        Comparable text.
    """
    return _WHITESPACE_RE.sub(" ", text.lower().replace("_", " ")).strip()


def similarity(first: str, second: str) -> float:
    """Score how closely two status strings resemble each other.

    Args:
        first: First status.
        second: Second status.

    Returns:
        Score in [0, 1].
    """
    a = normalize_status_text(first)
    b = normalize_status_text(second)

    if a == b:
        return EXACT_SCORE
    if not a or not b:
        return 0.0

    if a in b or b in a:
        return CONTAINS_SCORE

    words_a = a.split(" ")
    words_b = b.split(" ")
    common = [word for word in words_a if word in words_b]
    if common:
        return WORD_OVERLAP_WEIGHT * len(common) / max(len(words_a), len(words_b))

    matches = sum(1 for x, y in zip(a, b, strict=False) if x == y)
    return matches / max(len(a), len(b)) * CHARACTER_OVERLAP_WEIGHT


def best_match(
    candidate: str,
    targets: Iterable[str],
    threshold: float = DEFAULT_MATCH_THRESHOLD,
) -> MatchResult | None:
    """Find the target most similar to a candidate.

    Only strictly better scores replace the running best, so ties go to
    the earliest target.

    Args:
        candidate: Observed status.
        targets: Target patterns in priority order.
        threshold: Minimum acceptable score.

    Returns:
        The best match, or None if no target reaches the threshold.
    """
    best: MatchResult | None = None
    best_score = 0.0

    for target in targets:
        score = similarity(candidate, target)
        if score > best_score and score >= threshold:
            best = MatchResult(target=target, score=score)
            best_score = score

    return best


class StatusMatcher:
    """Classifies observed statuses against configured target patterns."""

    def __init__(
        self,
        targets: Sequence[str],
        threshold: float = DEFAULT_MATCH_THRESHOLD,
    ) -> None:
        """Initialize the matcher.

        Args:
            targets: Target patterns in priority order.
            threshold: Minimum score for a status to count as matched.
        """
        self._targets = list(targets)
        self._threshold = threshold

    @property
    def targets(self) -> list[str]:
        """Target patterns in priority order."""
        return list(self._targets)

    @property
    def threshold(self) -> float:
        """Minimum acceptable score."""
        return self._threshold

    def best_match(self, candidate: str) -> MatchResult | None:
        """Find the best target for one status."""
        return best_match(candidate, self._targets, self._threshold)

    def classify(self, statuses: Iterable[str]) -> Classification:
        """Split distinct statuses into matched and unmatched.

        Args:
            statuses: Observed statuses; duplicates are ignored.

        Returns:
            Active statuses with their matches, plus unmatched statuses,
            each in first-seen order.
        """
        active: list[str] = []
        matches: list[StatusMatch] = []
        unmatched: list[str] = []

        for status in dict.fromkeys(statuses):
            result = self.best_match(status)
            if result is None:
                unmatched.append(status)
                continue
            active.append(status)
            matches.append(
                StatusMatch(actual=status, target=result.target, score=result.score)
            )

        logger.debug(
            "statuses_classified",
            component="status",
            active=len(active),
            unmatched=len(unmatched),
        )
        return Classification(
            active_statuses=active,
            matches=matches,
            unmatched_statuses=unmatched,
        )
