"""Match classification policies.

Two independent risk policies live here on purpose:

- classify_by_score: the batch (bulk) matcher's three-tier status.
- is_auto_approval_candidate: the stricter single-product check, which also
  demands brand or size evidence before approving without review.
"""

from typing import Optional

from pricewatch.config import settings
from pricewatch.matching.legacy import (
    REASON_EXACT_BRAND,
    REASON_MATCHING_SIZE,
    LegacyMatch,
)
from pricewatch.matching.models import MatchStatus


def classify_by_score(
    score: float,
    auto_threshold: Optional[float] = None,
    review_threshold: Optional[float] = None,
) -> MatchStatus:
    """
    Map a composite score to a match status.

    Args:
        score: Composite score in [0, 1]
        auto_threshold: Minimum score for auto_matched (default 0.85)
        review_threshold: Minimum score for pending (default 0.60)

    Returns:
        MatchStatus
    """
    auto_threshold = settings.auto_match_threshold if auto_threshold is None else auto_threshold
    review_threshold = settings.review_threshold if review_threshold is None else review_threshold

    if score >= auto_threshold:
        return MatchStatus.AUTO_MATCHED
    if score >= review_threshold:
        return MatchStatus.PENDING
    return MatchStatus.REJECTED


def is_auto_approval_candidate(
    match: LegacyMatch,
    threshold: Optional[float] = None,
) -> bool:
    """
    Decide whether a single-pass match may be approved without review.

    Requires score > threshold AND (exact brand match OR matching size).
    """
    threshold = settings.auto_approval_threshold if threshold is None else threshold

    return match.similarity_score > threshold and (
        match.has_reason(REASON_EXACT_BRAND) or match.has_reason(REASON_MATCHING_SIZE)
    )


def match_quality_label(score: float) -> str:
    """Human label for a score, used in review screens."""
    if score >= 0.9:
        return "Excellent"
    if score >= 0.75:
        return "Very Good"
    if score >= 0.6:
        return "Good"
    if score >= 0.4:
        return "Fair"
    return "Poor"
