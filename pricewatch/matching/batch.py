"""Batch matching and match-decision lifecycle."""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from pricewatch.config import settings
from pricewatch.exceptions import MatchConflictError
from pricewatch.matching.classifier import classify_by_score
from pricewatch.matching.models import (
    CandidateProduct,
    InternalProduct,
    MatchDecision,
    RankedMatch,
    ReviewOverride,
)
from pricewatch.matching.scorer import calculate_match_score
from pricewatch.normalize.text import normalize_text

logger = logging.getLogger(__name__)

DecisionKey = Tuple[str, str]


def candidate_key(candidate: CandidateProduct) -> str:
    """
    Stable identity of a candidate across scrape/import batches.

    Later observations of the same external SKU supersede earlier ones, so the
    key prefers site + SKU, then site + id, then the normalized name.
    """
    site = (candidate.site or "").lower()
    if candidate.sku:
        return f"{site}|sku:{candidate.sku}"
    if candidate.id:
        return f"{site}|id:{candidate.id}"
    return f"{site}|name:{normalize_text(candidate.name)}"


def find_best_matches(
    internal: InternalProduct,
    candidates: List[CandidateProduct],
    top_n: Optional[int] = None,
    min_score: Optional[float] = None,
) -> List[RankedMatch]:
    """
    Rank candidates for one catalog product.

    Args:
        internal: Catalog product
        candidates: Candidate products
        top_n: Maximum results (default settings.batch_top_n)
        min_score: Minimum score kept (default settings.batch_min_score)

    Returns:
        Up to top_n matches with score >= min_score, sorted by score
        descending; ties keep input order
    """
    top_n = settings.batch_top_n if top_n is None else top_n
    min_score = settings.batch_min_score if min_score is None else min_score

    if top_n <= 0:
        return []

    matches = []
    for candidate in candidates:
        result = calculate_match_score(internal, candidate)
        matches.append(
            RankedMatch(
                candidate=candidate,
                score=result.score,
                status=classify_by_score(result.score),
                components=result.components,
            )
        )

    # list.sort is stable: equal scores keep input order
    matches.sort(key=lambda m: m.score, reverse=True)
    return [m for m in matches if m.score >= min_score][:top_n]


def _approved_owner(
    decisions: Iterable[MatchDecision],
) -> Dict[str, str]:
    """Map candidate key -> internal id for approved decisions."""
    owners = {}
    for decision in decisions:
        if decision.is_approved:
            owners[decision.candidate_key] = decision.internal_id
    return owners


def match_catalog(
    products: List[InternalProduct],
    candidates: List[CandidateProduct],
    existing: Optional[List[MatchDecision]] = None,
    top_n: int = 1,
) -> List[MatchDecision]:
    """
    Build or refresh match decisions for a whole catalog.

    Existing decisions for the same (product, candidate) pair are re-scored and
    their status re-derived; human overrides are kept. Candidates already
    approved for another product are not suggested again.

    Args:
        products: Catalog products
        candidates: Candidate products
        existing: Decisions from earlier runs
        top_n: Suggestions per product

    Returns:
        All decisions: refreshed, newly created and untouched existing ones,
        in deterministic order
    """
    existing = existing or []
    by_key: Dict[DecisionKey, MatchDecision] = {
        (d.internal_id, d.candidate_key): d for d in existing
    }
    approved = _approved_owner(existing)

    created = 0
    refreshed = 0

    for product in products:
        available = [
            c for c in candidates
            if approved.get(candidate_key(c), product.id) == product.id
        ]

        for match in find_best_matches(product, available, top_n=top_n):
            key = (product.id, candidate_key(match.candidate))
            decision = by_key.get(key)

            if decision is None:
                by_key[key] = MatchDecision(
                    internal_id=product.id,
                    candidate_key=key[1],
                    score=match.score,
                    components=match.components,
                    status=match.status,
                    candidate=match.candidate,
                )
                created += 1
                continue

            decision.score = match.score
            decision.components = match.components
            decision.candidate = match.candidate
            if decision.override is None:
                decision.status = match.status
            refreshed += 1

    logger.info(
        f"Matched {len(products)} products against {len(candidates)} candidates: "
        f"{created} new decisions, {refreshed} refreshed"
    )

    return sorted(by_key.values(), key=lambda d: (d.internal_id, -d.score, d.candidate_key))


def approve_decision(
    decisions: List[MatchDecision],
    decision: MatchDecision,
) -> MatchDecision:
    """
    Record a human approval.

    Raises:
        MatchConflictError: If the candidate is already approved for a
            different catalog product
    """
    for other in decisions:
        if (
            other is not decision
            and other.is_approved
            and other.candidate_key == decision.candidate_key
            and other.internal_id != decision.internal_id
        ):
            raise MatchConflictError(
                f"Candidate {decision.candidate_key} is already approved for "
                f"product {other.internal_id}"
            )

    decision.override = ReviewOverride.APPROVED
    logger.info(f"Approved match {decision.internal_id} <-> {decision.candidate_key}")
    return decision


def reject_decision(decision: MatchDecision) -> MatchDecision:
    """Record a human rejection."""
    decision.override = ReviewOverride.REJECTED
    logger.info(f"Rejected match {decision.internal_id} <-> {decision.candidate_key}")
    return decision
