"""Composite match scoring between a catalog product and a candidate."""

from pricewatch.config import settings
from pricewatch.matching.attributes import brand_score, category_score, size_score
from pricewatch.matching.models import (
    CandidateProduct,
    InternalProduct,
    MatchComponents,
    MatchResult,
)
from pricewatch.matching.similarity import edit_similarity, token_similarity
from pricewatch.normalize.text import normalize_text


def _round3(value: float) -> float:
    return round(value, 3)


def name_similarity(name1: str, name2: str) -> float:
    """Best of edit and token similarity on normalized names."""
    n1 = normalize_text(name1)
    n2 = normalize_text(name2)
    if not n1 and not n2:
        # Names made only of noise words: compare them as typed
        n1 = (name1 or "").lower().strip()
        n2 = (name2 or "").lower().strip()
    return max(edit_similarity(n1, n2), token_similarity(n1, n2))


def calculate_match_score(
    internal: InternalProduct,
    candidate: CandidateProduct,
) -> MatchResult:
    """
    Calculate the weighted similarity between a catalog product and a candidate.

    Uses weighted combination of:
    - Name similarity (max of edit and token similarity)
    - Brand similarity (alias-aware)
    - Size similarity (canonical ml/g)
    - Category similarity

    Size falls back to volume, weight and finally the name when the dedicated
    field is empty; category falls back to subcategory.

    Args:
        internal: Catalog product
        candidate: Competitor / feed product

    Returns:
        MatchResult with the score and per-component breakdown, all rounded
        to 3 decimals
    """
    name_sim = name_similarity(internal.name, candidate.name)
    brand_sim = brand_score(internal.brand, candidate.brand)
    size_sim = size_score(
        internal.size or internal.volume or internal.weight or internal.name,
        candidate.size or candidate.name,
    )
    category_sim = category_score(
        internal.category or internal.subcategory,
        candidate.category,
    )

    score = (
        settings.match_weight_name * name_sim
        + settings.match_weight_brand * brand_sim
        + settings.match_weight_size * size_sim
        + settings.match_weight_category * category_sim
    )

    return MatchResult(
        score=_round3(score),
        components=MatchComponents(
            name=_round3(name_sim),
            brand=_round3(brand_sim),
            size=_round3(size_sim),
            category=_round3(category_sim),
        ),
    )
