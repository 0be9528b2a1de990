"""Tests for the match scorer, classifier policies and single-pass matcher."""

import pytest

from pricewatch.matching.classifier import (
    classify_by_score,
    is_auto_approval_candidate,
    match_quality_label,
)
from pricewatch.matching.legacy import (
    REASON_CATEGORY,
    REASON_EXACT_BRAND,
    REASON_MATCHING_SIZE,
    REASON_STRONG_NAME,
    LegacyMatch,
    match_product,
    numeric_similarity,
)
from pricewatch.matching.models import CandidateProduct, InternalProduct, MatchStatus
from pricewatch.matching.scorer import calculate_match_score, name_similarity


def _as_candidate(product: InternalProduct) -> CandidateProduct:
    return CandidateProduct(
        name=product.name,
        brand=product.brand,
        category=product.category,
        size=product.size,
    )


COLA = InternalProduct(
    id="p1",
    name="Coca-Cola Zero 1.5L",
    sku="CC15",
    brand="Coca-Cola",
    category="Soft Drinks",
    size="1.5L",
)


class TestMatchScorer:
    """Tests for calculate_match_score."""

    def test_self_match_full_record(self):
        result = calculate_match_score(COLA, _as_candidate(COLA))
        assert result.score == 1.0
        assert classify_by_score(result.score) == MatchStatus.AUTO_MATCHED

    @pytest.mark.parametrize(
        "product",
        [
            InternalProduct(id="a", name="Jameson Irish Whiskey 0.7L", sku="J1", brand="Jameson"),
            InternalProduct(id="b", name="Rīgas Melnais Balzams", sku="B1", brand="Riga", category="Liqueur"),
            InternalProduct(id="c", name="Kafija Paulig 500g", sku="K1", category="Coffee", size="500g"),
        ],
    )
    def test_self_match_with_one_missing_attribute(self, product):
        result = calculate_match_score(product, _as_candidate(product))
        assert result.score >= 0.85

    def test_components_breakdown(self):
        candidate = CandidateProduct(
            name="Coca Cola Zero 1.5 L",
            brand="Coke",
            category="Drinks",
            size="1500ml",
        )
        result = calculate_match_score(COLA, candidate)

        assert result.components.brand == 1.0
        assert result.components.size == 1.0
        assert result.components.category == 0.8
        assert result.components.to_dict()["brand_similarity"] == 1.0
        assert result.score == round(result.score, 3)

    def test_size_falls_back_to_name(self):
        internal = InternalProduct(id="p2", name="Cola 2L", sku="C2")
        candidate = CandidateProduct(name="Cola 2 L")
        result = calculate_match_score(internal, candidate)
        assert result.components.size == 1.0

    def test_category_falls_back_to_subcategory(self):
        internal = InternalProduct(id="p3", name="Gin", sku="G1", subcategory="Gin")
        candidate = CandidateProduct(name="Gin", category="Gin")
        result = calculate_match_score(internal, candidate)
        assert result.components.category == 1.0

    def test_unrelated_products_rejected(self):
        candidate = CandidateProduct(
            name="Heineken Lager 500ml",
            brand="Heineken",
            category="Beer",
        )
        result = calculate_match_score(COLA, candidate)
        assert result.score < 0.6
        assert classify_by_score(result.score) == MatchStatus.REJECTED

    def test_noise_only_names_compare_raw(self):
        assert name_similarity("Super Akcija", "super akcija") == 1.0


class TestClassifier:
    """Tests for the two classification policies."""

    def test_thresholds(self):
        assert classify_by_score(1.0) == MatchStatus.AUTO_MATCHED
        assert classify_by_score(0.85) == MatchStatus.AUTO_MATCHED
        assert classify_by_score(0.849) == MatchStatus.PENDING
        assert classify_by_score(0.6) == MatchStatus.PENDING
        assert classify_by_score(0.599) == MatchStatus.REJECTED
        assert classify_by_score(0.0) == MatchStatus.REJECTED

    def test_monotonic(self):
        scores = [i / 1000 for i in range(1001)]
        ranks = [classify_by_score(s).rank for s in scores]
        assert ranks == sorted(ranks)

    def test_custom_thresholds(self):
        assert classify_by_score(0.7, auto_threshold=0.7) == MatchStatus.AUTO_MATCHED
        assert classify_by_score(0.5, review_threshold=0.4) == MatchStatus.PENDING

    def test_auto_approval_needs_evidence(self):
        candidate = CandidateProduct(name="x")
        strong_name_only = LegacyMatch(candidate, 0.95, [f"{REASON_STRONG_NAME} (95%)"])
        with_brand = LegacyMatch(candidate, 0.9, [REASON_EXACT_BRAND])
        with_size = LegacyMatch(candidate, 0.9, [REASON_MATCHING_SIZE])

        assert not is_auto_approval_candidate(strong_name_only)
        assert is_auto_approval_candidate(with_brand)
        assert is_auto_approval_candidate(with_size)

    def test_auto_approval_threshold_is_strict(self):
        match = LegacyMatch(CandidateProduct(name="x"), 0.85, [REASON_EXACT_BRAND])
        assert not is_auto_approval_candidate(match)

    def test_quality_labels(self):
        assert match_quality_label(0.95) == "Excellent"
        assert match_quality_label(0.8) == "Very Good"
        assert match_quality_label(0.65) == "Good"
        assert match_quality_label(0.45) == "Fair"
        assert match_quality_label(0.1) == "Poor"


class TestSinglePassMatcher:
    """Tests for match_product."""

    def setup_method(self):
        self.exact = CandidateProduct(name="Coca-Cola Zero 1.5L", brand="Coca-Cola", site="rimi.lv")
        self.other = CandidateProduct(name="Pepsi Max 1.5L", brand="Pepsi", site="rimi.lv")
        self.unrelated = CandidateProduct(name="Dishwasher tablets", brand="Fairy", site="rimi.lv")

    def test_best_match_first(self):
        results = match_product(COLA, [self.other, self.unrelated, self.exact])

        assert results[0].candidate is self.exact
        assert results[0].similarity_score == pytest.approx(0.97)
        scores = [r.similarity_score for r in results]
        assert scores == sorted(scores, reverse=True)

    def test_reasons(self):
        best = match_product(COLA, [self.exact])[0]

        assert best.has_reason(REASON_STRONG_NAME)
        assert best.has_reason(REASON_EXACT_BRAND)
        assert best.has_reason(REASON_MATCHING_SIZE)
        assert is_auto_approval_candidate(best)

    def test_category_reason(self):
        internal = InternalProduct(id="w", name="Jameson 0.7L", sku="J7", category="Irish Whiskey")
        candidate = CandidateProduct(name="Jameson Irish Whiskey 0.7L")
        best = match_product(internal, [candidate])[0]
        assert best.has_reason(REASON_CATEGORY)

    def test_min_score_filter(self):
        assert match_product(COLA, [self.exact], min_score=0.99) == []
        assert match_product(COLA, []) == []

    def test_numeric_similarity(self):
        assert numeric_similarity(COLA, self.exact) == 0.9
        assert numeric_similarity(COLA, CandidateProduct(name="Cola 1.7L")) == 0.7
        assert numeric_similarity(COLA, self.unrelated) == 0.0
