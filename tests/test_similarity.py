"""Tests for similarity primitives and attribute scorers."""

import pytest

from pricewatch.matching.attributes import brand_score, category_score, size_score
from pricewatch.matching.similarity import edit_similarity, token_similarity


@pytest.mark.parametrize("text", ["a", "coca cola", "rīgas melnais balzams", "x" * 200])
def test_edit_similarity_identity(text):
    """Test a string is fully similar to itself and not to empty."""
    assert edit_similarity(text, text) == 1.0
    assert edit_similarity(text, "") == 0.0
    assert edit_similarity("", text) == 0.0


def test_edit_similarity_both_empty():
    """Test two empty strings."""
    assert edit_similarity("", "") == 0.0


def test_edit_similarity_ratio():
    """Test 1 - distance / max length."""
    assert edit_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


def test_token_similarity_jaccard():
    """Test Jaccard coefficient over tokens."""
    assert token_similarity("coca cola zero", "coca cola") == pytest.approx(2 / 3)
    assert token_similarity("coca cola", "cola coca") == 1.0


def test_token_similarity_ignores_single_chars():
    """Test one-character tokens do not count."""
    assert token_similarity("a b", "a b") == 0.0
    assert token_similarity("cola x", "cola y") == 1.0


def test_token_similarity_empty():
    """Test empty input."""
    assert token_similarity("", "cola") == 0.0


class TestBrandScore:
    """Tests for brand scoring."""

    def test_missing_is_neutral(self):
        assert brand_score(None, "Jameson") == 0.5
        assert brand_score("Jameson", "") == 0.5

    def test_alias_equality(self):
        assert brand_score("Coca-Cola", "coke") == 1.0
        assert brand_score("Rimi", "Rimi Basic") == 1.0

    def test_containment(self):
        assert brand_score("Jameson", "Jameson Irish") == 0.8

    def test_similar_spelling(self):
        score = brand_score("Heinekan", "Heineken")
        assert 0.7 < score < 1.0

    def test_unrelated(self):
        assert brand_score("Pepsi", "Heineken") == 0.0


class TestSizeScore:
    """Tests for size scoring."""

    def test_equal_after_canonicalization(self):
        assert size_score("6x330ml", "1980ml") == 1.0
        assert size_score("1.5L", "1500 ml") == 1.0

    def test_within_tolerance(self):
        assert size_score("1L", "1.04L") == 1.0

    def test_ratio_outside_tolerance(self):
        assert size_score("500ml", "1L") == pytest.approx(0.5)

    def test_custom_tolerance(self):
        assert size_score("1L", "1.04L", tolerance=0.01) == pytest.approx(1 / 1.04)

    def test_unparseable_is_neutral(self):
        assert size_score(None, "1L") == 0.5
        assert size_score("1L", "Cola") == 0.5


class TestCategoryScore:
    """Tests for category scoring."""

    def test_equal(self):
        assert category_score("Soft Drinks", "soft drinks") == 1.0

    def test_containment(self):
        assert category_score("Drinks", "Soft Drinks") == 0.8

    def test_token_overlap(self):
        assert category_score("Irish Whiskey", "Scotch Whiskey") == pytest.approx(1 / 3)

    def test_missing_is_neutral(self):
        assert category_score(None, "Beer") == 0.5
