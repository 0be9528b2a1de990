"""Product text normalization for matching.

Names, brands and categories arrive from several feeds with different casing,
punctuation and marketing decoration. Everything here is a pure function over
fixed lookup tables.
"""

import re
from types import MappingProxyType

# Marketing noise stripped from names before comparison (EN + LV)
NOISE_WORDS = frozenset({
    "akcija", "akcijas", "super", "mega", "īpaši", "special", "offer",
    "cena", "price", "labs", "good", "great", "best", "top", "quality",
    "premium", "deluxe", "extra", "new", "jauns", "sale", "discount",
})

# Retailer / own-brand spelling variants -> canonical brand
BRAND_ALIASES = MappingProxyType({
    "coca cola": "cocacola",
    "coca-cola": "cocacola",
    "coke": "cocacola",
    "pepsi cola": "pepsi",
    "pepsi-cola": "pepsi",
    "rimi basic": "rimi",
    "rimi selection": "rimi",
    "maxima xxx": "maxima",
    "maxima xx": "maxima",
    "maxima x": "maxima",
})

# Latvian diacritics are word characters in Python's unicode regex, listed for clarity
_PUNCTUATION = re.compile(r"[^\w\sšžčāēīūģķļņ]|_")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str | None) -> str:
    """
    Normalize free text for comparison.

    Lowercases, turns punctuation into spaces, drops one-character tokens and
    marketing noise words, and re-joins with single spaces.

    Args:
        text: Raw product name, category or similar

    Returns:
        Normalized text ("" for empty input)
    """
    if not text:
        return ""

    normalized = _PUNCTUATION.sub(" ", str(text).lower().strip())
    normalized = _WHITESPACE.sub(" ", normalized)

    words = [
        word for word in normalized.split(" ")
        if len(word) > 1 and word not in NOISE_WORDS
    ]
    return " ".join(words)


def normalize_brand(brand: str | None) -> str:
    """Lowercase a brand and resolve it through the alias table."""
    if not brand:
        return ""
    normalized = str(brand).lower().strip()
    return BRAND_ALIASES.get(normalized, normalized)
