"""Size / volume extraction from product text.

Sizes are canonicalized to a single scalar in milliliters (liquids) or grams
(solids). Only the first pattern that matches, in priority order, is used:
a string carrying several size tokens may be misparsed and callers must
tolerate that.
"""

import re
from typing import Optional, Tuple

_NUMBER = r"(\d+(?:[.,]\d+)?)"

# (pattern, multiplier applied to count*unit or value), checked in order
SIZE_PATTERNS = [
    (re.compile(rf"(\d+)\s*[x×]\s*{_NUMBER}\s*ml\b", re.IGNORECASE), 1),      # 6x330ml
    (re.compile(rf"(\d+)\s*[x×]\s*{_NUMBER}\s*l\b", re.IGNORECASE), 1000),    # 4x1.5L
    (re.compile(rf"{_NUMBER}\s*l(?:it(?:er|re)s?)?\b", re.IGNORECASE), 1000),  # 1.5L
    (re.compile(rf"{_NUMBER}\s*ml\b", re.IGNORECASE), 1),                     # 500ml
    (re.compile(rf"{_NUMBER}\s*kg\b", re.IGNORECASE), 1000),                  # 1kg
    (re.compile(rf"{_NUMBER}\s*g(?:rams?)?\b", re.IGNORECASE), 1),            # 250g
]

# Display-unit volume for catalog rows: (pattern, unit map)
_VOLUME_PATTERN = re.compile(
    rf"{_NUMBER}\s*(ml|cl|l|litres?|liters?)\b", re.IGNORECASE
)
_WEIGHT_PATTERN = re.compile(
    rf"{_NUMBER}\s*(g|kg|grams?|kilograms?)\b", re.IGNORECASE
)


def _to_float(raw: str) -> float:
    return float(raw.replace(",", "."))


def extract_size(text: Optional[str]) -> Optional[float]:
    """
    Extract a canonical size from free text.

    Args:
        text: Product name or size field (e.g. "Cola 6x330ml", "1.5L")

    Returns:
        Size in ml or g, or None if no size token was found
    """
    if not text:
        return None

    for pattern, multiplier in SIZE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        if len(match.groups()) == 2:
            count = _to_float(match.group(1))
            unit_size = _to_float(match.group(2))
            return count * unit_size * multiplier
        return _to_float(match.group(1)) * multiplier

    return None


def extract_volume(product_name: Optional[str]) -> Tuple[Optional[float], Optional[str]]:
    """
    Extract volume or weight in its display unit from a catalog product name.

    Centiliters are converted to liters; everything else keeps its unit.

    Returns:
        (value, unit) where unit is one of "ml", "L", "g", "kg", or (None, None)
    """
    if not product_name:
        return None, None

    match = _VOLUME_PATTERN.search(product_name)
    if match:
        value = _to_float(match.group(1))
        unit = match.group(2).lower()
        if unit == "ml":
            return value, "ml"
        if unit == "cl":
            return value / 100, "L"
        return value, "L"

    match = _WEIGHT_PATTERN.search(product_name)
    if match:
        value = _to_float(match.group(1))
        unit = match.group(2).lower()
        if unit.startswith("k"):
            return value, "kg"
        return value, "g"

    return None, None
