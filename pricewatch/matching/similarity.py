"""String similarity primitives used by the attribute scorers."""

from rapidfuzz.distance import Levenshtein


def edit_similarity(a: str, b: str) -> float:
    """
    Levenshtein similarity ratio between two already-normalized strings.

    Returns:
        1 - distance / max(len(a), len(b)); 1.0 for identical strings,
        0.0 when either string is empty
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    distance = Levenshtein.distance(a, b)
    return 1.0 - distance / max(len(a), len(b))


def _tokens(text: str) -> set[str]:
    return {token for token in text.split() if len(token) > 1}


def token_similarity(a: str, b: str) -> float:
    """Jaccard coefficient over whitespace tokens longer than one character."""
    if not a or not b:
        return 0.0

    tokens_a = _tokens(a)
    tokens_b = _tokens(b)
    union = tokens_a | tokens_b
    if not union:
        return 0.0
    return len(tokens_a & tokens_b) / len(union)
