"""Product and match-decision data structures."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class MatchStatus(str, Enum):
    """Status derived from the composite score."""

    AUTO_MATCHED = "auto_matched"
    PENDING = "pending"
    REJECTED = "rejected"

    @property
    def rank(self) -> int:
        """Ordering used for monotonicity: rejected < pending < auto_matched."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    MatchStatus.REJECTED: 0,
    MatchStatus.PENDING: 1,
    MatchStatus.AUTO_MATCHED: 2,
}


class ReviewOverride(str, Enum):
    """Human decision that supersedes the derived status."""

    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class InternalProduct:
    """A catalog product (always the left side of a match)."""

    id: str
    name: str
    sku: str
    brand: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    size: Optional[str] = None
    volume: Optional[str] = None
    weight: Optional[str] = None
    barcode: Optional[str] = None
    current_price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None


@dataclass(frozen=True)
class CandidateProduct:
    """A competitor or monitoring-feed product not yet tied to the catalog."""

    name: str
    id: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    size: Optional[str] = None
    price: Optional[Decimal] = None
    promo_price: Optional[Decimal] = None
    url: Optional[str] = None
    site: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None


@dataclass(frozen=True)
class MatchComponents:
    """Per-attribute similarities behind a composite score."""

    name: float
    brand: float
    size: float
    category: float

    def to_dict(self) -> dict:
        return {
            "name_similarity": self.name,
            "brand_similarity": self.brand,
            "size_similarity": self.size,
            "category_similarity": self.category,
        }


@dataclass(frozen=True)
class MatchResult:
    """Composite score for one (internal, candidate) pair."""

    score: float
    components: MatchComponents


@dataclass(frozen=True)
class RankedMatch:
    """A scored candidate as returned by the batch matcher."""

    candidate: CandidateProduct
    score: float
    status: MatchStatus
    components: MatchComponents


@dataclass
class MatchDecision:
    """
    Relation between one internal product and one candidate.

    The derived status follows the score; a human override, once set,
    supersedes it and survives re-scoring.
    """

    internal_id: str
    candidate_key: str
    score: float
    components: MatchComponents
    status: MatchStatus
    override: Optional[ReviewOverride] = None
    candidate: Optional[CandidateProduct] = field(default=None, compare=False)

    @property
    def is_approved(self) -> bool:
        return self.override == ReviewOverride.APPROVED

    @property
    def effective_status(self) -> str:
        """Override value when set, otherwise the derived status."""
        if self.override is not None:
            return self.override.value
        return self.status.value

    def to_dict(self) -> dict:
        return {
            "internal_id": self.internal_id,
            "candidate_key": self.candidate_key,
            "score": self.score,
            "components": self.components.to_dict(),
            "status": self.status.value,
            "override": self.override.value if self.override else None,
            "effective_status": self.effective_status,
        }
