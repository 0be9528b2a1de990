"""Price observations, history records and the mutation requests the
reconciliation engine emits for the caller to persist."""

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from pricewatch.matching.models import CandidateProduct, MatchDecision


class PriceDecision(str, Enum):
    """Outcome of comparing a newly observed price with the catalog price."""

    NO_CHANGE = "no_change"
    PROMOTION = "promotion"
    PRICE_CHANGE = "price_change"


@dataclass(frozen=True)
class PriceChange:
    """Classification of one observed price."""

    decision: PriceDecision
    old_price: Optional[Decimal]
    new_price: Decimal
    drop_percent: Decimal


ObservationKey = Tuple[str, str, date]


@dataclass(frozen=True)
class PriceObservation:
    """One observed price point. Identified by (product, source, date)."""

    product_id: str
    source: str
    observed_on: date
    price: Decimal
    is_promo: bool = False

    @property
    def key(self) -> ObservationKey:
        return (self.product_id, self.source, self.observed_on)


@dataclass
class PriceHistoryRecord:
    """Validity interval of a product's regular price. Open while valid_to is None."""

    product_id: str
    valid_from: date
    regular_price: Decimal
    promo_price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None
    valid_to: Optional[date] = None

    @property
    def is_open(self) -> bool:
        return self.valid_to is None


# ============================================================
# Mutation requests
# ============================================================


@dataclass(frozen=True)
class UpdateCatalogPrice:
    product_id: str
    price: Decimal


@dataclass(frozen=True)
class UpdateCatalogCost:
    product_id: str
    cost_price: Decimal


@dataclass(frozen=True)
class CloseHistoryRecord:
    """Close the product's open history record, if any, on valid_to."""

    product_id: str
    valid_to: date


@dataclass(frozen=True)
class OpenHistoryRecord:
    product_id: str
    valid_from: date
    regular_price: Decimal
    promo_price: Optional[Decimal] = None
    cost_price: Optional[Decimal] = None

    def to_record(self) -> PriceHistoryRecord:
        return PriceHistoryRecord(
            product_id=self.product_id,
            valid_from=self.valid_from,
            regular_price=self.regular_price,
            promo_price=self.promo_price,
            cost_price=self.cost_price,
        )


@dataclass(frozen=True)
class UpsertPriceObservation:
    observation: PriceObservation


@dataclass(frozen=True)
class UpsertCandidateProduct:
    """Create or refresh a competitor product under its stable key."""

    key: str
    candidate: CandidateProduct


@dataclass(frozen=True)
class UpsertMatchDecision:
    """Create a catalog-to-candidate link; an existing review override is kept."""

    decision: MatchDecision


Mutation = Union[
    UpdateCatalogPrice,
    UpdateCatalogCost,
    CloseHistoryRecord,
    OpenHistoryRecord,
    UpsertPriceObservation,
    UpsertCandidateProduct,
    UpsertMatchDecision,
]


# ============================================================
# Batch results
# ============================================================


@dataclass
class ReconciliationResult:
    """Mutations and counters for one monitoring-feed import."""

    total_products: int = 0
    matched_products: int = 0
    unmatched_skus: List[str] = field(default_factory=list)
    prices_updated: int = 0
    promotions_detected: int = 0
    history_records: int = 0
    competitor_prices_imported: int = 0
    candidate_products: int = 0
    match_decisions: int = 0
    errors: List[str] = field(default_factory=list)
    mutations: List[Mutation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Counters only (mutations are summarized by count)."""
        data = asdict(self)
        data["mutations"] = len(self.mutations)
        return data


@dataclass
class CostSyncResult:
    """Mutations and counters for a cost-price sync."""

    updated: int = 0
    errors: List[str] = field(default_factory=list)
    mutations: List[Mutation] = field(default_factory=list)
