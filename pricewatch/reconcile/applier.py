"""Best-effort application of reconciliation mutations to a price store."""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Protocol

from pricewatch.config import settings
from pricewatch.exceptions import ReconciliationError
from pricewatch.matching.batch import DecisionKey
from pricewatch.matching.models import CandidateProduct, MatchDecision
from pricewatch.reconcile.models import (
    CloseHistoryRecord,
    Mutation,
    ObservationKey,
    OpenHistoryRecord,
    PriceHistoryRecord,
    PriceObservation,
    UpdateCatalogCost,
    UpdateCatalogPrice,
    UpsertCandidateProduct,
    UpsertMatchDecision,
    UpsertPriceObservation,
)

logger = logging.getLogger(__name__)


class PriceStore(Protocol):
    """Persistence the applier writes to (catalog, price history, observations, matches)."""

    async def update_catalog_price(self, product_id: str, price: Decimal) -> None: ...

    async def update_catalog_cost(self, product_id: str, cost_price: Decimal) -> None: ...

    async def close_history_record(self, product_id: str, valid_to: date) -> None: ...

    async def open_history_record(self, record: PriceHistoryRecord) -> None: ...

    async def upsert_price_observation(self, observation: PriceObservation) -> None: ...

    async def upsert_candidate_product(self, key: str, candidate: CandidateProduct) -> None: ...

    async def upsert_match_decision(self, decision: MatchDecision) -> None: ...


@dataclass
class ApplyResult:
    applied: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.errors)


async def _apply_one(store: PriceStore, mutation: Mutation) -> None:
    if isinstance(mutation, UpdateCatalogPrice):
        await store.update_catalog_price(mutation.product_id, mutation.price)
    elif isinstance(mutation, UpdateCatalogCost):
        await store.update_catalog_cost(mutation.product_id, mutation.cost_price)
    elif isinstance(mutation, CloseHistoryRecord):
        await store.close_history_record(mutation.product_id, mutation.valid_to)
    elif isinstance(mutation, OpenHistoryRecord):
        await store.open_history_record(mutation.to_record())
    elif isinstance(mutation, UpsertPriceObservation):
        await store.upsert_price_observation(mutation.observation)
    elif isinstance(mutation, UpsertCandidateProduct):
        await store.upsert_candidate_product(mutation.key, mutation.candidate)
    elif isinstance(mutation, UpsertMatchDecision):
        await store.upsert_match_decision(mutation.decision)
    else:
        raise ReconciliationError(f"Unsupported mutation: {type(mutation).__name__}")


async def apply_mutations(store: PriceStore, mutations: List[Mutation]) -> ApplyResult:
    """
    Apply mutations in order.

    A failing mutation is logged and recorded; the remaining mutations are
    still applied. Retrying failures is left to the caller.
    """
    result = ApplyResult()

    for mutation in mutations:
        try:
            await _apply_one(store, mutation)
            result.applied += 1
        except Exception as e:
            message = f"{type(mutation).__name__} failed: {e}"
            logger.error(message)
            result.errors.append(message)

    logger.info(f"Applied {result.applied} of {len(mutations)} mutations ({result.failed} failed)")
    return result


class InMemoryPriceStore:
    """
    PriceStore kept in dicts.

    Keeps at most one open history record per product, one observation per
    (product, source, date) key and one match decision per (product, candidate).
    A same-day observation is only rewritten when the price moved by at least
    the negligible delta.
    """

    def __init__(self, prices: Optional[Dict[str, Decimal]] = None, costs: Optional[Dict[str, Decimal]] = None):
        self.prices: Dict[str, Decimal] = dict(prices or {})
        self.costs: Dict[str, Decimal] = dict(costs or {})
        self.history: List[PriceHistoryRecord] = []
        self.observations: Dict[ObservationKey, PriceObservation] = {}
        self.candidates: Dict[str, CandidateProduct] = {}
        self.decisions: Dict[DecisionKey, MatchDecision] = {}

    async def update_catalog_price(self, product_id: str, price: Decimal) -> None:
        self.prices[product_id] = price

    async def update_catalog_cost(self, product_id: str, cost_price: Decimal) -> None:
        self.costs[product_id] = cost_price

    async def close_history_record(self, product_id: str, valid_to: date) -> None:
        record = self.open_record(product_id)
        if record is not None:
            record.valid_to = valid_to

    async def open_history_record(self, record: PriceHistoryRecord) -> None:
        if self.open_record(record.product_id) is not None:
            raise ReconciliationError(
                f"Product {record.product_id} already has an open price history record"
            )
        self.history.append(record)

    async def upsert_price_observation(self, observation: PriceObservation) -> None:
        existing = self.observations.get(observation.key)
        if (
            existing is not None
            and existing.is_promo == observation.is_promo
            and abs(existing.price - observation.price) < settings.negligible_price_delta
        ):
            return
        self.observations[observation.key] = observation

    async def upsert_candidate_product(self, key: str, candidate: CandidateProduct) -> None:
        self.candidates[key] = candidate

    async def upsert_match_decision(self, decision: MatchDecision) -> None:
        key = (decision.internal_id, decision.candidate_key)
        existing = self.decisions.get(key)
        if existing is not None and existing.override is not None:
            # a reviewed link keeps its override; only the score is refreshed
            existing.score = decision.score
            existing.components = decision.components
            existing.status = decision.status
            return
        self.decisions[key] = decision

    def open_record(self, product_id: str) -> Optional[PriceHistoryRecord]:
        for record in self.history:
            if record.product_id == product_id and record.is_open:
                return record
        return None

    def history_for(self, product_id: str) -> List[PriceHistoryRecord]:
        return [r for r in self.history if r.product_id == product_id]
