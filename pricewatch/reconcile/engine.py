"""Price reconciliation: turn newly observed prices into catalog and history
mutations without letting promotions overwrite the regular price.

Per product the state moves from no price to a regular price. Each new
observation is either noise (no mutation), a promotion (history records the
promo, the catalog keeps its regular price) or a genuine price change (the
catalog price is updated and a new history interval opens).
"""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from pricewatch.config import settings
from pricewatch.etl.models import MonitoringRow
from pricewatch.exceptions import ReconciliationError
from pricewatch.logging_config import get_logger
from pricewatch.matching.batch import candidate_key
from pricewatch.matching.models import (
    CandidateProduct,
    InternalProduct,
    MatchComponents,
    MatchDecision,
    MatchStatus,
)
from pricewatch.reconcile.models import (
    CloseHistoryRecord,
    Mutation,
    ObservationKey,
    OpenHistoryRecord,
    PriceChange,
    PriceDecision,
    PriceHistoryRecord,
    PriceObservation,
    ReconciliationResult,
    UpdateCatalogPrice,
    UpsertCandidateProduct,
    UpsertMatchDecision,
    UpsertPriceObservation,
)

logger = logging.getLogger(__name__)

NO_VALID_ROWS_MESSAGE = "No valid products found in the monitoring feed"

# The feed links competitor products to catalog SKUs itself, so the link is exact
FEED_MATCH_COMPONENTS = MatchComponents(name=1.0, brand=1.0, size=1.0, category=1.0)


def classify_price_change(
    old_price: Optional[Decimal],
    new_price: Decimal,
    promo_threshold: Optional[Decimal] = None,
    negligible_delta: Optional[Decimal] = None,
) -> PriceChange:
    """
    Classify a newly observed price against the current regular price.

    Args:
        old_price: Current catalog price (None or 0 when no price is set)
        new_price: Observed price
        promo_threshold: Drop fraction above which the price is a promotion
        negligible_delta: Absolute deltas below this are no change

    Returns:
        PriceChange with decision and drop percent

    Raises:
        ReconciliationError: If the observed price is missing or negative
    """
    promo_threshold = settings.promo_threshold if promo_threshold is None else promo_threshold
    negligible_delta = settings.negligible_price_delta if negligible_delta is None else negligible_delta

    if new_price is None:
        raise ReconciliationError("Observed price is missing")
    new_price = Decimal(str(new_price))
    if new_price < 0:
        raise ReconciliationError(f"Observed price is negative: {new_price}")

    old = Decimal(str(old_price)) if old_price is not None else Decimal("0")

    if abs(old - new_price) < negligible_delta:
        return PriceChange(PriceDecision.NO_CHANGE, old_price, new_price, Decimal("0"))

    drop_percent = (old - new_price) / old if old > 0 else Decimal("0")

    if old > 0 and drop_percent > promo_threshold:
        decision = PriceDecision.PROMOTION
    else:
        decision = PriceDecision.PRICE_CHANGE

    return PriceChange(decision, old_price, new_price, drop_percent)


def _carried_cost(product: InternalProduct, open_record: Optional[PriceHistoryRecord]) -> Optional[Decimal]:
    if product.cost_price is not None:
        return product.cost_price
    if open_record is not None:
        return open_record.cost_price
    return None


def _reconcile(
    product: InternalProduct,
    new_price: Decimal,
    today: date,
    open_record: Optional[PriceHistoryRecord],
    source: str,
    promo_threshold: Optional[Decimal],
    negligible_delta: Optional[Decimal],
) -> Tuple[PriceChange, List[Mutation]]:
    change = classify_price_change(product.current_price, new_price, promo_threshold, negligible_delta)
    cost = _carried_cost(product, open_record)

    if change.decision == PriceDecision.NO_CHANGE:
        return change, []

    if change.decision == PriceDecision.PROMOTION:
        logger.info(
            f"Promotion detected for {product.sku}: regular {product.current_price}, "
            f"observed {change.new_price} (-{change.drop_percent * 100:.0f}%)"
        )
        return change, [
            CloseHistoryRecord(product.id, today),
            OpenHistoryRecord(
                product_id=product.id,
                valid_from=today,
                regular_price=product.current_price,
                promo_price=change.new_price,
                cost_price=cost,
            ),
            UpsertPriceObservation(
                PriceObservation(product.id, source, today, change.new_price, is_promo=True)
            ),
        ]

    logger.debug(f"Price change for {product.sku}: {product.current_price} -> {change.new_price}")
    return change, [
        UpdateCatalogPrice(product.id, change.new_price),
        CloseHistoryRecord(product.id, today),
        OpenHistoryRecord(
            product_id=product.id,
            valid_from=today,
            regular_price=change.new_price,
            promo_price=None,
            cost_price=cost,
        ),
    ]


def reconcile_price(
    product: InternalProduct,
    new_price: Decimal,
    today: date,
    open_record: Optional[PriceHistoryRecord] = None,
    source: Optional[str] = None,
    promo_threshold: Optional[Decimal] = None,
    negligible_delta: Optional[Decimal] = None,
) -> List[Mutation]:
    """
    Mutations for one newly observed own-shelf price.

    Promotion: close + open history (regular unchanged, promo = new price)
    and a promo observation. Price change: catalog update + close + open
    (regular = new price, no promo). Negligible delta: nothing.

    Args:
        product: Catalog product (current_price is the regular price)
        new_price: Observed price
        today: Date the history transition happens on
        open_record: The product's open history record, used to carry cost
        source: Observation source for promos (default: own site domain)
    """
    source = source or settings.own_site_domain
    _, mutations = _reconcile(
        product, new_price, today, open_record, source, promo_threshold, negligible_delta
    )
    return mutations


def _feed_candidate(row: MonitoringRow, site: str, price: Decimal) -> CandidateProduct:
    """The competitor product a monitoring row describes for one site."""
    return CandidateProduct(
        name=row.product_name or row.product_code,
        brand=row.brand,
        category=row.category,
        price=price,
        site=site,
        sku=row.product_code,
        barcode=row.barcode,
    )


def _feed_decision(product: InternalProduct, key: str, candidate: CandidateProduct) -> MatchDecision:
    return MatchDecision(
        internal_id=product.id,
        candidate_key=key,
        score=1.0,
        components=FEED_MATCH_COMPONENTS,
        status=MatchStatus.AUTO_MATCHED,
        candidate=candidate,
    )


def reconcile_monitoring_feed(
    rows: List[MonitoringRow],
    catalog: Iterable[InternalProduct],
    import_date: Optional[date] = None,
    open_records: Optional[Dict[str, PriceHistoryRecord]] = None,
    promo_threshold: Optional[Decimal] = None,
    negligible_delta: Optional[Decimal] = None,
) -> ReconciliationResult:
    """
    Reconcile a whole monitoring feed against the catalog.

    Rows are matched to catalog products by SKU. Unmatched SKUs are listed,
    not treated as errors. A failure on one product is logged and recorded
    in errors; the rest of the feed is still processed.

    Each competitor price also yields a competitor product keyed by site and
    product code, and an auto-matched link from the catalog product to it.
    Observations, candidates and links are deduplicated within the batch;
    the last row wins.

    Args:
        rows: Parsed monitoring rows
        catalog: Catalog products
        import_date: Date of the feed (default today)
        open_records: product id -> open history record

    Returns:
        ReconciliationResult with mutations and counters
    """
    import_date = import_date or date.today()
    open_records = open_records or {}
    log = get_logger(__name__, feed="monitoring", import_date=import_date.isoformat())

    result = ReconciliationResult(total_products=len(rows))
    if not rows:
        result.errors.append(NO_VALID_ROWS_MESSAGE)
        log.warning(NO_VALID_ROWS_MESSAGE)
        return result

    by_sku: Dict[str, InternalProduct] = {p.sku: p for p in catalog if p.sku}
    observations: Dict[ObservationKey, PriceObservation] = {}
    candidates: Dict[str, CandidateProduct] = {}
    decisions: Dict[Tuple[str, str], MatchDecision] = {}

    for row in rows:
        product = by_sku.get(row.product_code)
        if product is None:
            result.unmatched_skus.append(row.product_code)
            continue

        result.matched_products += 1

        try:
            mutations: List[Mutation] = []
            change = None
            if row.my_price is not None:
                change, mutations = _reconcile(
                    product,
                    row.my_price,
                    import_date,
                    open_records.get(product.id),
                    settings.own_site_domain,
                    promo_threshold,
                    negligible_delta,
                )

            competitor_prices = [(site, price) for site, price in row.competitors.items() if price is not None]
            competitor_observations = [
                PriceObservation(product.id, site, import_date, price) for site, price in competitor_prices
            ]
            feed_candidates = [_feed_candidate(row, site, price) for site, price in competitor_prices]
        except Exception as e:
            message = f"Failed to reconcile {row.product_code} ({row.product_name}): {e}"
            log.error(message)
            result.errors.append(message)
            continue

        result.mutations.extend(mutations)
        result.history_records += sum(1 for m in mutations if isinstance(m, OpenHistoryRecord))

        if change is not None and change.decision == PriceDecision.PROMOTION:
            result.promotions_detected += 1
        elif change is not None and change.decision == PriceDecision.PRICE_CHANGE:
            result.prices_updated += 1
            # a later row for the same SKU compares against the updated price
            by_sku[product.sku] = replace(product, current_price=change.new_price)

        for observation in competitor_observations:
            observations[observation.key] = observation
        for candidate in feed_candidates:
            key = candidate_key(candidate)
            candidates[key] = candidate
            decisions[(product.id, key)] = _feed_decision(product, key, candidate)

    # candidates and links go first so observations can reference them
    result.mutations.extend(UpsertCandidateProduct(k, c) for k, c in candidates.items())
    result.mutations.extend(UpsertMatchDecision(d) for d in decisions.values())
    result.mutations.extend(UpsertPriceObservation(o) for o in observations.values())
    result.competitor_prices_imported = len(observations)
    result.candidate_products = len(candidates)
    result.match_decisions = len(decisions)

    log.info(
        f"Monitoring feed reconciled: {result.matched_products}/{result.total_products} matched, "
        f"{len(result.unmatched_skus)} unmatched, {result.prices_updated} price changes, "
        f"{result.promotions_detected} promotions, {result.competitor_prices_imported} competitor prices, "
        f"{result.candidate_products} competitor products, "
        f"{len(result.errors)} errors"
    )

    return result
