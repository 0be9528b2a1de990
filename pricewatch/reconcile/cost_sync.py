"""Cost-price sync from the latest purchase prices seen in sales imports."""

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional

from pricewatch.config import settings
from pricewatch.matching.models import InternalProduct
from pricewatch.reconcile.models import (
    CloseHistoryRecord,
    CostSyncResult,
    OpenHistoryRecord,
    UpdateCatalogCost,
)

logger = logging.getLogger(__name__)


def sync_cost_prices(
    products: Iterable[InternalProduct],
    latest_purchase_prices: Dict[str, Decimal],
    today: Optional[date] = None,
    negligible_delta: Optional[Decimal] = None,
) -> CostSyncResult:
    """
    Emit cost updates where the latest purchase price moved.

    Only positive purchase prices that differ from the catalog cost by at
    least the negligible delta produce a catalog cost update plus a
    close/open of the history interval (regular price unchanged).

    Args:
        products: Catalog products
        latest_purchase_prices: product id -> latest purchase price
        today: Date of the history transition (default today)
    """
    today = today or date.today()
    negligible_delta = settings.negligible_price_delta if negligible_delta is None else negligible_delta

    result = CostSyncResult()
    checked = 0

    for product in products:
        purchase_price = latest_purchase_prices.get(product.id)
        if purchase_price is None:
            continue
        checked += 1

        try:
            new_cost = Decimal(str(purchase_price))
            if new_cost <= 0:
                continue

            old_cost = product.cost_price if product.cost_price is not None else Decimal("0")
            if abs(new_cost - old_cost) < negligible_delta:
                continue

            result.mutations.extend([
                UpdateCatalogCost(product.id, new_cost),
                CloseHistoryRecord(product.id, today),
                OpenHistoryRecord(
                    product_id=product.id,
                    valid_from=today,
                    regular_price=product.current_price if product.current_price is not None else Decimal("0"),
                    promo_price=None,
                    cost_price=new_cost,
                ),
            ])
            result.updated += 1
        except Exception as e:
            message = f"Cost sync failed for {product.id}: {e}"
            logger.error(message)
            result.errors.append(message)

    logger.info(
        f"Cost price sync: {result.updated} updated, {len(result.errors)} errors "
        f"out of {checked} products"
    )
    return result
