#!/usr/bin/env python3
"""
Reconcile a price-monitoring export against a catalog snapshot.

Reads the feed rows (JSON list of row objects, as decoded from the
spreadsheet) and the catalog (JSON list of products), runs ETL detection and
price reconciliation, applies the mutations to an in-memory store and prints
the summary.
"""

import argparse
import asyncio
import json
import sys
from datetime import date
from decimal import Decimal
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pricewatch.etl.engine import process_etl
from pricewatch.logging_config import get_logger, setup_logging
from pricewatch.matching.models import InternalProduct
from pricewatch.reconcile.applier import InMemoryPriceStore, apply_mutations
from pricewatch.reconcile.engine import reconcile_monitoring_feed

PRICE_FIELDS = ("current_price", "cost_price")


def load_catalog(path: Path) -> list[InternalProduct]:
    """Load catalog products; prices are read as Decimal."""
    with open(path, encoding="utf-8") as f:
        items = json.load(f)

    products = []
    for item in items:
        data = {k: v for k, v in item.items() if k in InternalProduct.__dataclass_fields__}
        for name in PRICE_FIELDS:
            if data.get(name) is not None:
                data[name] = Decimal(str(data[name]))
        data["id"] = str(data["id"])
        data["sku"] = str(data["sku"])
        products.append(InternalProduct(**data))
    return products


async def run(feed_path: Path, catalog_path: Path, import_date: date) -> int:
    log = get_logger(__name__, feed=feed_path.name)

    with open(feed_path, encoding="utf-8") as f:
        rows = json.load(f)

    etl = process_etl(rows, import_date=import_date)
    print(f"Detected: {etl.kind} ({etl.summary.detected_format})")
    print(f"  - Rows in: {etl.summary.total_rows_input}")
    print(f"  - Valid: {etl.summary.total_rows_valid}")
    for reason, count in etl.summary.skipped_reasons.items():
        print(f"  - Skipped ({reason}): {count}")

    if etl.kind != "monitoring":
        if etl.kind == "unknown":
            print(etl.message)
        log.warning(f"Feed is {etl.kind}, nothing to reconcile")
        return 1

    catalog = load_catalog(catalog_path)
    store = InMemoryPriceStore(
        prices={p.id: p.current_price for p in catalog if p.current_price is not None},
        costs={p.id: p.cost_price for p in catalog if p.cost_price is not None},
    )

    result = reconcile_monitoring_feed(etl.rows, catalog, import_date=import_date)
    applied = await apply_mutations(store, result.mutations)

    print("\nReconciliation:")
    for key, value in result.to_dict().items():
        if isinstance(value, list):
            value = len(value)
        print(f"  - {key}: {value}")
    print(f"  - applied: {applied.applied}, failed: {applied.failed}")

    if result.unmatched_skus:
        print(f"\nUnmatched SKUs: {', '.join(result.unmatched_skus)}")
    for error in result.errors + applied.errors:
        print(f"ERROR: {error}")

    return 0 if not (result.errors or applied.errors) else 2


def main():
    parser = argparse.ArgumentParser(description="Reconcile a price-monitoring feed against the catalog")
    parser.add_argument("feed", type=Path, help="Feed rows as a JSON list of objects")
    parser.add_argument("catalog", type=Path, help="Catalog products as a JSON list of objects")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Import date, YYYY-MM-DD (default: today)",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")
    parser.add_argument("--json-logs", action="store_true", help="Write JSON log lines to stdout")

    args = parser.parse_args()

    setup_logging(log_level=args.log_level, json_console=args.json_logs)
    sys.exit(asyncio.run(run(args.feed, args.catalog, args.date or date.today())))


if __name__ == "__main__":
    main()
