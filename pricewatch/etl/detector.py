"""Signature-based feed detection.

A feed's kind is inferred from which column headers are present. Checks run
from the most specific signature to the loosest fallback, so the order of the
checks in detect_file_type matters.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from pricewatch.config import settings
from pricewatch.etl.columns import MONITORING_SIGNATURE, normalize_header
from pricewatch.etl.models import FileType

logger = logging.getLogger(__name__)

FORMAT_MONITORING = "monitoring"
FORMAT_SPIRITS_WINE = "spiritsWine"
FORMAT_LATVIAN_PRODUCT = "latvianProduct"
FORMAT_LATVIAN_SALES = "latvianSales"
FORMAT_PRODUCT_MASTER = "productMaster"
FORMAT_GENERIC_SALES = "generic"

_ATLIKUMI_DATE = re.compile(r"atlikumi\s+(\d{1,2})\.(\d{1,2})", re.IGNORECASE)

NAME_HEADERS = ("name", "product_name", "product name", "nosaukums", "preču nosaukums")
PRODUCT_ATTRIBUTE_HEADERS = (
    "brand", "category", "cost", "price", "cost_price", "current_price",
    "zīmols", "kategorija", "iep. cena", "maz. cena",
)
SKU_HEADERS = ("sku", "code", "product code", "preču kods")
DATE_HEADERS = ("week_end_date", "week end", "date", "datums")
QUANTITY_HEADERS = ("units sold", "units_sold", "quantity sold", "qty", "skaits", "sum of skaits")


@dataclass
class SpiritsWineInfo:
    """Column layout of a last-week / previous-week sales export."""

    name_column: str
    units_column: str
    margin_column: str
    stock_column: Optional[str]
    has_previous_week: bool
    week_end_date: Optional[date]


@dataclass
class DetectionResult:
    file_type: FileType
    format: Optional[str] = None
    spirits_wine: Optional[SpiritsWineInfo] = None


def _any_contains(columns: List[str], patterns) -> bool:
    return any(pattern in column for column in columns for pattern in patterns)


def _find_exact(headers: List[str], name: str) -> Optional[str]:
    for header in headers:
        if normalize_header(header) == name:
            return header
    return None


def count_monitoring_signature(headers: List[str]) -> int:
    """How many monitoring-feed marker columns appear among the headers."""
    columns = [normalize_header(h) for h in headers]
    return sum(1 for marker in MONITORING_SIGNATURE if any(marker in c for c in columns))


def _week_end_from_stock_header(header: Optional[str], context_year: Optional[int]) -> Optional[date]:
    if not header:
        return None
    match = _ATLIKUMI_DATE.search(header)
    if not match:
        return None
    year = context_year or date.today().year
    try:
        return date(year, int(match.group(2)), int(match.group(1)))
    except ValueError:
        return None


def _detect_spirits_wine(headers: List[str], context_year: Optional[int]) -> Optional[SpiritsWineInfo]:
    name_column = _find_exact(headers, "nosaukums")
    units_column = _find_exact(headers, "sum of skaits")
    margin_column = _find_exact(headers, "sum of gm")
    if not (name_column and units_column and margin_column):
        return None

    stock_column = next(
        (h for h in headers if normalize_header(h).startswith("atlikumi ")), None
    )
    has_previous_week = any(
        normalize_header(h) in ("sum of skaits.1", "sum of skaits_1") for h in headers
    )

    return SpiritsWineInfo(
        name_column=name_column,
        units_column=units_column,
        margin_column=margin_column,
        stock_column=stock_column,
        has_previous_week=has_previous_week,
        week_end_date=_week_end_from_stock_header(stock_column, context_year),
    )


def detect_file_type(headers: List[str], context_year: Optional[int] = None) -> DetectionResult:
    """
    Infer the feed kind from its column headers.

    Args:
        headers: Column headers as they appear in the file
        context_year: Year used for headers that carry only day and month

    Returns:
        DetectionResult (file_type UNKNOWN when nothing matches)
    """
    if not headers:
        return DetectionResult(FileType.UNKNOWN)

    columns = [normalize_header(h) for h in headers]

    if count_monitoring_signature(headers) >= settings.monitoring_min_signature_columns:
        logger.info("Detected monitoring feed")
        return DetectionResult(FileType.MONITORING, FORMAT_MONITORING)

    spirits_wine = _detect_spirits_wine(headers, context_year)
    if spirits_wine:
        logger.info(
            f"Detected Spirits&Wine sales export (previous week: {spirits_wine.has_previous_week})"
        )
        return DetectionResult(FileType.SALES, FORMAT_SPIRITS_WINE, spirits_wine)

    # "preču kods" also looks like a SKU column, so this must precede generic sales
    if (
        _any_contains(columns, ("preču kods",))
        and _any_contains(columns, ("preču nosaukums",))
        and _any_contains(columns, ("iep. cena", "maz. cena"))
    ):
        logger.info("Detected localized product master")
        return DetectionResult(FileType.PRODUCT, FORMAT_LATVIAN_PRODUCT)

    if (
        ("brio cod" in columns or "nosaukums" in columns)
        and "skaits" in columns
        and _any_contains(columns, ("summa",))
    ):
        logger.info("Detected localized sales export")
        return DetectionResult(FileType.SALES, FORMAT_LATVIAN_SALES)

    has_name = any(c in NAME_HEADERS for c in columns)
    has_attributes = _any_contains(columns, PRODUCT_ATTRIBUTE_HEADERS)
    has_sku = _any_contains(columns, SKU_HEADERS)

    if has_sku and has_name and has_attributes:
        logger.info("Detected product master")
        return DetectionResult(FileType.PRODUCT, FORMAT_PRODUCT_MASTER)

    has_date = _any_contains(columns, DATE_HEADERS)
    has_quantity = _any_contains(columns, QUANTITY_HEADERS)

    if has_sku and (has_date or has_quantity):
        logger.info("Detected generic sales feed")
        return DetectionResult(FileType.SALES, FORMAT_GENERIC_SALES)

    if has_sku and has_name:
        logger.info("Detected probable product master (SKU + name)")
        return DetectionResult(FileType.PRODUCT, FORMAT_PRODUCT_MASTER)

    if has_quantity:
        logger.info("Detected probable sales feed (quantity column)")
        return DetectionResult(FileType.SALES, FORMAT_GENERIC_SALES)

    logger.info(f"Unknown feed format, columns: {headers}")
    return DetectionResult(FileType.UNKNOWN)
