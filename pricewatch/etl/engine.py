"""ETL row classifier: detect a feed's kind and turn raw rows into typed rows.

process_etl never raises on bad data. Unrecognized feeds come back as
UnknownETLResult; invalid rows are dropped and counted by reason in the
summary.
"""

import logging
from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from pricewatch.config import settings
from pricewatch.etl.columns import (
    MONITORING_PRICE_SUFFIX,
    PRODUCT_COLUMN_MAP,
    SALES_COLUMN_MAP,
    find_column_value,
    normalize_header,
)
from pricewatch.etl.detector import (
    FORMAT_LATVIAN_SALES,
    FORMAT_SPIRITS_WINE,
    DetectionResult,
    SpiritsWineInfo,
    detect_file_type,
)
from pricewatch.etl.models import (
    ETLResult,
    ETLSummary,
    FileType,
    MonitoringETLResult,
    MonitoringRow,
    ProductETLResult,
    ProductRow,
    SalesETLResult,
    SalesRow,
    UnknownETLResult,
)
from pricewatch.etl.parsers import (
    clean_string,
    parse_bool,
    parse_date,
    parse_decimal,
    parse_ean,
    parse_feed_price,
    parse_number,
)
from pricewatch.logging_config import get_logger
from pricewatch.normalize.size import extract_volume

logger = logging.getLogger(__name__)

EMPTY_INPUT_MESSAGE = "File is empty or contains no data rows."
UNKNOWN_FORMAT_MESSAGE = (
    "Unrecognized file format. Please use one of the provided template files."
)

SKIP_MISSING_SKU_AND_NAME = "Missing SKU and Product_Name"
SKIP_MISSING_SKU = "Missing SKU"
SKIP_MISSING_NAME = "Missing Product_Name"
SKIP_MERGED_BATCHES = "Merged multiple batches"
SKIP_SUMMARY_ROW = "Total/Summary row"
SKIP_MISSING_SALES = "Missing Units_Sold and Net_Revenue"
SKIP_INVALID_NAME = "Invalid product name"
SKIP_MISSING_PRODUCT_CODE = "Missing Product Code"
SKIP_MISSING_UNITS = "Missing Units_Sold"

PARTNER_LOCALIZED_SALES = "Oskars"
PARTNER_SPIRITS_WINE = "Spirits&Wine"

FORMAT_LABELS = {
    FORMAT_SPIRITS_WINE: "Spirits&Wine LW/PW",
    FORMAT_LATVIAN_SALES: "Latvian Sales (Oskars)",
    "generic": "Generic Sales",
    "latvianProduct": "Latvian Product Master",
    "productMaster": "Product Master",
    "monitoring": "Price Monitoring",
}


def is_summary_row(value: Optional[str]) -> bool:
    """True for spreadsheet total / blank placeholder lines."""
    if value is None:
        return False
    normalized = normalize_header(value)
    return (
        "total" in normalized
        or "kopā" in normalized
        or "summa" in normalized
        or normalized in ("", "-", "(blank)", "blank")
        or normalized.startswith("итого")
    )


# ============================================================
# Products
# ============================================================


def _status_label(value: Any) -> Optional[str]:
    flag = parse_bool(value)
    if flag is not None:
        return "Active" if flag else "Inactive"
    return clean_string(value)


def _merge_product(sku: str, product_name: str, rows: List[Dict[str, Any]], year: int) -> ProductRow:
    """Collapse all rows of one SKU (e.g. several purchase batches) into one product."""
    total_stock = Decimal("0")
    weighted_cost = Decimal("0")
    costs = []
    latest_price = None
    latest_date = None
    textual_status = None

    for row in rows:
        stock = parse_decimal(find_column_value(row, PRODUCT_COLUMN_MAP["stock"])) or Decimal("0")
        cost = parse_decimal(find_column_value(row, PRODUCT_COLUMN_MAP["cost_price"]))
        price = parse_decimal(find_column_value(row, PRODUCT_COLUMN_MAP["current_price"]))
        doc_date = parse_date(find_column_value(row, PRODUCT_COLUMN_MAP["document_date"]), year)

        if cost is not None:
            costs.append(cost)
            if stock > 0:
                weighted_cost += cost * stock
                total_stock += stock

        if price is not None:
            if latest_price is None or (
                doc_date is not None and (latest_date is None or doc_date > latest_date)
            ):
                latest_price = price
                latest_date = doc_date

        if textual_status is None:
            textual_status = _status_label(find_column_value(row, PRODUCT_COLUMN_MAP["status"]))

    if total_stock > 0:
        cost_price = weighted_cost / total_stock
    elif costs:
        cost_price = sum(costs) / len(costs)
    else:
        cost_price = None

    if textual_status is not None:
        status = textual_status
    elif find_column_value(rows[0], PRODUCT_COLUMN_MAP["stock"]) is not None:
        status = "Active" if total_stock > 0 else "Inactive"
    else:
        status = None

    volume, volume_unit = extract_volume(product_name)
    first = rows[0]

    return ProductRow(
        sku=sku,
        product_name=product_name,
        ean=parse_ean(find_column_value(first, PRODUCT_COLUMN_MAP["ean"])),
        brand=clean_string(find_column_value(first, PRODUCT_COLUMN_MAP["brand"])),
        category=clean_string(find_column_value(first, PRODUCT_COLUMN_MAP["category"])),
        subcategory=clean_string(find_column_value(first, PRODUCT_COLUMN_MAP["subcategory"])),
        country=clean_string(find_column_value(first, PRODUCT_COLUMN_MAP["country"])),
        volume=volume,
        volume_unit=volume_unit,
        abv=parse_number(find_column_value(first, PRODUCT_COLUMN_MAP["abv"])),
        cost_price=cost_price,
        current_price=latest_price,
        vat_rate=parse_number(find_column_value(first, PRODUCT_COLUMN_MAP["vat_rate"])),
        private_label=parse_bool(find_column_value(first, PRODUCT_COLUMN_MAP["private_label"])),
        status=status,
    )


def transform_products(data: List[Dict[str, Any]], summary: ETLSummary, year: int) -> List[ProductRow]:
    """Group product rows by SKU and merge each group into one ProductRow."""
    groups: "OrderedDict[str, Tuple[str, List[Dict[str, Any]]]]" = OrderedDict()

    for row in data:
        sku = clean_string(find_column_value(row, PRODUCT_COLUMN_MAP["sku"]))
        product_name = clean_string(find_column_value(row, PRODUCT_COLUMN_MAP["product_name"]))

        if not sku and not product_name:
            summary.skip(SKIP_MISSING_SKU_AND_NAME)
            continue
        if not sku:
            summary.skip(SKIP_MISSING_SKU)
            continue
        if not product_name:
            summary.skip(SKIP_MISSING_NAME)
            continue

        if sku in groups:
            groups[sku][1].append(row)
        else:
            groups[sku] = (product_name, [row])

    logger.debug(f"Unique SKUs found: {len(groups)}")

    products = []
    for sku, (product_name, rows) in groups.items():
        products.append(_merge_product(sku, product_name, rows, year))
        for _ in rows[1:]:
            summary.skip(SKIP_MERGED_BATCHES)

    return products


# ============================================================
# Sales
# ============================================================


def transform_sales(
    data: List[Dict[str, Any]],
    summary: ETLSummary,
    import_date: date,
    source_format: Optional[str] = None,
    year: Optional[int] = None,
) -> List[SalesRow]:
    """Generic and localized sales lines."""
    partner = PARTNER_LOCALIZED_SALES if source_format == FORMAT_LATVIAN_SALES else None
    rows = []

    for row in data:
        sku = clean_string(find_column_value(row, SALES_COLUMN_MAP["sku"]))
        product_name = clean_string(find_column_value(row, SALES_COLUMN_MAP["product_name"]))

        if is_summary_row(sku) or is_summary_row(product_name):
            summary.skip(SKIP_SUMMARY_ROW)
            continue

        if not sku and not product_name:
            summary.skip(SKIP_MISSING_SKU_AND_NAME)
            continue

        units_sold = parse_number(find_column_value(row, SALES_COLUMN_MAP["units_sold"]))
        net_revenue = parse_decimal(find_column_value(row, SALES_COLUMN_MAP["net_revenue"]))

        if not units_sold and not net_revenue:
            summary.skip(SKIP_MISSING_SALES)
            continue

        week_end = parse_date(find_column_value(row, SALES_COLUMN_MAP["week_end_date"]), year)

        rows.append(
            SalesRow(
                sku=sku,
                product_name=product_name or sku,
                week_end_date=week_end or import_date,
                store_code=clean_string(find_column_value(row, SALES_COLUMN_MAP["store_code"])),
                units_sold=units_sold or 0.0,
                net_revenue=net_revenue,
                gross_margin=parse_decimal(find_column_value(row, SALES_COLUMN_MAP["gross_margin"])),
                regular_price=parse_decimal(find_column_value(row, SALES_COLUMN_MAP["regular_price"])),
                promo_price=parse_decimal(find_column_value(row, SALES_COLUMN_MAP["promo_price"])),
                promo_flag=parse_bool(find_column_value(row, SALES_COLUMN_MAP["promo_flag"])),
                promo_name=clean_string(find_column_value(row, SALES_COLUMN_MAP["promo_name"])),
                stock_end=parse_number(find_column_value(row, SALES_COLUMN_MAP["stock_end"])),
                partner=partner,
            )
        )

    return rows


def _previous_week_column(headers: List[str], base: str) -> Optional[str]:
    variants = (f"{base}.1", f"{base}_1")
    return next((h for h in headers if normalize_header(h) in variants), None)


def transform_spirits_wine(
    data: List[Dict[str, Any]],
    summary: ETLSummary,
    info: SpiritsWineInfo,
    headers: List[str],
    week_end_date: date,
) -> List[SalesRow]:
    """
    Last-week / previous-week export: one LW row and optionally one PW row
    (week end minus 7 days) per product name.
    """
    previous_week_end = week_end_date - timedelta(days=7)
    pw_units_column = _previous_week_column(headers, "sum of skaits")
    pw_margin_column = _previous_week_column(headers, "sum of gm")

    rows = []
    for row in data:
        product_name = clean_string(row.get(info.name_column))

        if not product_name or normalize_header(product_name) == "false" or is_summary_row(product_name):
            summary.skip(SKIP_INVALID_NAME)
            continue

        stock_end = parse_number(row.get(info.stock_column)) if info.stock_column else None
        periods = [(info.units_column, info.margin_column, week_end_date, "LW")]
        if pw_units_column and pw_margin_column:
            periods.append((pw_units_column, pw_margin_column, previous_week_end, "PW"))

        emitted = 0
        for units_column, margin_column, period_end, period_type in periods:
            units = parse_number(row.get(units_column))
            # zero is a valid weekly quantity; only a missing cell drops the period
            if units is None:
                continue
            rows.append(
                SalesRow(
                    product_name=product_name,
                    week_end_date=period_end,
                    units_sold=units,
                    gross_margin=parse_decimal(row.get(margin_column)),
                    stock_end=stock_end,
                    period_type=period_type,
                    partner=PARTNER_SPIRITS_WINE,
                )
            )
            emitted += 1

        if not emitted:
            summary.skip(SKIP_MISSING_UNITS)

    return rows


# ============================================================
# Monitoring feed
# ============================================================


def competitor_columns(headers: List[str]) -> Dict[str, str]:
    """
    Map competitor price columns to their site domain.

    Every header ending in " - Price" is a competitor column; the configured
    own site is excluded.
    """
    own_site = settings.own_site_domain.lower()
    columns = {}
    for header in headers:
        normalized = normalize_header(header)
        if not normalized.endswith(MONITORING_PRICE_SUFFIX):
            continue
        domain = normalized[: -len(MONITORING_PRICE_SUFFIX)].strip()
        if domain and domain != own_site:
            columns[header] = domain
    return columns


def transform_monitoring(
    data: List[Dict[str, Any]],
    summary: ETLSummary,
    headers: List[str],
) -> Tuple[List[MonitoringRow], List[str]]:
    """Parse monitoring feed rows. Returns rows and the competitor sites seen."""
    lookup = {normalize_header(h): h for h in headers}
    competitors = competitor_columns(headers)

    def cell(row: Dict[str, Any], name: str) -> Any:
        header = lookup.get(name)
        return row.get(header) if header is not None else None

    rows = []
    for row in data:
        product_code = clean_string(cell(row, "product code"))
        if not product_code:
            summary.skip(SKIP_MISSING_PRODUCT_CODE)
            continue

        num_matches = parse_number(cell(row, "number of matches"))

        rows.append(
            MonitoringRow(
                product_code=product_code,
                product_name=clean_string(cell(row, "product name")),
                barcode=clean_string(cell(row, "barcode")),
                brand=clean_string(cell(row, "brand")),
                category=clean_string(cell(row, "category")),
                my_price=parse_feed_price(cell(row, "my price")),
                my_position=clean_string(cell(row, "my position")),
                min_price=parse_feed_price(cell(row, "minimum price")),
                max_price=parse_feed_price(cell(row, "maximum price")),
                avg_price=parse_feed_price(cell(row, "average price")),
                cheapest_site=clean_string(cell(row, "cheapest site")),
                highest_site=clean_string(cell(row, "highest site")),
                num_matches=int(num_matches) if num_matches is not None else 0,
                competitors={
                    domain: parse_feed_price(row.get(header))
                    for header, domain in competitors.items()
                },
            )
        )

    return rows, sorted(set(competitors.values()))


# ============================================================
# Entry point
# ============================================================


def _headers_of(data: List[Dict[str, Any]]) -> List[str]:
    headers: List[str] = []
    seen = set()
    for row in data:
        for key in row.keys():
            if key not in seen:
                seen.add(key)
                headers.append(key)
    return headers


def process_etl(
    rows: List[Dict[str, Any]],
    headers: Optional[List[str]] = None,
    context_year: Optional[int] = None,
    week_end_date: Optional[date] = None,
    import_date: Optional[date] = None,
) -> ETLResult:
    """
    Classify a decoded tabular file and transform its rows.

    Args:
        rows: Row dicts keyed by header
        headers: Column headers (default: union of the row keys, first-seen order)
        context_year: Year for headers/cells carrying only day and month
        week_end_date: Week end override for last-week/previous-week exports
        import_date: Default date for rows without one (default today)

    Returns:
        Exactly one of ProductETLResult, SalesETLResult, MonitoringETLResult,
        UnknownETLResult
    """
    import_date = import_date or date.today()
    year = context_year or import_date.year
    summary = ETLSummary(total_rows_input=len(rows or []))

    if not rows:
        summary.message = EMPTY_INPUT_MESSAGE
        logger.info("ETL input is empty")
        return UnknownETLResult(message=EMPTY_INPUT_MESSAGE, summary=summary)

    headers = list(headers) if headers else _headers_of(rows)
    detection: DetectionResult = detect_file_type(headers, context_year)

    if detection.file_type == FileType.UNKNOWN:
        message = f"{UNKNOWN_FORMAT_MESSAGE} Columns found: {', '.join(str(h) for h in headers)}"
        summary.message = message
        summary.total_rows_skipped = summary.total_rows_input
        return UnknownETLResult(message=message, summary=summary, headers=headers)

    summary.detected_format = FORMAT_LABELS.get(detection.format, detection.format)

    if detection.file_type == FileType.PRODUCT:
        product_rows = transform_products(rows, summary, year)
        result: ETLResult = ProductETLResult(rows=product_rows, summary=summary)
    elif detection.file_type == FileType.MONITORING:
        monitoring_rows, sites = transform_monitoring(rows, summary, headers)
        result = MonitoringETLResult(rows=monitoring_rows, summary=summary, competitor_sites=sites)
    elif detection.format == FORMAT_SPIRITS_WINE and detection.spirits_wine:
        week_end = week_end_date or detection.spirits_wine.week_end_date or import_date
        sales_rows = transform_spirits_wine(rows, summary, detection.spirits_wine, headers, week_end)
        result = SalesETLResult(rows=sales_rows, summary=summary)
    else:
        sales_rows = transform_sales(rows, summary, import_date, detection.format, year)
        result = SalesETLResult(rows=sales_rows, summary=summary)

    summary.total_rows_valid = len(result.rows)

    log = get_logger(__name__, feed=result.kind, import_date=import_date.isoformat())
    log.info(
        f"ETL {result.kind} ({summary.detected_format}): {summary.total_rows_input} rows in, "
        f"{summary.total_rows_valid} valid, {summary.total_rows_skipped} skipped",
        extra={"detected_format": summary.detected_format},
    )
    if summary.skipped_reasons:
        log.debug(f"Skip reasons: {summary.skipped_reasons}", extra={"skipped_reasons": summary.skipped_reasons})

    return result
