"""Column alias tables for tabular imports (case-insensitive).

Aliases cover the English template headers plus the localized (LV) and legacy
headers seen in partner exports.
"""

from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Optional

PRODUCT_COLUMN_MAP = MappingProxyType({
    "sku": ["preču kods", "preces kods", "sku", "product code", "code", "artikuls"],
    "product_name": ["preču nosaukums", "produkta nosaukums", "nosaukums", "name", "product_name", "product name"],
    "ean": ["ean", "barcode", "svītrkods", "barkods", "gtin"],
    "brand": ["brand", "zīmols", "ražotājs"],
    "category": ["category", "kategorija"],
    "subcategory": ["subcategory", "subkategorija", "apakškategorija"],
    "country": ["country", "valsts", "izcelsme"],
    "abv": ["abv", "alcohol", "alc.%", "alc", "alkohols", "alk.%"],
    "cost_price": ["iep. cena", "iepirkuma cena", "cost_price", "cost price", "pašizmaksa", "cost"],
    "current_price": [
        "maz. cena", "mazumtirdzniecības cena", "pārdošanas cena", "current_price",
        "current price", "regular_price", "regular price", "shelf price", "price",
    ],
    "vat_rate": ["vat", "vat_rate", "vat rate", "pvn", "pvn %"],
    "private_label": ["private label", "private_label", "private", "privātā marka", "pl"],
    "stock": ["atlikums", "stock", "krājumi", "qty on hand"],
    "status": ["status", "statuss", "stāvoklis", "active"],
    "document_date": ["dok-ta datums", "datums", "document date"],
})

SALES_COLUMN_MAP = MappingProxyType({
    "sku": ["brio cod", "brio_cod", "sku", "code", "product code", "artikuls", "preces kods"],
    "product_name": ["nosaukums", "product name", "product_name", "produkta nosaukums", "name", "prece"],
    "week_end_date": ["week_end_date", "week end", "date", "datums", "nedēļas datums", "week_end", "periods"],
    "store_code": ["veikals", "store", "store_code", "branch", "filiāle", "shop"],
    "units_sold": ["skaits", "units sold", "units_sold", "quantity sold", "qty", "sum of skaits", "daudzums", "quantity"],
    "net_revenue": [
        "summa (ar pvn)", "summa ar pvn", "summa", "net revenue", "net_revenue",
        "revenue", "sales", "apgrozījums", "ieņēmumi",
    ],
    "gross_margin": ["gm", "gross margin", "gross_margin", "bruto marža", "sum of gm", "marža", "margin"],
    "regular_price": ["regular price", "regular_price", "price", "unit price"],
    "promo_price": ["promo price", "promo_price", "akcijas cena", "atlaide", "sale price"],
    "promo_flag": ["promotion", "promo", "promo_flag", "akcija", "ir akcija", "on_sale"],
    "promo_name": ["promo name", "promo_name", "campaign", "akcija nosaukums", "kampaņa", "campaign_name"],
    "stock_end": ["atlikumi", "atlikums", "stock end", "stock_end", "stock", "krājumi", "inventory"],
})

# Monitoring feed markers: a feed needs a minimum number of these
MONITORING_SIGNATURE = ("my price", "my position", "product code", "minimum price")
MONITORING_PRICE_SUFFIX = " - price"

# Too generic for substring matching: exact header match only
GENERIC_PATTERNS = frozenset({"cena", "price", "cost", "summa", "skaits", "name", "code", "pl", "gm"})


def normalize_header(value: Any) -> str:
    """Lowercase and trim a header or cell for comparison."""
    if value is None:
        return ""
    return str(value).strip().lower()


def find_column(headers: Iterable[str], patterns: List[str]) -> Optional[str]:
    """
    Find the header matching one of the patterns.

    Exact matches win over substring matches; generic patterns never match by
    substring.

    Returns:
        The original header, or None
    """
    headers = list(headers)
    normalized = [(header, normalize_header(header)) for header in headers]

    for pattern in patterns:
        target = normalize_header(pattern)
        for header, key in normalized:
            if key == target:
                return header

    for pattern in patterns:
        target = normalize_header(pattern)
        if target in GENERIC_PATTERNS:
            continue
        for header, key in normalized:
            if target in key:
                return header

    return None


def find_column_value(row: Dict[str, Any], patterns: List[str]) -> Any:
    """Return the value of the first column matching the patterns, or None."""
    column = find_column(row.keys(), patterns)
    if column is None:
        return None
    return row[column]
