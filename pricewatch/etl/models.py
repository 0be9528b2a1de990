"""Typed rows and tagged results produced by the ETL engine."""

from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union


class FileType(str, Enum):
    """Detected feed kind."""

    PRODUCT = "product"
    SALES = "sales"
    MONITORING = "monitoring"
    UNKNOWN = "unknown"


@dataclass
class ProductRow:
    """One catalog product after grouping and merging by SKU."""

    sku: str
    product_name: str
    ean: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    country: Optional[str] = None
    volume: Optional[float] = None
    volume_unit: Optional[str] = None
    abv: Optional[float] = None
    cost_price: Optional[Decimal] = None
    current_price: Optional[Decimal] = None
    vat_rate: Optional[float] = None
    private_label: Optional[bool] = None
    status: Optional[str] = None


@dataclass
class SalesRow:
    """One sales line (product x week x store)."""

    product_name: str
    week_end_date: date
    sku: Optional[str] = None
    store_code: Optional[str] = None
    units_sold: Optional[float] = None
    net_revenue: Optional[Decimal] = None
    gross_margin: Optional[Decimal] = None
    regular_price: Optional[Decimal] = None
    promo_price: Optional[Decimal] = None
    promo_flag: Optional[bool] = None
    promo_name: Optional[str] = None
    stock_end: Optional[float] = None
    period_type: Optional[str] = None
    partner: Optional[str] = None


@dataclass
class MonitoringRow:
    """One row of a competitor price-monitoring feed."""

    product_code: str
    product_name: Optional[str] = None
    barcode: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    my_price: Optional[Decimal] = None
    my_position: Optional[str] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    avg_price: Optional[Decimal] = None
    cheapest_site: Optional[str] = None
    highest_site: Optional[str] = None
    num_matches: Optional[int] = None
    # competitor domain -> price (None when the site has no price)
    competitors: Dict[str, Optional[Decimal]] = field(default_factory=dict)


@dataclass
class ETLSummary:
    """Row accounting for one ETL run."""

    total_rows_input: int = 0
    total_rows_valid: int = 0
    total_rows_skipped: int = 0
    skipped_reasons: Dict[str, int] = field(default_factory=dict)
    detected_format: Optional[str] = None
    message: Optional[str] = None

    def skip(self, reason: str) -> None:
        self.total_rows_skipped += 1
        self.skipped_reasons[reason] = self.skipped_reasons.get(reason, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ProductETLResult:
    rows: List[ProductRow]
    summary: ETLSummary
    kind: Literal["product"] = "product"


@dataclass
class SalesETLResult:
    rows: List[SalesRow]
    summary: ETLSummary
    kind: Literal["sales"] = "sales"


@dataclass
class MonitoringETLResult:
    rows: List[MonitoringRow]
    summary: ETLSummary
    competitor_sites: List[str] = field(default_factory=list)
    kind: Literal["monitoring"] = "monitoring"


@dataclass
class UnknownETLResult:
    """Unrecognized or empty input: no rows, only a message."""

    message: str
    summary: ETLSummary
    headers: List[str] = field(default_factory=list)
    kind: Literal["unknown"] = "unknown"


ETLResult = Union[ProductETLResult, SalesETLResult, MonitoringETLResult, UnknownETLResult]
