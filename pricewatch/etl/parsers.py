"""Loose cell parsers for spreadsheet-decoded values.

Cells arrive as whatever the decoder produced: str, int, float (possibly NaN),
bool, date or datetime. Every parser returns None for blank or unparseable
input instead of raising.
"""

import math
import re
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

_CURRENCY = re.compile(r"[€$£¥₽\s%]")
_NUMERIC_PREFIX = re.compile(r"^[-+]?\d*\.?\d+(?:[eE][-+]?\d+)?")

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_DMY_DATE = re.compile(r"^(\d{1,2})[./](\d{1,2})[./](\d{4})$")
_YMD_DATE = re.compile(r"^(\d{4})[./](\d{1,2})[./](\d{1,2})$")
_DM_DATE = re.compile(r"^(\d{1,2})[./](\d{1,2})$")

# Day zero of spreadsheet serial dates (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = date(1899, 12, 30)

TRUE_VALUES = {"yes", "y", "1", "true", "jā", "ja"}
FALSE_VALUES = {"no", "n", "0", "false", "nē", "ne"}
PLACEHOLDERS = {"", "-", "nan", "none", "null"}


def is_blank(value: Any) -> bool:
    """True for None, NaN and empty / placeholder strings."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip().lower() in PLACEHOLDERS:
        return True
    return False


def clean_string(value: Any) -> Optional[str]:
    """Trimmed string, or None when blank."""
    if is_blank(value):
        return None
    return str(value).strip()


def parse_decimal(value: Any) -> Optional[Decimal]:
    """
    Parse a money/quantity cell into a Decimal.

    Handles currency symbols, spaces, percent signs, decimal commas and
    thousands separators ("1,234.50", "1.234,50" and "1 234,50"). When both a
    comma and a dot appear, the rightmost one is the decimal separator.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    cleaned = _CURRENCY.sub("", str(value))
    if "," in cleaned and "." in cleaned:
        thousands = "." if cleaned.rfind(",") > cleaned.rfind(".") else ","
        cleaned = cleaned.replace(thousands, "").replace(",", ".")
    else:
        cleaned = cleaned.replace(",", ".")

    match = _NUMERIC_PREFIX.match(cleaned)
    if not match:
        return None
    try:
        return Decimal(match.group(0))
    except InvalidOperation:
        return None


def parse_number(value: Any) -> Optional[float]:
    """Like parse_decimal, as a float."""
    number = parse_decimal(value)
    return float(number) if number is not None else None


def parse_bool(value: Any) -> Optional[bool]:
    """Parse yes/no style flags (EN + LV)."""
    if isinstance(value, bool):
        return value
    if is_blank(value):
        return None

    normalized = str(value).strip().lower()
    if isinstance(value, float) and value.is_integer():
        normalized = str(int(value))

    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date(value: Any, year: Optional[int] = None) -> Optional[date]:
    """
    Parse a date cell.

    Accepts date/datetime objects, spreadsheet serial numbers, ISO
    (YYYY-MM-DD), DD.MM.YYYY, DD/MM/YYYY, YYYY/MM/DD, and DD.MM (in ``year``,
    default the current year).
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        try:
            return EXCEL_EPOCH + timedelta(days=int(value))
        except OverflowError:
            return None

    text = str(value).strip()

    match = _ISO_DATE.match(text)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = _DMY_DATE.match(text)
    if match:
        return _safe_date(int(match.group(3)), int(match.group(2)), int(match.group(1)))

    match = _YMD_DATE.match(text)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = _DM_DATE.match(text)
    if match:
        return _safe_date(year or date.today().year, int(match.group(2)), int(match.group(1)))

    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def parse_ean(value: Any) -> Optional[str]:
    """Keep only the digits of a barcode cell."""
    if is_blank(value):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    digits = re.sub(r"\D", "", str(value))
    return digits or None


def parse_feed_price(value: Any) -> Optional[Decimal]:
    """Monitoring-feed price: '-', blank and non-positive values mean no price."""
    price = parse_decimal(value)
    if price is None or price <= 0:
        return None
    return price
