from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any

"""Locale-aware cell value normalization.

Spreadsheets coming from HR / timekeeping tools mix decimal conventions
("1.234,56" next to "1,234.56"), percentages and time values stored either
as text or as Excel's fractional-day numbers. The helpers here turn raw
cell values into canonical values and never raise on malformed input:
malformed input degrades to zero / None and it is up to the caller to flag
it.
"""

__all__ = [
    "NormalizedNumber",
    "PERCENT_NOTE",
    "cell_text",
    "format_period",
    "is_blank",
    "normalize_number",
    "parse_period",
    "parse_time_value",
]

PERCENT_NOTE = "Converted percentage to decimal"

MINUTES_PER_DAY = 24 * 60

_TIME_TEXT = re.compile(r"^(\d{1,2}):(\d{2})$")
_PERIOD_MONTH_FIRST = re.compile(r"^(\d{1,2})[-/](\d{4})$")
_PERIOD_YEAR_FIRST = re.compile(r"^(\d{4})[-/](\d{1,2})$")
_WHITESPACE = re.compile(r"\s+")
# longest marker first so "VNĐ" is not left as "VN"
_CURRENCY = re.compile(r"vnđ|vnd|đồng|đ|₫", re.IGNORECASE)
_PLAIN_NUMBER = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")
_GROUPED_THOUSANDS = re.compile(r"-?[0-9]{1,3}(?:,[0-9]{3})+")


@dataclass(frozen=True)
class NormalizedNumber:
    value: Decimal
    parsed: bool  # False -> input was unreadable and value fell back to 0
    notes: tuple[str, ...] = ()
    blank: bool = False


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False


def cell_text(value: Any) -> str:
    """Trimmed text form of a cell (integral floats lose their '.0')."""
    if is_blank(value):
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return str(int(value))
    return str(value).strip()


def _format_minutes(total_minutes: int) -> str:
    if total_minutes >= MINUTES_PER_DAY:
        return "24:00"
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}"


def parse_time_value(value: Any) -> str | None:
    """Convert a check-in / check-out cell to "HH:MM".

    Returns None for "no time" (blank, 0, "0", "-", unrecognised text),
    which is deliberately different from "00:00". A numeric time that
    reaches the end of the day (1.0, 0.99999) is "24:00", never "00:00".
    """
    if is_blank(value):
        return None
    if isinstance(value, datetime):
        return f"{value.hour:02d}:{value.minute:02d}"
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    if isinstance(value, timedelta):
        return _format_minutes(round(value.total_seconds() / 60))
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        number = float(value)
        if number == 0:
            return None
        # Excel time = fraction of a day; any integral (date) part is dropped
        fraction = number - math.floor(number)
        if fraction == 0:
            return _format_minutes(MINUTES_PER_DAY)
        return _format_minutes(round(fraction * MINUTES_PER_DAY))

    text = str(value).strip()
    if text in ("0", "-"):
        return None
    match = _TIME_TEXT.match(text)
    if match:
        return f"{int(match.group(1)):02d}:{match.group(2)}"
    return None


def _unify_separators(text: str) -> str | None:
    """Rewrite ``text`` as plain ``-123.45``; None when it is not a number.

    Thousands groups must be exactly three digits, so "1,234,56" is
    rejected rather than read as 123456.
    """
    has_comma = "," in text
    has_dot = "." in text
    if has_comma and has_dot:
        # whichever separator comes last is the decimal point
        decimal, thousands = (",", ".") if text.rfind(",") > text.rfind(".") else (".", ",")
    elif has_comma:
        decimal, thousands = (",", None) if text.count(",") == 1 else (None, ",")
    elif text.count(".") > 1:
        decimal, thousands = None, "."
    else:
        decimal, thousands = ".", None

    whole, fraction = text, None
    if decimal is not None and decimal in text:
        whole, fraction = text.rsplit(decimal, 1)
    if thousands is not None and thousands in whole:
        if not _GROUPED_THOUSANDS.fullmatch(whole.replace(thousands, ",")):
            return None
        whole = whole.replace(thousands, "")
    candidate = whole if fraction is None else f"{whole}.{fraction}"
    return candidate if _PLAIN_NUMBER.fullmatch(candidate) else None


def normalize_number(value: Any) -> NormalizedNumber:
    """Normalize a numeric cell into an exact Decimal.

    - both ',' and '.': the later one is the decimal point, the other a
      thousands separator ("1.234,56" == "1,234.56" == 1234.56)
    - a single ',' only: decimal point ("1,5" == 1.5)
    - a repeated separator of one kind: thousands ("12.000.000")
    - trailing '%': divided by 100, with a note
    - currency markers (đ, ₫, VNĐ, VND, đồng) are dropped

    Anything else outside ASCII digits and separators (exponents,
    underscores, other scripts' digits) makes the text unreadable.
    """
    if is_blank(value):
        return NormalizedNumber(Decimal(0), parsed=True, blank=True)
    if isinstance(value, bool):
        return NormalizedNumber(Decimal(int(value)), parsed=True)
    if isinstance(value, int):
        return NormalizedNumber(Decimal(value), parsed=True)
    if isinstance(value, float):
        if math.isinf(value):
            return NormalizedNumber(Decimal(0), parsed=False)
        # repr keeps the shortest round-tripping digits (0.1 stays 0.1)
        return NormalizedNumber(Decimal(repr(value)), parsed=True)
    if isinstance(value, Decimal):
        if not value.is_finite():
            return NormalizedNumber(Decimal(0), parsed=False)
        return NormalizedNumber(value, parsed=True)

    text = _WHITESPACE.sub("", str(value))  # \s covers NBSP too
    text = _CURRENCY.sub("", text)
    notes: list[str] = []
    percent = text.endswith("%")
    if percent:
        text = text[:-1]
    if text.startswith("+"):
        text = text[1:]
    plain = _unify_separators(text)
    if plain is None:
        return NormalizedNumber(Decimal(0), parsed=False)
    try:
        number = Decimal(plain)
    except InvalidOperation:
        return NormalizedNumber(Decimal(0), parsed=False)
    if percent:
        number = number / Decimal(100)
        notes.append(PERCENT_NOTE)
    return NormalizedNumber(number, parsed=True, notes=tuple(notes))


def parse_period(value: Any) -> tuple[int, int] | None:
    """Parse a period cell into (year, month).

    Accepts "MM-YYYY", "MM/YYYY", "YYYY-MM", "YYYY/MM" and date cells.
    The month range is NOT checked here so callers can report an
    out-of-range month separately from an unparseable one.
    """
    if is_blank(value):
        return None
    if isinstance(value, (datetime, date)):
        return value.year, value.month
    text = str(value).strip()
    match = _PERIOD_MONTH_FIRST.match(text)
    if match:
        return int(match.group(2)), int(match.group(1))
    match = _PERIOD_YEAR_FIRST.match(text)
    if match:
        return int(match.group(1)), int(match.group(2))
    return None


def format_period(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"
