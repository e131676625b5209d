from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Any

from ..models.config_models import FieldClass, PrecisionRule
from .values import normalize_number

"""Fixed-point precision enforcement for numeric payroll fields.

Every numeric payroll column is stored as DECIMAL(p, s). A value that
overflows the integer part must be rejected here, before it ever reaches
persistence; excess decimals are only rounded (with a warning).
"""

__all__ = [
    "DEFAULT_MONEY_RULE",
    "FIELD_PRECISION_RULES",
    "PrecisionResult",
    "parse_precise_number",
    "rule_for",
    "validate_precision",
]

# Coefficient / time fields larger than this are rejected outright.
MAX_COEFFICIENT_OR_TIME = Decimal("99999.9999999999")

_DAYS_WARNING = "Days value seems high for a month"
_HOURS_WARNING = "Hours value seems high for a month (744 = 31 days x 24 hours)"
_COEFFICIENT_WARNING = "Coefficient value seems unusually high"


def _coefficient(max_integer_digits: int = 3) -> PrecisionRule:
    return PrecisionRule(
        max_integer_digits=max_integer_digits,
        max_decimal_places=2,
        allow_negative=False,
        field_class=FieldClass.COEFFICIENT,
        warn_above=Decimal(100),
        warn_message=_COEFFICIENT_WARNING,
    )


def _days() -> PrecisionRule:
    return PrecisionRule(3, 2, False, FieldClass.TIME, Decimal(31), _DAYS_WARNING)


def _hours() -> PrecisionRule:
    return PrecisionRule(3, 2, False, FieldClass.TIME, Decimal(744), _HOURS_WARNING)


DEFAULT_MONEY_RULE = PrecisionRule(
    max_integer_digits=13,
    max_decimal_places=2,
    allow_negative=True,
    field_class=FieldClass.MONEY,
)

# Read-only lookup table; shared by every import, never mutated at runtime.
FIELD_PRECISION_RULES: MappingProxyType[str, PrecisionRule] = MappingProxyType({
    # DECIMAL(5,2)
    "he_so_lam_viec": _coefficient(),
    "he_so_phu_cap_ket_qua": _coefficient(),
    "he_so_luong_co_ban": _coefficient(),
    "ngay_cong_trong_gio": _days(),
    "ngay_cong_phep_le": _days(),
    "ngay_cong_chu_nhat": _days(),
    "gio_cong_tang_ca": _hours(),
    "gio_an_ca": _hours(),
    "tong_gio_lam_viec": _hours(),
    # DECIMAL(15,2)
    "tong_he_so_quy_doi": _coefficient(max_integer_digits=13),
})


def rule_for(field_name: str | None) -> PrecisionRule:
    if field_name is None:
        return DEFAULT_MONEY_RULE
    return FIELD_PRECISION_RULES.get(field_name, DEFAULT_MONEY_RULE)


@dataclass(frozen=True)
class PrecisionResult:
    ok: bool
    value: Decimal | None = None
    error: str | None = None
    warnings: tuple[str, ...] = ()
    parsed: bool = True  # False -> the text was not a number at all


def _integer_digits(value: Decimal) -> int:
    return len(str(int(abs(value))))


def _decimal_places(value: Decimal) -> int:
    exponent = value.normalize().as_tuple().exponent
    return -exponent if isinstance(exponent, int) and exponent < 0 else 0


def validate_precision(
    value: Decimal | float | int,
    field_name: str | None = None,
    rule: PrecisionRule | None = None,
) -> PrecisionResult:
    """Check a normalized number against a field's PrecisionRule.

    Hard errors: negative where disallowed, too many integer digits,
    coefficient/time above MAX_COEFFICIENT_OR_TIME. Soft: excess decimals
    (rounded half-up) and plausibility ceilings.
    """
    rule = rule or rule_for(field_name)
    label = field_name or "this field"
    number = value if isinstance(value, Decimal) else normalize_number(value).value
    warnings: list[str] = []

    if not rule.allow_negative and number < 0:
        return PrecisionResult(False, error=f"Negative values not allowed for {label}")

    if _integer_digits(number) > rule.max_integer_digits:
        return PrecisionResult(
            False,
            error=(
                f"Value too large for {label}. "
                f"Maximum {rule.max_integer_digits} integer digits allowed"
            ),
        )

    if _decimal_places(number) > rule.max_decimal_places:
        warnings.append(f"Truncated to {rule.max_decimal_places} decimal places")
    quantum = Decimal(1).scaleb(-rule.max_decimal_places)
    rounded = number.quantize(quantum, rounding=ROUND_HALF_UP)

    if rule.field_class is not FieldClass.MONEY and rounded > MAX_COEFFICIENT_OR_TIME:
        return PrecisionResult(
            False,
            error=f"{rule.field_class.value.capitalize()} value too large. Maximum: 99,999.9999999999",
        )
    if rule.warn_above is not None and rounded > rule.warn_above:
        warnings.append(rule.warn_message or f"Value above {rule.warn_above} seems implausible")

    return PrecisionResult(True, value=rounded, warnings=tuple(warnings))


def parse_precise_number(raw: Any, field_name: str | None = None) -> PrecisionResult:
    """Normalize a raw cell and validate it in one step.

    Blank cells are a successful zero. Non-blank text that cannot be read
    as a number is a hard error at this layer.
    """
    normalized = normalize_number(raw)
    if normalized.blank:
        return PrecisionResult(True, value=Decimal(0))
    if not normalized.parsed:
        return PrecisionResult(False, error=f"Cannot convert '{raw}' to number", parsed=False)
    result = validate_precision(normalized.value, field_name)
    if normalized.notes and result.ok:
        return PrecisionResult(True, value=result.value, warnings=normalized.notes + result.warnings)
    return result
