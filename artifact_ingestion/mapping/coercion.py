"""
Value coercion: one raw TSV cell -> TypedValue for a target attribute type.

Pure apart from logging. Each value kind's policy (trim, blank-is-null,
zero-is-null, parser) lives in COERCION_RULES as data, so callers and tests
can swap or extend rules without touching the algorithm.
"""

from __future__ import annotations

import math
import re
import unicodedata
from dataclasses import dataclass
from datetime import datetime
from functools import lru_cache
from typing import Any, Callable, Mapping

from artifact_ingestion.config import DEFAULT_CONFIG, IngestionConfig
from artifact_ingestion.domain.network import extract_domain
from artifact_ingestion.domain.types import AttributeType, TypedValue, ValidationError, ValueKind
from artifact_ingestion.logging_config import get_logger

logger = get_logger("mapping.coercion")

_ZERO_RE = re.compile(r"^\s*[0.]*\s*$")
_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_NON_FINITE_RE = re.compile(r"[+-]?(?:NaN|Infinity)")

# strptime directive -> pattern for the text it consumes
_DIRECTIVE_PATTERNS = {
    "Y": r"\d{1,4}",
    "y": r"\d{2}",
    "m": r"\d{1,2}",
    "d": r"\d{1,2}",
    "H": r"\d{1,2}",
    "I": r"\d{1,2}",
    "M": r"\d{1,2}",
    "S": r"\d{1,2}",
    "f": r"\d{1,6}",
    "j": r"\d{1,3}",
    "p": r"[AaPp][Mm]",
    "a": r"[A-Za-z]+",
    "A": r"[A-Za-z]+",
    "b": r"[A-Za-z]+",
    "B": r"[A-Za-z]+",
    "z": r"(?:Z|[+-]\d{2}:?\d{2})",
    "%": "%",
}


@lru_cache(maxsize=32)
def _timestamp_prefix_re(timestamp_format: str) -> re.Pattern[str] | None:
    """Regex matching the leading timestamp text of timestamp_format, or None."""
    parts = []
    for literal, directive in re.findall(r"([^%]*)(?:%(.))?", timestamp_format):
        parts.append(re.escape(literal))
        if directive:
            pattern = _DIRECTIVE_PATTERNS.get(directive)
            if pattern is None:
                return None
            parts.append(pattern)
    return re.compile("".join(parts))

_INT32 = (-(2**31), 2**31 - 1)
_INT64 = (-(2**63), 2**63 - 1)


# -----------------------------------------------------------------------------
# Result type
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CoercionResult:
    """Result of coercing a raw cell. success False means "no value"."""

    success: bool
    value: TypedValue | None = None
    error: ValidationError | None = None


# -----------------------------------------------------------------------------
# Parsers (raise ValueError on bad input)
# -----------------------------------------------------------------------------


Parser = Callable[[str, IngestionConfig], Any]


def _parse_float(value: str) -> float:
    # Trailing d/D/f/F type suffixes are accepted by the tool's numeric writer
    if value[-1:] in ("d", "D", "f", "F"):
        value = value[:-1]
    # float() alone would also take "1_000", "inf", "nan" and non-ASCII digits
    if not (_DECIMAL_RE.fullmatch(value) or _NON_FINITE_RE.fullmatch(value)):
        raise ValueError(f"not a decimal number: {value!r}")
    return float(value)


def _narrow(number: float, bounds: tuple[int, int]) -> int:
    """Truncate toward zero, saturating at bounds; NaN narrows to 0."""
    if math.isnan(number):
        return 0
    low, high = bounds
    if number <= low:
        return low
    if number >= high:
        return high
    return int(number)


def _parse_identity(value: str, config: IngestionConfig) -> str:
    return value


def _parse_integer(value: str, config: IngestionConfig) -> int:
    return _narrow(_parse_float(value), _INT32)


def _parse_long(value: str, config: IngestionConfig) -> int:
    return _narrow(_parse_float(value), _INT64)


def _parse_double(value: str, config: IngestionConfig) -> float:
    return _parse_float(value)


def _parse_byte(value: str, config: IngestionConfig) -> bytes:
    if not re.fullmatch(r"[+-]?\d+", value):
        raise ValueError(f"not a byte literal: {value!r}")
    number = int(value)
    if not -128 <= number <= 127:
        raise ValueError(f"byte value out of range: {number}")
    return number.to_bytes(1, "big", signed=True)


def _parse_datetime(value: str, config: IngestionConfig) -> int:
    try:
        parsed = datetime.strptime(value, config.timestamp_format)
    except ValueError:
        # Tolerate trailing text (e.g. fractional seconds) after the timestamp
        prefix_re = _timestamp_prefix_re(config.timestamp_format)
        match = prefix_re.match(value) if prefix_re is not None else None
        if match is None or match.group(0) == value:
            raise
        parsed = datetime.strptime(match.group(0), config.timestamp_format)
    return int(parsed.replace(tzinfo=config.tzinfo).timestamp())


# -----------------------------------------------------------------------------
# Rules
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CoercionRule:
    """How one value kind turns a raw string into a value."""

    parser: Parser
    trim: bool = False
    blank_is_null: bool = False
    zero_is_null: bool = False


_NUMERIC = dict(trim=True, blank_is_null=True, zero_is_null=True)

COERCION_RULES: Mapping[ValueKind, CoercionRule] = {
    ValueKind.STRING: CoercionRule(_parse_identity),
    ValueKind.JSON: CoercionRule(_parse_identity),
    ValueKind.INTEGER: CoercionRule(_parse_integer, **_NUMERIC),
    ValueKind.LONG: CoercionRule(_parse_long, **_NUMERIC),
    ValueKind.DOUBLE: CoercionRule(_parse_double, **_NUMERIC),
    ValueKind.BYTE: CoercionRule(_parse_byte, **_NUMERIC),
    ValueKind.DATETIME: CoercionRule(_parse_datetime, **_NUMERIC),
}


# -----------------------------------------------------------------------------
# Coercion
# -----------------------------------------------------------------------------


def strip_non_printable(value: str) -> str:
    """Remove every Unicode "Other" (C*) character: controls, format, unassigned."""
    return "".join(ch for ch in value if unicodedata.category(ch)[0] != "C")


def _no_value(code: str, message: str, attribute_type: AttributeType, **details: Any) -> CoercionResult:
    return CoercionResult(
        success=False,
        error=ValidationError(code=code, message=message, field=attribute_type.name, details=details or None),
    )


def coerce_value(
    raw: str | None,
    attribute_type: AttributeType,
    *,
    file_name: str = "",
    config: IngestionConfig | None = None,
    rules: Mapping[ValueKind, CoercionRule] = COERCION_RULES,
) -> CoercionResult:
    """
    Coerce a raw cell to attribute_type's value kind.

    Host identifier attribute types are first reduced to their domain and then
    treated as STRING. Blank or zero-like input for kinds whose rule says so,
    and unparseable input, produce a failed result ("no value").
    """
    config = config or DEFAULT_CONFIG
    if raw is None:
        return _no_value("VALUE_UNRESOLVABLE", "No value present", attribute_type)

    kind = attribute_type.value_kind
    value = raw
    if config.is_domain_attribute(attribute_type.name):
        value = extract_domain(value)
        kind = ValueKind.STRING

    rule = rules.get(kind)
    if rule is None:
        logger.warning(
            "Attribute type %s for file %s not defined.",
            attribute_type.name,
            file_name,
            extra={"attribute_type": attribute_type.name, "value_kind": kind.value, "file_name": file_name},
        )
        return _no_value("UNSUPPORTED_VALUE_KIND", f"No coercion rule for {kind.value}", attribute_type)

    if rule.trim:
        value = value.strip()
    value = strip_non_printable(value)

    if rule.blank_is_null and not value.strip():
        return _no_value("BLANK_VALUE", "Blank value for non-string kind", attribute_type)

    if rule.zero_is_null and _ZERO_RE.match(value):
        return _no_value("ZERO_VALUE", f"Zero-like value {value!r} treated as no value", attribute_type)

    try:
        parsed = rule.parser(value, config)
    except (ValueError, OverflowError) as exc:
        logger.warning(
            "Unable to format '%s' as value type %s while converting to attributes from %s.",
            value,
            kind.value,
            file_name,
            extra={"raw_value": value, "value_kind": kind.value, "file_name": file_name},
        )
        return _no_value(
            "VALUE_UNRESOLVABLE",
            f"Cannot coerce {value!r} to {kind.value}",
            attribute_type,
            reason=str(exc),
        )

    return CoercionResult(success=True, value=TypedValue(kind=kind, value=parsed))
