import re
import math
from numbers import Number
from typing import Any, Optional

WUID_TOKEN_INDEX = 1
# range of the integer wuid / specimen_number columns
WUID_MIN = -(2 ** 31)
WUID_MAX = 2 ** 31 - 1

_integer_pattern = re.compile(r"[+-]?[0-9]+")
_decimal_pattern = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def extract_wuid(facility_sample_name: Any) -> Optional[int]:
    """
    Derives the WUID from a facility sample name, i.e. the integer at token index 1 of the
    underscore-delimited name.

        >>> extract_wuid("I13129_39552_Celiac_Leonard_Stool_01_GEMM_068_12M")
        39552

    Returns None if the name is empty, has fewer than two tokens or the second token is not an integer
    that fits the specimen_number column.
    """
    if not isinstance(facility_sample_name, str) or not facility_sample_name:
        return None

    tokens = facility_sample_name.split("_")
    if len(tokens) <= WUID_TOKEN_INDEX:
        return None

    token = tokens[WUID_TOKEN_INDEX].strip()
    if _integer_pattern.fullmatch(token) is None:
        return None

    wuid = int(token)
    if not WUID_MIN <= wuid <= WUID_MAX:
        return None
    return wuid


def _is_finite(value: Number) -> bool:
    # complex and signaling Decimal NaN are rejected by math.isfinite
    try:
        return math.isfinite(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return False


def parse_numeric(value: Any) -> int | float | None:
    """
    Parses numbers formatted with comma thousands separators, e.g. "1,613,040" -> 1613040.
    Absent, unparseable or non-finite values (None, NaN, inf, "", "as needed", ...) give None, never 0.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Number):
        return value if _is_finite(value) else None  # type: ignore[return-value]

    cleaned = str(value).replace(",", "").strip()
    if _integer_pattern.fullmatch(cleaned):
        return int(cleaned)
    if _decimal_pattern.fullmatch(cleaned):
        parsed = float(cleaned)
        return parsed if math.isfinite(parsed) else None
    return None


def parse_count(value: Any) -> Optional[int]:
    if (parsed := parse_numeric(value)) is None:
        return None
    if isinstance(parsed, float) and not parsed.is_integer():
        return round(parsed)
    return int(parsed)  # type: ignore[arg-type]


def build_fastq_path(
    base_directory: Optional[str], run_identifier: Optional[str], library_name: Optional[str], suffix: str
) -> Optional[str]:
    """ {base_directory}/{run_identifier}_{library_name}{suffix}, no filesystem access """
    if not base_directory or not library_name:
        return None

    base = base_directory.rstrip("/")
    if run_identifier:
        return f"{base}/{run_identifier}_{library_name}{suffix}"
    return f"{base}/{library_name}{suffix}"
