"""
Parsing of Kubernetes resource quantities ("100m", "512Mi", "1.5", "2e3").
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from mcp_devops.errors import QuantityParseError

# Suffix -> multiplier into base units (cores for CPU, bytes for memory)
SUFFIXES = {
    "": Decimal(1),
    "m": Decimal("0.001"),
    "k": Decimal(10) ** 3,
    "M": Decimal(10) ** 6,
    "G": Decimal(10) ** 9,
    "T": Decimal(10) ** 12,
    "P": Decimal(10) ** 15,
    "E": Decimal(10) ** 18,
    "Ki": Decimal(2) ** 10,
    "Mi": Decimal(2) ** 20,
    "Gi": Decimal(2) ** 30,
    "Ti": Decimal(2) ** 40,
    "Pi": Decimal(2) ** 50,
    "Ei": Decimal(2) ** 60,
}

MEBIBYTE = SUFFIXES["Mi"]

_QUANTITY_RE = re.compile(r"^([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)([A-Za-z]*)$")


def parse_quantity(value: Union[str, int, float]) -> float:
    """
    Parse a resource quantity into base units.

    Args:
        value: Quantity as written in a manifest, e.g. ``"250m"`` or ``"1Gi"``

    Returns:
        The quantity in base units (cores or bytes)

    Raises:
        QuantityParseError: If the value is empty or uses an unknown suffix
    """
    if isinstance(value, bool):
        raise QuantityParseError(f"Invalid resource quantity: {value!r}")
    if isinstance(value, (int, float)):
        return float(value)

    text = str(value).strip()
    match = _QUANTITY_RE.match(text)
    if not match:
        raise QuantityParseError(f"Invalid resource quantity: {value!r}")

    number, suffix = match.groups()
    if suffix not in SUFFIXES:
        raise QuantityParseError(f"Unknown resource quantity suffix {suffix!r} in {value!r}")

    try:
        return float(Decimal(number) * SUFFIXES[suffix])
    except InvalidOperation as e:
        raise QuantityParseError(f"Invalid resource quantity: {value!r}") from e


def parse_cpu(value: Optional[str]) -> Optional[float]:
    """CPU quantity in cores, or None when unset."""
    if value is None:
        return None
    return parse_quantity(value)


def parse_memory_mib(value: Optional[str]) -> Optional[float]:
    """Memory quantity in MiB, or None when unset."""
    if value is None:
        return None
    return float(Decimal(str(parse_quantity(value))) / MEBIBYTE)
