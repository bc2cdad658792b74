"""Human-readable size formatting for listing output."""

from typing import Optional

BYTE_UNITS = ["B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB"]


def format_byte_down(
    value: Optional[float], limes: int = 6, comma: int = 0
) -> Optional[tuple[str, str]]:
    """
    Format a byte count using the largest fitting binary unit.

    A unit is chosen only when the value has at least ``limes`` significant
    digits in the unit below it, so ``limes=3`` turns 1000 bytes into
    ``("1.0", "KiB")`` while 999 bytes stay ``("999", "B")``.

    Args:
        value: Number of bytes
        limes: Number of digits before switching to the next unit
        comma: Number of decimals for non-byte units

    Returns:
        Tuple of (formatted value, unit) or None when value is None
    """
    if value is None:
        return None

    threshold_base = 10**limes
    divisor_base = 10**comma
    unit = BYTE_UNITS[0]
    scaled = float(value)

    for exponent in range(len(BYTE_UNITS) - 1, 0, -1):
        unit_size = threshold_base * 10 ** (3 * (exponent - 1))
        if value >= unit_size:
            scaled = round(value / (1024**exponent / divisor_base)) / divisor_base
            unit = BYTE_UNITS[exponent]
            break

    if unit == BYTE_UNITS[0]:
        return f"{int(value):,}", unit
    return f"{scaled:,.{comma}f}", unit


def format_size(value: int) -> tuple[str, str]:
    """Format a table size the way listing rows show it."""
    formatted = format_byte_down(value, 3, 1 if value > 0 else 0)
    assert formatted is not None
    return formatted
