"""Conversion between on-chain base units and display units."""

from decimal import ROUND_FLOOR, Decimal


def to_display_units(base_units: int, decimals: int) -> float:
    """Convert base units to display units (e.g. 100000000 octas -> 1.0 APT)."""
    return base_units / 10**decimals


def to_base_units(amount: float, decimals: int) -> int:
    """Convert display units to base units, rounding down to a whole unit."""
    scaled = Decimal(str(amount)) * (Decimal(10) ** decimals)
    return int(scaled.to_integral_value(rounding=ROUND_FLOOR))
