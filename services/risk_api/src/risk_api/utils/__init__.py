"""Utility modules."""

from services.risk_api.src.risk_api.utils.units import to_base_units, to_display_units

__all__ = [
    "to_base_units",
    "to_display_units",
]
