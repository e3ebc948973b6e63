"""Numeric helpers shared by the pricing, approval and dashboard rules.

Pure functions with no external dependencies.
"""

from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float, places: int = 1) -> float:
    """Round to ``places`` decimals, halves away from zero.

    Goes through ``repr`` so that binary float noise does not flip a half:
    ``round_half_up(0.25, 1) == 0.3`` and ``round_half_up(-0.25, 1) == -0.3``.
    """
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def safe_percentage(numerator: float, denominator: float, places: int = 1) -> float:
    """numerator / denominator * 100, rounded. A zero denominator yields 0."""
    if not denominator:
        return 0.0
    return round_half_up(numerator / denominator * 100, places)


def format_idr(amount: float) -> str:
    """Format an amount as Indonesian rupiah, e.g. ``Rp 1.500.000``."""
    rounded = int(Decimal(repr(amount)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    grouped = f"{abs(rounded):,}".replace(",", ".")
    sign = "-" if rounded < 0 else ""
    return f"{sign}Rp {grouped}"
