"""
Metric normalizer: raw aggregate values to 0-100 sub-scores.

Pure functions. Never divides by zero and never returns NaN.
"""
from __future__ import annotations

import math


def normalize(raw_value: float | None, reference_scale: float) -> float:
    """Linear-clamp a raw value against its reference scale.

    ``normalize(45, 50) == 90.0``; anything at or above the scale is 100,
    negative values clamp to 0. A zero or negative scale, and a missing or
    NaN raw value, yield 0.
    """
    if raw_value is None or not reference_scale or reference_scale <= 0:
        return 0.0
    if math.isnan(raw_value) or raw_value <= 0:
        return 0.0
    return min(100.0, max(0.0, (raw_value / reference_scale) * 100))


def round_half_up(value: float, ndigits: int = 0) -> float | int:
    """Round halves toward positive infinity.

    ``round()`` rounds halves to even, so ``round(0.5) == 0``; here
    ``round_half_up(0.5) == 1`` and ``round_half_up(-2.5) == -2``.
    With ``ndigits=0`` an int is returned.
    """
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5)
    if ndigits == 0:
        return int(rounded)
    return rounded / factor


def safe_rate(numerator: float, denominator: float) -> float:
    """Percentage ``numerator / denominator * 100``, 0 when the denominator is 0."""
    if not denominator or denominator <= 0:
        return 0.0
    return (numerator / denominator) * 100
