"""Decimal helpers shared by the aggregation engine and the reports."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from querybench.core.errors import DivisionByZero

DEFAULT_SCALE = 4

_HUNDRED = Decimal(100)


def to_decimal(value: int | float | Decimal) -> Decimal:
    """Coerce a numeric sample to ``Decimal`` without float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a latency sample")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    raise TypeError(f"Unsupported sample type: {type(value).__name__}")


def quantize(value: Decimal, scale: int = DEFAULT_SCALE) -> Decimal:
    """Round half-up to ``scale`` decimal places."""
    return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)


def divide(numerator: Decimal, denominator: Decimal, scale: int = DEFAULT_SCALE) -> Decimal:
    """Divide and round half-up, refusing a zero denominator."""
    if denominator == 0:
        raise DivisionByZero(f"Cannot divide {numerator} by zero")
    return quantize(numerator / denominator, scale)


def to_percentage(
    numerator: Decimal | int | float,
    denominator: Decimal | int | float,
    scale: int = DEFAULT_SCALE,
) -> Decimal:
    """Express ``numerator`` as a percentage of ``denominator``.

    Raises:
        DivisionByZero: if the denominator is zero.
        ValueError: if either value is ``None``.
    """
    if numerator is None:
        raise ValueError("Non-null numerator required")
    if denominator is None:
        raise ValueError("Non-null denominator required")

    return divide(to_decimal(numerator) * _HUNDRED, to_decimal(denominator), scale)
