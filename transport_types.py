"""
Transportation Problem Solver - Shared types

Numbers are plain Python numbers. Exact inputs (int, Fraction) stay
exact because the algorithm never divides; floats are compared with EPS.
INF marks a cost cell that is no longer available; None marks an
unknown potential and is never compared.
"""

import math
import numbers
from decimal import Decimal
from fractions import Fraction
from typing import NamedTuple

from transport_errors import ConfigurationError

EPS = 1e-9
INF = math.inf


class Coord(NamedTuple):
    """Cell of the cost matrix: x is the column, y is the row"""
    x: int
    y: int


def to_number(value):
    """
    Normalize a user supplied value into the internal numeric type

    Args:
        value: int, float, Fraction, Decimal, numpy scalar or numeric string

    Returns:
        int, Fraction or float
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Boolean {value!r} is not a quantity")
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, Fraction):
        return value
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ConfigurationError(f"Non-finite value {value!r}")
        return Fraction(value)
    if isinstance(value, numbers.Rational):
        return Fraction(value.numerator, value.denominator)
    if isinstance(value, numbers.Real):
        return float(value)
    if isinstance(value, str):
        try:
            number = Fraction(value.strip())
        except ValueError:
            raise ConfigurationError(f"Cannot read {value!r} as a number") from None
        return number.numerator if number.denominator == 1 else number
    raise ConfigurationError(f"Unsupported numeric value {value!r}")


def is_zero(value):
    if isinstance(value, float):
        return abs(value) < EPS
    return value == 0


def is_positive(value):
    if isinstance(value, float):
        return value > EPS
    return value > 0


def clean(value):
    """Snap float round-off around zero back to zero"""
    if isinstance(value, float) and abs(value) < EPS:
        return 0.0
    return value
