"""
mensura.core.numeric
====================

Numeric plumbing between exact rational unit coefficients and the value
representations a quantity may carry.

Supported representations
-------------------------
- ``int`` (integral): scaling is exact whenever the result is integral; a
  non-integral result is resolved by the active ``IntegralPolicy``.
- ``float``: values are multiplied through ``Fraction`` and rounded once,
  so chained coefficients do not accumulate error.
- ``fractions.Fraction``: fully exact.
- ``decimal.Decimal``: arbitrary precision under the current decimal context.

Other ``numbers.Real`` implementations are handled like floats.
"""

from __future__ import annotations

import math
import numbers
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Union

from mensura.core.errors import DivisionByZeroError, NumericConversionError

RationalLike = Union[int, Fraction, Decimal, float, str]

_ZERO = Fraction(0)
_ONE = Fraction(1)


class IntegralPolicy(str, Enum):
    """What to do when an integral value receives a non-integral result."""

    TRUNCATE = "truncate"   # toward zero
    ROUND = "round"         # round-half-even
    STRICT = "strict"       # raise NumericConversionError


_DEFAULT_POLICY = IntegralPolicy.TRUNCATE


def set_integral_policy(policy: "IntegralPolicy | str") -> None:
    """Set the process-wide default ``IntegralPolicy``."""
    global _DEFAULT_POLICY
    _DEFAULT_POLICY = IntegralPolicy(policy)


def get_integral_policy() -> IntegralPolicy:
    return _DEFAULT_POLICY


def _resolve_policy(policy: "IntegralPolicy | str | None") -> IntegralPolicy:
    if policy is None:
        return _DEFAULT_POLICY
    return IntegralPolicy(policy)


# ---------------------------------------------------------------------------
# Classification helpers
# ---------------------------------------------------------------------------

def is_exact(value: Any) -> bool:
    """True for representations that hold exact rationals (int, Fraction)."""
    return isinstance(value, numbers.Rational)


# ---------------------------------------------------------------------------
# Rational coercion
# ---------------------------------------------------------------------------

def as_rational(x: RationalLike) -> Fraction:
    """
    Convert ``x`` to an exact ``Fraction``.

    Floats are read through their shortest ``repr`` so that a literal such as
    ``0.3048`` becomes ``381/1250`` rather than its binary expansion. Strings
    accept anything ``Fraction`` accepts (``"0.3048"``, ``"5/9"``, ``"1e-3"``).

    Raises
    ------
    NumericConversionError
        If ``x`` is not finite or cannot be read as a rational.
    """
    if isinstance(x, numbers.Rational):
        return Fraction(x.numerator, x.denominator)
    if isinstance(x, Decimal):
        if not x.is_finite():
            raise NumericConversionError(f"Coefficient must be finite, got {x!r}")
        return Fraction(x)
    if isinstance(x, str):
        try:
            return Fraction(x.strip())
        except (ValueError, ZeroDivisionError) as e:
            raise NumericConversionError(f"Cannot read {x!r} as a rational number") from e
    if isinstance(x, numbers.Real):
        f = float(x)
        if not math.isfinite(f):
            raise NumericConversionError(f"Coefficient must be finite, got {x!r}")
        return Fraction(repr(f))
    raise NumericConversionError(
        f"Cannot use {type(x).__name__} as a rational coefficient"
    )


def to_fraction(value: Any) -> Fraction:
    """Exact rational value of a finite number (binary-exact for floats)."""
    try:
        if isinstance(value, (numbers.Rational, float, Decimal)):
            return Fraction(value)
        if isinstance(value, numbers.Real):
            return Fraction(float(value))
    except (ValueError, OverflowError) as e:
        raise NumericConversionError(f"Cannot represent {value!r} exactly") from e
    raise NumericConversionError(f"Unsupported numeric representation: {type(value).__name__}")


def to_integral(exact: Fraction, policy: "IntegralPolicy | str | None" = None) -> int:
    """Resolve an exact rational into an ``int`` according to ``policy``."""
    if exact.denominator == 1:
        return exact.numerator
    resolved = _resolve_policy(policy)
    if resolved is IntegralPolicy.TRUNCATE:
        return int(exact)
    if resolved is IntegralPolicy.ROUND:
        return round(exact)
    raise NumericConversionError(
        f"Result {exact} is not integral and the integral policy is 'strict'"
    )


def _fraction_to_decimal(f: Fraction) -> Decimal:
    return Decimal(f.numerator) / Decimal(f.denominator)


# ---------------------------------------------------------------------------
# Scaling
# ---------------------------------------------------------------------------

def scale(
    value: Any,
    factor: Fraction,
    offset: Fraction = _ZERO,
    policy: "IntegralPolicy | str | None" = None,
) -> Any:
    """
    Return ``value * factor + offset`` in the representation of ``value``.

    The identity case (``factor == 1`` and ``offset == 0``) returns ``value``
    untouched. Integral values whose result is integral are computed exactly
    with integer arithmetic.
    """
    if factor == _ONE and offset == _ZERO:
        return value

    if isinstance(value, bool):
        raise NumericConversionError("bool is not a numeric representation")

    if isinstance(value, numbers.Integral):
        exact = int(value) * factor + offset
        return to_integral(exact, policy)

    if isinstance(value, numbers.Rational):
        return Fraction(value) * factor + offset

    if isinstance(value, Decimal):
        result = (value * factor.numerator) / factor.denominator
        if offset:
            result += _fraction_to_decimal(offset)
        return result

    if isinstance(value, numbers.Real):
        f = float(value)
        if not math.isfinite(f):
            result = f * float(factor) + float(offset)
        else:
            result = float(Fraction(f) * factor + offset)
        return result if type(value) is float else type(value)(result)

    raise NumericConversionError(f"Unsupported numeric representation: {type(value).__name__}")


# ---------------------------------------------------------------------------
# Arithmetic that respects integral representations
# ---------------------------------------------------------------------------

def one_like(value: Any) -> Any:
    """Multiplicative identity in the representation of ``value``."""
    if isinstance(value, numbers.Integral):
        return 1
    if isinstance(value, numbers.Rational):
        return Fraction(1)
    if isinstance(value, Decimal):
        return Decimal(1)
    if isinstance(value, float):
        return 1.0
    return type(value)(1)


def divide(a: Any, b: Any, policy: "IntegralPolicy | str | None" = None) -> Any:
    """
    ``a / b`` staying inside the representation of the operands.

    Two integral operands divide exactly and the quotient is resolved through
    the integral policy, so ``10 / 3`` on ints yields ``3`` under ``TRUNCATE``.
    """
    if isinstance(a, numbers.Integral) and isinstance(b, numbers.Integral):
        if b == 0:
            raise DivisionByZeroError("integer division by zero")
        return to_integral(Fraction(int(a), int(b)), policy)
    return a / b


def power(value: Any, exponent: int, policy: "IntegralPolicy | str | None" = None) -> Any:
    """Raise ``value`` to an integer power; negative powers go through ``divide``."""
    if not isinstance(exponent, numbers.Integral) or isinstance(exponent, bool):
        raise TypeError(f"Exponent must be an int, got {type(exponent).__name__}")
    if exponent == 0:
        return one_like(value)
    if exponent > 0:
        return value ** exponent
    return divide(one_like(value), value ** (-exponent), policy)


# ---------------------------------------------------------------------------
# Representation changes
# ---------------------------------------------------------------------------

def convert_rep(value: Any, target: type, policy: "IntegralPolicy | str | None" = None) -> Any:
    """Convert ``value`` into the numeric type ``target``."""
    if isinstance(target, type) and issubclass(target, bool):
        raise NumericConversionError("bool is not a numeric representation")
    if isinstance(target, type) and issubclass(target, numbers.Integral):
        if isinstance(value, numbers.Integral):
            return target(value)
        return target(to_integral(to_fraction(value), policy))
    if target is Fraction:
        return to_fraction(value)
    if target is Decimal:
        if isinstance(value, numbers.Rational) and not isinstance(value, numbers.Integral):
            return _fraction_to_decimal(Fraction(value))
        if isinstance(value, float):
            return Decimal(repr(value))
        return Decimal(value)
    try:
        return target(value)
    except (TypeError, ValueError) as e:
        raise NumericConversionError(
            f"Cannot convert {type(value).__name__} to {getattr(target, '__name__', target)}"
        ) from e


__all__ = [
    "IntegralPolicy",
    "set_integral_policy",
    "get_integral_policy",
    "as_rational",
    "to_fraction",
    "to_integral",
    "is_exact",
    "scale",
    "one_like",
    "divide",
    "power",
    "convert_rep",
]
