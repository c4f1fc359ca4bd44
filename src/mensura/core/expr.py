"""
mensura.core.expr
=================

Immutable unit-expression trees.

A ``UnitExpr`` is one of

- ``Unitless``            the multiplicative identity,
- ``Ref(id)``             a registered unit,
- ``Mul(left, right)``    a product,
- ``Div(left, right)``    a quotient,
- ``Pow(base, exponent)`` an integer power.

Expressions are symbolic: ``u.m / u.s`` builds ``Div(Ref("meter"),
Ref("second"))`` and keeps that spelling. Reduction to base units happens only
in ``mensura.core.canonical`` when a conversion or comparison needs it.

Temperature scales are referenced through the separate ``TempRef`` type,
which does not compose.
"""

from __future__ import annotations

import numbers
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterator

if TYPE_CHECKING:  # pragma: no cover - imported only for type checking
    from mensura.core.quantity import Quantity, Temperature


class UnitExpr:
    """Base class of the unit-expression variants."""

    __slots__ = ()

    def refs(self) -> Iterator[str]:
        """Yield every unit identifier referenced by this expression."""
        return iter(())

    # --- algebra ---
    def __mul__(self, other: object) -> "UnitExpr":
        if not isinstance(other, UnitExpr):
            return NotImplemented
        return Mul(self, other)

    def __truediv__(self, other: object) -> "UnitExpr":
        if not isinstance(other, UnitExpr):
            return NotImplemented
        return Div(self, other)

    def __pow__(self, n: int, modulo: Any | None = None) -> "UnitExpr":
        if modulo is not None:
            raise TypeError("Modulo exponentiation is not supported for unit expressions.")
        return Pow(self, n)

    def __rtruediv__(self, n: object) -> "UnitExpr":
        if isinstance(n, numbers.Number) and not isinstance(n, bool) and n == 1:
            return Div(UNITLESS, self)
        raise TypeError(
            f"Invalid operation: cannot divide {n!r} by a unit expression. "
            "Only 1/unit (reciprocal) is supported."
        )

    def __rmul__(self, value: object) -> "Quantity":
        # 3 * u.m -> Quantity(3, m)
        from mensura.core.quantity import Quantity

        if not isinstance(value, numbers.Number) or isinstance(value, bool):
            return NotImplemented
        return Quantity(value, self)

    def __str__(self) -> str:
        from mensura.core.formatting import unit_str

        return unit_str(self)


@dataclass(frozen=True, slots=True)
class Unitless(UnitExpr):
    def __repr__(self) -> str:
        return "Unitless()"


@dataclass(frozen=True, slots=True)
class Ref(UnitExpr):
    id: str

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("unit id must be a non-empty string")

    def refs(self) -> Iterator[str]:
        yield self.id

    def as_temperature(self) -> "TempRef":
        """The same unit, read as an absolute temperature scale."""
        return TempRef(self.id)


@dataclass(frozen=True, slots=True)
class Mul(UnitExpr):
    left: UnitExpr
    right: UnitExpr

    def refs(self) -> Iterator[str]:
        yield from self.left.refs()
        yield from self.right.refs()


@dataclass(frozen=True, slots=True)
class Div(UnitExpr):
    left: UnitExpr
    right: UnitExpr

    def refs(self) -> Iterator[str]:
        yield from self.left.refs()
        yield from self.right.refs()


@dataclass(frozen=True, slots=True)
class Pow(UnitExpr):
    base: UnitExpr
    exponent: int

    def __post_init__(self) -> None:
        if not isinstance(self.exponent, numbers.Integral) or isinstance(self.exponent, bool):
            raise TypeError(
                f"Exponent must be an int, got {type(self.exponent).__name__}"
            )
        object.__setattr__(self, "exponent", int(self.exponent))

    def refs(self) -> Iterator[str]:
        yield from self.base.refs()


UNITLESS = Unitless()


# ---------------------------------------------------------------------------
# Temperature expressions
# ---------------------------------------------------------------------------

class TemperatureExpr:
    """Base class for temperature-scale references (no composition)."""

    __slots__ = ()

    def __rmul__(self, value: object) -> "Temperature":
        from mensura.core.quantity import Temperature

        if not isinstance(value, numbers.Number) or isinstance(value, bool):
            return NotImplemented
        return Temperature(value, self)

    def __str__(self) -> str:
        from mensura.core.formatting import unit_str

        return unit_str(self)


@dataclass(frozen=True, slots=True)
class TempRef(TemperatureExpr):
    id: str

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise ValueError("temperature unit id must be a non-empty string")

    def as_unit(self) -> Ref:
        """The same scale as a plain (amount) unit expression."""
        return Ref(self.id)


def ensure_unit_expr(obj: object) -> UnitExpr:
    if not isinstance(obj, UnitExpr):
        raise TypeError(f"Expected a unit expression, got {type(obj).__name__}")
    return obj


def ensure_temperature_expr(obj: object) -> TemperatureExpr:
    if not isinstance(obj, TemperatureExpr):
        raise TypeError(f"Expected a temperature expression, got {type(obj).__name__}")
    return obj


__all__ = [
    "UnitExpr",
    "Unitless",
    "UNITLESS",
    "Ref",
    "Mul",
    "Div",
    "Pow",
    "TemperatureExpr",
    "TempRef",
    "ensure_unit_expr",
    "ensure_temperature_expr",
]
