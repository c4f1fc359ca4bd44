"""
mensura.core.definitions
========================

Registry entries. A definition is immutable once built; the registry only
ever appends them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from fractions import Fraction
from typing import Iterator, Optional, Union

from mensura.core.errors import DivisionByZeroError
from mensura.core.expr import UNITLESS, UnitExpr, ensure_unit_expr
from mensura.core.numeric import RationalLike, as_rational


def _coerce_coefficient(unit_id: str, value: RationalLike) -> Fraction:
    coef = as_rational(value)
    if coef == 0:
        raise DivisionByZeroError(
            f"Unit '{unit_id}' has a zero coefficient and could never be converted from"
        )
    return coef


@dataclass(frozen=True, slots=True)
class BaseUnitDef:
    """A root of canonicalization (meter, second, ...)."""

    id: str
    name: str
    abbrev: str

    def refs(self) -> Iterator[str]:
        return iter(())


@dataclass(frozen=True, slots=True)
class DerivedUnitDef:
    """``1 <id> = coefficient * defining``."""

    id: str
    name: str
    abbrev: str
    defining: UnitExpr
    coefficient: Fraction = field(default=Fraction(1))

    def __post_init__(self) -> None:
        ensure_unit_expr(self.defining)
        object.__setattr__(self, "coefficient", _coerce_coefficient(self.id, self.coefficient))

    @property
    def is_prefix(self) -> bool:
        return False

    def refs(self) -> Iterator[str]:
        return self.defining.refs()


@dataclass(frozen=True, slots=True)
class PrefixDef:
    """
    A dimensionless scale such as ``kilo`` (1000) meant to be multiplied onto
    another unit: ``Mul(Ref("kilo"), Ref("meter"))`` reads as ``km``.
    """

    id: str
    name: str
    abbrev: str
    coefficient: Fraction

    def __post_init__(self) -> None:
        object.__setattr__(self, "coefficient", _coerce_coefficient(self.id, self.coefficient))

    @property
    def defining(self) -> UnitExpr:
        return UNITLESS

    @property
    def is_prefix(self) -> bool:
        return True

    def refs(self) -> Iterator[str]:
        return iter(())


@dataclass(frozen=True, slots=True)
class TemperatureUnitDef:
    """
    An absolute temperature scale:
    ``value_in_baseline = value * coefficient + offset``.

    ``baseline is None`` marks the baseline scale itself (e.g. kelvin), which
    canonicalizes like a base unit; coefficient and offset are then 1 and 0.
    """

    id: str
    name: str
    abbrev: str
    coefficient: Fraction = field(default=Fraction(1))
    offset: Fraction = field(default=Fraction(0))
    baseline: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "coefficient", _coerce_coefficient(self.id, self.coefficient))
        object.__setattr__(self, "offset", as_rational(self.offset))
        if self.baseline is None and (self.coefficient != 1 or self.offset != 0):
            raise ValueError(
                f"Baseline temperature scale '{self.id}' must have coefficient 1 and offset 0"
            )

    @property
    def is_baseline(self) -> bool:
        return self.baseline is None

    @property
    def baseline_id(self) -> str:
        return self.id if self.baseline is None else self.baseline

    def refs(self) -> Iterator[str]:
        if self.baseline is not None:
            yield self.baseline


UnitDef = Union[BaseUnitDef, DerivedUnitDef, PrefixDef, TemperatureUnitDef]


__all__ = [
    "BaseUnitDef",
    "DerivedUnitDef",
    "PrefixDef",
    "TemperatureUnitDef",
    "UnitDef",
]
