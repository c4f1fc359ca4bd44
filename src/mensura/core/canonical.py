"""
mensura.core.canonical
======================

Reduction of unit expressions to a canonical base-unit signature, and the
convertibility / coefficient engine built on top of it.

A ``CanonicalForm`` pairs a mapping ``base unit id -> nonzero integer
exponent`` with an exact rational ``coefficient`` giving the expression's
scale relative to that signature. Two expressions are convertible when their
exponent mappings are equal; the ratio of their coefficients is the exact
conversion factor.

Canonicalization is a pure function of the expression and the (append-only)
registry, so results are memoised on the registry.
"""

from __future__ import annotations

import logging
from fractions import Fraction
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional, Tuple

from mensura.core.definitions import BaseUnitDef, TemperatureUnitDef
from mensura.core.errors import DivisionByZeroError, IncompatibleUnitsError
from mensura.core.expr import (
    Div,
    Mul,
    Pow,
    Ref,
    TemperatureExpr,
    TempRef,
    Unitless,
    UnitExpr,
)
from mensura.core import numeric

if TYPE_CHECKING:  # pragma: no cover - typing aid only
    from mensura.units.registry import UnitsRegistry

logger = logging.getLogger(__name__)

_ONE = Fraction(1)


class CanonicalForm:
    """Base-unit exponent signature plus exact scale coefficient."""

    __slots__ = ("_exponents", "_coefficient")

    def __init__(self, exponents: Mapping[str, int] | Iterable[Tuple[str, int]] = (), coefficient: Any = 1) -> None:
        items = exponents.items() if isinstance(exponents, Mapping) else exponents
        # zero exponents never appear in a canonical signature
        self._exponents: Dict[str, int] = {k: int(v) for k, v in sorted(items) if v != 0}
        self._coefficient = numeric.as_rational(coefficient)

    @property
    def exponents(self) -> Mapping[str, int]:
        return dict(self._exponents)

    @property
    def coefficient(self) -> Fraction:
        return self._coefficient

    @property
    def signature(self) -> frozenset:
        """The (base id, exponent) pairs, ignoring the coefficient."""
        return frozenset(self._exponents.items())

    @property
    def is_dimensionless(self) -> bool:
        return not self._exponents

    def same_dimension(self, other: "CanonicalForm") -> bool:
        return self._exponents == other._exponents

    # --- algebra over canonical forms ---
    def __mul__(self, other: "CanonicalForm") -> "CanonicalForm":
        merged = dict(self._exponents)
        for base, e in other._exponents.items():
            merged[base] = merged.get(base, 0) + e
        return CanonicalForm(merged, self._coefficient * other._coefficient)

    def __truediv__(self, other: "CanonicalForm") -> "CanonicalForm":
        if other._coefficient == 0:
            raise DivisionByZeroError("canonical coefficient of the divisor is zero")
        merged = dict(self._exponents)
        for base, e in other._exponents.items():
            merged[base] = merged.get(base, 0) - e
        return CanonicalForm(merged, self._coefficient / other._coefficient)

    def __pow__(self, n: int) -> "CanonicalForm":
        if n == 0:
            return IDENTITY
        coef = self._coefficient
        if n < 0:
            if coef == 0:
                raise DivisionByZeroError("cannot invert a zero coefficient")
            coef = 1 / coef
        return CanonicalForm(
            {base: e * n for base, e in self._exponents.items()},
            coef ** abs(n),
        )

    def scaled(self, factor: Fraction) -> "CanonicalForm":
        return CanonicalForm(self._exponents, self._coefficient * factor)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CanonicalForm):
            return NotImplemented
        return self._exponents == other._exponents and self._coefficient == other._coefficient

    def __hash__(self) -> int:
        return hash((self.signature, self._coefficient))

    def __repr__(self) -> str:
        parts = "".join(f"[{b}^{e}]" for b, e in self._exponents.items())
        return f"CanonicalForm({parts or '1'}, coefficient={self._coefficient})"


IDENTITY = CanonicalForm({}, 1)


def _registry(registry: Optional["UnitsRegistry"]) -> "UnitsRegistry":
    if registry is not None:
        return registry
    # Local import avoids an import cycle; DEFAULT_REGISTRY is read at call time.
    from mensura.units import registry as _regmod

    return _regmod.DEFAULT_REGISTRY


# ---------------------------------------------------------------------------
# Canonicalizer
# ---------------------------------------------------------------------------

def canonicalize(expr: UnitExpr, registry: Optional["UnitsRegistry"] = None) -> CanonicalForm:
    """
    Reduce ``expr`` to its ``CanonicalForm``.

    Raises
    ------
    UnknownUnitError
        If the expression references an unregistered unit.
    TypeError
        If ``expr`` is not a ``UnitExpr``.
    """
    reg = _registry(registry)
    cached = reg.cached_canonical(expr)
    if cached is not None:
        return cached

    form = _reduce(expr, reg)
    reg.store_canonical(expr, form)
    logger.debug("canonicalized %r -> %r", expr, form)
    return form


def _reduce(expr: UnitExpr, reg: "UnitsRegistry") -> CanonicalForm:
    if isinstance(expr, Unitless):
        return IDENTITY

    if isinstance(expr, Ref):
        defn = reg.lookup(expr.id)
        if isinstance(defn, BaseUnitDef):
            return CanonicalForm({defn.id: 1}, 1)
        if isinstance(defn, TemperatureUnitDef):
            if defn.is_baseline:
                return CanonicalForm({defn.id: 1}, 1)
            return canonicalize(Ref(defn.baseline_id), reg).scaled(defn.coefficient)
        # derived units and prefixes
        return canonicalize(defn.defining, reg).scaled(defn.coefficient)

    if isinstance(expr, Mul):
        return canonicalize(expr.left, reg) * canonicalize(expr.right, reg)

    if isinstance(expr, Div):
        return canonicalize(expr.left, reg) / canonicalize(expr.right, reg)

    if isinstance(expr, Pow):
        if expr.exponent == 0:
            return IDENTITY
        return canonicalize(expr.base, reg) ** expr.exponent

    if isinstance(expr, TemperatureExpr):
        raise TypeError(
            "Temperature expressions do not canonicalize; use .as_unit() for the amount unit"
        )
    raise TypeError(f"Expected a unit expression, got {type(expr).__name__}")


# ---------------------------------------------------------------------------
# Convertibility & coefficients
# ---------------------------------------------------------------------------

def convertible(u1: UnitExpr, u2: UnitExpr, registry: Optional["UnitsRegistry"] = None) -> bool:
    """True iff ``u1`` and ``u2`` reduce to the same base-unit signature."""
    reg = _registry(registry)
    return canonicalize(u1, reg).same_dimension(canonicalize(u2, reg))


def coefficient(u1: UnitExpr, u2: UnitExpr, registry: Optional["UnitsRegistry"] = None) -> Fraction:
    """
    Exact factor ``c`` such that ``1 u1 == c u2``.

    Raises
    ------
    IncompatibleUnitsError
        If the two expressions have different dimensions.
    """
    reg = _registry(registry)
    if u1 == u2:
        # still resolve the expression so unknown units are reported
        canonicalize(u1, reg)
        return _ONE

    c1 = canonicalize(u1, reg)
    c2 = canonicalize(u2, reg)
    if not c1.same_dimension(c2):
        from mensura.core.formatting import unit_str

        raise IncompatibleUnitsError(unit_str(u1, reg), unit_str(u2, reg))
    if c2.coefficient == 0:
        raise DivisionByZeroError(f"Unit '{u2}' has a zero coefficient")
    return c1.coefficient / c2.coefficient


# ---------------------------------------------------------------------------
# Temperature (affine) conversion
# ---------------------------------------------------------------------------

def _temperature_def(expr: TemperatureExpr, reg: "UnitsRegistry") -> TemperatureUnitDef:
    if not isinstance(expr, TempRef):
        raise TypeError(f"Expected a temperature expression, got {type(expr).__name__}")
    defn = reg.lookup(expr.id)
    if not isinstance(defn, TemperatureUnitDef):
        raise IncompatibleUnitsError(
            expr.id, "temperature",
            detail=f"Unit '{expr.id}' is not a temperature scale",
        )
    return defn


def ensure_temperature_scale(
    expr: TemperatureExpr, registry: Optional["UnitsRegistry"] = None
) -> TemperatureExpr:
    """
    Return ``expr`` unchanged if it names a registered temperature scale.

    Raises ``IncompatibleUnitsError`` for any other registered unit and
    ``UnknownUnitError`` for an unregistered one.
    """
    _temperature_def(expr, _registry(registry))
    return expr


def temperature_transform(
    u1: TemperatureExpr,
    u2: TemperatureExpr,
    registry: Optional["UnitsRegistry"] = None,
) -> Tuple[Fraction, Fraction]:
    """
    ``(factor, shift)`` such that ``t2 = t1 * factor + shift``.

    With ``u1 = (c1, o1)`` and ``u2 = (c2, o2)`` relative to a shared baseline,
    ``t2 = ((t1 * c1 + o1) - o2) / c2``.
    """
    reg = _registry(registry)
    d1 = _temperature_def(u1, reg)
    d2 = _temperature_def(u2, reg)
    if d1.baseline_id != d2.baseline_id:
        raise IncompatibleUnitsError(d1.abbrev, d2.abbrev)
    if d2.coefficient == 0:
        raise DivisionByZeroError(f"Temperature scale '{d2.id}' has a zero coefficient")
    factor = d1.coefficient / d2.coefficient
    shift = (d1.offset - d2.offset) / d2.coefficient
    return factor, shift


def convert_temperature(
    value: Any,
    u1: TemperatureExpr,
    u2: TemperatureExpr,
    registry: Optional["UnitsRegistry"] = None,
    policy: "numeric.IntegralPolicy | str | None" = None,
) -> Any:
    """Affine conversion of an absolute temperature ``value`` from ``u1`` to ``u2``."""
    factor, shift = temperature_transform(u1, u2, registry)
    return numeric.scale(value, factor, shift, policy)


__all__ = [
    "CanonicalForm",
    "IDENTITY",
    "canonicalize",
    "convertible",
    "coefficient",
    "ensure_temperature_scale",
    "temperature_transform",
    "convert_temperature",
]
