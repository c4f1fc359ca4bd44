"""
mensura.core.formatting
=======================

Human-readable rendering of unit expressions.

Abbreviated form            Full form
-------------------------   -----------------------------------
``m``                       ``meter``
``km``                      ``kilo-meter``
``m / s``                   ``meter / second``
``s^-1``                    ``second ^ -1``
``(acre ft) / (m s)``       ``(acre * foot) / (meter * second)``
``m / (s^2)``               ``meter / (second ^ 2)``

Products, quotients and powers nested inside another product, quotient or
power are parenthesised; the top level never is. A prefix applied to a unit
(``Mul(Ref("kilo"), X)``) renders as a single atom.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Union

from mensura.core.definitions import PrefixDef
from mensura.core.expr import Div, Mul, Pow, Ref, TemperatureExpr, TempRef, Unitless, UnitExpr

if TYPE_CHECKING:  # pragma: no cover - typing aid only
    from mensura.units.registry import UnitsRegistry

UNITLESS_ABBREV = "1"
UNITLESS_FULL = "unitless"


def _registry(registry: Optional["UnitsRegistry"]) -> "UnitsRegistry":
    if registry is not None:
        return registry
    from mensura.units import registry as _regmod

    return _regmod.DEFAULT_REGISTRY


def _prefix_of(expr: Mul, reg: "UnitsRegistry") -> Optional[PrefixDef]:
    if isinstance(expr.left, Ref):
        defn = reg.lookup(expr.left.id)
        if isinstance(defn, PrefixDef):
            return defn
    return None


def _render(expr: Union[UnitExpr, TemperatureExpr], reg: "UnitsRegistry", full: bool, nested: bool) -> str:
    if isinstance(expr, Unitless):
        return UNITLESS_FULL if full else UNITLESS_ABBREV

    if isinstance(expr, (Ref, TempRef)):
        defn = reg.lookup(expr.id)
        return defn.name if full else defn.abbrev

    if isinstance(expr, Mul):
        prefix = _prefix_of(expr, reg)
        if prefix is not None:
            inner = _render(expr.right, reg, full, nested=True)
            return f"{prefix.name}-{inner}" if full else f"{prefix.abbrev}{inner}"
        left = _render(expr.left, reg, full, nested=True)
        right = _render(expr.right, reg, full, nested=True)
        text = f"{left} * {right}" if full else f"{left} {right}"

    elif isinstance(expr, Div):
        left = _render(expr.left, reg, full, nested=True)
        right = _render(expr.right, reg, full, nested=True)
        text = f"{left} / {right}"

    elif isinstance(expr, Pow):
        if expr.exponent == 0:
            return UNITLESS_FULL if full else UNITLESS_ABBREV
        if expr.exponent == 1:
            return _render(expr.base, reg, full, nested)
        base = _render(expr.base, reg, full, nested=True)
        text = f"{base} ^ {expr.exponent}" if full else f"{base}^{expr.exponent}"

    else:
        raise TypeError(f"Cannot format {type(expr).__name__} as a unit")

    return f"({text})" if nested else text


def unit_str(expr: Union[UnitExpr, TemperatureExpr], registry: Optional["UnitsRegistry"] = None) -> str:
    """Abbreviated rendering, e.g. ``'m / (s^2)'``."""
    return _render(expr, _registry(registry), full=False, nested=False)


def unit_str_full(expr: Union[UnitExpr, TemperatureExpr], registry: Optional["UnitsRegistry"] = None) -> str:
    """Full-name rendering, e.g. ``'meter / (second ^ 2)'``."""
    return _render(expr, _registry(registry), full=True, nested=False)


__all__ = ["unit_str", "unit_str_full", "UNITLESS_ABBREV", "UNITLESS_FULL"]
