"""
mensura.core.quantity
=====================

Defines the `Quantity` and `Temperature` value types.

- ``Quantity`` tags a number with a multiplicative unit expression. Products,
  quotients and powers build the *symbolic* result unit (``m / s`` stays
  ``m / s``); canonicalization only happens when a conversion, an addition or
  a comparison needs the exact coefficient between two units.
- ``Temperature`` tags a number with an absolute temperature scale and uses
  the affine rule (scale and offset) when converting.

Both types are immutable: every operation returns a new value.

Numeric representations
-----------------------
The stored value keeps its own type (``int``, ``float``, ``Fraction``,
``Decimal``). Conversions by a coefficient of exactly 1 return the value
untouched, and integral values scaled by integral coefficients stay exact
integers. Non-integral results for integral values follow the
``IntegralPolicy`` of ``mensura.core.numeric``.
"""

from __future__ import annotations

import numbers
import operator
from fractions import Fraction
from typing import Any, Callable, Optional, Union

from mensura.core import numeric
from mensura.core.canonical import (
    CanonicalForm,
    canonicalize,
    coefficient as _coefficient,
    ensure_temperature_scale,
    temperature_transform,
)
from mensura.core.errors import IncompatibleUnitsError, UnknownUnitError
from mensura.core.expr import (
    UNITLESS,
    Div,
    Mul,
    Pow,
    Ref,
    TemperatureExpr,
    TempRef,
    Unitless,
    UnitExpr,
    ensure_temperature_expr,
    ensure_unit_expr,
)
from mensura.core.formatting import unit_str as _unit_str, unit_str_full as _unit_str_full

Number = Union[int, float, Fraction, Any]
PolicyLike = Optional[Union[numeric.IntegralPolicy, str]]


def _is_number(value: object) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, (bool, complex))


def _check_value(value: object) -> None:
    if not _is_number(value):
        raise TypeError(f"Quantity value must be a real number, got {type(value).__name__}")


def _as_unit(unit: "UnitExpr | str") -> UnitExpr:
    if isinstance(unit, str):
        from mensura.units.registry import DEFAULT_REGISTRY

        return DEFAULT_REGISTRY.get(unit)
    return ensure_unit_expr(unit)


def _as_temperature(unit: "TemperatureExpr | str") -> TemperatureExpr:
    if isinstance(unit, str):
        from mensura.units.registry import DEFAULT_REGISTRY

        return DEFAULT_REGISTRY.temperature(unit)
    return ensure_temperature_expr(unit)


def _safe_str(unit: Union[UnitExpr, TemperatureExpr]) -> str:
    try:
        return _unit_str(unit)
    except UnknownUnitError:
        return repr(unit)


def _value_str(value: Any) -> str:
    return str(value)


def _rescaled(value: Any, factor: Fraction, shift: Fraction = Fraction(0)) -> Any:
    """Exact image of ``value`` used on the right-hand side of comparisons."""
    if numeric.is_exact(value):
        return Fraction(value) * factor + shift
    return numeric.scale(value, factor, shift)


class Quantity:
    """
    A number tagged with a unit expression.

    Attributes
    ----------
    value : int | float | Fraction | Decimal
        The magnitude, expressed in ``unit``.
    unit : UnitExpr
        The (possibly compound) unit, kept exactly as it was spelled.
    """
    __slots__ = ("_value", "_unit")

    def __init__(self, value: Number, unit: UnitExpr):
        _check_value(value)
        self._value = value
        self._unit = ensure_unit_expr(unit)

    @property
    def value(self) -> Any:
        return self._value

    @property
    def unit(self) -> UnitExpr:
        return self._unit

    @property
    def canonical(self) -> CanonicalForm:
        return canonicalize(self._unit)

    def __setattr__(self, name: str, val: Any) -> None:
        if hasattr(self, name):
            raise AttributeError(f"Quantity is immutable; cannot set {name!r}")
        object.__setattr__(self, name, val)

    # --- conversion -------------------------------------------------------
    def to_unit(self, unit: "UnitExpr | str", policy: PolicyLike = None) -> "Quantity":
        """
        Express this quantity in ``unit``.

        Raises
        ------
        IncompatibleUnitsError
            If ``unit`` has a different dimension.
        NumericConversionError
            If an integral value gets a non-integral result under the
            ``strict`` policy.
        """
        target = _as_unit(unit)
        coef = _coefficient(self._unit, target)
        return Quantity(numeric.scale(self._value, coef, policy=policy), target)

    to = to_unit

    def to_rep(self, rep: type, policy: PolicyLike = None) -> "Quantity":
        """Same unit, value converted to the numeric type ``rep``."""
        return Quantity(numeric.convert_rep(self._value, rep, policy), self._unit)

    def _value_in_own_unit(self, other: "Quantity", operation: str) -> Any:
        try:
            coef = _coefficient(other._unit, self._unit)
        except IncompatibleUnitsError as e:
            raise IncompatibleUnitsError(e.left, e.right, operation) from e
        return numeric.scale(other._value, coef)

    # --- arithmetic -------------------------------------------------------
    def __neg__(self) -> "Quantity":
        return Quantity(-self._value, self._unit)

    def __pos__(self) -> "Quantity":
        return self

    def __add__(self, other: object) -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        # result is expressed in the left operand's unit
        return Quantity(self._value + self._value_in_own_unit(other, "add"), self._unit)

    def __sub__(self, other: object) -> "Quantity":
        if not isinstance(other, Quantity):
            return NotImplemented
        return Quantity(self._value - self._value_in_own_unit(other, "subtract"), self._unit)

    def __mul__(self, other: object) -> "Quantity":
        if isinstance(other, Quantity):
            return Quantity(self._value * other._value, Mul(self._unit, other._unit))
        if isinstance(other, UnitExpr):
            return Quantity(self._value, Mul(self._unit, other))
        if _is_number(other):
            return Quantity(self._value * other, self._unit)
        return NotImplemented

    def __rmul__(self, other: object) -> "Quantity":
        # allows 3 * (2 m) -> 6 m
        if isinstance(other, UnitExpr):
            return Quantity(self._value, Mul(other, self._unit))
        if _is_number(other):
            return Quantity(other * self._value, self._unit)
        return NotImplemented

    def __truediv__(self, other: object) -> "Quantity":
        if isinstance(other, Quantity):
            return Quantity(numeric.divide(self._value, other._value), Div(self._unit, other._unit))
        if isinstance(other, UnitExpr):
            return Quantity(self._value, Div(self._unit, other))
        if _is_number(other):
            return Quantity(numeric.divide(self._value, other), self._unit)
        return NotImplemented

    def __rtruediv__(self, other: object) -> "Quantity":
        # scalar / quantity -> reciprocal unit
        if not _is_number(other):
            return NotImplemented
        return Quantity(numeric.divide(other, self._value), Div(UNITLESS, self._unit))

    def __pow__(self, n: int, modulo: Any = None) -> "Quantity":
        if modulo is not None:
            raise TypeError("Modulo exponentiation is not supported for Quantity.")
        return self.pow(n)

    def pow(self, n: int, policy: PolicyLike = None) -> "Quantity":
        """
        Raise to an integer power.

        ``n == 0`` gives the multiplicative identity of the value's type with a
        unitless unit; ``n == 1`` returns an equal quantity in the same unit;
        negative ``n`` inverts value and unit.
        """
        value = numeric.power(self._value, n, policy)
        if n == 0:
            return Quantity(value, UNITLESS)
        if n == 1:
            return Quantity(value, self._unit)
        return Quantity(value, Pow(self._unit, n))

    # --- comparisons ------------------------------------------------------
    def _compare(self, other: object, op: Callable[[Any, Any], bool], operation: str) -> bool:
        if not isinstance(other, Quantity):
            return NotImplemented
        try:
            coef = _coefficient(other._unit, self._unit)
        except IncompatibleUnitsError as e:
            raise IncompatibleUnitsError(e.left, e.right, operation) from e
        return op(self._value, _rescaled(other._value, coef))

    def __eq__(self, other: object) -> bool:
        return self._compare(other, operator.eq, "compare")

    def __ne__(self, other: object) -> bool:
        return self._compare(other, operator.ne, "compare")

    def __lt__(self, other: object) -> bool:
        return self._compare(other, operator.lt, "compare")

    def __le__(self, other: object) -> bool:
        return self._compare(other, operator.le, "compare")

    def __gt__(self, other: object) -> bool:
        return self._compare(other, operator.gt, "compare")

    def __ge__(self, other: object) -> bool:
        return self._compare(other, operator.ge, "compare")

    # __eq__ compares across units, so no hash consistent with it exists
    __hash__ = None  # type: ignore[assignment]

    # --- formatting -------------------------------------------------------
    def unit_str(self) -> str:
        return _unit_str(self._unit)

    def unit_str_full(self) -> str:
        return _unit_str_full(self._unit)

    def to_str(self) -> str:
        """Value and abbreviated unit, e.g. ``'1.5 m / s'``."""
        if isinstance(self._unit, Unitless):
            return _value_str(self._value)
        return f"{_value_str(self._value)} {self.unit_str()}"

    def to_str_full(self) -> str:
        """Value and full unit names, e.g. ``'1.5 meter / second'``."""
        if isinstance(self._unit, Unitless):
            return _value_str(self._value)
        return f"{_value_str(self._value)} {self.unit_str_full()}"

    def __str__(self) -> str:
        return self.to_str()

    def __repr__(self) -> str:
        return f"Quantity({self._value!r}, {_safe_str(self._unit)!r})"

    def __format__(self, spec: str) -> str:
        """
        Supported specifiers
        --------------------
        "" (empty)
            Same as ``str(q)``.
        "full"
            Full unit names (``to_str_full``).
        anything else
            Applied to the numeric value, followed by the abbreviated unit,
            e.g. ``f"{q:.2f}"`` -> ``'3.14 m'``.
        """
        spec = spec or ""
        if spec == "":
            return self.to_str()
        if spec.strip().lower() == "full":
            return self.to_str_full()
        text = format(self._value, spec)
        if isinstance(self._unit, Unitless):
            return text
        return f"{text} {self.unit_str()}"

    # --- companions -------------------------------------------------------
    @staticmethod
    def coefficient(u1: "UnitExpr | str", u2: "UnitExpr | str") -> Fraction:
        """Exact factor ``c`` with ``1 u1 == c u2``."""
        return _coefficient(_as_unit(u1), _as_unit(u2))

    @staticmethod
    def converter(
        u1: "UnitExpr | str", u2: "UnitExpr | str", policy: PolicyLike = None
    ) -> Callable[["Quantity"], "Quantity"]:
        """
        Build a function converting quantities of ``u1`` (or any unit
        convertible to it) into ``u2``. Convertibility is checked up front.
        """
        source, target = _as_unit(u1), _as_unit(u2)
        coef = _coefficient(source, target)

        def convert(q: "Quantity") -> "Quantity":
            if not isinstance(q, Quantity):
                raise TypeError(f"Expected a Quantity, got {type(q).__name__}")
            if q._unit == source:
                return Quantity(numeric.scale(q._value, coef, policy=policy), target)
            return q.to_unit(target, policy)

        return convert

    @classmethod
    def from_temperature(cls, t: "Temperature") -> "Quantity":
        """Same raw value, read as an amount of the temperature's scale."""
        if not isinstance(t, Temperature):
            raise TypeError(f"Expected a Temperature, got {type(t).__name__}")
        if not isinstance(t.unit, TempRef):
            raise TypeError("Only simple temperature scales can be reinterpreted as units")
        return cls(t.value, t.unit.as_unit())


class Temperature:
    """
    An absolute temperature on a given scale.

    Conversions honour scale offsets (1 °C -> 33.8 °F). Differences between
    temperatures are amounts and come back as ``Quantity``.
    """
    __slots__ = ("_value", "_unit")

    def __init__(self, value: Number, unit: TemperatureExpr):
        _check_value(value)
        self._value = value
        self._unit = ensure_temperature_expr(unit)

    @property
    def value(self) -> Any:
        return self._value

    @property
    def unit(self) -> TemperatureExpr:
        return self._unit

    def __setattr__(self, name: str, val: Any) -> None:
        if hasattr(self, name):
            raise AttributeError(f"Temperature is immutable; cannot set {name!r}")
        object.__setattr__(self, name, val)

    def _amount_unit(self) -> Ref:
        if not isinstance(self._unit, TempRef):
            raise TypeError(f"Unsupported temperature expression {self._unit!r}")
        return self._unit.as_unit()

    # --- conversion -------------------------------------------------------
    def to_unit(self, unit: "TemperatureExpr | str", policy: PolicyLike = None) -> "Temperature":
        """Affine conversion to another temperature scale."""
        target = _as_temperature(unit)
        factor, shift = temperature_transform(self._unit, target)
        return Temperature(numeric.scale(self._value, factor, shift, policy), target)

    to = to_unit

    def to_rep(self, rep: type, policy: PolicyLike = None) -> "Temperature":
        return Temperature(numeric.convert_rep(self._value, rep, policy), self._unit)

    # --- arithmetic -------------------------------------------------------
    def _amount_in_own_scale(self, q: Quantity, operation: str) -> Any:
        try:
            coef = _coefficient(q.unit, self._amount_unit())
        except IncompatibleUnitsError as e:
            raise IncompatibleUnitsError(e.left, e.right, operation) from e
        # an amount carries no baseline offset: scale only
        return numeric.scale(q.value, coef)

    def __add__(self, other: object) -> "Temperature":
        if not isinstance(other, Quantity):
            return NotImplemented
        return Temperature(self._value + self._amount_in_own_scale(other, "add"), self._unit)

    def __radd__(self, other: object) -> "Temperature":
        return self.__add__(other)

    def __sub__(self, other: object) -> "Temperature | Quantity":
        if isinstance(other, Quantity):
            return Temperature(self._value - self._amount_in_own_scale(other, "subtract"), self._unit)
        if isinstance(other, Temperature):
            # offsets cancel in a difference: the result is an amount
            try:
                factor, shift = temperature_transform(other._unit, self._unit)
            except IncompatibleUnitsError as e:
                raise IncompatibleUnitsError(e.left, e.right, "subtract") from e
            other_value = numeric.scale(other._value, factor, shift)
            return Quantity(self._value - other_value, self._amount_unit())
        return NotImplemented

    # --- comparisons ------------------------------------------------------
    def _compare(self, other: object, op: Callable[[Any, Any], bool]) -> bool:
        if not isinstance(other, Temperature):
            return NotImplemented
        try:
            factor, shift = temperature_transform(other._unit, self._unit)
        except IncompatibleUnitsError as e:
            raise IncompatibleUnitsError(e.left, e.right, "compare") from e
        return op(self._value, _rescaled(other._value, factor, shift))

    def __eq__(self, other: object) -> bool:
        return self._compare(other, operator.eq)

    def __ne__(self, other: object) -> bool:
        return self._compare(other, operator.ne)

    def __lt__(self, other: object) -> bool:
        return self._compare(other, operator.lt)

    def __le__(self, other: object) -> bool:
        return self._compare(other, operator.le)

    def __gt__(self, other: object) -> bool:
        return self._compare(other, operator.gt)

    def __ge__(self, other: object) -> bool:
        return self._compare(other, operator.ge)

    __hash__ = None  # type: ignore[assignment]

    # --- formatting -------------------------------------------------------
    def unit_str(self) -> str:
        return _unit_str(self._unit)

    def unit_str_full(self) -> str:
        return _unit_str_full(self._unit)

    def to_str(self) -> str:
        return f"{_value_str(self._value)} {self.unit_str()}"

    def to_str_full(self) -> str:
        return f"{_value_str(self._value)} {self.unit_str_full()}"

    def __str__(self) -> str:
        return self.to_str()

    def __repr__(self) -> str:
        return f"Temperature({self._value!r}, {_safe_str(self._unit)!r})"

    def __format__(self, spec: str) -> str:
        spec = spec or ""
        if spec == "":
            return self.to_str()
        if spec.strip().lower() == "full":
            return self.to_str_full()
        return f"{format(self._value, spec)} {self.unit_str()}"

    # --- companions -------------------------------------------------------
    @staticmethod
    def converter(
        u1: "TemperatureExpr | str", u2: "TemperatureExpr | str", policy: PolicyLike = None
    ) -> Callable[["Temperature"], "Temperature"]:
        source, target = _as_temperature(u1), _as_temperature(u2)
        factor, shift = temperature_transform(source, target)

        def convert(t: "Temperature") -> "Temperature":
            if not isinstance(t, Temperature):
                raise TypeError(f"Expected a Temperature, got {type(t).__name__}")
            if t._unit == source:
                return Temperature(numeric.scale(t._value, factor, shift, policy), target)
            return t.to_unit(target, policy)

        return convert

    @classmethod
    def from_quantity(cls, q: Quantity) -> "Temperature":
        """Same raw value, read as an absolute temperature on the quantity's scale."""
        if not isinstance(q, Quantity):
            raise TypeError(f"Expected a Quantity, got {type(q).__name__}")
        if not isinstance(q.unit, Ref):
            raise TypeError("Only a quantity of a single temperature unit can become a Temperature")
        return cls(q.value, ensure_temperature_scale(q.unit.as_temperature()))


def with_unit(value: Number, unit: "UnitExpr | str") -> Quantity:
    """Build a ``Quantity``; ``unit`` may be an expression or a registered symbol."""
    return Quantity(value, _as_unit(unit))


def with_temperature(value: Number, unit: "TemperatureExpr | str") -> Temperature:
    """Build a ``Temperature``; ``unit`` may be an expression or a registered symbol."""
    return Temperature(value, _as_temperature(unit))


__all__ = ["Quantity", "Temperature", "with_unit", "with_temperature"]
