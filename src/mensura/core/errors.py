"""
mensura.core.errors
===================

Exception hierarchy shared by the registry, the canonicalizer and the
value types.

Every error derives from ``UnitError`` and additionally from the builtin
exception that the equivalent plain-Python failure would raise, so code that
already catches ``ValueError`` or ``TypeError`` keeps working.
"""

from __future__ import annotations


class UnitError(Exception):
    """Base class for all mensura errors."""


class UnknownUnitError(UnitError, ValueError):
    """A unit identifier, alias or symbol is not registered."""

    def __init__(self, symbol: str) -> None:
        super().__init__(f"Unknown unit symbol: {symbol}")
        self.symbol = symbol


class DuplicateUnitError(UnitError, ValueError):
    """A unit identifier (or alias) is registered twice."""

    def __init__(self, symbol: str, detail: str = "a unit with this name already exists") -> None:
        super().__init__(f"Cannot register unit '{symbol}': {detail}.")
        self.symbol = symbol


class CyclicDefinitionError(UnitError, ValueError):
    """A derived unit's definition refers back to itself."""

    def __init__(self, cycle: "list[str]") -> None:
        path = " -> ".join(cycle)
        super().__init__(f"Cyclic unit definition: {path}")
        self.cycle = list(cycle)


class RegistryFrozenError(UnitError, RuntimeError):
    """Registration attempted after the registry setup phase ended."""


class IncompatibleUnitsError(UnitError, TypeError):
    """Two unit expressions do not share a dimension."""

    def __init__(
        self, left: str, right: str, operation: str = "convert", detail: str | None = None
    ) -> None:
        super().__init__(
            detail or f"Cannot {operation} incompatible units: '{left}' and '{right}'"
        )
        self.left = left
        self.right = right
        self.operation = operation


class DivisionByZeroError(UnitError, ZeroDivisionError):
    """A unit coefficient evaluates to zero where it is used as a divisor."""


class NumericConversionError(UnitError, ValueError):
    """A value cannot be represented in the requested numeric type."""


__all__ = [
    "UnitError",
    "UnknownUnitError",
    "DuplicateUnitError",
    "CyclicDefinitionError",
    "RegistryFrozenError",
    "IncompatibleUnitsError",
    "DivisionByZeroError",
    "NumericConversionError",
]
