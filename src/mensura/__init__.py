"""
Mensura: exact units of measure and dimensional analysis for Python.

Quantities carry a symbolic unit expression (``m / s``, ``ft^2``); conversion
coefficients are computed exactly from a registry of base units, derived
units, prefixes and temperature scales. This module exposes a minimal, stable
public API. The default units registry is imported lazily to avoid import-time
side effects and circular imports.
"""

from importlib import metadata as _metadata


__license__ = "MIT"

# Try to read the installed package version first; fall back to pyproject for local dev.
try:
    __version__ = _metadata.version("mensura")
except _metadata.PackageNotFoundError:
    import tomllib
    with open("pyproject.toml", "rb") as f:
        __version__ = tomllib.load(f)["project"]["version"]

from typing import TYPE_CHECKING, Any

from mensura.core.canonical import (
    CanonicalForm,
    canonicalize,
    coefficient,
    convert_temperature,
    convertible,
)
from mensura.core.errors import (
    CyclicDefinitionError,
    DivisionByZeroError,
    DuplicateUnitError,
    IncompatibleUnitsError,
    NumericConversionError,
    RegistryFrozenError,
    UnitError,
    UnknownUnitError,
)
from mensura.core.expr import UNITLESS, Div, Mul, Pow, Ref, TempRef, Unitless, UnitExpr
from mensura.core.formatting import unit_str, unit_str_full
from mensura.core.numeric import IntegralPolicy, get_integral_policy, set_integral_policy
from mensura.core.quantity import Quantity, Temperature, with_temperature, with_unit

# Public names exposed by the package. Keep this minimal and stable.
__all__ = [
    "__version__", "__license__",
    "Quantity", "Temperature", "with_unit", "with_temperature",
    "UnitExpr", "Unitless", "UNITLESS", "Ref", "Mul", "Div", "Pow", "TempRef",
    "CanonicalForm", "canonicalize", "convertible", "coefficient", "convert_temperature",
    "unit_str", "unit_str_full",
    "IntegralPolicy", "get_integral_policy", "set_integral_policy",
    "UnitError", "UnknownUnitError", "DuplicateUnitError", "CyclicDefinitionError",
    "RegistryFrozenError", "IncompatibleUnitsError", "DivisionByZeroError",
    "NumericConversionError",
]

if TYPE_CHECKING:  # pragma: no cover - typing aid only
    from mensura.units.registry import UnitsRegistry
# Lazy access helpers -------------------------------------------------------

def _get_default_registry() -> "UnitsRegistry":
    # Import here to avoid import-time side-effects / circular imports.
    from mensura.units.registry import DEFAULT_REGISTRY  # local import
    return DEFAULT_REGISTRY

def __getattr__(name: str) -> Any:
    """
    Lazy attribute access. Accessing 'u' builds a namespace over the
    default registry on each use, so a patched registry is picked up.
    """
    if name == "u":
        return _get_default_registry().as_namespace()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

def __dir__() -> list[str]:
    # Improve discoverability in REPL / autocomplete.
    return sorted(list(globals().keys()) + ["u"])
