"""
mensura.units.registry
======================

Append-only catalogue of unit definitions.

Design
------
- Global state is encapsulated in a ``UnitsRegistry`` instance (thread-safe);
  several registries can coexist, which keeps tests isolated.
- Registration is validated as a batch and committed atomically: duplicate
  identifiers, unknown references, reference cycles and zero coefficients
  leave the registry untouched.
- Lookups accept identifiers (``"meter"``), abbreviations (``"m"``) and
  aliases (``"metre"``). SI-prefixed spellings (``"km"``, ``"kilometer"``)
  are synthesised lazily into ``Mul(Ref("kilo"), Ref("meter"))`` with
  anti-stacking checks.
- ``freeze()`` closes the setup phase. Canonical forms are memoised here;
  definitions and aliases are never removed or rebound, so the memo never
  goes stale.
"""
from __future__ import annotations

import logging
import threading
import unicodedata
from fractions import Fraction
from typing import ClassVar, Dict, Iterable, List, Mapping, Optional, Tuple

from mensura.core.canonical import CanonicalForm
from mensura.core.definitions import (
    BaseUnitDef,
    DerivedUnitDef,
    PrefixDef,
    TemperatureUnitDef,
    UnitDef,
)
from mensura.core.errors import (
    CyclicDefinitionError,
    DuplicateUnitError,
    RegistryFrozenError,
    UnknownUnitError,
)
from mensura.core.expr import Mul, Pow, Ref, TempRef, UnitExpr
from mensura.core.numeric import RationalLike
from mensura.units.prefixes import BINARY_PREFIXES, PREFIXES

logger = logging.getLogger(__name__)

_DEFINITION_TYPES = (BaseUnitDef, DerivedUnitDef, PrefixDef, TemperatureUnitDef)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize_symbol(s: str) -> str:
    """Strip surrounding whitespace and Unicode-normalize to NFC (e.g. "µ")."""
    if not s:
        return s
    return unicodedata.normalize("NFC", s.strip())


def _micro_fallback(s: str) -> Optional[str]:
    # ASCII 'u' as micro, only tried when the literal spelling is unknown
    if len(s) > 1 and s.startswith("u"):
        return "µ" + s[1:]
    return None


# ---------------------------------------------------------------------------
# Units registry
# ---------------------------------------------------------------------------
class UnitsRegistry:
    """Thread-safe, append-only registry of unit definitions."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._defs: Dict[str, UnitDef] = {}
        self._aliases: Dict[str, str] = {}
        self._non_prefixable: set[str] = set()
        self._synthesized: Dict[str, UnitExpr] = {}
        self._canonical_cache: Dict[UnitExpr, CanonicalForm] = {}
        self._frozen = False

    def __contains__(self, symbol: str) -> bool:
        return self.has(symbol)

    def __len__(self) -> int:
        return len(self._defs)

    # -------------------------- setup phase --------------------------------
    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        """End the setup phase; further registration raises ``RegistryFrozenError``."""
        with self._lock:
            self._frozen = True
        logger.debug("registry %#x frozen with %d units", id(self), len(self._defs))

    def _check_writable(self, what: str) -> None:
        if self._frozen:
            raise RegistryFrozenError(f"Cannot register {what}: the registry is frozen.")

    def set_non_prefixable(self, symbols: Iterable[str]) -> None:
        """Mark units that must not accept SI prefixes (e.g. 'kg', 'min')."""
        with self._lock:
            self._check_writable("non-prefixable units")
            resolved = set()
            for s in symbols:
                sym = normalize_symbol(s)
                resolved.add(self._resolve_direct(sym) or sym)
            self._non_prefixable = resolved
            self._synthesized.clear()

    def is_non_prefixable(self, symbol: str) -> bool:
        sym = normalize_symbol(symbol)
        return (self._resolve_direct(sym) or sym) in self._non_prefixable

    # -------------------------- registration -------------------------------
    def register(self, defn: UnitDef) -> Ref:
        """Register a single definition and return a reference to it."""
        self.register_many([defn])
        return Ref(defn.id)

    def register_many(self, defs: Iterable[UnitDef]) -> None:
        """
        Validate and register a batch of definitions atomically.

        Definitions inside one batch may refer to each other in any order.

        Raises
        ------
        DuplicateUnitError
            An identifier or abbreviation is already taken.
        UnknownUnitError
            A definition refers to a unit that is neither registered nor in the batch.
        CyclicDefinitionError
            Definitions in the batch refer to each other in a loop.
        RegistryFrozenError
            The registry has been frozen.
        """
        defs = list(defs)
        with self._lock:
            self._check_writable("units")
            reserved = getattr(UnitNamespace, "_reserved_names", ())

            batch: Dict[str, UnitDef] = {}
            new_aliases: Dict[str, str] = {}
            for defn in defs:
                if not isinstance(defn, _DEFINITION_TYPES):
                    raise TypeError(f"Expected a unit definition, got {type(defn).__name__}")
                uid = normalize_symbol(defn.id)
                if uid != defn.id:
                    raise ValueError(f"Unit id {defn.id!r} must be stripped and NFC-normalized")
                if uid in reserved:
                    raise ValueError(
                        f"Cannot register unit '{uid}': "
                        "name conflicts with UnitNamespace attribute/method."
                    )
                if uid in self._defs or uid in batch:
                    raise DuplicateUnitError(uid)
                if uid in self._aliases or uid in new_aliases:
                    raise DuplicateUnitError(uid, "an alias with this name already exists")
                batch[uid] = defn

                # prefix abbreviations collide with unit symbols ("m"), so only
                # the unit's own abbreviation becomes a lookup alias
                abbrev = normalize_symbol(defn.abbrev)
                if isinstance(defn, PrefixDef) or not abbrev or abbrev == uid:
                    continue
                owner = self._aliases.get(abbrev) or new_aliases.get(abbrev)
                if abbrev in self._defs or abbrev in batch or owner is not None:
                    raise DuplicateUnitError(
                        uid, f"abbreviation '{abbrev}' is already in use"
                    )
                new_aliases[abbrev] = uid

            for alias in new_aliases:
                if alias in batch:
                    raise DuplicateUnitError(alias, "a unit id in the same batch uses this abbreviation")

            self._validate_references(batch)
            self._check_cycles(batch)

            self._defs.update(batch)
            self._aliases.update(new_aliases)
            self._synthesized.clear()

        for uid, defn in batch.items():
            logger.debug("registered %s '%s' (%s)", type(defn).__name__, uid, defn.abbrev)

    def _validate_references(self, batch: Mapping[str, UnitDef]) -> None:
        for defn in batch.values():
            for ref in defn.refs():
                target = batch.get(ref) or self._defs.get(ref)
                if target is None:
                    raise UnknownUnitError(ref)
                if isinstance(defn, TemperatureUnitDef) and not (
                    isinstance(target, TemperatureUnitDef) and target.is_baseline
                ):
                    raise ValueError(
                        f"Temperature scale '{defn.id}' must be defined against a "
                        f"baseline temperature scale, not '{ref}'"
                    )

    @staticmethod
    def _check_cycles(batch: Mapping[str, UnitDef]) -> None:
        # Units already committed were validated against everything before them,
        # so a cycle can only run through the batch.
        WHITE, GREY, BLACK = 0, 1, 2
        color = {uid: WHITE for uid in batch}

        def visit(uid: str, path: List[str]) -> None:
            color[uid] = GREY
            path.append(uid)
            for ref in batch[uid].refs():
                if ref not in batch:
                    continue
                if color[ref] == GREY:
                    start = path.index(ref)
                    raise CyclicDefinitionError(path[start:] + [ref])
                if color[ref] == WHITE:
                    visit(ref, path)
            path.pop()
            color[uid] = BLACK

        for uid in batch:
            if color[uid] == WHITE:
                visit(uid, [])

    def register_alias(self, alias: str, target: str) -> None:
        """
        Add another spelling for an existing unit.

        An alias is never rebound: registering it again for a different
        unit raises ``DuplicateUnitError``.
        """
        key = normalize_symbol(alias)
        with self._lock:
            self._check_writable(f"alias '{alias}'")
            if key in getattr(UnitNamespace, "_reserved_names", ()):
                raise ValueError(
                    f"Cannot register alias '{alias}': "
                    "name conflicts with UnitNamespace attribute/method."
                )
            uid = self._resolve_direct(normalize_symbol(target))
            if uid is None:
                raise UnknownUnitError(target)
            if key in self._defs and key != uid:
                raise DuplicateUnitError(key, f"a unit with the name '{key}' already exists")
            if key in self._aliases and self._aliases[key] != uid:
                raise DuplicateUnitError(key, "an alias with this name already exists")
            self._aliases[key] = uid
            self._synthesized.pop(key, None)

    # Convenience wrappers -------------------------------------------------
    def register_base_unit(self, uid: str, name: Optional[str] = None, abbrev: Optional[str] = None) -> Ref:
        return self.register(BaseUnitDef(uid, name or uid, abbrev or uid))

    def register_derived_unit(
        self,
        uid: str,
        defining: UnitExpr,
        coefficient: RationalLike = 1,
        name: Optional[str] = None,
        abbrev: Optional[str] = None,
    ) -> Ref:
        return self.register(DerivedUnitDef(uid, name or uid, abbrev or uid, defining, coefficient))

    def register_prefix(
        self, uid: str, coefficient: RationalLike, name: Optional[str] = None, abbrev: Optional[str] = None
    ) -> Ref:
        return self.register(PrefixDef(uid, name or uid, abbrev or uid, coefficient))

    def register_temperature_unit(
        self,
        uid: str,
        coefficient: RationalLike = 1,
        offset: RationalLike = 0,
        name: Optional[str] = None,
        abbrev: Optional[str] = None,
        baseline: Optional[str] = "kelvin",
    ) -> TempRef:
        self.register(
            TemperatureUnitDef(uid, name or uid, abbrev or uid, coefficient, offset, baseline)
        )
        return TempRef(uid)

    # -------------------------- lookups ------------------------------------
    def lookup(self, symbol: str) -> UnitDef:
        """
        Return the definition registered under ``symbol`` (id or alias).

        Raises ``UnknownUnitError`` if unknown.
        """
        uid = self._resolve_direct(normalize_symbol(symbol))
        if uid is None:
            raise UnknownUnitError(symbol)
        return self._defs[uid]

    def has(self, symbol: str) -> bool:
        try:
            self.get(symbol)
            return True
        except UnknownUnitError:
            return False

    def get(self, symbol: str) -> UnitExpr:
        """
        Resolve a symbol to a unit expression, synthesising SI-prefixed forms.

        Raises ``UnknownUnitError`` if unknown.
        """
        sym = normalize_symbol(symbol)
        with self._lock:
            uid = self._resolve_direct(sym)
            if uid is not None:
                return Ref(uid)

            synthesized = self._synthesized.get(sym)
            if synthesized is not None:
                return synthesized

            synthesized = self._try_synthesize_prefixed(sym)
            if synthesized is None:
                micro = _micro_fallback(sym)
                if micro is not None:
                    uid = self._resolve_direct(micro)
                    synthesized = Ref(uid) if uid else self._try_synthesize_prefixed(micro)
            if synthesized is not None:
                self._synthesized[sym] = synthesized
                logger.debug("synthesized '%s' -> %r", sym, synthesized)
                return synthesized

        raise UnknownUnitError(symbol)

    def temperature(self, symbol: str) -> TempRef:
        """Resolve a symbol to an absolute temperature scale."""
        defn = self.lookup(symbol)
        if not isinstance(defn, TemperatureUnitDef):
            raise ValueError(f"Unit '{symbol}' is not a temperature scale")
        return TempRef(defn.id)

    def all(self) -> Mapping[str, UnitDef]:
        with self._lock:
            return dict(self._defs)

    def aliases(self) -> Mapping[str, str]:
        with self._lock:
            return dict(self._aliases)

    def as_namespace(self) -> "UnitNamespace":
        return UnitNamespace(self)

    # -------------------------- canonical memo -----------------------------
    def cached_canonical(self, expr: UnitExpr) -> Optional[CanonicalForm]:
        with self._lock:
            return self._canonical_cache.get(expr)

    def store_canonical(self, expr: UnitExpr, form: CanonicalForm) -> None:
        # recomputation yields the same form, so a racing store is harmless
        with self._lock:
            self._canonical_cache.setdefault(expr, form)

    # ------------------------- internals -----------------------------------
    def _resolve_direct(self, sym: str) -> Optional[str]:
        if sym in self._defs:
            return sym
        return self._aliases.get(sym)

    def _prefix_tokens(self) -> List[Tuple[str, PrefixDef]]:
        tokens: List[Tuple[str, PrefixDef]] = []
        for defn in self._defs.values():
            if isinstance(defn, PrefixDef):
                tokens.append((defn.abbrev, defn))
                tokens.append((defn.name, defn))
        # longest first so that "da" wins over "d"
        tokens.sort(key=lambda t: len(t[0]), reverse=True)
        return tokens

    def _try_synthesize_prefixed(self, sym: str) -> Optional[UnitExpr]:
        for token, prefix in self._prefix_tokens():
            if not token or not sym.startswith(token) or len(sym) == len(token):
                continue
            base_id = self._resolve_direct(sym[len(token):])
            if base_id is None:
                continue
            base = self._defs[base_id]
            # Prevent stacked prefixes and prefixing of excluded units
            if isinstance(base, PrefixDef) or base_id in self._non_prefixable:
                continue
            return Mul(Ref(prefix.id), Ref(base_id))
        return None


class UnitNamespace:
    """Attribute-style access to a registry: ``u.m``, ``u("km")``, ``"m" in u``."""

    _reserved_names: ClassVar[set[str]] = set()

    def __init__(self, reg: "UnitsRegistry") -> None:
        self._reg = reg

    def __contains__(self, spec: str) -> bool:
        return self._reg.has(spec)

    def define(
        self,
        uid: str,
        coefficient: RationalLike,
        reference: UnitExpr,
        name: Optional[str] = None,
        abbrev: Optional[str] = None,
    ) -> Ref:
        """Register ``1 uid = coefficient * reference`` and return a reference to it."""
        if uid in getattr(UnitNamespace, "_reserved_names", ()):
            raise ValueError(
                f"Cannot define unit '{uid}': "
                "name conflicts with UnitNamespace attribute/method."
            )
        return self._reg.register_derived_unit(uid, reference, coefficient, name, abbrev)

    def temperature(self, spec: str) -> TempRef:
        return self._reg.temperature(spec)

    def __call__(self, spec: str) -> UnitExpr:
        return self._reg.get(spec)

    def __getattr__(self, name: str) -> UnitExpr:
        if name.startswith("__"):
            raise AttributeError(name)
        try:
            return self._reg.get(name)
        except UnknownUnitError as e:
            # Unknown symbol should look like a missing attribute
            raise AttributeError(name) from e

    def __dir__(self) -> list[str]:
        """List all available unit symbols for autocomplete."""
        base_dir = set(super().__dir__())
        units = set(self._reg.all().keys())
        aliases = set(self._reg.aliases().keys())
        return sorted(base_dir | units | aliases)


UnitNamespace._reserved_names = set(dir(UnitNamespace))  # type: set[str]


# ---------------------------------------------------------------------------
# Bootstrap a default registry
# ---------------------------------------------------------------------------

def _bootstrap_default_registry() -> UnitsRegistry:
    reg = UnitsRegistry()

    m, s, kg = Ref("meter"), Ref("second"), Ref("kilogram")
    ft, inch, gal = Ref("foot"), Ref("inch"), Ref("us_gallon")

    base_units = (
        BaseUnitDef("meter",    "meter",    "m"),     # length
        BaseUnitDef("kilogram", "kilogram", "kg"),    # mass
        BaseUnitDef("second",   "second",   "s"),     # time
        BaseUnitDef("ampere",   "ampere",   "A"),     # electric current
        BaseUnitDef("mole",     "mole",     "mol"),   # amount of substance
        BaseUnitDef("candela",  "candela",  "cd"),    # luminous intensity
        BaseUnitDef("bit",      "bit",      "bit"),   # information
    )

    prefixes = tuple(
        PrefixDef(p.name, p.name, p.symbol, p.factor) for p in PREFIXES + BINARY_PREFIXES
    )

    # (id, name, abbrev, defining expression, coefficient)
    derived_units = (
        ("gram",        "gram",    "g",    kg,             Fraction(1, 1000)),
        ("liter",       "liter",   "L",    Pow(m, 3),      Fraction(1, 1000)),
        ("hectare",     "hectare", "ha",   Pow(m, 2),      10_000),
        ("minute",      "minute",  "min",  s,              60),
        ("hour",        "hour",    "h",    Ref("minute"),  60),
        ("day",         "day",     "d",    Ref("hour"),    24),
        ("byte",        "byte",    "B",    Ref("bit"),     8),
        # US customary, exact by international definition
        ("foot",        "foot",    "ft",   m,              Fraction("0.3048")),
        ("inch",        "inch",    "in",   ft,             Fraction(1, 12)),
        ("yard",        "yard",    "yd",   ft,             3),
        ("mile",        "mile",    "mi",   ft,             5280),
        ("acre",        "acre",    "acre", Pow(ft, 2),     43_560),
        ("us_gallon",   "gallon",  "gal",  Pow(inch, 3),   231),
        ("us_quart",    "quart",   "qt",   gal,            Fraction(1, 4)),
        ("us_cup",      "cup",     "cup",  Ref("us_quart"), Fraction(1, 4)),
    )

    celsius_offset = Fraction("273.15")
    temperatures = (
        TemperatureUnitDef("kelvin",     "kelvin",     "K"),
        TemperatureUnitDef("celsius",    "celsius",    "°C", 1, celsius_offset, "kelvin"),
        TemperatureUnitDef("fahrenheit", "fahrenheit", "°F", Fraction(5, 9),
                           celsius_offset - 32 * Fraction(5, 9), "kelvin"),
        TemperatureUnitDef("rankine",    "rankine",    "°R", Fraction(5, 9), 0, "kelvin"),
    )

    reg.register_many(
        base_units
        + prefixes
        + tuple(DerivedUnitDef(uid, name, abbv, d, c) for uid, name, abbv, d, c in derived_units)
        + temperatures
    )

    aliases = {
        "metre": "meter", "meters": "meter", "metres": "meter",
        "seconds": "second", "sec": "second",
        "minutes": "minute",
        "hr": "hour", "hours": "hour",
        "days": "day",
        "grams": "gram",
        "litre": "liter", "liters": "liter", "litres": "liter",
        "feet": "foot", "inches": "inch", "yards": "yard", "miles": "mile",
        "acres": "acre",
        "gallon": "us_gallon", "quart": "us_quart", "cup": "us_cup",
        "degC": "celsius", "degF": "fahrenheit", "degR": "rankine",
    }
    for alias, target in aliases.items():
        reg.register_alias(alias, target)

    reg.set_non_prefixable([
        "kilogram",
        "minute", "hour", "day",
        "foot", "inch", "yard", "mile", "acre", "hectare",
        "us_gallon", "us_quart", "us_cup",
        "celsius", "fahrenheit", "rankine",
    ])

    logger.info("default units registry bootstrapped with %d definitions", len(reg))
    return reg


# Public, shared default registry
DEFAULT_REGISTRY: UnitsRegistry = _bootstrap_default_registry()


# ---------------------------------------------------------------------------
# Module-level helpers bound to DEFAULT_REGISTRY
# ---------------------------------------------------------------------------

def register_unit(defn: UnitDef) -> Ref:
    """Register a definition in ``DEFAULT_REGISTRY``."""
    return DEFAULT_REGISTRY.register(defn)


def register_derived_unit(
    uid: str,
    defining: UnitExpr,
    coefficient: RationalLike = 1,
    name: Optional[str] = None,
    abbrev: Optional[str] = None,
) -> Ref:
    return DEFAULT_REGISTRY.register_derived_unit(uid, defining, coefficient, name, abbrev)


def register_temperature_unit(
    uid: str,
    coefficient: RationalLike = 1,
    offset: RationalLike = 0,
    name: Optional[str] = None,
    abbrev: Optional[str] = None,
    baseline: Optional[str] = "kelvin",
) -> TempRef:
    return DEFAULT_REGISTRY.register_temperature_unit(uid, coefficient, offset, name, abbrev, baseline)


def get_unit(symbol: str) -> UnitExpr:
    """Resolve ``symbol`` against ``DEFAULT_REGISTRY``."""
    return DEFAULT_REGISTRY.get(symbol)


__all__ = [
    "UnitsRegistry",
    "UnitNamespace",
    "DEFAULT_REGISTRY",
    "normalize_symbol",
    "register_unit",
    "register_derived_unit",
    "register_temperature_unit",
    "get_unit",
]
