# tests/units/test_unit_registry.py
import logging
import threading
from fractions import Fraction

import pytest

from mensura.core.canonical import canonicalize, coefficient
from mensura.core.definitions import BaseUnitDef, DerivedUnitDef, PrefixDef, TemperatureUnitDef
from mensura.core.errors import (
    CyclicDefinitionError,
    DivisionByZeroError,
    DuplicateUnitError,
    RegistryFrozenError,
    UnknownUnitError,
)
from mensura.core.expr import Mul, Pow, Ref, TempRef
from mensura.units.registry import UnitsRegistry, normalize_symbol


# -------------------------------
# Registration
# -------------------------------

def test_register_and_lookup():
    reg = UnitsRegistry()
    m = reg.register_base_unit("meter", abbrev="m")
    assert m == Ref("meter")
    assert reg.lookup("meter") == BaseUnitDef("meter", "meter", "m")
    assert reg.lookup("m").id == "meter"
    assert "m" in reg and len(reg) == 1


def test_register_derived_unit_chain():
    reg = UnitsRegistry()
    m = reg.register_base_unit("meter", abbrev="m")
    ft = reg.register_derived_unit("foot", m, "0.3048", abbrev="ft")
    yd = reg.register_derived_unit("yard", ft, 3, abbrev="yd")
    assert coefficient(yd, m, reg) == Fraction(9144, 10000)


def test_duplicate_id_rejected(reg):
    with pytest.raises(DuplicateUnitError):
        reg.register_base_unit("meter")


def test_duplicate_abbreviation_rejected(reg):
    with pytest.raises(DuplicateUnitError):
        reg.register_derived_unit("micron", Ref("meter"), Fraction(1, 10 ** 6), abbrev="m")


def test_unknown_reference_rejected(reg):
    with pytest.raises(UnknownUnitError):
        reg.register_derived_unit("furlong", Ref("chain"), 10)
    assert not reg.has("furlong")


def test_zero_coefficient_rejected():
    with pytest.raises(DivisionByZeroError):
        DerivedUnitDef("nothing", "nothing", "nil", Ref("meter"), 0)


def test_cycle_detected_and_batch_not_committed(reg):
    before = len(reg)
    with pytest.raises(CyclicDefinitionError) as ei:
        reg.register_many([
            DerivedUnitDef("a_unit", "a", "au", Ref("b_unit"), 2),
            DerivedUnitDef("b_unit", "b", "bu", Pow(Ref("a_unit"), 2), 3),
        ])
    assert ei.value.cycle[0] == ei.value.cycle[-1]
    assert len(reg) == before
    assert not reg.has("a_unit") and not reg.has("au")


def test_self_reference_is_a_cycle(reg):
    with pytest.raises(CyclicDefinitionError):
        reg.register(DerivedUnitDef("ouroboros", "o", "ob", Ref("ouroboros"), 2))


def test_batch_forward_references_allowed(reg):
    reg.register_many([
        DerivedUnitDef("league", "league", "lea", Ref("nautical_mile"), 3),
        DerivedUnitDef("nautical_mile", "nautical mile", "nmi", Ref("meter"), 1852),
    ])
    assert coefficient(Ref("league"), Ref("meter"), reg) == 5556


def test_batch_is_atomic_on_duplicate(reg):
    before = len(reg)
    with pytest.raises(DuplicateUnitError):
        reg.register_many([
            BaseUnitDef("widget", "widget", "wdg"),
            BaseUnitDef("widget", "widget", "wdg2"),
        ])
    assert len(reg) == before


def test_register_rejects_non_definitions(reg):
    with pytest.raises(TypeError):
        reg.register("meter")


def test_reserved_namespace_names_rejected(reg):
    with pytest.raises(ValueError):
        reg.register_base_unit("define")


def test_temperature_must_reference_baseline(reg):
    with pytest.raises(ValueError):
        reg.register(TemperatureUnitDef("weird", "weird", "wd", 2, 0, "celsius"))
    with pytest.raises(ValueError):
        TemperatureUnitDef("bad_base", "bad", "bb", 2, 0, None)


def test_register_temperature_unit_returns_tempref(reg):
    t = reg.register_temperature_unit("reaumur", Fraction(5, 4), Fraction("273.15"), abbrev="°Ré")
    assert t == TempRef("reaumur")
    assert reg.temperature("°Ré") == t


# -------------------------------
# Aliases and lookups
# -------------------------------

def test_aliases(reg):
    assert reg.get("metre") == Ref("meter")
    reg.register_alias("mtr", "meter")
    assert reg.get("mtr") == Ref("meter")


def test_alias_conflicts(reg):
    with pytest.raises(DuplicateUnitError):
        reg.register_alias("feet", "meter")
    # re-registering the same binding is a no-op
    reg.register_alias("feet", "foot")
    assert reg.get("feet") == Ref("foot")
    with pytest.raises(UnknownUnitError):
        reg.register_alias("thing", "nonexistent")


def test_unknown_symbol(reg):
    with pytest.raises(UnknownUnitError) as ei:
        reg.get("zorkmid")
    assert ei.value.symbol == "zorkmid"
    assert not reg.has("zorkmid")
    # still a ValueError for callers catching builtins
    assert isinstance(ei.value, ValueError)


def test_lookup_does_not_synthesize(reg):
    with pytest.raises(UnknownUnitError):
        reg.lookup("km")


def test_normalize_symbol():
    assert normalize_symbol("  m ") == "m"
    assert normalize_symbol("") == ""


def test_temperature_lookup_rejects_plain_units(reg):
    with pytest.raises(ValueError):
        reg.temperature("m")


# -------------------------------
# Prefix synthesis
# -------------------------------

@pytest.mark.parametrize("sym, prefix, base", [
    ("km", "kilo", "meter"),
    ("kilometer", "kilo", "meter"),
    ("mg", "milli", "gram"),
    ("ms", "milli", "second"),
    ("dam", "deca", "meter"),
    ("µs", "micro", "second"),
    ("us", "micro", "second"),
    ("GB", "giga", "byte"),
    ("KiB", "kibi", "byte"),
    ("mK", "milli", "kelvin"),
])
def test_prefixed_symbols(reg, sym, prefix, base):
    assert reg.get(sym) == Mul(Ref(prefix), Ref(base))


def test_prefixed_symbols_convert(reg):
    assert coefficient(reg.get("km"), reg.get("mm"), reg) == 10 ** 6
    assert coefficient(reg.get("MiB"), reg.get("kB"), reg) == Fraction(2 ** 20, 1000)


@pytest.mark.parametrize("sym", ["kkm", "kkg", "kmin", "kft", "k°C", "kdegC", "kilo-meter"])
def test_rejected_prefix_spellings(reg, sym):
    with pytest.raises(UnknownUnitError):
        reg.get(sym)


def test_direct_symbols_win_over_prefix_parsing(reg):
    assert reg.get("min") == Ref("minute")
    assert reg.get("mi") == Ref("mile")
    assert reg.get("cd") == Ref("candela")
    assert reg.get("h") == Ref("hour")
    assert reg.get("d") == Ref("day")


def test_non_prefixable_query(reg):
    assert reg.is_non_prefixable("kg")
    assert reg.is_non_prefixable("minute")
    assert not reg.is_non_prefixable("m")


def test_synthesis_is_cached_and_logged(reg, caplog):
    with caplog.at_level(logging.DEBUG, logger="mensura.units.registry"):
        first = reg.get("Gm")
        second = reg.get("Gm")
    assert first is second
    assert sum("synthesized 'Gm'" in r.getMessage() for r in caplog.records) == 1


# -------------------------------
# Freezing and introspection
# -------------------------------

def test_freeze_blocks_registration(reg):
    reg.freeze()
    assert reg.frozen
    with pytest.raises(RegistryFrozenError):
        reg.register_base_unit("widget")
    with pytest.raises(RegistryFrozenError):
        reg.register_alias("mtr", "meter")
    # lookups still work
    assert reg.get("km") == Mul(Ref("kilo"), Ref("meter"))


def test_all_and_aliases_are_copies(reg):
    defs = reg.all()
    defs.pop("meter")
    assert reg.has("meter")
    aliases = reg.aliases()
    assert aliases["m"] == "meter"
    assert isinstance(reg.lookup("kilo"), PrefixDef)


def test_default_catalogue_coefficients(reg):
    assert coefficient(Ref("acre"), Pow(Ref("foot"), 2), reg) == 43560
    assert coefficient(Ref("us_gallon"), Ref("liter"), reg) == Fraction("3.785411784")
    assert coefficient(Ref("day"), Ref("second"), reg) == 86400
    assert coefficient(Ref("hectare"), Pow(Ref("meter"), 2), reg) == 10000
    assert canonicalize(Ref("gram"), reg).exponents == {"kilogram": 1}


def test_bootstrap_logs_info(caplog):
    from mensura.units.registry import _bootstrap_default_registry

    with caplog.at_level(logging.INFO, logger="mensura.units.registry"):
        _bootstrap_default_registry()
    assert any("bootstrapped" in r.getMessage() for r in caplog.records)


def test_concurrent_lookups_and_canonicalization(reg):
    errors = []
    symbols = ["km", "mm", "GB", "ms", "kA", "Mmol", "ns", "cm"]

    def worker():
        try:
            for sym in symbols * 20:
                canonicalize(reg.get(sym), reg)
        except Exception as e:  # pragma: no cover - surfaced below
            errors.append(e)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert errors == []


@pytest.mark.regression(reason="rebinding an alias left a stale canonical form in the memo")
def test_alias_cannot_be_rebound_after_canonicalization(reg):
    before = canonicalize(Ref("feet"), reg)
    assert before.coefficient == Fraction(381, 1250)
    with pytest.raises(DuplicateUnitError):
        reg.register_alias("feet", "meter")
    with pytest.raises(TypeError):
        reg.register_alias("feet", "meter", replace=True)
    assert canonicalize(Ref("feet"), reg) == before
    assert reg.get("feet") == Ref("foot")


def test_non_prefixable_set_is_frozen_too(reg):
    reg.freeze()
    with pytest.raises(RegistryFrozenError):
        reg.set_non_prefixable([])
    with pytest.raises(UnknownUnitError):
        reg.get("kkg")


def test_register_prefix_is_used_for_synthesis(reg):
    x = reg.register_prefix("xenno", Fraction(1, 10 ** 27), abbrev="X")
    assert x == Ref("xenno")
    assert isinstance(reg.lookup("xenno"), PrefixDef)
    assert reg.get("Xm") == Mul(Ref("xenno"), Ref("meter"))
    assert reg.get("xennosecond") == Mul(Ref("xenno"), Ref("second"))
    assert coefficient(reg.get("Xm"), reg.get("m"), reg) == Fraction(1, 10 ** 27)
    # a prefix abbreviation is not a unit alias
    with pytest.raises(UnknownUnitError):
        reg.lookup("X")
