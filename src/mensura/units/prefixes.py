"""
mensura.units.prefixes
======================

SI decimal prefixes (2022 set, quecto..quetta) and IEC binary prefixes.
Factors are exact rationals.
"""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction


@dataclass(frozen=True, slots=True)
class Prefix:
    name: str
    symbol: str
    factor: Fraction


def _dec(power: int) -> Fraction:
    return Fraction(10) ** power


PREFIXES: tuple[Prefix, ...] = (
    Prefix("quecto", "q",  _dec(-30)),
    Prefix("ronto",  "r",  _dec(-27)),
    Prefix("yocto",  "y",  _dec(-24)),
    Prefix("zepto",  "z",  _dec(-21)),
    Prefix("atto",   "a",  _dec(-18)),
    Prefix("femto",  "f",  _dec(-15)),
    Prefix("pico",   "p",  _dec(-12)),
    Prefix("nano",   "n",  _dec(-9)),
    Prefix("micro",  "µ",  _dec(-6)),
    Prefix("milli",  "m",  _dec(-3)),
    Prefix("centi",  "c",  _dec(-2)),
    Prefix("deci",   "d",  _dec(-1)),
    Prefix("deca",   "da", _dec(1)),
    Prefix("hecto",  "h",  _dec(2)),
    Prefix("kilo",   "k",  _dec(3)),
    Prefix("mega",   "M",  _dec(6)),
    Prefix("giga",   "G",  _dec(9)),
    Prefix("tera",   "T",  _dec(12)),
    Prefix("peta",   "P",  _dec(15)),
    Prefix("exa",    "E",  _dec(18)),
    Prefix("zetta",  "Z",  _dec(21)),
    Prefix("yotta",  "Y",  _dec(24)),
    Prefix("ronna",  "R",  _dec(27)),
    Prefix("quetta", "Q",  _dec(30)),
)

BINARY_PREFIXES: tuple[Prefix, ...] = (
    Prefix("kibi", "Ki", Fraction(2) ** 10),
    Prefix("mebi", "Mi", Fraction(2) ** 20),
    Prefix("gibi", "Gi", Fraction(2) ** 30),
    Prefix("tebi", "Ti", Fraction(2) ** 40),
    Prefix("pebi", "Pi", Fraction(2) ** 50),
    Prefix("exbi", "Ei", Fraction(2) ** 60),
    Prefix("zebi", "Zi", Fraction(2) ** 70),
    Prefix("yobi", "Yi", Fraction(2) ** 80),
)

__all__ = ["Prefix", "PREFIXES", "BINARY_PREFIXES"]
