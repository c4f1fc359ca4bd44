# tests/core/quantity/test_quantity_equality.py
from decimal import Decimal
from fractions import Fraction

import pytest

from mensura.core.errors import IncompatibleUnitsError
from mensura.core.quantity import Quantity


def test_equal_across_units(u):
    assert Quantity(1, u.yd) == Quantity(3, u.ft)
    assert Quantity(3, u.ft) == Quantity(1, u.yd)
    assert Quantity(1, u.km) == Quantity(1000, u.m)


def test_exact_comparison_does_not_truncate(u):
    # 1 ft is 1/3 yd; integral truncation would make these look equal
    assert Quantity(0, u.yd) != Quantity(1, u.ft)
    assert Quantity(0, u.yd) < Quantity(1, u.ft)
    assert Quantity(1, u.ft) > Quantity(0, u.yd)


def test_mixed_float_and_int(u):
    assert Quantity(1.0, u.yd) == Quantity(3, u.ft)
    assert Quantity(0.5, u.yd) < Quantity(2, u.ft)
    assert Quantity(2, u.ft) > Quantity(0.5, u.yd)


def test_decimal_and_fraction(u):
    assert Quantity(Decimal("0.5"), u.km) == Quantity(500, u.m)
    assert Quantity(Fraction(1, 3), u.yd) == Quantity(1, u.ft)


@pytest.mark.parametrize("a, b", [
    ((1, "m"), (2, "m")),
    ((999, "m"), (1, "km")),
    ((1, "ft"), (1, "m")),
])
def test_ordering(u, a, b):
    qa, qb = Quantity(a[0], u(a[1])), Quantity(b[0], u(b[1]))
    assert qa < qb and qa <= qb
    assert qb > qa and qb >= qa
    assert qa != qb


def test_comparing_incompatible_raises(u):
    with pytest.raises(IncompatibleUnitsError):
        _ = Quantity(1, u.m) == Quantity(1, u.s)
    with pytest.raises(IncompatibleUnitsError):
        _ = Quantity(1, u.m) < Quantity(1, u.kg)


def test_comparing_with_non_quantity(u):
    assert (Quantity(1, u.m) == 1) is False
    assert Quantity(1, u.m) != "1 m"
    with pytest.raises(TypeError):
        _ = Quantity(1, u.m) < 1


def test_quantities_are_unhashable(u):
    with pytest.raises(TypeError):
        hash(Quantity(1, u.m))


@pytest.mark.regression(reason="same-dimension comparison must not depend on operand order")
def test_comparison_is_antisymmetric(u):
    a, b = Quantity(1, u.mi), Quantity(1, u.km)
    assert (a > b) and (b < a)
    assert not (a < b) and not (b > a)
