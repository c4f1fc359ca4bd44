# tests/conftest.py
import pytest

import mensura.units.registry as regmod
from mensura.core import numeric
from mensura.units.registry import DEFAULT_REGISTRY as _ureg


@pytest.fixture(scope="session")
def ureg():
    return _ureg


@pytest.fixture
def reg():
    """Fresh, fully-bootstrapped UnitsRegistry for isolation per test."""
    return regmod._bootstrap_default_registry()


@pytest.fixture
def patched_default(monkeypatch, reg):
    """Make a fresh registry the process default for the duration of a test."""
    monkeypatch.setattr(regmod, "DEFAULT_REGISTRY", reg, raising=True)
    return reg


@pytest.fixture
def u(patched_default):
    return patched_default.as_namespace()


@pytest.fixture(autouse=True)
def _restore_integral_policy():
    before = numeric.get_integral_policy()
    yield
    numeric.set_integral_policy(before)
