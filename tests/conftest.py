"""Shared fixtures: every test starts from default settings and empty caches."""

import pytest

from cliffmat.basis import reset_basis_table
from cliffmat.config import get_tuning, set_tuning
from cliffmat.generators import reset_generator_table


@pytest.fixture(autouse=True)
def fresh_state():
    previous = get_tuning()
    reset_basis_table()
    reset_generator_table()
    yield
    set_tuning(previous)
    reset_basis_table()
    reset_generator_table()
