# tests/__init__.py

from tests.helpers.factories import mock_building, mock_labor, mock_market, mock_pool
from tests.helpers.invariants import assert_basic_invariants

__all__ = [
    "mock_pool",
    "mock_labor",
    "mock_market",
    "mock_building",
    "assert_basic_invariants",
]
