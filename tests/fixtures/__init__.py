"""Test fixtures for assortment planning tests."""

from .problems import (
    HIGHS_AVAILABLE,
    TWO_PERIOD_PROFIT,
    assign_values,
    make_problem,
    requires_highs,
    two_period_optimum,
    violated_constraints,
)
from .solver_mocks import create_mock_appsi_highs, create_mock_solver_config

__all__ = [
    'HIGHS_AVAILABLE',
    'TWO_PERIOD_PROFIT',
    'assign_values',
    'make_problem',
    'requires_highs',
    'two_period_optimum',
    'violated_constraints',
    'create_mock_appsi_highs',
    'create_mock_solver_config',
]
