"""Pytest configuration and shared fixtures."""

import pytest

from assortment_planning.optimization import SolverConfig
from tests.fixtures.problems import make_problem


@pytest.fixture
def two_period_problem():
    """One segment (size 10), one product, two periods, reservation price 5.

    Unit cost 1, holding cost 0.2, no setup or assortment cost, price cap 5.
    """
    return make_problem(
        periods=(1, 2),
        segments={"S1": 10.0},
        products={"A": 0.0},
        reservation=5.0,
        unit_cost=1.0,
        holding_cost=0.2,
        price_cap=5.0,
        name="two_period",
    )


@pytest.fixture
def two_product_problem():
    """Two identical products; the single segment values A (8) above B (6)."""
    return make_problem(
        periods=(1,),
        segments={"S1": 10.0},
        products={"A": 0.0, "B": 0.0},
        reservation=lambda i, j, t: 8.0 if j == "A" else 6.0,
        unit_cost=1.0,
        price_cap=10.0,
        name="two_product",
    )


@pytest.fixture
def small_problem():
    """Two segments, two products, three periods with varying preferences."""
    table = {
        ("S1", "A", 1): 9.0, ("S1", "A", 2): 8.0, ("S1", "A", 3): 7.0,
        ("S1", "B", 1): 6.0, ("S1", "B", 2): 6.5, ("S1", "B", 3): 7.5,
        ("S2", "A", 1): 4.0, ("S2", "A", 2): 5.0, ("S2", "A", 3): 3.0,
        ("S2", "B", 1): 5.5, ("S2", "B", 2): 4.5, ("S2", "B", 3): 6.0,
    }
    return make_problem(
        periods=(1, 2, 3),
        segments={"S1": 10.0, "S2": 5.0},
        products={"A": 2.0, "B": 3.0},
        reservation=table,
        unit_cost=1.5,
        holding_cost=0.3,
        setup_cost=4.0,
        price_cap=12.0,
        name="small",
    )


@pytest.fixture
def fast_solver_config():
    """HiGHS with a short time budget and exact gap."""
    return SolverConfig(solver_name="appsi_highs", time_limit_seconds=30, mip_gap=0.0)
