"""Tests for VariableRegistry enumeration and pyomo declaration.

Run: pytest tests/test_variable_registry.py -v
"""

import pytest
from pyomo.environ import ConcreteModel, Var

from assortment_planning.errors import UnknownVariable
from assortment_planning.models import NO_PURCHASE
from assortment_planning.optimization import (
    ModelOptions,
    VariableDomain,
    VariableRegistry,
    compute_bounds,
)
from assortment_planning.optimization import constants as c


@pytest.fixture
def registry(small_problem):
    return VariableRegistry(small_problem, compute_bounds(small_problem, ModelOptions()))


class TestEnumeration:
    """Variable counts and deterministic ordering."""

    def test_family_counts(self, registry):
        assert registry.count(c.VAR_ASSORT) == 2
        assert registry.count(c.VAR_SETUP) == 6
        assert registry.count(c.VAR_PRICE) == 6
        assert registry.count(c.VAR_ORDER) == 6
        assert registry.count(c.VAR_INVENTORY) == 6
        assert registry.count(c.VAR_DEMAND) == 6
        # 2 segments x (2 products + no-purchase) x 3 periods
        assert registry.count(c.VAR_CHOICE) == 18
        assert registry.count(c.VAR_CHOICE_PRICE) == 12
        assert registry.count(c.VAR_ASSORT_PRICE) == 6
        assert len(registry) == 68
        assert registry.count() == 68

    def test_families_in_declared_order(self, registry):
        assert registry.families() == c.VARIABLE_FAMILIES

    def test_index_order_follows_input_order(self, registry):
        assert registry.indices(c.VAR_ASSORT) == [("A",), ("B",)]
        assert registry.indices(c.VAR_PRICE)[:3] == [("A", 1), ("A", 2), ("A", 3)]
        assert registry.indices(c.VAR_CHOICE)[:4] == [
            ("S1", "A", 1), ("S1", "A", 2), ("S1", "A", 3), ("S1", "B", 1),
        ]
        assert ("S2", NO_PURCHASE, 3) == registry.indices(c.VAR_CHOICE)[-1]

    def test_same_problem_same_signature(self, small_problem, registry):
        again = VariableRegistry(small_problem, compute_bounds(small_problem, ModelOptions()))
        assert again.signature() == registry.signature()

    def test_no_duplicates(self, registry):
        keys = [(s.family, s.index) for s in registry]
        assert len(keys) == len(set(keys))


class TestSpecs:
    """Domains and bounds."""

    def test_binary_families(self, registry):
        for spec in registry:
            assert spec.is_binary == (spec.family in c.BINARY_FAMILIES)
            assert spec.lower_bound == 0.0

    def test_price_and_surrogates_bounded_by_cap(self, registry):
        assert registry.spec(c.VAR_PRICE, ("A", 1)).upper_bound == 9.0
        assert registry.spec(c.VAR_CHOICE_PRICE, ("S2", "A", 1)).upper_bound == 9.0
        assert registry.spec(c.VAR_ASSORT_PRICE, ("B", 3)).upper_bound == 7.5

    def test_order_bounded_by_capacity(self, registry):
        assert registry.spec(c.VAR_ORDER, ("B", 1)).upper_bound == 45.0
        assert registry.spec(c.VAR_ORDER, ("B", 3)).upper_bound == 15.0

    def test_inventory_and_demand_unbounded_above(self, registry):
        assert registry.spec(c.VAR_INVENTORY, ("A", 2)).upper_bound is None
        assert registry.spec(c.VAR_DEMAND, ("A", 2)).domain == VariableDomain.NON_NEGATIVE

    def test_scalar_index_normalized(self, registry):
        assert registry.spec(c.VAR_ASSORT, "A") == registry.spec(c.VAR_ASSORT, ("A",))


class TestUnknownVariable:
    def test_unknown_family(self, registry):
        with pytest.raises(UnknownVariable, match="Unknown variable family 'shortage'"):
            registry.spec("shortage", ("A", 1))

    def test_unknown_index(self, registry):
        with pytest.raises(UnknownVariable) as exc_info:
            registry.spec(c.VAR_PRICE, ("Z", 1))
        assert exc_info.value.family == c.VAR_PRICE
        assert exc_info.value.index == ("Z", 1)

    def test_no_purchase_has_no_surrogate(self, registry):
        with pytest.raises(UnknownVariable):
            registry.spec(c.VAR_CHOICE_PRICE, ("S1", NO_PURCHASE, 1))

    def test_is_key_error(self, registry):
        with pytest.raises(KeyError):
            registry.indices("missing")


class TestDeclare:
    """Pyomo Var components match the registry."""

    def test_declared_components(self, small_problem, registry):
        model = ConcreteModel()
        registry.declare(model)

        for family in c.VARIABLE_FAMILIES:
            assert isinstance(getattr(model, family), Var)
        assert model.nvariables() == 68

    def test_declared_domains_and_bounds(self, registry):
        model = ConcreteModel()
        registry.declare(model)

        assert model.assort["A"].is_binary()
        assert model.choice["S1", NO_PURCHASE, 2].is_binary()
        assert not model.price["A", 1].is_binary()
        assert model.price["A", 1].bounds == (0, 9.0)
        assert model.order["A", 2].bounds == (0, 30.0)
        assert model.inventory["B", 1].lb == 0
        assert model.inventory["B", 1].ub is None

    def test_var_lookup(self, registry):
        model = ConcreteModel()
        registry.declare(model)

        assert registry.var(model, c.VAR_ASSORT, ("B",)) is model.assort["B"]
        assert registry.var(model, c.VAR_CHOICE_PRICE, ("S2", "B", 3)) is model.choice_price["S2", "B", 3]
        with pytest.raises(UnknownVariable):
            registry.var(model, c.VAR_ASSORT, ("Z",))
