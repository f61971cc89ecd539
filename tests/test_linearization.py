"""Tests for the McCormick linearization of price × binary products.

The envelope must be exact for binary values: every feasible surrogate value
equals price × binary, and the true product always satisfies the envelope.
"""

import pytest
from pyomo.environ import ConcreteModel, value

from assortment_planning.errors import BoundComputationError, UnknownVariable
from assortment_planning.optimization import (
    BilinearTerm,
    LinearizationEngine,
    ModelOptions,
    VariableRegistry,
    compute_bounds,
    envelope_interval,
)
from assortment_planning.optimization import constants as c
from assortment_planning.optimization.linearization import ENVELOPE_SUFFIXES
from tests.fixtures.problems import violated_constraints


@pytest.fixture
def registry(small_problem):
    return VariableRegistry(small_problem, compute_bounds(small_problem, ModelOptions()))


@pytest.fixture
def linearized(registry):
    model = ConcreteModel()
    registry.declare(model)
    engine = LinearizationEngine(registry)
    counts = engine.apply(model)
    return model, engine, counts


def set_all(registry, model, price, binary):
    """Give every price the same value and every binary the same value."""
    for spec in registry:
        var = registry.var(model, spec.family, spec.index)
        if spec.family == c.VAR_PRICE:
            var.set_value(min(price, spec.upper_bound))
        elif spec.is_binary:
            var.set_value(binary)
        else:
            var.set_value(0.0)
    for family in LinearizationEngine.SURROGATE_FAMILIES:
        for index in registry.indices(family):
            j, t = index[-2], index[-1]
            p = value(model.price[j, t])
            registry.var(model, family, index).set_value(p * binary)


class TestEnvelopeInterval:
    """Envelope collapses to the exact product for binary values."""

    @pytest.mark.parametrize("price", [0.0, 0.5, 3.0, 7.25, 10.0])
    @pytest.mark.parametrize("binary", [0.0, 1.0])
    def test_exact_for_binary(self, price, binary):
        lower, upper = envelope_interval(price, binary, 10.0)
        assert lower == pytest.approx(price * binary)
        assert upper == pytest.approx(price * binary)

    def test_fractional_binary_is_a_relaxation(self):
        lower, upper = envelope_interval(6.0, 0.5, 10.0)
        assert lower == pytest.approx(1.0)
        assert upper == pytest.approx(5.0)

    def test_bound_below_price_is_empty(self):
        lower, upper = envelope_interval(8.0, 1.0, 5.0)
        assert lower > upper


class TestTerms:
    """Term construction and bound validation."""

    def test_term_counts(self, registry, linearized):
        _, engine, counts = linearized
        assert len(engine.terms(c.VAR_CHOICE_PRICE)) == 12
        assert len(engine.terms(c.VAR_ASSORT_PRICE)) == 6
        assert counts == {c.VAR_CHOICE_PRICE: 48, c.VAR_ASSORT_PRICE: 24}

    def test_terms_use_price_cap(self, registry, linearized):
        _, engine, _ = linearized
        term = engine.terms(c.VAR_CHOICE_PRICE)[0]
        assert term.surrogate == (c.VAR_CHOICE_PRICE, ("S1", "A", 1))
        assert term.continuous == (c.VAR_PRICE, ("A", 1))
        assert term.binary == (c.VAR_CHOICE, ("S1", "A", 1))
        assert term.bound == registry.bounds.price_cap[("A", 1)]

        assort_term = engine.terms(c.VAR_ASSORT_PRICE)[-1]
        assert assort_term.binary == (c.VAR_ASSORT, ("B",))

    def test_unknown_surrogate_family(self, linearized):
        _, engine, _ = linearized
        with pytest.raises(KeyError):
            engine.terms(c.VAR_PRICE)

    def test_bound_below_price_upper_bound_rejected(self, registry):
        engine = LinearizationEngine(registry)
        term = BilinearTerm(
            surrogate=(c.VAR_CHOICE_PRICE, ("S1", "A", 1)),
            continuous=(c.VAR_PRICE, ("A", 1)),
            binary=(c.VAR_CHOICE, ("S1", "A", 1)),
            bound=1.0,
        )
        with pytest.raises(BoundComputationError, match="below the upper bound"):
            engine.validate_term(term)

    def test_negative_or_infinite_bound_rejected(self, registry):
        engine = LinearizationEngine(registry)
        for bound in (-1.0, float("inf")):
            term = BilinearTerm(
                surrogate=(c.VAR_ASSORT_PRICE, ("A", 1)),
                continuous=(c.VAR_PRICE, ("A", 1)),
                binary=(c.VAR_ASSORT, ("A",)),
                bound=bound,
            )
            with pytest.raises(BoundComputationError):
                engine.validate_term(term)

    def test_continuous_governing_variable_rejected(self, registry):
        engine = LinearizationEngine(registry)
        term = BilinearTerm(
            surrogate=(c.VAR_ASSORT_PRICE, ("A", 1)),
            continuous=(c.VAR_PRICE, ("A", 1)),
            binary=(c.VAR_ORDER, ("A", 1)),
            bound=100.0,
        )
        with pytest.raises(BoundComputationError, match="not binary"):
            engine.validate_term(term)

    def test_unregistered_variable_rejected(self, registry):
        engine = LinearizationEngine(registry)
        term = BilinearTerm(
            surrogate=(c.VAR_ASSORT_PRICE, ("Z", 1)),
            continuous=(c.VAR_PRICE, ("A", 1)),
            binary=(c.VAR_ASSORT, ("A",)),
            bound=100.0,
        )
        with pytest.raises(UnknownVariable):
            engine.validate_term(term)


class TestEnvelopeConstraints:
    """Envelope constraints on a declared model."""

    def test_components_named_by_family_and_suffix(self, linearized):
        model, _, _ = linearized
        for family in LinearizationEngine.SURROGATE_FAMILIES:
            for suffix in ENVELOPE_SUFFIXES:
                assert hasattr(model, f"{family}_{suffix}")
        assert len(model.choice_price_lb_active) == 12
        assert len(model.assort_price_ub_binary) == 6

    @pytest.mark.parametrize("price", [0.0, 2.5, 6.0, 9.0])
    @pytest.mark.parametrize("binary", [0, 1])
    def test_exact_product_is_feasible(self, registry, linearized, price, binary):
        model, _, _ = linearized
        set_all(registry, model, price, binary)
        assert violated_constraints(model) == []

    def test_surrogate_above_product_is_cut_off(self, registry, linearized):
        model, _, _ = linearized
        set_all(registry, model, 5.0, 1)
        model.choice_price["S1", "A", 2].set_value(5.5)
        assert "choice_price_ub_continuous[S1,A,2]" in violated_constraints(model)

    def test_surrogate_below_product_is_cut_off(self, registry, linearized):
        model, _, _ = linearized
        set_all(registry, model, 5.0, 1)
        model.assort_price["B", 1].set_value(4.0)
        assert "assort_price_lb_active[B,1]" in violated_constraints(model)

    def test_surrogate_forced_to_zero_when_binary_is_zero(self, registry, linearized):
        model, _, _ = linearized
        set_all(registry, model, 5.0, 0)
        model.choice_price["S2", "B", 3].set_value(1.0)
        assert violated_constraints(model) == ["choice_price_ub_binary[S2,B,3]"]
