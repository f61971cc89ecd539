"""Tests for AssortmentPricingModel assembly (no solver needed)."""

import math

import pytest
from pyomo.environ import maximize

from assortment_planning.errors import BoundComputationError
from assortment_planning.optimization import AssortmentPricingModel, ModelOptions
from tests.fixtures.problems import make_problem


class TestBuild:
    """Model build pipeline."""

    def test_constraint_counts(self, small_problem):
        pm = AssortmentPricingModel(small_problem)
        pm.build_model()
        assert pm.constraint_counts["choice_price_envelope"] == 48
        assert pm.constraint_counts["assort_price_envelope"] == 24
        assert pm.constraint_counts["surplus_dominance"] == 12
        assert sum(pm.constraint_counts.values()) == 152

    def test_model_statistics(self, small_problem):
        pm = AssortmentPricingModel(small_problem)
        assert pm.get_model_statistics()["built"] is False

        pm.model = pm.build_model()
        stats = pm.get_model_statistics()
        assert stats["built"] is True
        assert stats["num_variables"] == 68
        assert stats["num_constraints"] == 152
        assert stats["num_integer_vars"] == 26

    def test_objective_is_maximized(self, two_period_problem):
        model = AssortmentPricingModel(two_period_problem).build_model()
        assert model.obj.sense == maximize

    def test_without_reservation_price_cap(self, small_problem):
        pm = AssortmentPricingModel(small_problem, options=ModelOptions(add_reservation_price_cap=False))
        pm.build_model()
        assert "reservation_price_cap" not in pm.constraint_counts
        assert sum(pm.constraint_counts.values()) == 140

    def test_uncapped_price_needs_tightening(self):
        problem = make_problem(
            periods=(1,), segments={"S1": 1.0}, products={"A": 0.0},
            reservation=3.0, price_cap=math.inf,
        )
        AssortmentPricingModel(problem).build_model()

        pm = AssortmentPricingModel(problem, options=ModelOptions(tighten_price_caps=False))
        with pytest.raises(BoundComputationError):
            pm.build_model()


class TestStructureSignature:
    """Rebuilding from the same input gives a structurally identical model."""

    def test_rebuild_is_identical(self, small_problem):
        pm = AssortmentPricingModel(small_problem)
        assert pm.structure_signature() == pm.structure_signature()

    def test_independent_builders_agree(self, small_problem):
        first = AssortmentPricingModel(small_problem).structure_signature()
        second = AssortmentPricingModel(small_problem).structure_signature()
        assert first == second

    def test_options_change_structure(self, small_problem):
        default = AssortmentPricingModel(small_problem).structure_signature()
        loose = AssortmentPricingModel(
            small_problem, options=ModelOptions(tighten_price_caps=False)
        ).structure_signature()
        assert default != loose

    def test_signature_of_given_model(self, two_period_problem):
        pm = AssortmentPricingModel(two_period_problem)
        model = pm.build_model()
        variables, constraints, objective, sense = pm.structure_signature(model)
        assert len(variables) == model.nvariables()
        assert len(constraints) == model.nconstraints()
        assert sense == maximize


class TestWriteModel:
    def test_write_lp(self, two_period_problem, tmp_path):
        pm = AssortmentPricingModel(two_period_problem)
        path = pm.write_model(tmp_path / "two_period.lp")

        assert path.exists()
        text = path.read_text()
        assert "max" in text
        assert "choice_completeness" in text
        assert pm.get_build_time() is not None

    def test_reset(self, two_period_problem, tmp_path):
        pm = AssortmentPricingModel(two_period_problem)
        pm.write_model(tmp_path / "model.lp")
        pm.reset()
        assert pm.model is None
        assert pm.get_build_time() is None
        assert pm.get_solution() is None
