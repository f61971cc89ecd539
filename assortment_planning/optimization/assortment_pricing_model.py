"""Assortment, pricing and inventory MILP.

Decides which products to carry, the price of each product in each period,
and when and how much to order, for customer segments that each buy the
option with the largest non-negative surplus (reservation price minus price),
or nothing.

Objective (maximize profit):
    sum_{i,j,t} N[i] * choice_price[i,j,t]                  revenue
  - sum_{j,t} (setup_cost[j,t] * setup[j,t]
               + unit_cost[j,t] * order[j,t]
               + holding_cost[j,t] * inventory[j,t])       operations
  - sum_j assortment_cost[j] * assort[j]                    assortment

Revenue uses the linearized price × choice surrogate, so the model is a
plain MILP solvable by HiGHS, CBC, Gurobi or CPLEX.

Build pipeline:
    ProblemDefinition → compute_bounds → VariableRegistry.declare
    → LinearizationEngine.apply → ConstraintGenerator.generate → objective
"""

import logging
from typing import Any, Dict, Optional, Tuple

from pyomo.environ import ConcreteModel, Constraint, Objective, maximize, quicksum

from ..models.problem import ProblemDefinition
from .base_model import BaseOptimizationModel
from .bounds import ModelBounds, ModelOptions, compute_bounds
from .constraint_generator import ConstraintGenerator
from .linearization import LinearizationEngine
from .result_schema import PlanningSolution
from .solution_extractor import SolutionExtractor
from .solver_config import SolverConfig
from .variable_registry import VariableRegistry

logger = logging.getLogger(__name__)


class AssortmentPricingModel(BaseOptimizationModel):
    """
    Assortment pricing model with McCormick-linearized customer choice.

    Example:
        model = AssortmentPricingModel(problem, SolverConfig(time_limit_seconds=30))
        result = model.solve()
        result.raise_for_status()
        solution = model.get_solution()
        print(solution.total_profit, solution.assorted_products)
    """

    def __init__(
        self,
        problem: ProblemDefinition,
        solver_config: Optional[SolverConfig] = None,
        options: Optional[ModelOptions] = None,
    ):
        """
        Initialize the model.

        Args:
            problem: Validated problem definition
            solver_config: Solver selection and budget (default SolverConfig())
            options: Formulation switches (default ModelOptions())
        """
        super().__init__(solver_config)
        self.problem = problem
        self.options = options or ModelOptions()
        self.bounds: Optional[ModelBounds] = None
        self.registry: Optional[VariableRegistry] = None
        self.constraint_counts: Dict[str, int] = {}

    def build_model(self) -> ConcreteModel:
        """
        Build the Pyomo model.

        Returns:
            ConcreteModel with variables, constraints and objective

        Raises:
            BoundComputationError: If a price cap or order capacity cannot be derived
        """
        logger.info(f"Building assortment pricing model: {self.problem.summary()}")

        self.bounds = compute_bounds(self.problem, self.options)
        self.registry = VariableRegistry(self.problem, self.bounds)
        linearization = LinearizationEngine(self.registry)
        generator = ConstraintGenerator(self.problem, self.registry, self.bounds, self.options)

        model = ConcreteModel(name=f"AssortmentPricing[{self.problem.name}]")
        self.registry.declare(model)

        counts = {}
        for family, n in linearization.apply(model).items():
            counts[f"{family}_envelope"] = n
        counts.update(generator.generate(model))
        self.constraint_counts = counts

        self._build_objective(model)

        logger.info(
            f"Model built: {model.nvariables():,} variables, {model.nconstraints():,} constraints"
        )
        return model

    def _build_objective(self, model: ConcreteModel) -> None:
        p = self.problem

        revenue = quicksum(
            p.segment_size(i) * model.choice_price[i, j, t]
            for i in p.segment_ids
            for j in p.product_ids
            for t in p.periods
        )
        operations = quicksum(
            p.setup_cost(j, t) * model.setup[j, t]
            + p.unit_cost(j, t) * model.order[j, t]
            + p.holding_cost(j, t) * model.inventory[j, t]
            for j in p.product_ids
            for t in p.periods
        )
        assortment = quicksum(
            p.assortment_cost(j) * model.assort[j] for j in p.product_ids
        )

        model.obj = Objective(
            expr=revenue - operations - assortment,
            sense=maximize,
            doc="Total profit",
        )

    def extract_solution(self, model: ConcreteModel) -> PlanningSolution:
        """Round, validate and package the incumbent loaded in ``model``."""
        extractor = SolutionExtractor(self.problem, self.registry, self.bounds)
        result = self.result
        return extractor.extract(
            model,
            status=result.status,
            gap=result.gap,
            solver_name=result.solver_name,
            objective_value=result.objective_value,
        )

    def structure_signature(self, model: Optional[ConcreteModel] = None) -> Tuple[Any, ...]:
        """
        Structural description of a built model.

        Two builds from the same ProblemDefinition and options return equal
        signatures: same variables (family, index, domain, bounds), same
        constraints (name, index, bounds, linear body), same objective.

        Args:
            model: Model to describe (default: build a fresh one)
        """
        if model is None:
            model = self.build_model()
        constraints = tuple(
            (con.parent_component().name, con.index(), con.lb, con.ub, str(con.body))
            for con in model.component_data_objects(Constraint, descend_into=True, sort=False)
        )
        return (
            self.registry.signature(),
            constraints,
            str(model.obj.expr),
            model.obj.sense,
        )


def plan(
    problem: ProblemDefinition,
    solver_config: Optional[SolverConfig] = None,
    options: Optional[ModelOptions] = None,
) -> PlanningSolution:
    """Build, solve and extract a plan in one call.

    Returns:
        PlanningSolution (status optimal, feasible, or time_limit with incumbent)

    Raises:
        ValidationError, BoundComputationError: On bad input or bounds
        SolveTimeout, SolveInfeasible, SolveUnbounded, SolveError: On solver outcomes without a plan
        SolutionRoundingError, InconsistentSolutionError: If the incumbent fails checks
    """
    model = AssortmentPricingModel(problem, solver_config, options)
    model.solve().raise_for_status()
    return model.get_solution()
