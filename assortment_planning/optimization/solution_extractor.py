"""Map solver output back to a validated PlanningSolution.

Steps:
1. Read every registered variable from the solved pyomo model.
2. Round binaries to {0, 1}; a value farther than ``binary_tolerance`` from
   both raises SolutionRoundingError.
3. Re-check every model invariant (SolutionValidator); violations raise
   InconsistentSolutionError. Leftover noise on unassorted products is then
   zeroed.
4. Rebuild schedules, choices and the profit breakdown, and check the profit
   against the objective reported by the solver.
"""

import logging
from typing import Optional

from pyomo.environ import ConcreteModel, value

from ..errors import InconsistentSolutionError, SolutionRoundingError
from ..models.problem import ProblemDefinition
from ..validation.solution_validator import (
    SolutionValidationError,
    SolutionValues,
    validate_solution,
)
from . import constants as c
from .base_model import SolveStatus
from .bounds import ModelBounds
from .result_schema import PlanningSolution, ProductPeriodDecision, ProfitBreakdown, SegmentChoice
from .variable_registry import VariableRegistry

logger = logging.getLogger(__name__)


class SolutionExtractor:
    """Reads, rounds, validates and packages a solved model."""

    def __init__(
        self,
        problem: ProblemDefinition,
        registry: VariableRegistry,
        bounds: ModelBounds,
        binary_tolerance: float = c.BINARY_TOLERANCE,
        consistency_tolerance: float = c.CONSISTENCY_TOLERANCE,
    ):
        self.problem = problem
        self.registry = registry
        self.bounds = bounds
        self.binary_tolerance = binary_tolerance
        self.consistency_tolerance = consistency_tolerance

    def read_values(self, model: ConcreteModel) -> SolutionValues:
        """Raw variable values keyed by family and index tuple."""
        values: SolutionValues = {}
        unset = 0
        for spec in self.registry:
            v = self.registry.var(model, spec.family, spec.index).value
            if v is None:
                # Variables the solver never touched (e.g. eliminated by presolve)
                unset += 1
                v = 0.0
            values.setdefault(spec.family, {})[spec.index] = float(v)
        if unset:
            logger.debug(f"{unset} variables had no value; treated as 0")
        return values

    def round_values(self, values: SolutionValues) -> SolutionValues:
        """Round binaries to {0, 1} and clean near-zero continuous values.

        Raises:
            SolutionRoundingError: If a binary is not within tolerance of 0 or 1
        """
        rounded: SolutionValues = {}
        for family, by_index in values.items():
            out = {}
            if family in c.BINARY_FAMILIES:
                for index, v in by_index.items():
                    nearest = 1.0 if v >= 0.5 else 0.0
                    if abs(v - nearest) > self.binary_tolerance:
                        raise SolutionRoundingError(family, index, v, self.binary_tolerance)
                    out[index] = nearest
            else:
                for index, v in by_index.items():
                    if abs(v) < c.ZERO_THRESHOLD or -self.consistency_tolerance < v < 0:
                        v = 0.0
                    out[index] = v
            rounded[family] = out
        return rounded

    def clear_inactive(self, values: SolutionValues) -> SolutionValues:
        """Zero the continuous values of products that are not assorted.

        Run after validation: anything left on an unassorted product is within
        ``consistency_tolerance`` of zero and is solver noise.
        """
        dropped = {j for (j,), v in values[c.VAR_ASSORT].items() if v < 0.5}
        if not dropped:
            return values
        cleared: SolutionValues = dict(values)
        for family in c.VARIABLE_FAMILIES:
            if family in c.BINARY_FAMILIES or family not in values:
                continue
            # choice_price is indexed (segment, product, period)
            position = 1 if family == c.VAR_CHOICE_PRICE else 0
            cleared[family] = {
                index: 0.0 if index[position] in dropped else v
                for index, v in values[family].items()
            }
        return cleared

    def extract(
        self,
        model: ConcreteModel,
        status: SolveStatus = SolveStatus.OPTIMAL,
        gap: Optional[float] = None,
        solver_name: Optional[str] = None,
        objective_value: Optional[float] = None,
    ) -> PlanningSolution:
        """Build a PlanningSolution from a model with loaded variable values.

        Args:
            model: Solved pyomo model
            status: Normalized solver status
            gap: Relative MIP gap of the incumbent
            solver_name: Solver used
            objective_value: Objective reported by the solver (defaults to the
                model objective evaluated at the loaded values)

        Raises:
            SolutionRoundingError: If a binary value cannot be rounded
            InconsistentSolutionError: If an invariant is violated or the
                recomputed profit does not match the objective
        """
        values = self.round_values(self.read_values(model))
        validate_solution(
            self.problem,
            self.bounds,
            values,
            tolerance=self.consistency_tolerance,
            fail_on_error=True,
        )
        values = self.clear_inactive(values)

        p = self.problem
        assort = values[c.VAR_ASSORT]
        assortment = {j: assort[(j,)] > 0.5 for j in p.product_ids}

        decisions = []
        revenue = procurement = setup_total = holding = 0.0
        for j in p.product_ids:
            for t in p.periods:
                rev = sum(
                    p.segment_size(i) * values[c.VAR_CHOICE_PRICE][(i, j, t)]
                    for i in p.segment_ids
                )
                order = values[c.VAR_ORDER][(j, t)]
                inventory = values[c.VAR_INVENTORY][(j, t)]
                setup = values[c.VAR_SETUP][(j, t)] > 0.5
                decisions.append(ProductPeriodDecision(
                    product=j,
                    period=t,
                    assorted=assortment[j],
                    price=values[c.VAR_PRICE][(j, t)],
                    setup=setup,
                    order_quantity=order,
                    inventory=inventory,
                    demand=values[c.VAR_DEMAND][(j, t)],
                    revenue=rev,
                ))
                revenue += rev
                procurement += p.unit_cost(j, t) * order
                holding += p.holding_cost(j, t) * inventory
                if setup:
                    setup_total += p.setup_cost(j, t)

        assortment_total = sum(p.assortment_cost(j) for j in p.product_ids if assortment[j])

        choices = []
        for i in p.segment_ids:
            for t in p.periods:
                chosen = next(
                    ch for ch in p.choices if values[c.VAR_CHOICE][(i, ch, t)] > 0.5
                )
                paid = 0.0 if chosen == c.NO_PURCHASE else values[c.VAR_PRICE][(chosen, t)]
                choices.append(SegmentChoice(
                    segment=i,
                    period=t,
                    choice=chosen,
                    price_paid=paid,
                    surplus=p.reservation_price(i, chosen, t) - paid,
                    size=p.segment_size(i),
                ))

        total_cost = procurement + setup_total + holding + assortment_total
        profit = revenue - total_cost

        if objective_value is None:
            objective_value = value(model.obj)
        scale = max(1.0, abs(profit), abs(objective_value))
        if abs(profit - objective_value) > self.consistency_tolerance * scale:
            error = SolutionValidationError(
                category='Objective Mismatch',
                message=f"Recomputed profit {profit:.6f} != solver objective {objective_value:.6f}",
                details={'profit': profit, 'objective': objective_value},
            )
            logger.error(str(error))
            raise InconsistentSolutionError([error])

        solution = PlanningSolution(
            problem_name=p.name,
            status=status,
            gap=gap,
            solver_name=solver_name,
            assortment=assortment,
            decisions=decisions,
            choices=choices,
            costs=ProfitBreakdown(
                revenue=revenue,
                procurement_cost=procurement,
                setup_cost=setup_total,
                holding_cost=holding,
                assortment_cost=assortment_total,
                total_cost=total_cost,
                profit=profit,
            ),
            total_profit=profit,
        )
        logger.info(
            f"Extracted plan: {len(solution.assorted_products)} of {len(p.product_ids)} "
            f"products assorted, profit {profit:,.2f}"
        )
        return solution
