"""Structural constraints of the assortment pricing model.

All constraints are linear; bilinear price × binary terms appear only
through the surrogate variables of the LinearizationEngine.

Notation: i segment, j/k product, c choice (products + NO_PURCHASE),
t period, R reservation price, U price cap, M order capacity, N segment size.

Constraints:
    choice_completeness[i, t]     sum_c choice[i, c, t] == 1
    choice_eligibility[i, j, t]   choice[i, j, t] <= assort[j]
    setup_eligibility[j, t]       setup[j, t] <= assort[j]
    demand_definition[j, t]       demand[j, t] == sum_i N[i] * choice[i, j, t]
    inventory_balance[j, t]       inventory[j, t] == inventory[j, t-1] + order[j, t] - demand[j, t]
                                  (inventory before the first period is 0)
    terminal_inventory[j]         inventory[j, last] == 0
    price_assortment[j, t]        price[j, t] <= U[j, t] * assort[j]
    order_activation[j, t]        order[j, t] <= M[t] * setup[j, t]
    nonnegative_utility[i, t]     S[i, t] >= 0
    surplus_dominance[i, j, t]    S[i, t] >= R[i, j, t] * assort[j] - assort_price[j, t]
    reservation_price_cap[i,j,t]  choice_price[i, j, t] <= R[i, j, t] * choice[i, j, t]  (optional)

where S[i, t] = sum_j (R[i, j, t] * choice[i, j, t] - choice_price[i, j, t]) is
the surplus realized by segment i in period t (no-purchase contributes 0).

Completeness, non-negativity and dominance together make every segment pick
an offered option of maximal non-negative surplus. When several options tie
at the maximum the model does not prefer any of them; which one is returned
depends on the solver.
"""

import logging
from typing import Dict

from pyomo.environ import ConcreteModel, Constraint, quicksum

from ..models.problem import ProblemDefinition
from . import constants as c
from .bounds import ModelBounds, ModelOptions
from .variable_registry import VariableRegistry

logger = logging.getLogger(__name__)

#: Constraint families in generation order
CONSTRAINT_FAMILIES = (
    "choice_completeness",
    "choice_eligibility",
    "setup_eligibility",
    "demand_definition",
    "inventory_balance",
    "terminal_inventory",
    "price_assortment",
    "order_activation",
    "nonnegative_utility",
    "surplus_dominance",
    "reservation_price_cap",
)


class ConstraintGenerator:
    """Emits every structural constraint family onto a pyomo model."""

    def __init__(
        self,
        problem: ProblemDefinition,
        registry: VariableRegistry,
        bounds: ModelBounds,
        options: ModelOptions,
    ):
        self.problem = problem
        self.registry = registry
        self.bounds = bounds
        self.options = options

    def generate(self, model: ConcreteModel) -> Dict[str, int]:
        """Add all constraint families.

        Returns:
            Number of constraints per family (generated families only)
        """
        counts = {}
        self._add_choice_constraints(model, counts)
        self._add_demand_and_inventory(model, counts)
        self._add_activation_constraints(model, counts)
        self._add_surplus_constraints(model, counts)

        for name, n in counts.items():
            logger.debug(f"  {name}: {n:,}")
        logger.info(f"Generated {sum(counts.values()):,} structural constraints in {len(counts)} families")
        return counts

    def _add(self, model, counts, name, index, rule, doc):
        index = list(index)
        model.add_component(name, Constraint(index, rule=rule, doc=doc))
        counts[name] = len(getattr(model, name))

    # ------------------------------------------------------------------
    # Choice structure
    # ------------------------------------------------------------------

    def _add_choice_constraints(self, model: ConcreteModel, counts: Dict[str, int]) -> None:
        p = self.problem

        def choice_completeness_rule(m, i, t):
            return quicksum(m.choice[i, ch, t] for ch in p.choices) == 1

        self._add(
            model, counts, "choice_completeness",
            [(i, t) for i in p.segment_ids for t in p.periods],
            choice_completeness_rule,
            "Each segment picks exactly one option per period",
        )

        def choice_eligibility_rule(m, i, j, t):
            return m.choice[i, j, t] <= m.assort[j]

        self._add(
            model, counts, "choice_eligibility",
            [(i, j, t) for i in p.segment_ids for j in p.product_ids for t in p.periods],
            choice_eligibility_rule,
            "Only assorted products can be chosen",
        )

        def setup_eligibility_rule(m, j, t):
            return m.setup[j, t] <= m.assort[j]

        self._add(
            model, counts, "setup_eligibility",
            self.registry.indices(c.VAR_SETUP),
            setup_eligibility_rule,
            "Only assorted products can be ordered",
        )

    # ------------------------------------------------------------------
    # Demand and inventory flow
    # ------------------------------------------------------------------

    def _add_demand_and_inventory(self, model: ConcreteModel, counts: Dict[str, int]) -> None:
        p = self.problem
        horizon = p.horizon

        def demand_definition_rule(m, j, t):
            return m.demand[j, t] == quicksum(
                p.segment_size(i) * m.choice[i, j, t] for i in p.segment_ids
            )

        self._add(
            model, counts, "demand_definition",
            self.registry.indices(c.VAR_DEMAND),
            demand_definition_rule,
            "Demand equals total size of choosing segments",
        )

        def inventory_balance_rule(m, j, t):
            prev = horizon.predecessor(t)
            # Nothing is on hand before the first period
            opening = m.inventory[j, prev] if prev is not None else 0
            return m.inventory[j, t] == opening + m.order[j, t] - m.demand[j, t]

        self._add(
            model, counts, "inventory_balance",
            self.registry.indices(c.VAR_INVENTORY),
            inventory_balance_rule,
            "Period-over-period inventory balance",
        )

        def terminal_inventory_rule(m, j):
            return m.inventory[j, horizon.last] == 0

        self._add(
            model, counts, "terminal_inventory",
            p.product_ids,
            terminal_inventory_rule,
            "No inventory left after the last period",
        )

    # ------------------------------------------------------------------
    # Price and order activation (big-M)
    # ------------------------------------------------------------------

    def _add_activation_constraints(self, model: ConcreteModel, counts: Dict[str, int]) -> None:
        cap = self.bounds.price_cap
        capacity = self.bounds.order_capacity

        def price_assortment_rule(m, j, t):
            return m.price[j, t] <= cap[(j, t)] * m.assort[j]

        self._add(
            model, counts, "price_assortment",
            self.registry.indices(c.VAR_PRICE),
            price_assortment_rule,
            "Price is zero unless the product is assorted",
        )

        def order_activation_rule(m, j, t):
            return m.order[j, t] <= capacity[t] * m.setup[j, t]

        self._add(
            model, counts, "order_activation",
            self.registry.indices(c.VAR_ORDER),
            order_activation_rule,
            "Orders require a setup",
        )

    # ------------------------------------------------------------------
    # Maximum-surplus choice rule
    # ------------------------------------------------------------------

    def realized_surplus(self, m: ConcreteModel, i: str, t):
        """Linear expression of the surplus segment i realizes in period t."""
        p = self.problem
        return quicksum(
            p.reservation_price(i, j, t) * m.choice[i, j, t] - m.choice_price[i, j, t]
            for j in p.product_ids
        )

    def _add_surplus_constraints(self, model: ConcreteModel, counts: Dict[str, int]) -> None:
        p = self.problem

        def nonnegative_utility_rule(m, i, t):
            if not p.product_ids:
                # Only no-purchase available: surplus is identically 0
                return Constraint.Skip
            return self.realized_surplus(m, i, t) >= 0

        self._add(
            model, counts, "nonnegative_utility",
            [(i, t) for i in p.segment_ids for t in p.periods],
            nonnegative_utility_rule,
            "Realized surplus is non-negative",
        )

        def surplus_dominance_rule(m, i, j, t):
            offered = p.reservation_price(i, j, t) * m.assort[j] - m.assort_price[j, t]
            return self.realized_surplus(m, i, t) >= offered

        self._add(
            model, counts, "surplus_dominance",
            [(i, j, t) for i in p.segment_ids for j in p.product_ids for t in p.periods],
            surplus_dominance_rule,
            "Realized surplus is at least the surplus of any assorted product",
        )

        if not self.options.add_reservation_price_cap:
            return

        big_m = self.bounds.reservation_big_m

        def reservation_price_cap_rule(m, i, j, t):
            return m.choice_price[i, j, t] <= big_m[(i, j, t)] * m.choice[i, j, t]

        self._add(
            model, counts, "reservation_price_cap",
            self.registry.indices(c.VAR_CHOICE_PRICE),
            reservation_price_cap_rule,
            "No segment pays more than its reservation price",
        )
