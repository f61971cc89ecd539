"""Variable registry for the assortment pricing model.

Enumerates every decision variable exactly once, keyed by (family, index
tuple), with its domain and bounds. Enumeration order is deterministic:
families follow ``constants.VARIABLE_FAMILIES``; within a family, segments
and products follow input order and periods follow horizon order. The same
ProblemDefinition therefore always yields the same variables in the same
order, which keeps solver behaviour reproducible.

Variables:
    - assort[j]: product j carried (binary)
    - setup[j, t]: order placed for j in t (binary)
    - price[j, t]: selling price, 0 <= price <= U[j, t]
    - order[j, t]: order quantity, 0 <= order <= M[t]
    - inventory[j, t]: end-of-period inventory (>= 0)
    - demand[j, t]: realized demand (>= 0)
    - choice[i, c, t]: segment i picks c in t, c in products + NO_PURCHASE (binary)
    - choice_price[i, j, t]: price[j, t] * choice[i, j, t], 0 <= . <= U[j, t]
    - assort_price[j, t]: price[j, t] * assort[j], 0 <= . <= U[j, t]
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pyomo.environ import Binary, ConcreteModel, NonNegativeReals, Var

from ..errors import UnknownVariable
from ..models.problem import ProblemDefinition
from . import constants as c
from .bounds import ModelBounds

logger = logging.getLogger(__name__)


class VariableDomain(str, Enum):
    """Domain of a decision variable."""
    BINARY = "binary"
    NON_NEGATIVE = "non_negative"


@dataclass(frozen=True)
class VariableSpec:
    """Declaration of a single decision variable."""
    family: str
    index: Tuple[Any, ...]
    domain: VariableDomain
    upper_bound: Optional[float] = None

    @property
    def lower_bound(self) -> float:
        return 0.0

    @property
    def is_binary(self) -> bool:
        return self.domain == VariableDomain.BINARY

    def __str__(self) -> str:
        ub = "" if self.upper_bound is None else f" <= {self.upper_bound:g}"
        return f"{self.family}{self.index} in {self.domain.value}{ub}"


FAMILY_DOCS = {
    c.VAR_ASSORT: "Product carried for the horizon",
    c.VAR_SETUP: "Order placed for product in period",
    c.VAR_PRICE: "Selling price by product and period",
    c.VAR_ORDER: "Order quantity by product and period",
    c.VAR_INVENTORY: "End-of-period inventory by product and period",
    c.VAR_DEMAND: "Realized demand by product and period",
    c.VAR_CHOICE: "Segment choice (products + no-purchase) by period",
    c.VAR_CHOICE_PRICE: "Linearized price x choice by segment, product and period",
    c.VAR_ASSORT_PRICE: "Linearized price x assort by product and period",
}


class VariableRegistry:
    """Deterministic enumeration of all decision variables.

    Example:
        registry = VariableRegistry(problem, bounds)
        registry.spec("price", ("A", 1)).upper_bound   # price cap U[A, 1]
        registry.declare(model)                         # adds pyomo Vars
        registry.var(model, "choice", ("S1", "A", 1))   # VarData
    """

    def __init__(self, problem: ProblemDefinition, bounds: ModelBounds):
        self.problem = problem
        self.bounds = bounds
        self._specs: Dict[str, Dict[Tuple[Any, ...], VariableSpec]] = {}
        self._enumerate()

    def _enumerate(self) -> None:
        p = self.problem
        products = p.product_ids
        segments = p.segment_ids
        periods = p.periods
        cap = self.bounds.price_cap

        def add(family, index, domain, upper_bound=None):
            specs = self._specs.setdefault(family, {})
            if index in specs:
                raise ValueError(f"Variable {family}{index} registered twice")
            specs[index] = VariableSpec(family, index, domain, upper_bound)

        binary = VariableDomain.BINARY
        cont = VariableDomain.NON_NEGATIVE

        for family in c.VARIABLE_FAMILIES:
            self._specs[family] = {}

        for j in products:
            add(c.VAR_ASSORT, (j,), binary)
        for j in products:
            for t in periods:
                add(c.VAR_SETUP, (j, t), binary)
        for j in products:
            for t in periods:
                add(c.VAR_PRICE, (j, t), cont, cap[(j, t)])
        for j in products:
            for t in periods:
                add(c.VAR_ORDER, (j, t), cont, self.bounds.order_capacity[t])
        for j in products:
            for t in periods:
                add(c.VAR_INVENTORY, (j, t), cont)
        for j in products:
            for t in periods:
                add(c.VAR_DEMAND, (j, t), cont)
        for i in segments:
            for choice in p.choices:
                for t in periods:
                    add(c.VAR_CHOICE, (i, choice, t), binary)
        for i in segments:
            for j in products:
                for t in periods:
                    add(c.VAR_CHOICE_PRICE, (i, j, t), cont, cap[(j, t)])
        for j in products:
            for t in periods:
                add(c.VAR_ASSORT_PRICE, (j, t), cont, cap[(j, t)])

        logger.debug(
            "Variable registry: " + ", ".join(f"{f}={len(s)}" for f, s in self._specs.items())
        )

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    @staticmethod
    def _normalize(index) -> Tuple[Any, ...]:
        return index if isinstance(index, tuple) else (index,)

    def families(self) -> Tuple[str, ...]:
        return tuple(self._specs.keys())

    def indices(self, family: str) -> List[Tuple[Any, ...]]:
        """Index tuples of a family in registration order."""
        if family not in self._specs:
            raise UnknownVariable(family)
        return list(self._specs[family].keys())

    def spec(self, family: str, index) -> VariableSpec:
        """Look up a variable declaration.

        Raises:
            UnknownVariable: If the family or index tuple was never registered
        """
        if family not in self._specs:
            raise UnknownVariable(family)
        key = self._normalize(index)
        try:
            return self._specs[family][key]
        except KeyError:
            raise UnknownVariable(family, key) from None

    def count(self, family: Optional[str] = None) -> int:
        if family is None:
            return len(self)
        if family not in self._specs:
            raise UnknownVariable(family)
        return len(self._specs[family])

    def __iter__(self) -> Iterator[VariableSpec]:
        for specs in self._specs.values():
            yield from specs.values()

    def __len__(self) -> int:
        return sum(len(s) for s in self._specs.values())

    def signature(self) -> Tuple[Tuple[Any, ...], ...]:
        """Structural description: (family, index, domain, lb, ub) per variable."""
        return tuple(
            (s.family, s.index, s.domain.value, s.lower_bound, s.upper_bound)
            for s in self
        )

    # ------------------------------------------------------------------
    # Pyomo materialization
    # ------------------------------------------------------------------

    def declare(self, model: ConcreteModel) -> None:
        """Add one pyomo Var component per family to ``model``."""
        for family, specs in self._specs.items():
            ordered = list(specs.values())
            if ordered and len(ordered[0].index) == 1:
                index_set = [s.index[0] for s in ordered]
            else:
                index_set = [s.index for s in ordered]
            domain = Binary if family in c.BINARY_FAMILIES else NonNegativeReals

            def bounds_rule(m, *idx, _specs=specs):
                spec = _specs[idx]
                return (spec.lower_bound, spec.upper_bound)

            model.add_component(
                family,
                Var(
                    index_set,
                    within=domain,
                    bounds=bounds_rule,
                    doc=FAMILY_DOCS[family],
                ),
            )
        logger.info(f"Declared {len(self):,} variables in {len(self._specs)} families")

    def var(self, model: ConcreteModel, family: str, index):
        """Return the pyomo VarData for a registered variable.

        Raises:
            UnknownVariable: If the family or index tuple was never registered
        """
        spec = self.spec(family, index)
        component = getattr(model, family)
        return component[spec.index[0]] if len(spec.index) == 1 else component[spec.index]
