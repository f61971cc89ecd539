"""Exact linearization of price × binary products (McCormick envelopes).

Customer surplus and revenue involve products of a continuous price p with a
binary indicator b. Each product is replaced by a surrogate variable g and
four linear constraints, where U is an upper bound of p:

    g <= U * b            (ub_binary)
    g <= p                (ub_continuous)
    g >= p - U * (1 - b)  (lb_active)
    g >= 0                (lb_zero)

Because b is binary the envelope is exact, not a relaxation:
    b = 0  ->  0 <= g <= 0          ->  g = 0
    b = 1  ->  p <= g <= min(U, p)  ->  g = p

Exactness requires U >= every value p can take. A bound below the price
variable's upper bound is rejected with BoundComputationError; a bound far
above it stays exact but weakens the LP relaxation, so the engine uses the
price cap of the (product, period) for both surrogate families:

    choice_price[i, j, t] = price[j, t] * choice[i, j, t]
    assort_price[j, t]    = price[j, t] * assort[j]
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from pyomo.environ import ConcreteModel, Constraint

from ..errors import BoundComputationError
from . import constants as c
from .variable_registry import VariableRegistry

logger = logging.getLogger(__name__)

#: Constraint name suffixes, one component per suffix and surrogate family
ENVELOPE_SUFFIXES = ("ub_binary", "ub_continuous", "lb_active", "lb_zero")

#: Tolerance for comparing a McCormick bound with a variable upper bound
_BOUND_TOLERANCE = 1e-9


@dataclass(frozen=True)
class BilinearTerm:
    """One product ``continuous × binary`` and its surrogate variable."""
    surrogate: Tuple[str, Tuple[Any, ...]]
    continuous: Tuple[str, Tuple[Any, ...]]
    binary: Tuple[str, Tuple[Any, ...]]
    bound: float

    def __str__(self) -> str:
        (sf, si), (cf, ci), (bf, bi) = self.surrogate, self.continuous, self.binary
        return f"{sf}{si} = {cf}{ci} * {bf}{bi} (U={self.bound:g})"


def envelope_interval(continuous_value: float, binary_value: float, bound: float) -> Tuple[float, float]:
    """Feasible interval of the surrogate for fixed p and b.

    Returns:
        (lower, upper); empty when lower > upper. For b in {0, 1} and
        0 <= p <= bound the interval collapses to the single point p * b.
    """
    lower = max(0.0, continuous_value - bound * (1.0 - binary_value))
    upper = min(bound * binary_value, continuous_value)
    return lower, upper


class LinearizationEngine:
    """Builds the surrogate terms and their McCormick envelopes."""

    SURROGATE_FAMILIES = (c.VAR_CHOICE_PRICE, c.VAR_ASSORT_PRICE)

    def __init__(self, registry: VariableRegistry):
        self.registry = registry
        self._terms: Dict[str, List[BilinearTerm]] = {
            c.VAR_CHOICE_PRICE: self._choice_price_terms(),
            c.VAR_ASSORT_PRICE: self._assort_price_terms(),
        }
        for terms in self._terms.values():
            for term in terms:
                self.validate_term(term)

    def _choice_price_terms(self) -> List[BilinearTerm]:
        cap = self.registry.bounds.price_cap
        return [
            BilinearTerm(
                surrogate=(c.VAR_CHOICE_PRICE, (i, j, t)),
                continuous=(c.VAR_PRICE, (j, t)),
                binary=(c.VAR_CHOICE, (i, j, t)),
                bound=cap[(j, t)],
            )
            for (i, j, t) in self.registry.indices(c.VAR_CHOICE_PRICE)
        ]

    def _assort_price_terms(self) -> List[BilinearTerm]:
        cap = self.registry.bounds.price_cap
        return [
            BilinearTerm(
                surrogate=(c.VAR_ASSORT_PRICE, (j, t)),
                continuous=(c.VAR_PRICE, (j, t)),
                binary=(c.VAR_ASSORT, (j,)),
                bound=cap[(j, t)],
            )
            for (j, t) in self.registry.indices(c.VAR_ASSORT_PRICE)
        ]

    def terms(self, family: str) -> List[BilinearTerm]:
        """Bilinear terms of a surrogate family, in registry order."""
        if family not in self._terms:
            raise KeyError(f"Not a surrogate family: {family}")
        return list(self._terms[family])

    def validate_term(self, term: BilinearTerm) -> None:
        """Reject bounds that would break exactness.

        Raises:
            BoundComputationError: If the bound is negative, not finite, or
                below the upper bound of the continuous variable
            UnknownVariable: If a referenced variable is not registered
        """
        if not math.isfinite(term.bound) or term.bound < 0:
            raise BoundComputationError(f"Invalid McCormick bound for {term}")

        self.registry.spec(*term.surrogate)
        if not self.registry.spec(*term.binary).is_binary:
            raise BoundComputationError(f"Governing variable of {term} is not binary")

        cont_ub = self.registry.spec(*term.continuous).upper_bound
        if cont_ub is None:
            raise BoundComputationError(
                f"{term.continuous[0]}{term.continuous[1]} has no upper bound; "
                f"McCormick envelope for {term} would not be exact"
            )
        if term.bound < cont_ub - _BOUND_TOLERANCE:
            raise BoundComputationError(
                f"McCormick bound {term.bound:g} is below the upper bound {cont_ub:g} of "
                f"{term.continuous[0]}{term.continuous[1]}; envelope for {term} would cut "
                f"off feasible prices"
            )

    def apply(self, model: ConcreteModel) -> Dict[str, int]:
        """Add the four envelope constraint components per surrogate family.

        Returns:
            Number of constraints added per family
        """
        added = {}
        for family in self.SURROGATE_FAMILIES:
            added[family] = self._add_envelope(model, family, self._terms[family])
        logger.info(
            "McCormick envelopes: " + ", ".join(f"{f}={n:,}" for f, n in added.items())
        )
        return added

    def _add_envelope(self, model: ConcreteModel, family: str, terms: List[BilinearTerm]) -> int:
        var = self.registry.var
        by_index = {term.surrogate[1]: term for term in terms}
        index_list = list(by_index.keys())

        def parts(m, idx):
            term = by_index[idx]
            g = var(m, *term.surrogate)
            p = var(m, *term.continuous)
            b = var(m, *term.binary)
            return g, p, b, term.bound

        def ub_binary_rule(m, *idx):
            g, p, b, U = parts(m, idx)
            return g <= U * b

        def ub_continuous_rule(m, *idx):
            g, p, b, U = parts(m, idx)
            return g <= p

        def lb_active_rule(m, *idx):
            g, p, b, U = parts(m, idx)
            return g >= p - U * (1 - b)

        def lb_zero_rule(m, *idx):
            g, p, b, U = parts(m, idx)
            return g >= 0

        rules = dict(zip(
            ENVELOPE_SUFFIXES,
            (ub_binary_rule, ub_continuous_rule, lb_active_rule, lb_zero_rule),
        ))
        docs = {
            "ub_binary": f"{family} <= U * binary",
            "ub_continuous": f"{family} <= price",
            "lb_active": f"{family} >= price - U * (1 - binary)",
            "lb_zero": f"{family} >= 0",
        }
        for suffix in ENVELOPE_SUFFIXES:
            model.add_component(
                f"{family}_{suffix}",
                Constraint(index_list, rule=rules[suffix], doc=docs[suffix]),
            )
        return len(ENVELOPE_SUFFIXES) * len(index_list)
