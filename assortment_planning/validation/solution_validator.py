"""Solution validation - mandatory checks that fail loudly on incorrect solutions.

This validator runs AFTER binaries are rounded and BEFORE the PlanningSolution
is built. It re-checks every invariant of the formulation on the raw solver
values, so a tolerance problem in the solver or a formulation bug can never
turn into a silently wrong plan.

If validation fails, the solution is INVALID and must not be used.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..errors import InconsistentSolutionError
from ..models.problem import ProblemDefinition
from ..optimization import constants as c
from ..optimization.bounds import ModelBounds
from ..optimization.linearization import envelope_interval

logger = logging.getLogger(__name__)

#: family -> index tuple -> value (binaries already rounded)
SolutionValues = Dict[str, Dict[Tuple[Any, ...], float]]


@dataclass
class SolutionValidationError:
    """Represents a solution validation error (CRITICAL - solution invalid)."""
    category: str
    message: str
    details: Dict = None

    def __str__(self) -> str:
        return f"{self.category}: {self.message}"


class SolutionValidator:
    """Validates extracted solver values against the model invariants."""

    def __init__(
        self,
        problem: ProblemDefinition,
        bounds: ModelBounds,
        values: SolutionValues,
        tolerance: float = c.CONSISTENCY_TOLERANCE,
    ):
        """Initialize validator.

        Args:
            problem: Problem the solution belongs to
            bounds: Bounds the model was built with
            values: Variable values by family and index tuple
            tolerance: Absolute tolerance, scaled by magnitude for large values
        """
        self.problem = problem
        self.bounds = bounds
        self.values = values
        self.tolerance = tolerance

    def _v(self, family: str, *index) -> float:
        return self.values[family][tuple(index)]

    def _close(self, a: float, b: float) -> bool:
        return abs(a - b) <= self.tolerance * max(1.0, abs(a), abs(b))

    def _leq(self, a: float, b: float) -> bool:
        return a <= b + self.tolerance * max(1.0, abs(a), abs(b))

    def validate(self) -> Tuple[bool, List[SolutionValidationError]]:
        """Run all mandatory validation checks.

        Returns:
            Tuple of (is_valid, list of errors)
            is_valid is False if ANY error found (solution is invalid)
        """
        errors = []
        errors.extend(self._validate_choice_completeness())
        errors.extend(self._validate_eligibility())
        errors.extend(self._validate_demand_definition())
        errors.extend(self._validate_inventory_flow())
        errors.extend(self._validate_price_and_order_bounds())
        errors.extend(self._validate_linearization_exactness())
        errors.extend(self._validate_maximum_surplus())
        return (len(errors) == 0, errors)

    def _validate_choice_completeness(self) -> List[SolutionValidationError]:
        """Exactly one option per segment and period."""
        p = self.problem
        errors = []
        for i in p.segment_ids:
            for t in p.periods:
                total = sum(self._v(c.VAR_CHOICE, i, ch, t) for ch in p.choices)
                if not self._close(total, 1.0):
                    errors.append(SolutionValidationError(
                        category='Choice Completeness',
                        message=f"Segment {i!r} period {t!r}: {total:g} options chosen (expected 1)",
                        details={'segment': i, 'period': t, 'total': total},
                    ))
        return errors

    def _validate_eligibility(self) -> List[SolutionValidationError]:
        """Choices and setups only for assorted products."""
        p = self.problem
        errors = []
        for j in p.product_ids:
            assorted = self._v(c.VAR_ASSORT, j)
            for t in p.periods:
                if not self._leq(self._v(c.VAR_SETUP, j, t), assorted):
                    errors.append(SolutionValidationError(
                        category='Setup Eligibility',
                        message=f"Order setup for unassorted product {j!r} in period {t!r}",
                        details={'product': j, 'period': t},
                    ))
                for i in p.segment_ids:
                    if not self._leq(self._v(c.VAR_CHOICE, i, j, t), assorted):
                        errors.append(SolutionValidationError(
                            category='Choice Eligibility',
                            message=f"Segment {i!r} chose unassorted product {j!r} in period {t!r}",
                            details={'segment': i, 'product': j, 'period': t},
                        ))
        return errors

    def _validate_demand_definition(self) -> List[SolutionValidationError]:
        """Demand equals the total size of choosing segments."""
        p = self.problem
        errors = []
        for j in p.product_ids:
            for t in p.periods:
                expected = sum(p.segment_size(i) * self._v(c.VAR_CHOICE, i, j, t) for i in p.segment_ids)
                actual = self._v(c.VAR_DEMAND, j, t)
                if not self._close(actual, expected):
                    errors.append(SolutionValidationError(
                        category='Demand Definition',
                        message=f"Product {j!r} period {t!r}: demand {actual:g} != chooser size {expected:g}",
                        details={'product': j, 'period': t, 'demand': actual, 'expected': expected},
                    ))
        return errors

    def _validate_inventory_flow(self) -> List[SolutionValidationError]:
        """Inventory balance with zero opening and closing inventory."""
        p = self.problem
        errors = []
        for j in p.product_ids:
            opening = 0.0
            for t in p.periods:
                inv = self._v(c.VAR_INVENTORY, j, t)
                expected = opening + self._v(c.VAR_ORDER, j, t) - self._v(c.VAR_DEMAND, j, t)
                if not self._close(inv, expected):
                    errors.append(SolutionValidationError(
                        category='Inventory Balance',
                        message=f"Product {j!r} period {t!r}: inventory {inv:g} != {expected:g}",
                        details={'product': j, 'period': t, 'inventory': inv, 'expected': expected},
                    ))
                if not self._leq(0.0, inv):
                    errors.append(SolutionValidationError(
                        category='Negative Inventory',
                        message=f"Product {j!r} period {t!r}: inventory {inv:g} < 0",
                        details={'product': j, 'period': t, 'inventory': inv},
                    ))
                opening = inv
            if not self._close(opening, 0.0):
                errors.append(SolutionValidationError(
                    category='Terminal Inventory',
                    message=f"Product {j!r}: {opening:g} units left after period {p.horizon.last!r}",
                    details={'product': j, 'inventory': opening},
                ))
        return errors

    def _validate_price_and_order_bounds(self) -> List[SolutionValidationError]:
        """Nonzero price only if assorted; orders only with a setup."""
        p = self.problem
        errors = []
        for j in p.product_ids:
            assorted = self._v(c.VAR_ASSORT, j)
            for t in p.periods:
                price = self._v(c.VAR_PRICE, j, t)
                if not self._leq(price, self.bounds.price_cap[(j, t)] * assorted):
                    errors.append(SolutionValidationError(
                        category='Price Assortment',
                        message=f"Product {j!r} period {t!r}: price {price:g} exceeds cap "
                                f"{self.bounds.price_cap[(j, t)]:g} x assort {assorted:g}",
                        details={'product': j, 'period': t, 'price': price},
                    ))
                order = self._v(c.VAR_ORDER, j, t)
                setup = self._v(c.VAR_SETUP, j, t)
                if not self._leq(order, self.bounds.order_capacity[t] * setup):
                    errors.append(SolutionValidationError(
                        category='Order Activation',
                        message=f"Product {j!r} period {t!r}: order {order:g} without setup",
                        details={'product': j, 'period': t, 'order': order, 'setup': setup},
                    ))
        return errors

    def _validate_linearization_exactness(self) -> List[SolutionValidationError]:
        """Every surrogate equals its exact price × binary product."""
        p = self.problem
        cap = self.bounds.price_cap
        errors = []

        def check(family, index, price, binary, bound):
            g = self._v(family, *index)
            exact = price * binary
            lower, upper = envelope_interval(price, binary, bound)
            if not (self._close(g, exact) and self._leq(lower, g) and self._leq(g, upper)):
                errors.append(SolutionValidationError(
                    category='Linearization Exactness',
                    message=f"{family}{index}: {g:g} != price {price:g} x binary {binary:g}",
                    details={'family': family, 'index': index, 'value': g, 'exact': exact},
                ))

        for j in p.product_ids:
            for t in p.periods:
                price = self._v(c.VAR_PRICE, j, t)
                check(c.VAR_ASSORT_PRICE, (j, t), price, self._v(c.VAR_ASSORT, j), cap[(j, t)])
                for i in p.segment_ids:
                    check(c.VAR_CHOICE_PRICE, (i, j, t), price, self._v(c.VAR_CHOICE, i, j, t), cap[(j, t)])
        return errors

    def _validate_maximum_surplus(self) -> List[SolutionValidationError]:
        """Chosen option has non-negative surplus, maximal among assorted products."""
        p = self.problem
        errors = []
        for i in p.segment_ids:
            for t in p.periods:
                realized = sum(
                    p.reservation_price(i, j, t) * self._v(c.VAR_CHOICE, i, j, t)
                    - self._v(c.VAR_CHOICE_PRICE, i, j, t)
                    for j in p.product_ids
                )
                if not self._leq(0.0, realized):
                    errors.append(SolutionValidationError(
                        category='Negative Surplus',
                        message=f"Segment {i!r} period {t!r}: realized surplus {realized:g} < 0",
                        details={'segment': i, 'period': t, 'surplus': realized},
                    ))
                for j in p.product_ids:
                    if self._v(c.VAR_ASSORT, j) < 0.5:
                        continue
                    offered = p.reservation_price(i, j, t) - self._v(c.VAR_PRICE, j, t)
                    if not self._leq(offered, realized):
                        errors.append(SolutionValidationError(
                            category='Surplus Dominance',
                            message=f"Segment {i!r} period {t!r}: product {j!r} offers surplus "
                                    f"{offered:g} > realized {realized:g}",
                            details={'segment': i, 'product': j, 'period': t,
                                     'offered': offered, 'realized': realized},
                        ))
        return errors


def validate_solution(
    problem: ProblemDefinition,
    bounds: ModelBounds,
    values: SolutionValues,
    tolerance: Optional[float] = None,
    fail_on_error: bool = True,
) -> Tuple[bool, List[SolutionValidationError]]:
    """Validate solver values against every model invariant.

    This is a MANDATORY validation that runs after every solve.
    If validation fails, the solution must NOT be used.

    Args:
        problem: Problem the solution belongs to
        bounds: Bounds the model was built with
        values: Variable values by family and index tuple
        tolerance: Consistency tolerance (default CONSISTENCY_TOLERANCE)
        fail_on_error: If True, raises on validation failure

    Returns:
        Tuple of (is_valid, list of errors)

    Raises:
        InconsistentSolutionError: If fail_on_error=True and validation fails
    """
    tol = c.CONSISTENCY_TOLERANCE if tolerance is None else tolerance
    validator = SolutionValidator(problem, bounds, values, tol)
    is_valid, errors = validator.validate()

    if not is_valid:
        logger.error(f"Solution validation failed with {len(errors)} violation(s)")
        for e in errors[:20]:
            logger.error(f"  {e}")
        if fail_on_error:
            raise InconsistentSolutionError(errors)

    return is_valid, errors
