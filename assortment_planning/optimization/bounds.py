"""Numeric bounds used by the assortment pricing model.

Three families of constants keep the formulation linear and exact:

- price caps U[j,t]: upper bound of price[j,t] and the McCormick bound of both
  linearization families,
- order capacities M[t]: big-M of the order activation constraint,
  (remaining periods including t) × (total market size),
- reservation big-M R[i,j,t]: coefficient of the optional
  ``choice_price <= R * choice`` tightening.

Bounds must be tight enough for solver performance but never tighter than
any price or order quantity an optimal solution may need.
"""

import logging
import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..errors import BoundComputationError
from ..models.problem import ProblemDefinition
from ..models.time_period import PeriodId

logger = logging.getLogger(__name__)


class ModelOptions(BaseModel):
    """Formulation switches.

    Attributes:
        tighten_price_caps: Lower each price cap to the highest reservation
            price of any segment for that product-period. No segment buys
            above it, so no optimal solution is excluded.
        add_reservation_price_cap: Add ``choice_price <= R * choice``, a valid
            inequality implied by non-negative utility that tightens the LP
            relaxation.
    """
    tighten_price_caps: bool = Field(default=True, description="Cap prices at max reservation price")
    add_reservation_price_cap: bool = Field(default=True, description="Add reservation price tightening")

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class ModelBounds:
    """Bounds derived from a ProblemDefinition (read-only)."""
    price_cap: Mapping[Tuple[str, PeriodId], float]
    order_capacity: Mapping[PeriodId, float]
    reservation_big_m: Mapping[Tuple[str, str, PeriodId], float]
    total_market_size: float


def compute_bounds(problem: ProblemDefinition, options: ModelOptions) -> ModelBounds:
    """Derive all numeric bounds for a problem.

    Args:
        problem: Validated problem definition
        options: Formulation switches

    Returns:
        ModelBounds with finite, non-negative values

    Raises:
        BoundComputationError: If a required bound is not finite
    """
    market = problem.total_market_size
    if not math.isfinite(market):
        raise BoundComputationError(
            f"Total market size is not finite ({market}); order capacity cannot be derived"
        )

    price_cap = {}
    tightened = 0
    for j in problem.product_ids:
        for t in problem.periods:
            cap = problem.price_cap(j, t)
            if options.tighten_price_caps:
                highest = problem.max_reservation_price(j, t)
                if highest < cap:
                    cap = highest
                    tightened += 1
            if not math.isfinite(cap):
                raise BoundComputationError(
                    f"Price cap for product '{j}' in period {t!r} is not finite and "
                    f"tighten_price_caps is disabled; provide an explicit cap"
                )
            price_cap[(j, t)] = float(cap)

    order_capacity = {
        t: problem.horizon.remaining_periods(t) * market
        for t in problem.periods
    }

    reservation_big_m = {
        (i, j, t): problem.reservation_price(i, j, t)
        for i in problem.segment_ids
        for j in problem.product_ids
        for t in problem.periods
    }

    logger.debug(
        f"Bounds computed: {len(price_cap)} price caps ({tightened} tightened), "
        f"market size {market:,.2f}"
    )

    return ModelBounds(
        price_cap=MappingProxyType(price_cap),
        order_capacity=MappingProxyType(order_capacity),
        reservation_big_m=MappingProxyType(reservation_big_m),
        total_market_size=market,
    )
