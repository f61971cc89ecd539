"""Immutable problem definition for assortment, pricing and inventory planning.

All data must pass through ProblemDefinition before reaching the optimization
model. Validation happens once, at construction, and raises
``assortment_planning.errors.ValidationError`` with context describing the
offending entries:

    Raw data → Parsers / from_dict → ProblemDefinition (VALIDATION) → Model

After construction the definition exposes read-only accessors only.
"""

import logging
import math
from collections import Counter
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .product import Product, ProductPeriodCost
from .segment import NO_PURCHASE, ReservationPrice, Segment
from .time_period import PeriodId, PlanningHorizon

logger = logging.getLogger(__name__)


class ProblemDefinition:
    """
    Validated input data: entity sets, parameter tables and the horizon.

    Attributes:
        name: Dataset name used in logs and reports
        products: Products in input order
        segments: Segments in input order
        horizon: Ordered planning periods

    Example:
        problem = ProblemDefinition(
            products=[Product(id="A")],
            segments=[Segment(id="S1", size=10)],
            horizon=PlanningHorizon(periods=(1, 2)),
            product_period_costs=[
                ProductPeriodCost(product_id="A", period=t, unit_cost=1, price_cap=5)
                for t in (1, 2)
            ],
            reservation_prices=[
                ReservationPrice(segment_id="S1", product_id="A", period=t, price=5)
                for t in (1, 2)
            ],
        )
        problem.reservation_price("S1", NO_PURCHASE, 1)  # 0.0
    """

    def __init__(
        self,
        products: Sequence[Product],
        segments: Sequence[Segment],
        horizon: Union[PlanningHorizon, Sequence[PeriodId]],
        product_period_costs: Iterable[ProductPeriodCost],
        reservation_prices: Iterable[ReservationPrice],
        name: str = "problem",
    ):
        if not isinstance(horizon, PlanningHorizon):
            try:
                horizon = PlanningHorizon(periods=tuple(horizon))
            except PydanticValidationError as e:
                raise ValidationError(
                    "Invalid planning horizon",
                    {"periods": list(horizon), "errors": _pydantic_messages(e)},
                ) from e

        self._name = name
        self._products: Tuple[Product, ...] = tuple(products)
        self._segments: Tuple[Segment, ...] = tuple(segments)
        self._horizon = horizon
        product_period_costs = list(product_period_costs)
        reservation_prices = list(reservation_prices)

        self._validate_entities()
        self._product_by_id = MappingProxyType({p.id: p for p in self._products})
        self._segment_by_id = MappingProxyType({s.id: s for s in self._segments})

        self._costs = MappingProxyType(self._index_product_period_costs(product_period_costs))
        self._reservation = MappingProxyType(self._index_reservation_prices(reservation_prices))

        logger.info(
            f"Problem '{name}' validated: {len(self._products)} products, "
            f"{len(self._segments)} segments, {len(self._horizon)} periods"
        )

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'ProblemDefinition':
        """Build a problem from plain dicts and lists (e.g. parsed JSON).

        Expected keys: ``periods``, ``products``, ``segments``,
        ``product_periods``, ``reservation_prices`` and optional ``name``.
        Each list entry is a dict of the corresponding model's fields.

        Raises:
            ValidationError: If keys are missing or any entry is malformed
        """
        required = ['periods', 'products', 'segments', 'product_periods', 'reservation_prices']
        missing = [k for k in required if k not in data]
        if missing:
            raise ValidationError("Problem data missing required keys", {"missing": missing})

        products = _build_all(Product, data['products'], 'products')
        segments = _build_all(Segment, data['segments'], 'segments')
        costs = _build_all(ProductPeriodCost, data['product_periods'], 'product_periods')
        reservations = _build_all(ReservationPrice, data['reservation_prices'], 'reservation_prices')

        return cls(
            products=products,
            segments=segments,
            horizon=list(data['periods']),
            product_period_costs=costs,
            reservation_prices=reservations,
            name=data.get('name', 'problem'),
        )

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_entities(self) -> None:
        for label, ids in (
            ("product", [p.id for p in self._products]),
            ("segment", [s.id for s in self._segments]),
        ):
            duplicates = sorted(i for i, n in Counter(ids).items() if n > 1)
            if duplicates:
                raise ValidationError(f"Duplicate {label} IDs", {"duplicates": duplicates})

        if NO_PURCHASE in {p.id for p in self._products}:
            raise ValidationError(
                "Product ID is reserved for the no-purchase option",
                {"product_id": NO_PURCHASE},
            )

        for product in self._products:
            _check_non_negative(product.assortment_cost, "assortment_cost", {"product_id": product.id})
        for segment in self._segments:
            _check_non_negative(segment.size, "size", {"segment_id": segment.id})
            if math.isinf(segment.size):
                raise ValidationError("Segment size must be finite", {"segment_id": segment.id})

    def _index_product_period_costs(
        self, entries: List[ProductPeriodCost]
    ) -> Dict[Tuple[str, PeriodId], ProductPeriodCost]:
        table: Dict[Tuple[str, PeriodId], ProductPeriodCost] = {}
        for entry in entries:
            context = {"product_id": entry.product_id, "period": entry.period}
            if entry.product_id not in self._product_by_id:
                raise ValidationError("Cost entry references unknown product", context)
            if entry.period not in self._horizon:
                raise ValidationError("Cost entry references unknown period", context)
            if entry.key() in table:
                raise ValidationError("Duplicate cost entry for product-period", context)
            for field in ('unit_cost', 'holding_cost', 'setup_cost'):
                _check_non_negative(getattr(entry, field), field, context)
                if math.isinf(getattr(entry, field)):
                    raise ValidationError(f"Parameter '{field}' must be finite", context)
            if entry.price_cap is None:
                raise ValidationError("Missing price cap for product-period", context)
            _check_non_negative(entry.price_cap, 'price_cap', context)
            table[entry.key()] = entry

        missing = [
            (p.id, t) for p in self._products for t in self._horizon
            if (p.id, t) not in table
        ]
        if missing:
            raise ValidationError(
                f"Missing cost/price-cap entries for {len(missing)} product-period pairs",
                {"missing": missing[:10]},
            )
        return table

    def _index_reservation_prices(
        self, entries: List[ReservationPrice]
    ) -> Dict[Tuple[str, str, PeriodId], float]:
        table: Dict[Tuple[str, str, PeriodId], float] = {}
        for entry in entries:
            context = {
                "segment_id": entry.segment_id,
                "product_id": entry.product_id,
                "period": entry.period,
            }
            if entry.segment_id not in self._segment_by_id:
                raise ValidationError("Reservation price references unknown segment", context)
            if entry.period not in self._horizon:
                raise ValidationError("Reservation price references unknown period", context)
            _check_non_negative(entry.price, 'price', context)
            if entry.product_id == NO_PURCHASE:
                if entry.price != 0:
                    raise ValidationError(
                        "Reservation price of the no-purchase option must be zero",
                        {**context, "price": entry.price},
                    )
                continue
            if entry.product_id not in self._product_by_id:
                raise ValidationError("Reservation price references unknown product", context)
            if math.isinf(entry.price):
                raise ValidationError("Reservation price must be finite", context)
            if entry.key() in table:
                raise ValidationError("Duplicate reservation price", context)
            table[entry.key()] = entry.price

        missing = [
            (s.id, p.id, t)
            for s in self._segments for p in self._products for t in self._horizon
            if (s.id, p.id, t) not in table
        ]
        if missing:
            raise ValidationError(
                f"Missing reservation prices for {len(missing)} segment-product-period triples",
                {"missing": missing[:10]},
            )
        return table

    # ------------------------------------------------------------------
    # Read-only accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def products(self) -> Tuple[Product, ...]:
        return self._products

    @property
    def segments(self) -> Tuple[Segment, ...]:
        return self._segments

    @property
    def horizon(self) -> PlanningHorizon:
        return self._horizon

    @property
    def periods(self) -> Tuple[PeriodId, ...]:
        return self._horizon.periods

    @property
    def product_ids(self) -> Tuple[str, ...]:
        return tuple(p.id for p in self._products)

    @property
    def segment_ids(self) -> Tuple[str, ...]:
        return tuple(s.id for s in self._segments)

    @property
    def choices(self) -> Tuple[str, ...]:
        """Closed choice set of every segment: all products, then no-purchase."""
        return self.product_ids + (NO_PURCHASE,)

    @property
    def total_market_size(self) -> float:
        """Sum of all segment sizes (customers per period)."""
        return sum(s.size for s in self._segments)

    def product(self, product_id: str) -> Product:
        return self._product_by_id[product_id]

    def segment(self, segment_id: str) -> Segment:
        return self._segment_by_id[segment_id]

    def segment_size(self, segment_id: str) -> float:
        return self._segment_by_id[segment_id].size

    def assortment_cost(self, product_id: str) -> float:
        return self._product_by_id[product_id].assortment_cost

    def unit_cost(self, product_id: str, period: PeriodId) -> float:
        return self._costs[(product_id, period)].unit_cost

    def holding_cost(self, product_id: str, period: PeriodId) -> float:
        return self._costs[(product_id, period)].holding_cost

    def setup_cost(self, product_id: str, period: PeriodId) -> float:
        return self._costs[(product_id, period)].setup_cost

    def price_cap(self, product_id: str, period: PeriodId) -> float:
        return self._costs[(product_id, period)].price_cap

    def reservation_price(self, segment_id: str, choice: str, period: PeriodId) -> float:
        """Reservation price of a segment for a choice; 0 for no-purchase."""
        if choice == NO_PURCHASE:
            if segment_id not in self._segment_by_id or period not in self._horizon:
                raise KeyError((segment_id, choice, period))
            return 0.0
        return self._reservation[(segment_id, choice, period)]

    def max_reservation_price(self, product_id: str, period: PeriodId) -> float:
        """Highest reservation price over all segments (0 with no segments)."""
        return max(
            (self._reservation[(s.id, product_id, period)] for s in self._segments),
            default=0.0,
        )

    def summary(self) -> str:
        """Human-readable summary of the dataset."""
        return f"""
Problem Definition Summary: {self._name}
  Products: {len(self._products)}
  Segments: {len(self._segments)} ({self.total_market_size:,.0f} customers per period)
  Planning horizon: {self._horizon}
  Choice set size: {len(self.choices)} (including no-purchase)
"""

    def __repr__(self) -> str:
        return (
            f"ProblemDefinition(name={self._name!r}, products={len(self._products)}, "
            f"segments={len(self._segments)}, periods={len(self._horizon)})"
        )


def _check_non_negative(value: float, field: str, context: Dict[str, Any]) -> None:
    if value is None or math.isnan(value) or value < 0:
        raise ValidationError(
            f"Parameter '{field}' must be non-negative",
            {**context, field: value},
        )


def _build_all(model_cls, rows: Iterable[Mapping[str, Any]], label: str) -> list:
    built = []
    for position, row in enumerate(rows):
        try:
            built.append(model_cls(**row))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid entry in '{label}'",
                {"position": position, "entry": dict(row), "errors": _pydantic_messages(e)},
            ) from e
        except TypeError as e:
            raise ValidationError(
                f"Invalid entry in '{label}'",
                {"position": position, "entry": row, "errors": str(e)},
            ) from e
    return built


def _pydantic_messages(error: PydanticValidationError) -> List[str]:
    return [
        f"{'.'.join(str(loc) for loc in err['loc'])}: {err['msg']}"
        for err in error.errors()
    ]
