"""Data models for assortment, pricing and inventory planning."""

from .time_period import PeriodId, PlanningHorizon
from .product import Product, ProductPeriodCost
from .segment import NO_PURCHASE, Segment, ReservationPrice
from .problem import ProblemDefinition

__all__ = [
    # Horizon
    "PeriodId",
    "PlanningHorizon",
    # Products
    "Product",
    "ProductPeriodCost",
    # Customers
    "NO_PURCHASE",
    "Segment",
    "ReservationPrice",
    # Validated input
    "ProblemDefinition",
]
