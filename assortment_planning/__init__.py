"""Assortment, pricing and inventory planning with heterogeneous customer segments.

Typical use:

    from assortment_planning import ExcelParser, SolverConfig, plan

    problem = ExcelParser("workbook.xlsx").parse_all()
    solution = plan(problem, SolverConfig(time_limit_seconds=60))
    solution.to_excel("plan.xlsx")
"""

from .errors import (
    BoundComputationError,
    InconsistentSolutionError,
    PlanningError,
    SolutionRoundingError,
    SolveError,
    SolveInfeasible,
    SolveTimeout,
    SolveUnbounded,
    UnknownVariable,
    ValidationError,
)
from .models import (
    NO_PURCHASE,
    PlanningHorizon,
    ProblemDefinition,
    Product,
    ProductPeriodCost,
    ReservationPrice,
    Segment,
)
from .optimization import (
    AssortmentPricingModel,
    ModelOptions,
    OptimizationResult,
    PlanningSolution,
    SolveStatus,
    SolverConfig,
    plan,
)
from .parsers import ExcelParser

__version__ = "0.1.0"

__all__ = [
    # Errors
    "PlanningError",
    "ValidationError",
    "UnknownVariable",
    "BoundComputationError",
    "SolveError",
    "SolveTimeout",
    "SolveInfeasible",
    "SolveUnbounded",
    "SolutionRoundingError",
    "InconsistentSolutionError",
    # Input
    "NO_PURCHASE",
    "PlanningHorizon",
    "Product",
    "ProductPeriodCost",
    "Segment",
    "ReservationPrice",
    "ProblemDefinition",
    "ExcelParser",
    # Model and results
    "AssortmentPricingModel",
    "ModelOptions",
    "SolverConfig",
    "OptimizationResult",
    "SolveStatus",
    "PlanningSolution",
    "plan",
]
