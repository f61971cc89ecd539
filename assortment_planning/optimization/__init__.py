"""Optimization module for assortment, pricing and inventory planning.

This module provides the Pyomo MILP (AssortmentPricingModel), its building
blocks (variable registry, McCormick linearization, constraint generator,
bounds) and the solver adapter. Solved with APPSI HiGHS by default.
"""

from .solver_config import (
    SolverConfig,
    SolverType,
    SolverInfo,
)
from .base_model import (
    BaseOptimizationModel,
    OptimizationResult,
    SolveStatus,
)
from .bounds import ModelBounds, ModelOptions, compute_bounds
from .variable_registry import VariableDomain, VariableRegistry, VariableSpec
from .linearization import BilinearTerm, LinearizationEngine, envelope_interval
from .constraint_generator import ConstraintGenerator
from .result_schema import (
    PlanningSolution,
    ProductPeriodDecision,
    ProfitBreakdown,
    SegmentChoice,
)
from .solution_extractor import SolutionExtractor
from .assortment_pricing_model import AssortmentPricingModel, plan

__all__ = [
    # Solver configuration
    "SolverConfig",
    "SolverType",
    "SolverInfo",
    # Base model
    "BaseOptimizationModel",
    "OptimizationResult",
    "SolveStatus",
    # Model building blocks
    "ModelBounds",
    "ModelOptions",
    "compute_bounds",
    "VariableDomain",
    "VariableRegistry",
    "VariableSpec",
    "BilinearTerm",
    "LinearizationEngine",
    "envelope_interval",
    "ConstraintGenerator",
    # Results
    "PlanningSolution",
    "ProductPeriodDecision",
    "ProfitBreakdown",
    "SegmentChoice",
    "SolutionExtractor",
    # Assortment pricing model
    "AssortmentPricingModel",
    "plan",
]
