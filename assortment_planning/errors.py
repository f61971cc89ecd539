"""Exception taxonomy for the assortment planning pipeline.

Errors fall into three groups:

- Input errors (``ValidationError``), raised before any variable is created.
- Model build errors (``UnknownVariable``, ``BoundComputationError``).
- Solve outcomes (``SolveTimeout``, ``SolveInfeasible``, ``SolveUnbounded``)
  reported by the external solver and propagated verbatim, and post-solve
  consistency failures (``SolutionRoundingError``,
  ``InconsistentSolutionError``).

Nothing in the pipeline retries. Retry policy belongs to the caller.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .optimization.base_model import OptimizationResult


class PlanningError(Exception):
    """Base class for all planning errors."""


class ValidationError(PlanningError, ValueError):
    """Malformed or inconsistent input data, with context."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with context."""
        msg = f"Data Validation Error: {self.message}"
        if self.context:
            msg += "\n\nContext:"
            for key, value in self.context.items():
                msg += f"\n  {key}: {value}"
        return msg


class UnknownVariable(PlanningError, KeyError):
    """Lookup of a variable family or index tuple that was never registered."""

    def __init__(self, family: str, index: Any = None):
        self.family = family
        self.index = index
        if index is None:
            message = f"Unknown variable family '{family}'"
        else:
            message = f"Unknown variable {family}{index!r}"
        super().__init__(message)

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class BoundComputationError(PlanningError):
    """A numeric bound required by the model could not be derived."""


class SolveError(PlanningError):
    """Base class for solver termination outcomes that yield no usable plan."""

    def __init__(self, message: str, result: Optional['OptimizationResult'] = None):
        self.result = result
        super().__init__(message)


class SolveTimeout(SolveError):
    """Time budget elapsed before the solver found any incumbent."""


class SolveInfeasible(SolveError):
    """Solver proved the model infeasible."""


class SolveUnbounded(SolveError):
    """Solver proved the model unbounded."""


class SolutionRoundingError(PlanningError):
    """A binary variable value is not within tolerance of 0 or 1."""

    def __init__(self, family: str, index: Any, value: float, tolerance: float):
        self.family = family
        self.index = index
        self.value = value
        self.tolerance = tolerance
        super().__init__(
            f"{family}{index!r} = {value!r} is not within {tolerance:g} of 0 or 1"
        )


class InconsistentSolutionError(PlanningError):
    """Solver output violates a model invariant beyond numeric tolerance."""

    def __init__(self, violations: List[Any]):
        self.violations = list(violations)
        lines = "\n".join(f"  - {v}" for v in self.violations[:20])
        more = len(self.violations) - 20
        if more > 0:
            lines += f"\n  ... and {more} more"
        super().__init__(
            f"Solution violates {len(self.violations)} invariant(s):\n{lines}"
        )
