"""Post-solve validation of extracted solutions."""

from .solution_validator import SolutionValidationError, SolutionValidator, validate_solution

__all__ = ["SolutionValidationError", "SolutionValidator", "validate_solution"]
