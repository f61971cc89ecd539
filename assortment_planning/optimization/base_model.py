"""Base class for optimization models.

This module provides an abstract base class that the assortment pricing model
inherits from, providing common functionality for model building, solving,
and result extraction. It is the adapter to the external MIP solver: the
assembled model goes in together with a time and gap budget, and a normalized
OptimizationResult comes out.

IMPORTANT: extract_solution() must return a PlanningSolution (Pydantic
validated). Schema violations are re-raised, never swallowed.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TYPE_CHECKING, Union
import logging
import math
import time

from pyomo.environ import ConcreteModel, Var, value
from pyomo.opt import SolverStatus, TerminationCondition

from ..errors import SolveError, SolveInfeasible, SolveTimeout, SolveUnbounded
from .solver_config import SolverConfig, SolverType

if TYPE_CHECKING:
    from .result_schema import PlanningSolution

logger = logging.getLogger(__name__)


class SolveStatus(str, Enum):
    """Normalized solver outcome."""
    OPTIMAL = "optimal"
    FEASIBLE = "feasible"          # incumbent found, optimality not proven
    INFEASIBLE = "infeasible"
    UNBOUNDED = "unbounded"
    TIME_LIMIT = "time_limit"      # budget elapsed, with or without incumbent
    ERROR = "error"


#: Legacy pyomo termination conditions by normalized status
_LEGACY_STATUS = {
    TerminationCondition.optimal: SolveStatus.OPTIMAL,
    TerminationCondition.globallyOptimal: SolveStatus.OPTIMAL,
    TerminationCondition.locallyOptimal: SolveStatus.OPTIMAL,
    TerminationCondition.feasible: SolveStatus.FEASIBLE,
    TerminationCondition.infeasible: SolveStatus.INFEASIBLE,
    TerminationCondition.infeasibleOrUnbounded: SolveStatus.INFEASIBLE,
    TerminationCondition.unbounded: SolveStatus.UNBOUNDED,
    TerminationCondition.maxTimeLimit: SolveStatus.TIME_LIMIT,
}


@dataclass
class OptimizationResult:
    """
    Results from optimization model solve.

    Attributes:
        success: Whether an incumbent solution is available
        status: Normalized solve status
        objective_value: Objective of the incumbent (profit)
        solver_status: Pyomo solver status (legacy interface only)
        termination_condition: Pyomo termination condition
        solve_time_seconds: Time taken to solve (seconds)
        solver_name: Name of solver used
        gap: Relative MIP gap of the incumbent (if known)
        best_bound: Best objective bound reported by the solver
        num_variables: Number of decision variables
        num_constraints: Number of constraints
        num_integer_vars: Number of integer/binary variables
        infeasibility_message: Message explaining a failed solve
        metadata: Additional result metadata
    """
    success: bool
    status: SolveStatus = SolveStatus.ERROR
    objective_value: Optional[float] = None
    solver_status: Optional[SolverStatus] = None
    termination_condition: Optional[TerminationCondition] = None
    solve_time_seconds: Optional[float] = None
    solver_name: Optional[str] = None
    gap: Optional[float] = None
    best_bound: Optional[float] = None
    num_variables: int = 0
    num_constraints: int = 0
    num_integer_vars: int = 0
    infeasibility_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def is_optimal(self) -> bool:
        """Check if solution is optimal."""
        return self.success and self.status == SolveStatus.OPTIMAL

    def is_feasible(self) -> bool:
        """Check if an incumbent is available (optimal, feasible, or time limit with incumbent)."""
        return self.success and self.status in (
            SolveStatus.OPTIMAL,
            SolveStatus.FEASIBLE,
            SolveStatus.TIME_LIMIT,
        )

    def is_infeasible(self) -> bool:
        """Check if model is infeasible."""
        return self.status == SolveStatus.INFEASIBLE

    def is_unbounded(self) -> bool:
        return self.status == SolveStatus.UNBOUNDED

    def is_timeout(self) -> bool:
        """Time budget elapsed (an incumbent may still exist)."""
        return self.status == SolveStatus.TIME_LIMIT

    def raise_for_status(self) -> 'OptimizationResult':
        """Raise the matching SolveError unless an incumbent is available.

        Returns:
            self, to allow ``model.solve().raise_for_status()``

        Raises:
            SolveInfeasible: Solver proved infeasibility
            SolveUnbounded: Solver proved unboundedness
            SolveTimeout: Time budget elapsed without any incumbent
            SolveError: Any other failure (solver error, unknown termination)
        """
        if self.is_feasible():
            return self
        message = self.infeasibility_message or f"Solve ended with status {self.status.value}"
        if self.status == SolveStatus.INFEASIBLE:
            raise SolveInfeasible(message, self)
        if self.status == SolveStatus.UNBOUNDED:
            raise SolveUnbounded(message, self)
        if self.status == SolveStatus.TIME_LIMIT:
            raise SolveTimeout(message, self)
        raise SolveError(message, self)

    def __str__(self) -> str:
        """String representation."""
        status = self.status.value.upper()
        if self.status == SolveStatus.TIME_LIMIT:
            status += " (incumbent)" if self.success else " (no incumbent)"

        result = f"OptimizationResult: {status}"
        if self.objective_value is not None:
            result += f", objective = {self.objective_value:,.2f}"
        if self.gap is not None:
            result += f", gap = {self.gap:.4%}"
        if self.solve_time_seconds is not None:
            result += f", time = {self.solve_time_seconds:.2f}s"

        return result


def relative_gap(objective: Optional[float], bound: Optional[float]) -> Optional[float]:
    """Relative gap |objective - bound| / |objective|, None if undefined."""
    if objective is None or bound is None:
        return None
    if not (math.isfinite(objective) and math.isfinite(bound)):
        return None
    if abs(objective) <= 1e-10:
        return 0.0 if abs(bound) <= 1e-10 else None
    return abs((objective - bound) / objective)


class BaseOptimizationModel(ABC):
    """
    Abstract base class for optimization models.

    Subclasses implement:
    - build_model(): Construct the Pyomo model
    - extract_solution(): Extract a PlanningSolution from the solved model

    This base class provides:
    - Solver configuration and management
    - Model building and solving workflow
    - Termination status normalization
    - Model statistics and LP export

    Example:
        model = AssortmentPricingModel(problem, SolverConfig(time_limit_seconds=30))
        result = model.solve()
        result.raise_for_status()
        solution = model.get_solution()
    """

    def __init__(self, solver_config: Optional[SolverConfig] = None):
        """
        Initialize optimization model.

        Args:
            solver_config: SolverConfig instance. If None, creates default config.
        """
        self.solver_config = solver_config or SolverConfig()
        self.model: Optional[ConcreteModel] = None
        self.result: Optional[OptimizationResult] = None
        self.solution: Optional['PlanningSolution'] = None
        self._build_time: Optional[float] = None

    @abstractmethod
    def build_model(self) -> ConcreteModel:
        """
        Build and return the Pyomo optimization model.

        Returns:
            ConcreteModel: Pyomo model with variables, constraints, and objective
        """
        raise NotImplementedError("Subclass must implement build_model()")

    @abstractmethod
    def extract_solution(self, model: ConcreteModel) -> 'PlanningSolution':
        """
        Extract solution values from the solved model.

        ``self.result`` is populated before this is called, so the status and
        gap of the solve are available.

        Args:
            model: Solved Pyomo ConcreteModel with an incumbent loaded

        Returns:
            PlanningSolution: Validated solution data (Pydantic model)
        """
        raise NotImplementedError("Subclass must implement extract_solution()")

    # ------------------------------------------------------------------
    # Solve
    # ------------------------------------------------------------------

    def solve(
        self,
        solver_name: Optional[str] = None,
        solver_options: Optional[Dict[str, Any]] = None,
        tee: Optional[bool] = None,
        time_limit_seconds: Optional[float] = None,
        mip_gap: Optional[float] = None,
    ) -> OptimizationResult:
        """
        Build and solve the optimization model.

        Arguments left as None fall back to the SolverConfig. The solve always
        runs with a time budget. A KeyboardInterrupt during the solve is not
        caught and reaches the caller.

        Args:
            solver_name: Name of solver to use (None = configured or best available)
            solver_options: Additional solver options
            tee: If True, print solver output
            time_limit_seconds: Maximum solve time in seconds (> 0)
            mip_gap: MIP gap tolerance (e.g., 0.01 for 1% gap)

        Returns:
            OptimizationResult with normalized status, objective and gap.
            Use ``raise_for_status()`` to turn failures into exceptions.

        Raises:
            ValueError: If the time limit is not positive
            SolutionRoundingError, InconsistentSolutionError: If the incumbent
                fails post-solve checks
            pydantic.ValidationError: If the extracted solution violates the schema
        """
        config = self.solver_config
        time_limit = config.time_limit_seconds if time_limit_seconds is None else time_limit_seconds
        if not time_limit > 0:
            raise ValueError(f"time_limit_seconds must be positive, got {time_limit!r}")
        gap = config.mip_gap if mip_gap is None else mip_gap
        tee = config.tee if tee is None else tee
        options = dict(config.solver_options)
        options.update(solver_options or {})

        # Build model (always fresh)
        self.solution = None
        build_start = time.time()
        self.model = self.build_model()
        self._build_time = time.time() - build_start

        try:
            solver_name = solver_name or config.get_best_available_solver()
        except RuntimeError as e:
            self.result = self._failed_result(str(e), solver_name)
            return self.result

        logger.info(
            f"Solving with {solver_name} (time limit {time_limit:g}s, "
            f"mip gap {gap if gap is not None else 'default'})"
        )

        if solver_name == SolverType.APPSI_HIGHS.value:
            result = self._solve_with_appsi_highs(time_limit, gap, tee, options)
        else:
            result = self._solve_with_solver_factory(solver_name, time_limit, gap, tee, options)

        self.result = result
        logger.info(str(result))
        if result.status == SolveStatus.TIME_LIMIT and result.success:
            logger.warning(
                f"Time limit reached; returning incumbent with gap "
                f"{result.gap if result.gap is not None else 'unknown'}"
            )

        if result.is_feasible():
            # Schema and consistency errors propagate (fail fast)
            self.solution = self.extract_solution(self.model)
            result.metadata['solution'] = self.solution.model_dump(mode='json')

        return result

    def _solve_with_appsi_highs(
        self,
        time_limit_seconds: float,
        mip_gap: Optional[float],
        tee: bool,
        options: Dict[str, Any],
    ) -> OptimizationResult:
        """
        Solve model using APPSI HiGHS solver (modern Pyomo interface).

        Solutions are loaded manually so that an infeasible or incumbent-less
        solve is reported through the result instead of raising.
        """
        from pyomo.contrib.appsi.base import TerminationCondition as AppsiTC
        from pyomo.contrib.appsi.solvers import Highs

        solver = Highs()
        solver.config.load_solution = False
        solver.config.time_limit = time_limit_seconds
        if mip_gap is not None:
            solver.config.mip_gap = mip_gap
        if tee:
            solver.config.stream_solver = True

        for key, val in {**SolverConfig.HIGHS_MIP_DEFAULT, **options}.items():
            solver.highs_options[key] = val

        solve_start = time.time()
        results = solver.solve(self.model)
        solve_time = time.time() - solve_start

        appsi_tc = results.termination_condition
        incumbent = getattr(results, 'best_feasible_objective', None)
        has_incumbent = incumbent is not None and math.isfinite(incumbent)

        if appsi_tc == AppsiTC.optimal:
            status, legacy_tc = SolveStatus.OPTIMAL, TerminationCondition.optimal
        elif appsi_tc in (AppsiTC.infeasible, AppsiTC.infeasibleOrUnbounded):
            status, legacy_tc = SolveStatus.INFEASIBLE, TerminationCondition.infeasible
        elif appsi_tc == AppsiTC.unbounded:
            status, legacy_tc = SolveStatus.UNBOUNDED, TerminationCondition.unbounded
        elif appsi_tc == AppsiTC.maxTimeLimit:
            status, legacy_tc = SolveStatus.TIME_LIMIT, TerminationCondition.maxTimeLimit
        elif has_incumbent:
            # Stopped early for another reason (iteration limit, interrupt)
            status, legacy_tc = SolveStatus.FEASIBLE, TerminationCondition.feasible
        else:
            status, legacy_tc = SolveStatus.ERROR, TerminationCondition.unknown

        success = has_incumbent and status in (
            SolveStatus.OPTIMAL, SolveStatus.FEASIBLE, SolveStatus.TIME_LIMIT
        )
        if success:
            results.solution_loader.load_vars()

        bound = getattr(results, 'best_objective_bound', None)
        return self._make_result(
            success=success,
            status=status,
            objective_value=incumbent if has_incumbent else None,
            termination_condition=legacy_tc,
            solve_time=solve_time,
            solver_name=SolverType.APPSI_HIGHS.value,
            best_bound=bound,
            message=None if success else f"APPSI HiGHS terminated with {appsi_tc}",
        )

    def _legacy_options(
        self,
        solver_name: str,
        time_limit_seconds: float,
        mip_gap: Optional[float],
        options: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Translate the time and gap budget into solver-specific option names."""
        merged: Dict[str, Any] = {}
        if solver_name in ('cbc', 'asl:cbc'):
            merged['seconds'] = time_limit_seconds
            if mip_gap is not None:
                merged['ratio'] = mip_gap
        elif solver_name == 'glpk':
            merged['tmlim'] = int(math.ceil(time_limit_seconds))
            if mip_gap is not None:
                merged['mipgap'] = mip_gap
        elif solver_name == 'gurobi':
            merged['TimeLimit'] = time_limit_seconds
            if mip_gap is not None:
                merged['MIPGap'] = mip_gap
        elif solver_name == 'cplex':
            merged['timelimit'] = time_limit_seconds
            if mip_gap is not None:
                merged['mip_tolerances_mipgap'] = mip_gap
        elif solver_name == 'highs':
            merged.update(SolverConfig.HIGHS_MIP_DEFAULT)
            merged['time_limit'] = time_limit_seconds
            if mip_gap is not None:
                merged['mip_rel_gap'] = mip_gap
        else:
            logger.warning(
                f"No time limit option known for solver '{solver_name}'; "
                f"pass it through solver_options"
            )
        merged.update(options)
        return merged

    def _solve_with_solver_factory(
        self,
        solver_name: str,
        time_limit_seconds: float,
        mip_gap: Optional[float],
        tee: bool,
        options: Dict[str, Any],
    ) -> OptimizationResult:
        """Solve through the legacy SolverFactory interface."""
        options = self._legacy_options(solver_name, time_limit_seconds, mip_gap, options)

        try:
            solver = self.solver_config.create_solver(solver_name, options)
        except RuntimeError as e:
            return self._failed_result(str(e), solver_name)

        solve_start = time.time()
        # load_solutions=False: infeasible and incumbent-less results are
        # reported through the result instead of raising
        results = solver.solve(
            self.model,
            tee=tee,
            symbolic_solver_labels=False,
            load_solutions=False,
        )
        solve_time = time.time() - solve_start

        return self._process_results(results, solver_name, solve_time)

    def _process_results(
        self,
        results,
        solver_name: Optional[str],
        solve_time: float,
    ) -> OptimizationResult:
        """
        Process legacy solver results into OptimizationResult.

        Loads the incumbent into the model when one exists.
        """
        solver_status = results.solver.status if hasattr(results, 'solver') else None
        termination_condition = results.solver.termination_condition if hasattr(results, 'solver') else None

        status = _LEGACY_STATUS.get(termination_condition, SolveStatus.ERROR)
        has_incumbent = len(getattr(results, 'solution', [])) > 0
        if status == SolveStatus.ERROR and has_incumbent and solver_status != SolverStatus.error:
            status = SolveStatus.FEASIBLE

        success = has_incumbent and status in (
            SolveStatus.OPTIMAL, SolveStatus.FEASIBLE, SolveStatus.TIME_LIMIT
        )

        objective_value = None
        best_bound = None
        if success:
            self.model.solutions.load_from(results)
            objective_value = value(self.model.obj)
            # Maximization: the upper bound is the dual bound
            ub = getattr(results.problem, 'upper_bound', None)
            if ub is not None and math.isfinite(ub):
                best_bound = ub

        message = None
        if status == SolveStatus.INFEASIBLE:
            message = "Model is infeasible. Constraints cannot all be satisfied simultaneously."
        elif not success:
            message = f"Solver failed - Status: {solver_status}, Termination: {termination_condition}"
            if hasattr(results.solver, 'message') and results.solver.message:
                message += f", Message: {results.solver.message}"

        return self._make_result(
            success=success,
            status=status,
            objective_value=objective_value,
            termination_condition=termination_condition,
            solve_time=solve_time,
            solver_name=solver_name,
            best_bound=best_bound,
            message=message,
            solver_status=solver_status,
        )

    def _make_result(
        self,
        success: bool,
        status: SolveStatus,
        objective_value: Optional[float],
        termination_condition,
        solve_time: float,
        solver_name: Optional[str],
        best_bound: Optional[float],
        message: Optional[str],
        solver_status: Optional[SolverStatus] = None,
    ) -> OptimizationResult:
        stats = self.get_model_statistics()
        gap = None
        if success:
            gap = 0.0 if status == SolveStatus.OPTIMAL else relative_gap(objective_value, best_bound)
        return OptimizationResult(
            success=success,
            status=status,
            objective_value=objective_value,
            solver_status=solver_status,
            termination_condition=termination_condition,
            solve_time_seconds=solve_time,
            solver_name=solver_name,
            gap=gap,
            best_bound=best_bound,
            num_variables=stats['num_variables'],
            num_constraints=stats['num_constraints'],
            num_integer_vars=stats['num_integer_vars'],
            infeasibility_message=message,
        )

    def _failed_result(self, message: str, solver_name: Optional[str]) -> OptimizationResult:
        logger.error(message)
        stats = self.get_model_statistics()
        return OptimizationResult(
            success=False,
            status=SolveStatus.ERROR,
            solver_name=solver_name,
            infeasibility_message=message,
            num_variables=stats['num_variables'],
            num_constraints=stats['num_constraints'],
            num_integer_vars=stats['num_integer_vars'],
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def get_solution(self) -> Optional['PlanningSolution']:
        """
        Get extracted solution from last solve.

        Returns:
            PlanningSolution (Pydantic validated), or None if not solved or no incumbent
        """
        return self.solution

    def get_model_statistics(self) -> Dict[str, Any]:
        """
        Get statistics about the model.

        Returns:
            Dictionary with model statistics
        """
        if self.model is None:
            return {
                'built': False,
                'num_variables': 0,
                'num_constraints': 0,
                'num_integer_vars': 0,
            }

        num_integer = sum(
            1 for var in self.model.component_data_objects(Var, active=True)
            if var.is_integer() or var.is_binary()
        )

        return {
            'built': True,
            'build_time_seconds': self._build_time,
            'num_variables': self.model.nvariables(),
            'num_constraints': self.model.nconstraints(),
            'num_integer_vars': num_integer,
        }

    def get_build_time(self) -> Optional[float]:
        """Model build time in seconds, or None if model not built."""
        return self._build_time

    def write_model(self, path: Union[str, Path]) -> Path:
        """
        Write the model to a file for inspection (format from the suffix, e.g. ``.lp``).

        Builds the model first if needed.
        """
        path = Path(path)
        if self.model is None:
            build_start = time.time()
            self.model = self.build_model()
            self._build_time = time.time() - build_start
        self.model.write(str(path), io_options={'symbolic_solver_labels': True})
        logger.info(f"Model written to {path}")
        return path

    def reset(self):
        """
        Reset the model state.

        Clears the built model, results, and solution.
        """
        self.model = None
        self.result = None
        self.solution = None
        self._build_time = None
