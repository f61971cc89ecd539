"""Solver configuration and detection.

Every solve runs with an explicit time budget. The default solver is HiGHS
through Pyomo's APPSI interface (``highspy`` package); any solver registered
with Pyomo's SolverFactory (cbc, glpk, gurobi, cplex, highs) may be requested
by name.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional
import logging

from pyomo.environ import SolverFactory

from .constants import DEFAULT_MIP_GAP, DEFAULT_TIME_LIMIT_SECONDS

logger = logging.getLogger(__name__)


class SolverType(str, Enum):
    """Solvers the model knows how to configure."""
    APPSI_HIGHS = "appsi_highs"
    HIGHS = "highs"
    CBC = "cbc"
    GLPK = "glpk"
    GUROBI = "gurobi"
    CPLEX = "cplex"


@dataclass
class SolverInfo:
    """Availability of a single solver."""
    name: str
    available: bool


class SolverConfig:
    """Solver selection, time budget and option presets.

    Attributes:
        solver_name: Requested solver (None = best available)
        time_limit_seconds: Time budget for the solve (must be > 0)
        mip_gap: Relative MIP gap tolerance
        tee: Stream solver output
        solver_options: Extra solver-specific options passed through verbatim
    """

    #: HiGHS MIP settings applied on every HiGHS solve
    HIGHS_MIP_DEFAULT = {
        'presolve': 'on',
        'parallel': 'on',
        'mip_detect_symmetry': True,
    }

    #: Preference order when no solver is requested
    PREFERENCE = (
        SolverType.APPSI_HIGHS,
        SolverType.GUROBI,
        SolverType.CPLEX,
        SolverType.HIGHS,
        SolverType.CBC,
        SolverType.GLPK,
    )

    def __init__(
        self,
        solver_name: Optional[str] = None,
        time_limit_seconds: float = DEFAULT_TIME_LIMIT_SECONDS,
        mip_gap: Optional[float] = DEFAULT_MIP_GAP,
        tee: bool = False,
        solver_options: Optional[Dict[str, Any]] = None,
    ):
        if time_limit_seconds is None or not time_limit_seconds > 0:
            raise ValueError(f"time_limit_seconds must be positive, got {time_limit_seconds!r}")
        if mip_gap is not None and mip_gap < 0:
            raise ValueError(f"mip_gap must be non-negative, got {mip_gap!r}")
        self.solver_name = solver_name
        self.time_limit_seconds = float(time_limit_seconds)
        self.mip_gap = mip_gap
        self.tee = tee
        self.solver_options = dict(solver_options or {})

    @staticmethod
    def is_available(solver_name: str) -> bool:
        """Check whether a solver can be used in this environment."""
        try:
            if solver_name == SolverType.APPSI_HIGHS.value:
                from pyomo.contrib.appsi.solvers import Highs
                return bool(Highs().available())
            solver = SolverFactory(solver_name)
            return solver is not None and bool(solver.available(exception_flag=False))
        except (ImportError, RuntimeError, AttributeError) as e:
            logger.debug(f"Solver {solver_name} unavailable: {e}")
            return False

    def available_solvers(self) -> List[SolverInfo]:
        """Report availability of every known solver."""
        return [SolverInfo(name=s.value, available=self.is_available(s.value)) for s in SolverType]

    def get_best_available_solver(self) -> str:
        """Return the requested solver or the first available one.

        Raises:
            RuntimeError: If no solver is available
        """
        if self.solver_name:
            return self.solver_name
        for solver_type in self.PREFERENCE:
            if self.is_available(solver_type.value):
                return solver_type.value
        raise RuntimeError(
            "No MIP solver available. Install HiGHS with: pip install highspy"
        )

    def create_solver(self, solver_name: Optional[str] = None, options: Optional[Dict[str, Any]] = None):
        """Create a legacy SolverFactory solver with options applied.

        Raises:
            RuntimeError: If the solver is not available
        """
        name = solver_name or self.get_best_available_solver()
        solver = SolverFactory(name)
        if solver is None or not solver.available(exception_flag=False):
            raise RuntimeError(f"Solver '{name}' is not available")
        for key, val in (options or {}).items():
            solver.options[key] = val
        return solver

    def __repr__(self) -> str:
        return (
            f"SolverConfig(solver_name={self.solver_name!r}, "
            f"time_limit_seconds={self.time_limit_seconds}, mip_gap={self.mip_gap})"
        )
