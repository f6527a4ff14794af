#!/usr/bin/env python3
"""
NLP solver interface
The MPC only sees the NLPSolver port; IpoptSolver solves through CasADi
"""

import numpy as np
import casadi as cs
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional
import time

from .config import CentroidalMPCConfig
from .errors import SolverStatus
from .problem_builder import ProblemSpec


@dataclass
class SolverOptions:
    """Options forwarded to the NLP solver"""
    tolerance: float = 1e-8
    max_iterations: int = 3000
    verbosity: int = 0
    linear_solver: str = "mumps"
    is_cse_enabled: bool = False

    @classmethod
    def from_config(cls, config: CentroidalMPCConfig) -> 'SolverOptions':
        return cls(
            tolerance=config.ipopt_tolerance,
            max_iterations=config.ipopt_max_iteration,
            verbosity=config.solver_verbosity,
            linear_solver=config.linear_solver,
            is_cse_enabled=config.is_cse_enabled
        )


@dataclass
class SolveResult:
    """Outcome of a solve"""
    status: SolverStatus
    x: Optional[np.ndarray] = None        # primal solution
    objective: float = np.nan
    iterations: int = 0
    return_status: str = ""               # solver specific message
    solve_time_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.status == SolverStatus.SUCCESS and self.x is not None


class NLPSolver(ABC):
    """Abstract NLP solver"""

    @abstractmethod
    def solve(self, problem: ProblemSpec, initial_guess: np.ndarray) -> SolveResult:
        """
        Solve the problem

        Args:
            problem: Complete problem (constraints and objective)
            initial_guess: Initial value of the decision vector

        Returns:
            SolveResult; failures are reported through the status
        """
        pass


# ipopt return status -> failure class
_IPOPT_STATUS = {
    'Solve_Succeeded': SolverStatus.SUCCESS,
    'Solved_To_Acceptable_Level': SolverStatus.SUCCESS,
    'Feasible_Point_Found': SolverStatus.SUCCESS,
    'Infeasible_Problem_Detected': SolverStatus.INFEASIBLE,
    'Maximum_Iterations_Exceeded': SolverStatus.ITERATION_LIMIT_EXCEEDED,
    'Maximum_CpuTime_Exceeded': SolverStatus.ITERATION_LIMIT_EXCEEDED,
    'Maximum_WallTime_Exceeded': SolverStatus.ITERATION_LIMIT_EXCEEDED,
}


def classify_ipopt_status(return_status: str) -> SolverStatus:
    """Map an ipopt return status to a SolverStatus"""
    return _IPOPT_STATUS.get(return_status, SolverStatus.NUMERICAL_FAILURE)


class IpoptSolver(NLPSolver):
    """
    Interior point solver (ipopt) called through casadi.nlpsol

    The problem structure depends on the contact schedule, so the
    nlpsol instance is generated at every call.
    """

    def __init__(self, options: SolverOptions = None):
        self.options = options or SolverOptions()

    def nlpsol_options(self) -> Dict:
        opts = {
            'error_on_fail': False,
            'print_time': self.options.verbosity > 0,
            'ipopt.tol': self.options.tolerance,
            'ipopt.max_iter': self.options.max_iterations,
            'ipopt.print_level': int(np.clip(self.options.verbosity, 0, 12)),
            'ipopt.linear_solver': self.options.linear_solver,
            'ipopt.sb': 'yes',
        }
        # Only supported from casadi 3.6
        if self.options.is_cse_enabled:
            opts['cse'] = True
        return opts

    def solve(self, problem: ProblemSpec, initial_guess: np.ndarray) -> SolveResult:
        start_time = time.time()

        if problem.objective is None:
            raise ValueError("The problem objective has not been assembled")

        nlp = {'x': problem.x, 'f': problem.objective, 'g': problem.g}
        try:
            solver = cs.nlpsol('centroidal_mpc', 'ipopt', nlp, self.nlpsol_options())
            solution = solver(
                x0=initial_guess,
                lbx=problem.lbx,
                ubx=problem.ubx,
                lbg=problem.lbg,
                ubg=problem.ubg
            )
        except RuntimeError as e:
            return SolveResult(
                status=SolverStatus.NUMERICAL_FAILURE,
                return_status=str(e),
                solve_time_ms=(time.time() - start_time) * 1000
            )

        stats = solver.stats()
        return_status = stats.get('return_status', '')
        status = classify_ipopt_status(return_status)
        if status == SolverStatus.SUCCESS and not stats.get('success', False):
            status = SolverStatus.NUMERICAL_FAILURE

        x = np.asarray(solution['x']).reshape(-1)
        if status == SolverStatus.SUCCESS and not np.all(np.isfinite(x)):
            status = SolverStatus.NUMERICAL_FAILURE

        return SolveResult(
            status=status,
            x=x,
            objective=float(solution['f']),
            iterations=int(stats.get('iter_count', 0)),
            return_status=return_status,
            solve_time_ms=(time.time() - start_time) * 1000
        )
