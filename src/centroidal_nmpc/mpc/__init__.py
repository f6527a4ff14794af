"""
Centroidal non-linear MPC: schedule tracking, problem assembly, solution decoding
"""

from .centroidal_mpc import CentroidalMPC
from .config import CentroidalMPCConfig, ContactGeometry, WarmStartPolicy
from .cost import CostAssembler
from .errors import (
    CentroidalMPCError,
    ConfigurationError,
    ScheduleError,
    InputError,
    SolveFailure,
    SolverStatus
)
from .output import CentroidalMPCOutput, CentroidalSolution, OutputDecoder
from .problem_builder import DecisionLayout, ProblemSpec, ProblemBuilder
from .schedule_tracker import ContactScheduleTracker, HorizonSchedule
from .solver import NLPSolver, IpoptSolver, SolveResult, SolverOptions
from .state import CentroidalState, ReferenceTrajectory
from .warm_start import WarmStartManager

__all__ = [
    'CentroidalMPC',
    'CentroidalMPCConfig',
    'ContactGeometry',
    'WarmStartPolicy',
    'CostAssembler',
    'CentroidalMPCError',
    'ConfigurationError',
    'ScheduleError',
    'InputError',
    'SolveFailure',
    'SolverStatus',
    'CentroidalMPCOutput',
    'CentroidalSolution',
    'OutputDecoder',
    'DecisionLayout',
    'ProblemSpec',
    'ProblemBuilder',
    'ContactScheduleTracker',
    'HorizonSchedule',
    'NLPSolver',
    'IpoptSolver',
    'SolveResult',
    'SolverOptions',
    'CentroidalState',
    'ReferenceTrajectory',
    'WarmStartManager'
]
