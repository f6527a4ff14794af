#!/usr/bin/env python3
"""
Error taxonomy of the centroidal controller
"""

from enum import Enum


class SolverStatus(Enum):
    """Outcome of a call to the NLP solver"""
    SUCCESS = "success"
    INFEASIBLE = "infeasible"
    ITERATION_LIMIT_EXCEEDED = "iteration_limit_exceeded"
    NUMERICAL_FAILURE = "numerical_failure"


class CentroidalMPCError(Exception):
    """Base class of every failure reported by the controller"""


class ConfigurationError(CentroidalMPCError):
    """Malformed or missing configuration option"""


class ScheduleError(CentroidalMPCError):
    """Contact schedule not compatible with the configured contacts"""


class InputError(CentroidalMPCError):
    """Wrong input supplied to a setter, or setters called out of order"""


class SolveFailure(CentroidalMPCError):
    """The solver did not return a usable solution"""

    def __init__(self, status: SolverStatus, message: str = ""):
        self.status = status
        super().__init__(message or f"Solver failed with status '{status.value}'")
