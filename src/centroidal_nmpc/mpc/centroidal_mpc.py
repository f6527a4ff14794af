#!/usr/bin/env python3
"""
Centroidal Non-linear Model Predictive Control with step adjustment
Computes contact forces and adjusted contact locations from a nominal
contact plan and the measured centroidal state
"""

import numpy as np
from typing import Dict, Mapping, Optional, Sequence, Union
import time

from ..contacts import ContactPhaseList
from ..utils.logging_utils import get_logger
from .config import CentroidalMPCConfig
from .cost import CostAssembler
from .errors import (
    CentroidalMPCError,
    InputError,
    ScheduleError,
    SolveFailure,
    SolverStatus
)
from .output import CentroidalMPCOutput, OutputDecoder
from .problem_builder import ProblemBuilder
from .schedule_tracker import ContactScheduleTracker
from .solver import IpoptSolver, NLPSolver, SolveResult, SolverOptions
from .state import CentroidalState, ReferenceTrajectory
from .warm_start import WarmStartManager

logger = get_logger("CentroidalMPC")


class CentroidalMPC:
    """
    Centroidal Model Predictive Control for legged robots

    Given a nominal contact phase list, the measured centroidal state and
    the CoM / angular momentum references, every call to advance()
    builds and solves a non-linear program over the horizon and publishes
    the contact forces of the current knot together with the adjusted
    location of the upcoming contacts.

    Call order:
        initialize -> set_contact_phase_list -> (set_state,
        set_reference_trajectory, advance, get_output)*

    The public methods never raise: they return False and log the reason,
    which is also kept in last_error.
    """

    def __init__(self, solver: Optional[NLPSolver] = None):
        """
        Args:
            solver: NLP solver. If None, ipopt is used with the options of
                the configuration.
        """
        self._custom_solver = solver
        self.solver: Optional[NLPSolver] = solver

        self.config: Optional[CentroidalMPCConfig] = None
        self.tracker: Optional[ContactScheduleTracker] = None
        self.problem_builder: Optional[ProblemBuilder] = None
        self.cost: Optional[CostAssembler] = None
        self.warm_start: Optional[WarmStartManager] = None
        self.decoder: Optional[OutputDecoder] = None

        self.state: Optional[CentroidalState] = None
        self.reference: Optional[ReferenceTrajectory] = None
        self._is_state_updated = False

        self.output = CentroidalMPCOutput()
        self._is_output_valid = False

        self.current_time = 0.0
        self._initial_time = 0.0
        self.last_error: Optional[CentroidalMPCError] = None
        self.last_solve_result: Optional[SolveResult] = None

        # Statistics
        self.solve_count = 0
        self.failure_count = 0
        self.total_solve_time = 0.0

    @property
    def is_initialized(self) -> bool:
        return self.config is not None

    def initialize(
        self,
        config: Union[CentroidalMPCConfig, Mapping],
        initial_time: float = 0.0
    ) -> bool:
        """
        Initialize the controller

        Args:
            config: Configuration object or flat option mapping
                (see CentroidalMPCConfig.from_dict)
            initial_time: Time associated to the first advance

        Returns:
            True in case of success
        """
        try:
            if not isinstance(config, CentroidalMPCConfig):
                config = CentroidalMPCConfig.from_dict(config)
            else:
                config.validate()

            tracker = ContactScheduleTracker(config)
            problem_builder = ProblemBuilder(config)
            cost = CostAssembler(config)
        except CentroidalMPCError as e:
            self.config = None
            return self._fail("initialize", e)

        self.config = config
        self.tracker = tracker
        self.problem_builder = problem_builder
        self.cost = cost
        self.warm_start = WarmStartManager(config)
        self.decoder = OutputDecoder(config)
        self.solver = self._custom_solver or IpoptSolver(SolverOptions.from_config(config))

        self._initial_time = float(initial_time)
        self.reset()

        logger.info(
            "[CentroidalMPC::initialize] %d knots, dt=%s s, contacts=%s, "
            "warm start policy '%s'",
            config.number_of_knots, config.sampling_time,
            config.contact_names(), config.warm_start_policy.value
        )
        return True

    def set_contact_phase_list(self, phase_list: ContactPhaseList) -> bool:
        """
        Set the nominal contact schedule

        Must be called before the first advance and whenever the nominal
        schedule changes.
        """
        try:
            self._check_initialized()
            self.tracker.set_contact_phase_list(phase_list)
        except CentroidalMPCError as e:
            return self._fail("set_contact_phase_list", e)
        return True

    def set_state(
        self,
        com: np.ndarray,
        dcom: np.ndarray,
        angular_momentum: np.ndarray,
        external_wrench: Optional[np.ndarray] = None
    ) -> bool:
        """
        Set the measured centroidal state. Must be called before each advance.

        Args:
            com: CoM position in the inertial frame
            dcom: CoM velocity
            angular_momentum: Centroidal angular momentum
            external_wrench: (6,) [force, torque] applied at the CoM.
                Zero if not given.
        """
        try:
            self._check_initialized()
            state = CentroidalState(com, dcom, angular_momentum, external_wrench)
        except CentroidalMPCError as e:
            return self._fail("set_state", e)

        self.state = state
        self._is_state_updated = True
        return True

    def set_reference_trajectory(
        self,
        com: Sequence[np.ndarray],
        angular_momentum: Sequence[np.ndarray]
    ) -> bool:
        """
        Set the CoM and angular momentum references

        The samples are spaced by the sampling time, the first one refers
        to the next advance. Each successful advance consumes one sample;
        when the horizon is longer than the remaining samples the last one
        is held.
        """
        try:
            self._check_initialized()
            reference = ReferenceTrajectory(com, angular_momentum)
        except CentroidalMPCError as e:
            return self._fail("set_reference_trajectory", e)

        self.reference = reference
        return True

    def advance(self) -> bool:
        """
        Perform one control cycle: sample the schedule, build and solve
        the problem, decode the solution.

        Returns:
            True if the output has been updated
        """
        start_time = time.time()
        self._is_output_valid = False

        try:
            self._check_ready()
            N = self.config.number_of_knots
            com_reference, angular_momentum_reference = self.reference.horizon(N)

            schedule = self.tracker.sample(self.current_time)
            problem = self.problem_builder.build(schedule, self.state)
            self.cost.assemble(
                problem, schedule, com_reference, angular_momentum_reference
            )
            initial_guess = self.warm_start.initial_guess(
                problem.layout, schedule, self.state,
                com_reference, angular_momentum_reference
            )

            result = self.solver.solve(problem, initial_guess)
            self.last_solve_result = result
            self.solve_count += 1
            if not result.success:
                self.warm_start.clear()
                raise SolveFailure(
                    result.status,
                    f"Solver failed with status '{result.status.value}' "
                    f"({result.return_status})"
                )
            if result.x.size != problem.layout.size:
                self.warm_start.clear()
                raise SolveFailure(
                    SolverStatus.NUMERICAL_FAILURE,
                    f"The solution has {result.x.size} elements, "
                    f"{problem.layout.size} expected"
                )

            solution = self.decoder.decode_solution(problem.layout, schedule, result.x)
            output = self.decoder.decode(solution, schedule)
        except CentroidalMPCError as e:
            self._is_state_updated = False
            return self._fail("advance", e)

        self.output = output
        self._is_output_valid = True
        self.warm_start.store(solution)
        self.reference.consume()
        self.current_time += self.config.sampling_time
        self._is_state_updated = False

        solve_time = (time.time() - start_time) * 1000
        self.total_solve_time += solve_time
        logger.debug(
            "[CentroidalMPC::advance] t=%.3f s, %d iterations, status '%s', %.2f ms",
            schedule.initial_time, result.iterations, result.return_status, solve_time
        )
        return True

    def get_output(self) -> CentroidalMPCOutput:
        """Last published output. Check is_output_valid() before using it."""
        return self.output

    def is_output_valid(self) -> bool:
        return self._is_output_valid

    def get_statistics(self) -> Dict:
        """Get solver statistics"""
        successes = self.solve_count - self.failure_count
        last = self.last_solve_result
        return {
            'solve_count': self.solve_count,
            'failure_count': self.failure_count,
            'total_solve_time_ms': self.total_solve_time,
            'avg_solve_time_ms': (
                self.total_solve_time / successes if successes > 0 else 0.0
            ),
            'last_status': last.status.value if last is not None else None,
            'last_iterations': last.iterations if last is not None else 0
        }

    def reset(self):
        """Reset clock, warm start data, output and statistics"""
        if self.warm_start is not None:
            self.warm_start.clear()
        self.current_time = self._initial_time
        self.state = None
        self.reference = None
        self._is_state_updated = False
        self.output = CentroidalMPCOutput()
        self._is_output_valid = False
        self.last_error = None
        self.last_solve_result = None
        self.solve_count = 0
        self.failure_count = 0
        self.total_solve_time = 0.0

    def _check_initialized(self):
        if not self.is_initialized:
            raise InputError("The controller has not been initialized")

    def _check_ready(self):
        self._check_initialized()
        if self.tracker.phase_list is None:
            raise ScheduleError("The contact phase list has not been set")
        if not self._is_state_updated:
            raise InputError("The state has not been set since the last advance")
        if self.reference is None:
            raise InputError("The reference trajectory has not been set")

    def _fail(self, method: str, error: CentroidalMPCError) -> bool:
        self.last_error = error
        if isinstance(error, SolveFailure):
            self.failure_count += 1
        logger.error("[CentroidalMPC::%s] %s", method, error)
        return False
