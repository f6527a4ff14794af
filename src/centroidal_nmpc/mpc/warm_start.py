#!/usr/bin/env python3
"""
Warm start of the centroidal NLP
Initial guess from the previous solution or from nominal values
"""

import numpy as np
from typing import Optional

from .config import CentroidalMPCConfig, WarmStartPolicy
from .output import CentroidalSolution
from .problem_builder import DecisionLayout
from .schedule_tracker import HorizonSchedule
from .state import CentroidalState


class WarmStartManager:
    """
    Generates the initial guess of each cycle

    Policies:
    - NONE: measured state held constant, zero forces, nominal contacts
    - FROM_NOMINAL: reference CoM and angular momentum, forces
      compensating gravity shared among the active corners, nominal
      contacts
    - FROM_PREVIOUS: previous solution shifted by the elapsed knots and
      extended at the tail with the reference. Falls back to FROM_NOMINAL
      when no usable previous solution is stored.
    """

    def __init__(self, config: CentroidalMPCConfig):
        self.config = config
        self.policy = config.warm_start_policy
        self.previous: Optional[CentroidalSolution] = None

    def store(self, solution: CentroidalSolution):
        self.previous = solution

    def clear(self):
        self.previous = None

    def initial_guess(
        self,
        layout: DecisionLayout,
        schedule: HorizonSchedule,
        state: CentroidalState,
        com_reference: np.ndarray,
        angular_momentum_reference: np.ndarray
    ) -> np.ndarray:
        """
        Initial value of the decision vector

        Args:
            layout: Decision layout of the cycle
            schedule: Schedule of the cycle
            state: Measured state
            com_reference: (N, 3) CoM reference
            angular_momentum_reference: (N, 3) angular momentum reference

        Returns:
            (layout.size,) initial guess
        """
        guess = None
        if self.policy == WarmStartPolicy.FROM_PREVIOUS:
            guess = self._from_previous(
                layout, schedule, com_reference, angular_momentum_reference
            )
        if guess is None and self.policy != WarmStartPolicy.NONE:
            guess = self._from_nominal(
                layout, schedule, com_reference, angular_momentum_reference
            )
        if guess is None:
            guess = self._from_measured_state(layout, schedule, state)

        # Knot 0 is always the measured state
        guess[layout.com[0]] = state.com
        guess[layout.dcom[0]] = state.dcom
        guess[layout.angular_momentum[0]] = state.angular_momentum

        for slot, slot_schedule in enumerate(schedule.slots):
            guess[layout.forces[slot][~slot_schedule.is_active]] = 0.0

        return guess

    def _nominal_contact_positions(
        self,
        guess: np.ndarray,
        layout: DecisionLayout,
        schedule: HorizonSchedule
    ):
        for i, adjustable in enumerate(schedule.adjustable_contacts):
            guess[layout.contact_positions[i]] = adjustable.nominal.position

    def _reference_velocity(self, com_reference: np.ndarray) -> np.ndarray:
        """Finite difference of the CoM reference, last value held"""
        dcom = np.zeros_like(com_reference)
        dcom[:-1] = np.diff(com_reference, axis=0) / self.config.sampling_time
        dcom[-1] = dcom[-2] if len(dcom) > 1 else 0.0
        return dcom

    def _from_measured_state(
        self,
        layout: DecisionLayout,
        schedule: HorizonSchedule,
        state: CentroidalState
    ) -> np.ndarray:
        guess = np.zeros(layout.size)
        guess[layout.com] = state.com
        guess[layout.dcom] = state.dcom
        guess[layout.angular_momentum] = state.angular_momentum
        self._nominal_contact_positions(guess, layout, schedule)
        return guess

    def _from_nominal(
        self,
        layout: DecisionLayout,
        schedule: HorizonSchedule,
        com_reference: np.ndarray,
        angular_momentum_reference: np.ndarray
    ) -> np.ndarray:
        guess = np.zeros(layout.size)

        guess[layout.com] = com_reference
        guess[layout.dcom] = self._reference_velocity(com_reference)
        guess[layout.angular_momentum] = angular_momentum_reference

        # Gravity compensation split among the active corners
        weight = self.config.mass * self.config.gravity
        for k in range(layout.number_of_knots):
            active = schedule.active_slots(k)
            n_corners = sum(layout.corners_per_slot[s] for s in active)
            if n_corners == 0:
                continue
            for slot in active:
                normal = schedule.slots[slot].events[k].orientation[:, 2]
                guess[layout.forces[slot][k]] = normal * weight / n_corners

        self._nominal_contact_positions(guess, layout, schedule)
        return guess

    def _from_previous(
        self,
        layout: DecisionLayout,
        schedule: HorizonSchedule,
        com_reference: np.ndarray,
        angular_momentum_reference: np.ndarray
    ) -> Optional[np.ndarray]:
        previous = self.previous
        if previous is None or previous.number_of_knots != layout.number_of_knots:
            return None

        shift = int(round(
            (schedule.initial_time - previous.initial_time) / self.config.sampling_time
        ))
        N = layout.number_of_knots
        if shift < 0 or shift >= N:
            return None

        def shifted(trajectory: np.ndarray) -> np.ndarray:
            tail = np.repeat(trajectory[-1:], shift, axis=0)
            return np.concatenate([trajectory[shift:], tail], axis=0)

        guess = np.zeros(layout.size)
        com = shifted(previous.com)
        dcom = shifted(previous.dcom)
        angular_momentum = shifted(previous.angular_momentum)
        # New tail knots follow the reference
        if shift > 0:
            com[N - shift:] = com_reference[N - shift:]
            dcom[N - shift:] = self._reference_velocity(com_reference)[N - shift:]
            angular_momentum[N - shift:] = angular_momentum_reference[N - shift:]
        guess[layout.com] = com
        guess[layout.dcom] = dcom
        guess[layout.angular_momentum] = angular_momentum

        for slot, slot_schedule in enumerate(schedule.slots):
            previous_forces = previous.forces.get(slot_schedule.name)
            if previous_forces is not None and previous_forces.shape[1:] == layout.forces[slot].shape[1:]:
                guess[layout.forces[slot]] = shifted(previous_forces)

        for i, adjustable in enumerate(schedule.adjustable_contacts):
            key = (adjustable.name, adjustable.nominal.activation_time)
            guess[layout.contact_positions[i]] = previous.contact_positions.get(
                key, adjustable.nominal.position
            )

        return guess
