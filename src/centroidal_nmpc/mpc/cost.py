#!/usr/bin/env python3
"""
Cost function of the centroidal MPC
Tracking, regularization, smoothness and symmetry terms
"""

import numpy as np
import casadi as cs
from typing import Dict

from .config import CentroidalMPCConfig
from .problem_builder import ProblemSpec
from .schedule_tracker import HorizonSchedule


def _weighted_square(weight: np.ndarray, error: cs.SX) -> cs.SX:
    """error' diag(weight) error"""
    return cs.dot(cs.DM(weight) * error, error)


class CostAssembler:
    """
    Builds the additive quadratic objective

    Terms with a zero weight are not added to the problem.
    """

    def __init__(self, config: CentroidalMPCConfig):
        self.config = config
        self.com_weight = np.asarray(config.com_weight, dtype=float)
        self.angular_momentum_weight = config.angular_momentum_weight
        self.contact_position_weight = config.contact_position_weight
        self.force_rate_weight = np.asarray(config.force_rate_of_change_weight, dtype=float)
        self.symmetry_weight = config.contact_force_symmetry_weight

        names = config.contact_names()
        self.symmetry_pairs = [
            (names.index(a), names.index(b))
            for a, b in config.contact_force_symmetry_pairs
        ]

    def assemble(
        self,
        problem: ProblemSpec,
        schedule: HorizonSchedule,
        com_reference: np.ndarray,
        angular_momentum_reference: np.ndarray
    ) -> cs.SX:
        """
        Assemble the objective and store it in the problem

        Args:
            problem: Problem returned by ProblemBuilder.build
            schedule: Contact schedule of the cycle
            com_reference: (N, 3) CoM reference at each knot
            angular_momentum_reference: (N, 3) angular momentum reference

        Returns:
            The objective expression
        """
        terms: Dict[str, cs.SX] = {}

        if np.any(self.com_weight > 0):
            terms['com'] = self._com_tracking(problem, com_reference)
        if self.angular_momentum_weight > 0:
            terms['angular_momentum'] = self._angular_momentum_tracking(
                problem, angular_momentum_reference
            )
        if self.contact_position_weight > 0 and schedule.adjustable_contacts:
            terms['contact_position'] = self._contact_position_regularization(
                problem, schedule
            )
        if np.any(self.force_rate_weight > 0):
            terms['force_rate_of_change'] = self._force_rate_of_change(problem)
        if self.symmetry_weight > 0 and self.symmetry_pairs:
            terms['contact_force_symmetry'] = self._contact_force_symmetry(
                problem, schedule
            )

        objective = cs.SX(0)
        for term in terms.values():
            objective += term

        problem.cost_terms = terms
        problem.objective = objective
        return objective

    def _com_tracking(self, problem: ProblemSpec, reference: np.ndarray) -> cs.SX:
        layout, x = problem.layout, problem.x
        cost = cs.SX(0)
        for k in range(layout.number_of_knots):
            error = x[layout.com[k].tolist()] - cs.DM(reference[k])
            cost += _weighted_square(self.com_weight, error)
        return cost

    def _angular_momentum_tracking(
        self,
        problem: ProblemSpec,
        reference: np.ndarray
    ) -> cs.SX:
        layout, x = problem.layout, problem.x
        cost = cs.SX(0)
        for k in range(layout.number_of_knots):
            error = x[layout.angular_momentum[k].tolist()] - cs.DM(reference[k])
            cost += self.angular_momentum_weight * cs.sumsqr(error)
        return cost

    def _contact_position_regularization(
        self,
        problem: ProblemSpec,
        schedule: HorizonSchedule
    ) -> cs.SX:
        layout, x = problem.layout, problem.x
        cost = cs.SX(0)
        for i, adjustable in enumerate(schedule.adjustable_contacts):
            error = x[layout.contact_positions[i].tolist()] - cs.DM(adjustable.nominal.position)
            cost += self.contact_position_weight * cs.sumsqr(error)
        return cost

    def _force_rate_of_change(self, problem: ProblemSpec) -> cs.SX:
        layout, x = problem.layout, problem.x
        cost = cs.SX(0)
        for forces in layout.forces:
            for k in range(1, layout.number_of_knots):
                for j in range(forces.shape[1]):
                    error = x[forces[k, j].tolist()] - x[forces[k - 1, j].tolist()]
                    cost += _weighted_square(self.force_rate_weight, error)
        return cost

    def _contact_force_symmetry(
        self,
        problem: ProblemSpec,
        schedule: HorizonSchedule
    ) -> cs.SX:
        """Corner-wise force difference of paired contacts active together"""
        layout, x = problem.layout, problem.x
        cost = cs.SX(0)
        for a, b in self.symmetry_pairs:
            both_active = schedule.slots[a].is_active & schedule.slots[b].is_active
            for k in np.flatnonzero(both_active):
                for j in range(layout.corners_per_slot[a]):
                    error = (x[layout.forces[a][k, j].tolist()]
                             - x[layout.forces[b][k, j].tolist()])
                    cost += self.symmetry_weight * cs.sumsqr(error)
        return cost
