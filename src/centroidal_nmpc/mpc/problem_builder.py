#!/usr/bin/env python3
"""
Centroidal NLP construction using CasADi
Decision variable layout, dynamics and contact feasibility constraints
"""

import numpy as np
import casadi as cs
from dataclasses import dataclass, field
from typing import Dict, List

from ..utils.math_utils import polytope_friction_cone
from .config import CentroidalMPCConfig
from .errors import ConfigurationError, ScheduleError
from .schedule_tracker import HorizonSchedule
from .state import CentroidalState


class DecisionLayout:
    """
    Position of every optimization variable in the decision vector

    Per knot k (0..N-1): CoM position (3), CoM velocity (3), angular
    momentum (3), then for every contact slot one force (3) per corner.
    The adjustable contact locations (3 each, one per contact event)
    follow the last knot.
    """

    def __init__(
        self,
        number_of_knots: int,
        corners_per_slot: List[int],
        number_of_adjustable_contacts: int = 0
    ):
        self.number_of_knots = number_of_knots
        self.corners_per_slot = list(corners_per_slot)
        self.number_of_adjustable_contacts = number_of_adjustable_contacts

        N = number_of_knots
        self.com = np.zeros((N, 3), dtype=int)
        self.dcom = np.zeros((N, 3), dtype=int)
        self.angular_momentum = np.zeros((N, 3), dtype=int)
        self.forces = [np.zeros((N, n, 3), dtype=int) for n in self.corners_per_slot]

        offset = 0
        for k in range(N):
            for block in (self.com, self.dcom, self.angular_momentum):
                block[k] = np.arange(offset, offset + 3)
                offset += 3
            for slot, n_corners in enumerate(self.corners_per_slot):
                self.forces[slot][k] = np.arange(offset, offset + 3 * n_corners).reshape(n_corners, 3)
                offset += 3 * n_corners

        self.contact_positions = np.arange(
            offset, offset + 3 * number_of_adjustable_contacts
        ).reshape(number_of_adjustable_contacts, 3)
        offset += 3 * number_of_adjustable_contacts

        self.size = offset

    @property
    def number_of_slots(self) -> int:
        return len(self.corners_per_slot)

    def knot_size(self) -> int:
        return 9 + 3 * sum(self.corners_per_slot)


@dataclass
class ConstraintBlock:
    """Named group of constraints lower <= expression <= upper"""
    name: str
    expression: cs.SX
    lower: np.ndarray
    upper: np.ndarray

    @property
    def size(self) -> int:
        return self.expression.numel()

    @property
    def is_equality(self) -> bool:
        return bool(np.all(self.lower == self.upper))


@dataclass
class ProblemSpec:
    """
    Complete NLP of one cycle

        min  objective(x)
        s.t. lbg <= g(x) <= ubg
             lbx <= x <= ubx
    """
    layout: DecisionLayout
    x: cs.SX
    lbx: np.ndarray
    ubx: np.ndarray
    constraints: List[ConstraintBlock] = field(default_factory=list)
    objective: cs.SX = None
    cost_terms: Dict[str, cs.SX] = field(default_factory=dict)

    def add_constraint(
        self,
        name: str,
        expression: cs.SX,
        lower,
        upper
    ):
        size = expression.numel()
        self.constraints.append(ConstraintBlock(
            name=name,
            expression=cs.reshape(expression, size, 1),
            lower=np.broadcast_to(np.asarray(lower, dtype=float), (size,)).copy(),
            upper=np.broadcast_to(np.asarray(upper, dtype=float), (size,)).copy()
        ))

    @property
    def equality_constraints(self) -> List[ConstraintBlock]:
        return [c for c in self.constraints if c.is_equality]

    @property
    def inequality_constraints(self) -> List[ConstraintBlock]:
        return [c for c in self.constraints if not c.is_equality]

    def constraint_count(self, prefix: str) -> int:
        return sum(c.size for c in self.constraints if c.name.startswith(prefix))

    @property
    def g(self) -> cs.SX:
        if not self.constraints:
            return cs.SX(0, 1)
        return cs.vertcat(*[c.expression for c in self.constraints])

    @property
    def lbg(self) -> np.ndarray:
        if not self.constraints:
            return np.zeros(0)
        return np.concatenate([c.lower for c in self.constraints])

    @property
    def ubg(self) -> np.ndarray:
        if not self.constraints:
            return np.zeros(0)
        return np.concatenate([c.upper for c in self.constraints])


class ProblemBuilder:
    """
    Builds the centroidal NLP for a sampled contact schedule

    Dynamics (forward Euler, k = 0..N-2):
        c[k+1] = c[k] + dt * dc[k]
        dc[k+1] = dc[k] + dt * (sum_i f_i / m + g + f_ext / m)
        L[k+1] = L[k] + dt * (sum_i (p_i - c[k]) x f_i + tau_ext)

    where i runs over the corners of the contacts active at knot k and
    p_i is the corner position, either fixed to the nominal pose or
    attached to an adjustable contact location.
    """

    def __init__(self, config: CentroidalMPCConfig):
        self.config = config
        self.dt = config.sampling_time
        self.mass = config.mass
        self.gravity = config.gravity_vector

        self.contact_names = config.contact_names()
        if len(self.contact_names) != config.number_of_maximum_contacts:
            raise ConfigurationError(
                f"{len(self.contact_names)} contact geometries for "
                f"{config.number_of_maximum_contacts} contacts"
            )
        self.corners: List[np.ndarray] = []
        for contact in config.contacts:
            contact.validate()
            corners = np.asarray(contact.corners, dtype=float)
            if corners.ndim != 2 or corners.shape[1] != 3:
                raise ConfigurationError(
                    f"Contact '{contact.name}': corners must be 3D points"
                )
            self.corners.append(corners)

        # Friction polytope in the contact frame: A @ f_local <= 0
        self.friction_cone = polytope_friction_cone(
            config.static_friction_coefficient,
            config.friction_cone_number_of_sides
        )

    def build(
        self,
        schedule: HorizonSchedule,
        state: CentroidalState
    ) -> ProblemSpec:
        """
        Build the constraints of the cycle

        Args:
            schedule: Contact schedule sampled on the horizon
            state: Measured centroidal state (knot 0)

        Returns:
            ProblemSpec without objective (see CostAssembler)
        """
        if [s.name for s in schedule.slots] != self.contact_names:
            raise ScheduleError(
                "The sampled schedule does not match the configured contacts"
            )

        N = schedule.number_of_knots
        layout = DecisionLayout(
            number_of_knots=N,
            corners_per_slot=[len(c) for c in self.corners],
            number_of_adjustable_contacts=len(schedule.adjustable_contacts)
        )
        x = cs.SX.sym('x', layout.size)

        lbx = np.full(layout.size, -np.inf)
        ubx = np.full(layout.size, np.inf)

        # Inactive contacts cannot exert any force
        for slot, slot_schedule in enumerate(schedule.slots):
            inactive = ~slot_schedule.is_active
            idx = layout.forces[slot][inactive].reshape(-1)
            lbx[idx] = 0.0
            ubx[idx] = 0.0

        problem = ProblemSpec(layout=layout, x=x, lbx=lbx, ubx=ubx)

        self._add_initial_state(problem, state)
        self._add_dynamics(problem, schedule, state)
        self._add_contact_force_feasibility(problem, schedule)
        self._add_contact_position_admissibility(problem, schedule)

        return problem

    def corner_positions(
        self,
        problem: ProblemSpec,
        schedule: HorizonSchedule,
        slot: int,
        k: int
    ) -> List[cs.SX]:
        """Inertial-frame corner positions of an active slot at knot k"""
        event = schedule.slots[slot].events[k]
        adjustable = schedule.slots[slot].adjustable_index[k]
        R = event.orientation

        if adjustable is None:
            origin = cs.DM(event.position)
        else:
            origin = problem.x[problem.layout.contact_positions[adjustable].tolist()]

        return [origin + cs.DM(R @ corner) for corner in self.corners[slot]]

    def _add_initial_state(self, problem: ProblemSpec, state: CentroidalState):
        layout, x = problem.layout, problem.x
        initial = cs.vertcat(
            x[layout.com[0].tolist()] - cs.DM(state.com),
            x[layout.dcom[0].tolist()] - cs.DM(state.dcom),
            x[layout.angular_momentum[0].tolist()] - cs.DM(state.angular_momentum)
        )
        problem.add_constraint('initial_state', initial, 0.0, 0.0)

    def _add_dynamics(
        self,
        problem: ProblemSpec,
        schedule: HorizonSchedule,
        state: CentroidalState
    ):
        layout, x = problem.layout, problem.x
        dt = self.dt
        external_force = cs.DM(state.external_force / self.mass)
        external_torque = cs.DM(state.external_torque)

        com_defects = []
        dcom_defects = []
        angular_momentum_defects = []

        for k in range(schedule.number_of_knots - 1):
            com = x[layout.com[k].tolist()]
            dcom = x[layout.dcom[k].tolist()]
            angular_momentum = x[layout.angular_momentum[k].tolist()]

            net_force = cs.SX.zeros(3)
            net_torque = cs.SX.zeros(3)
            for slot in schedule.active_slots(k):
                positions = self.corner_positions(problem, schedule, slot, k)
                for j, corner_position in enumerate(positions):
                    force = x[layout.forces[slot][k, j].tolist()]
                    net_force += force
                    net_torque += cs.cross(corner_position - com, force)

            ddcom = net_force / self.mass + cs.DM(self.gravity) + external_force
            dangular_momentum = net_torque + external_torque

            com_defects.append(x[layout.com[k + 1].tolist()] - (com + dt * dcom))
            dcom_defects.append(x[layout.dcom[k + 1].tolist()] - (dcom + dt * ddcom))
            angular_momentum_defects.append(
                x[layout.angular_momentum[k + 1].tolist()]
                - (angular_momentum + dt * dangular_momentum)
            )

        problem.add_constraint('dynamics_com', cs.vertcat(*com_defects), 0.0, 0.0)
        problem.add_constraint('dynamics_dcom', cs.vertcat(*dcom_defects), 0.0, 0.0)
        problem.add_constraint(
            'dynamics_angular_momentum', cs.vertcat(*angular_momentum_defects), 0.0, 0.0
        )

    def _add_contact_force_feasibility(
        self,
        problem: ProblemSpec,
        schedule: HorizonSchedule
    ):
        """Unilaterality and friction polytope for every active corner"""
        layout, x = problem.layout, problem.x

        normal_forces = []
        friction = []
        for slot, slot_schedule in enumerate(schedule.slots):
            for k in np.flatnonzero(slot_schedule.is_active):
                R = slot_schedule.events[k].orientation
                # local normal component and polytope in the inertial frame
                normal = cs.DM(R[:, 2]).T
                cone = cs.DM(self.friction_cone @ R.T)
                for j in range(len(self.corners[slot])):
                    force = x[layout.forces[slot][k, j].tolist()]
                    normal_forces.append(cs.mtimes(normal, force))
                    friction.append(cs.mtimes(cone, force))

        if normal_forces:
            problem.add_constraint(
                'unilaterality', cs.vertcat(*normal_forces), 0.0, np.inf
            )
            problem.add_constraint(
                'friction_cone', cs.vertcat(*friction), -np.inf, 0.0
            )

    def _add_contact_position_admissibility(
        self,
        problem: ProblemSpec,
        schedule: HorizonSchedule
    ):
        """Adjusted contact location inside the bounding box of its nominal pose"""
        layout, x = problem.layout, problem.x
        for i, adjustable in enumerate(schedule.adjustable_contacts):
            geometry = self.config.contacts[adjustable.slot]
            nominal = adjustable.nominal
            position = x[layout.contact_positions[i].tolist()]
            local_offset = cs.mtimes(
                cs.DM(nominal.orientation.T), position - cs.DM(nominal.position)
            )
            problem.add_constraint(
                f'contact_position_bounds_{adjustable.name}_{i}',
                local_offset,
                geometry.bounding_box_lower_limit,
                geometry.bounding_box_upper_limit
            )
