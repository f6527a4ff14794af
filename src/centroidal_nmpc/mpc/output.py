#!/usr/bin/env python3
"""
Solution decoding
Maps the primal solution of the NLP to the controller output
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

from ..contacts import Corner, DiscreteGeometryContact, PlannedContact
from .config import CentroidalMPCConfig
from .problem_builder import DecisionLayout
from .schedule_tracker import HorizonSchedule


@dataclass
class CentroidalSolution:
    """Primal solution of a cycle, independent of the decision layout"""
    initial_time: float
    com: np.ndarray                       # (N, 3)
    dcom: np.ndarray                      # (N, 3)
    angular_momentum: np.ndarray          # (N, 3)
    forces: Dict[str, np.ndarray]         # name -> (N, n_corners, 3)
    # (name, activation_time) -> adjusted location
    contact_positions: Dict[Tuple[str, float], np.ndarray] = field(default_factory=dict)

    @property
    def number_of_knots(self) -> int:
        return self.com.shape[0]


@dataclass
class CentroidalMPCOutput:
    """Output of the centroidal MPC"""
    contacts: Dict[str, DiscreteGeometryContact] = field(default_factory=dict)
    next_planned_contact: Dict[str, PlannedContact] = field(default_factory=dict)
    com_trajectory: List[np.ndarray] = field(default_factory=list)
    angular_momentum_trajectory: List[np.ndarray] = field(default_factory=list)
    # name -> (N, 3) net contact force at each knot
    force_trajectory: Dict[str, np.ndarray] = field(default_factory=dict)
    time: float = 0.0


class OutputDecoder:
    """
    Converts the primal solution into domain objects

    Forces of inactive contacts are reported as exact zeros.
    """

    def __init__(self, config: CentroidalMPCConfig):
        self.config = config
        self.corners = {c.name: [np.asarray(p, dtype=float) for p in c.corners]
                        for c in config.contacts}

    def decode_solution(
        self,
        layout: DecisionLayout,
        schedule: HorizonSchedule,
        x: np.ndarray
    ) -> CentroidalSolution:
        """
        Split the primal vector following the decision layout

        Args:
            layout: Layout used to build the problem
            schedule: Schedule of the cycle
            x: Primal solution

        Returns:
            CentroidalSolution
        """
        x = np.asarray(x, dtype=float).reshape(-1)
        if x.size != layout.size:
            raise ValueError(
                f"Primal solution has {x.size} elements, layout expects {layout.size}"
            )

        forces = {}
        for slot, slot_schedule in enumerate(schedule.slots):
            slot_forces = x[layout.forces[slot]].copy()
            slot_forces[~slot_schedule.is_active] = 0.0
            forces[slot_schedule.name] = slot_forces

        contact_positions = {}
        for i, adjustable in enumerate(schedule.adjustable_contacts):
            key = (adjustable.name, adjustable.nominal.activation_time)
            contact_positions[key] = x[layout.contact_positions[i]].copy()

        return CentroidalSolution(
            initial_time=schedule.initial_time,
            com=x[layout.com].copy(),
            dcom=x[layout.dcom].copy(),
            angular_momentum=x[layout.angular_momentum].copy(),
            forces=forces,
            contact_positions=contact_positions
        )

    def decode(
        self,
        solution: CentroidalSolution,
        schedule: HorizonSchedule
    ) -> CentroidalMPCOutput:
        """
        Build the published output

        Args:
            solution: Decoded primal solution
            schedule: Schedule of the cycle

        Returns:
            CentroidalMPCOutput for the current knot
        """
        output = CentroidalMPCOutput(time=schedule.initial_time)

        for slot_schedule in schedule.slots:
            name = slot_schedule.name
            is_enabled = bool(slot_schedule.is_active[0])
            event = slot_schedule.upcoming_event()

            contact = DiscreteGeometryContact(name=name, is_enabled=is_enabled)
            if event is not None:
                key = (name, event.activation_time)
                contact.position = solution.contact_positions.get(
                    key, event.position
                ).copy()
                contact.orientation = event.orientation.copy()

            for j, corner in enumerate(self.corners[name]):
                force = solution.forces[name][0, j] if is_enabled else np.zeros(3)
                contact.corners.append(Corner(position=corner.copy(), force=force.copy()))

            output.contacts[name] = contact
            output.force_trajectory[name] = solution.forces[name].sum(axis=1)

        # First adjustable event of each contact in the horizon
        for adjustable in sorted(schedule.adjustable_contacts, key=lambda a: a.first_knot):
            if adjustable.name in output.next_planned_contact:
                continue
            planned = adjustable.nominal.copy()
            planned.position = solution.contact_positions[
                (adjustable.name, adjustable.nominal.activation_time)
            ].copy()
            output.next_planned_contact[adjustable.name] = planned

        output.com_trajectory = [c.copy() for c in solution.com]
        output.angular_momentum_trajectory = [h.copy() for h in solution.angular_momentum]
        return output
