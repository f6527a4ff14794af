#!/usr/bin/env python3
"""
Contact types exchanged with the contact planner and the whole-body controller
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List

from ..utils.math_utils import rotation_from_rpy


@dataclass
class PlannedContact:
    """
    A contact event of the nominal plan

    The contact is active in [activation_time, deactivation_time).
    """
    name: str
    position: np.ndarray                  # (3,) inertial frame
    orientation: np.ndarray = None        # 3x3 rotation, local -> inertial
    activation_time: float = 0.0          # s
    deactivation_time: float = np.inf     # s
    index: int = 0                        # position in the contact list

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float).reshape(3)
        if self.orientation is None:
            self.orientation = np.eye(3)
        else:
            self.orientation = np.asarray(self.orientation, dtype=float).reshape(3, 3)

    @classmethod
    def from_rpy(
        cls,
        name: str,
        position: np.ndarray,
        rpy: np.ndarray,
        activation_time: float,
        deactivation_time: float
    ) -> 'PlannedContact':
        """Create a planned contact from roll-pitch-yaw angles"""
        return cls(
            name=name,
            position=position,
            orientation=rotation_from_rpy(*rpy),
            activation_time=activation_time,
            deactivation_time=deactivation_time
        )

    def is_active(self, t: float, eps: float = 1e-9) -> bool:
        """True if the contact is active at time t (start inclusive)"""
        return (self.activation_time <= t + eps
                and t + eps < self.deactivation_time)

    def copy(self) -> 'PlannedContact':
        return PlannedContact(
            name=self.name,
            position=self.position.copy(),
            orientation=self.orientation.copy(),
            activation_time=self.activation_time,
            deactivation_time=self.deactivation_time,
            index=self.index
        )


@dataclass
class Corner:
    """Vertex of the support polygon with its contact force"""
    position: np.ndarray                  # (3,) local frame
    force: np.ndarray = None              # (3,) inertial frame

    def __post_init__(self):
        self.position = np.asarray(self.position, dtype=float).reshape(3)
        if self.force is None:
            self.force = np.zeros(3)


@dataclass
class DiscreteGeometryContact:
    """Contact whose wrench is generated by a finite set of corner forces"""
    name: str
    position: np.ndarray = None
    orientation: np.ndarray = None
    is_enabled: bool = False
    corners: List[Corner] = field(default_factory=list)

    def __post_init__(self):
        if self.position is None:
            self.position = np.zeros(3)
        if self.orientation is None:
            self.orientation = np.eye(3)

    def get_contact_wrench(self) -> np.ndarray:
        """
        Wrench applied at the contact origin

        Returns:
            (6,) [force, torque] expressed in the inertial frame
        """
        force = np.zeros(3)
        torque = np.zeros(3)
        for corner in self.corners:
            force += corner.force
            torque += np.cross(self.orientation @ corner.position, corner.force)
        return np.concatenate([force, torque])
