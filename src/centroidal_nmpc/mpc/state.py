#!/usr/bin/env python3
"""
Centroidal state and reference trajectories consumed by the MPC
"""

import numpy as np
from dataclasses import dataclass
from typing import Sequence

from .errors import InputError


def _as_vector(value, size: int, name: str) -> np.ndarray:
    try:
        vector = np.asarray(value, dtype=float).reshape(-1)
    except (TypeError, ValueError):
        raise InputError(f"{name} must be a numeric vector")
    if vector.size != size:
        raise InputError(f"{name} must contain {size} elements, got {vector.size}")
    if not np.all(np.isfinite(vector)):
        raise InputError(f"{name} contains non-finite values")
    return vector.copy()


def _as_trajectory(values: Sequence, name: str) -> np.ndarray:
    try:
        length = len(values)
    except TypeError:
        raise InputError(f"{name} trajectory must be a sequence of 3D vectors")
    if length == 0:
        raise InputError(f"{name} trajectory is empty")
    return np.stack([_as_vector(v, 3, f"{name}[{i}]") for i, v in enumerate(values)])


@dataclass
class CentroidalState:
    """Robot centroidal state"""
    com: np.ndarray                       # (3,) CoM position, inertial frame
    dcom: np.ndarray                      # (3,) CoM velocity
    angular_momentum: np.ndarray          # (3,) centroidal angular momentum
    external_wrench: np.ndarray = None    # (6,) [force, torque] applied at the CoM

    def __post_init__(self):
        self.com = _as_vector(self.com, 3, "com")
        self.dcom = _as_vector(self.dcom, 3, "dcom")
        self.angular_momentum = _as_vector(self.angular_momentum, 3, "angular_momentum")
        if self.external_wrench is None:
            self.external_wrench = np.zeros(6)
        else:
            self.external_wrench = _as_vector(self.external_wrench, 6, "external_wrench")

    @property
    def external_force(self) -> np.ndarray:
        return self.external_wrench[:3]

    @property
    def external_torque(self) -> np.ndarray:
        return self.external_wrench[3:]


class ReferenceTrajectory:
    """
    CoM and angular momentum references sampled at the MPC period

    Sample 0 refers to the knot 0 of the next cycle. If the horizon is
    longer than the reference, the last sample is held.
    """

    def __init__(self, com: Sequence, angular_momentum: Sequence):
        self.com = _as_trajectory(com, "com")
        self.angular_momentum = _as_trajectory(angular_momentum, "angular_momentum")
        if len(self.com) != len(self.angular_momentum):
            raise InputError(
                f"The CoM reference has {len(self.com)} samples while the angular "
                f"momentum reference has {len(self.angular_momentum)}"
            )

    def __len__(self) -> int:
        return len(self.com)

    def horizon(self, number_of_knots: int):
        """
        Reference over the horizon

        Returns:
            Tuple of (com, angular_momentum), each (number_of_knots, 3)
        """
        idx = np.minimum(np.arange(number_of_knots), len(self.com) - 1)
        return self.com[idx], self.angular_momentum[idx]

    def consume(self, samples: int = 1):
        """Drop the first samples, always keeping the last one"""
        start = min(samples, len(self.com) - 1)
        self.com = self.com[start:]
        self.angular_momentum = self.angular_momentum[start:]
