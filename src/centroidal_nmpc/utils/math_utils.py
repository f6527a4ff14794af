#!/usr/bin/env python3
"""
Mathematical utilities for the centroidal controller
Contact orientations and linearised friction cones
"""

import numpy as np
from scipy.spatial.transform import Rotation


def rotation_from_rpy(roll: float, pitch: float, yaw: float) -> np.ndarray:
    """
    Convert roll-pitch-yaw angles to a rotation matrix

    Args:
        roll: Rotation about X axis (radians)
        pitch: Rotation about Y axis (radians)
        yaw: Rotation about Z axis (radians)

    Returns:
        3x3 rotation matrix R = Rz(yaw) Ry(pitch) Rx(roll)
    """
    return Rotation.from_euler('xyz', [roll, pitch, yaw]).as_matrix()


def polytope_friction_cone(
    friction_coefficient: float,
    number_of_sides: int
) -> np.ndarray:
    """
    Inscribed polytope approximation of a friction cone

    The cone |f_t| <= mu * f_n is approximated by the pyramid whose
    facets are tangent to the inscribed polygon of the circle of radius
    mu * f_n. A force f (local frame, z normal) is admissible iff
    A @ f <= 0.

    Args:
        friction_coefficient: Static friction coefficient mu
        number_of_sides: Number of facets of the pyramid (>= 3)

    Returns:
        (number_of_sides, 3) matrix A
    """
    if number_of_sides < 3:
        raise ValueError(
            f"A friction polytope needs at least 3 sides, got {number_of_sides}"
        )

    angles = 2 * np.pi * np.arange(number_of_sides) / number_of_sides
    inner_radius = friction_coefficient * np.cos(np.pi / number_of_sides)

    A = np.zeros((number_of_sides, 3))
    A[:, 0] = np.cos(angles)
    A[:, 1] = np.sin(angles)
    A[:, 2] = -inner_radius
    return A
