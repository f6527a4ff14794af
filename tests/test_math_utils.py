"""
Tests for the rotation helpers and the friction polytope.
"""

import numpy as np
import pytest

from centroidal_nmpc.utils import (
    polytope_friction_cone,
    rotation_from_rpy
)


class TestFrictionCone:
    """Inscribed polytope of the friction cone."""

    def test_shape(self):
        assert polytope_friction_cone(0.5, 6).shape == (6, 3)

    def test_normal_force_is_admissible(self):
        A = polytope_friction_cone(0.33, 4)
        assert np.all(A @ np.array([0.0, 0.0, 1.0]) < 0.0)

    def test_inscribed(self):
        mu, n = 0.5, 4
        A = polytope_friction_cone(mu, n)
        # on the cone boundary along a facet normal: outside the polytope
        assert np.max(A @ np.array([mu, 0.0, 1.0])) > 0.0
        # on the inscribed circle: on the facet
        inner = mu * np.cos(np.pi / n)
        assert np.max(A @ np.array([inner, 0.0, 1.0])) == pytest.approx(0.0, abs=1e-12)

    def test_too_few_sides(self):
        with pytest.raises(ValueError):
            polytope_friction_cone(0.5, 2)


class TestRotationFromRPY:
    """Contact orientation from roll-pitch-yaw."""

    def test_yaw_only(self):
        c, s = np.cos(0.3), np.sin(0.3)
        np.testing.assert_allclose(
            rotation_from_rpy(0.0, 0.0, 0.3),
            [[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]],
            atol=1e-12
        )

    def test_roll_then_yaw(self):
        # R = Rz(pi/2) Rx(pi/2): local y is mapped onto the inertial z axis
        R = rotation_from_rpy(np.pi / 2, 0.0, np.pi / 2)
        np.testing.assert_allclose(R @ [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], atol=1e-12)
        np.testing.assert_allclose(R @ [1.0, 0.0, 0.0], [0.0, 1.0, 0.0], atol=1e-12)
