"""
Shared fixtures for the centroidal MPC tests.
Run with: pytest tests/ -v
"""

import copy
from pathlib import Path
import sys

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from centroidal_nmpc.contacts import ContactPhaseList, PlannedContact
from centroidal_nmpc.mpc import CentroidalMPCConfig

FOOT_CORNERS = [
    [0.1, 0.05, 0.0],
    [0.1, -0.05, 0.0],
    [-0.1, -0.05, 0.0],
    [-0.1, 0.05, 0.0],
]

MASS = 30.0
GRAVITY = 9.81
COM_HEIGHT = 0.53


def contact_group(name: str) -> dict:
    group = {
        'contact_name': name,
        'bounding_box_lower_limit': [-0.08, -0.05, 0.0],
        'bounding_box_upper_limit': [0.08, 0.05, 0.0],
        'number_of_corners': len(FOOT_CORNERS),
    }
    for j, corner in enumerate(FOOT_CORNERS):
        group[f'corner_{j}'] = list(corner)
    return group


BIPED_PARAMS = {
    'sampling_time': 0.1,
    'time_horizon': 1.0,
    'number_of_maximum_contacts': 2,
    'mass': MASS,
    'gravity': GRAVITY,
    'com_weight': [100.0, 100.0, 1000.0],
    'contact_position_weight': 1e3,
    'force_rate_of_change_weight': [10.0, 10.0, 10.0],
    'angular_momentum_weight': 1e5,
    'contact_force_symmetry_weight': 1.0,
    'linear_solver': 'mumps',
    'ipopt_tolerance': 1e-6,
    'ipopt_max_iteration': 500,
    'CONTACT_0': contact_group('left_foot'),
    'CONTACT_1': contact_group('right_foot'),
}


@pytest.fixture
def params():
    return copy.deepcopy(BIPED_PARAMS)


@pytest.fixture
def config(params):
    return CentroidalMPCConfig.from_dict(params)


@pytest.fixture
def double_support():
    """Both feet on flat ground for the whole horizon"""
    return ContactPhaseList.from_contacts([
        PlannedContact('left_foot', [0.0, 0.1, 0.0], activation_time=0.0),
        PlannedContact('right_foot', [0.0, -0.1, 0.0], activation_time=0.0),
    ])


@pytest.fixture
def left_lift_off():
    """Left foot leaves the ground at 0.5 s, right foot always in contact"""
    return ContactPhaseList.from_contacts([
        PlannedContact('left_foot', [0.0, 0.1, 0.0],
                       activation_time=0.0, deactivation_time=0.5),
        PlannedContact('right_foot', [0.0, -0.1, 0.0], activation_time=0.0),
    ])


@pytest.fixture
def left_step():
    """Left foot swings in [0.3, 0.6) and lands 0.1 m ahead"""
    return ContactPhaseList.from_contacts([
        PlannedContact('left_foot', [0.0, 0.1, 0.0],
                       activation_time=0.0, deactivation_time=0.3),
        PlannedContact('left_foot', [0.1, 0.1, 0.0], activation_time=0.6),
        PlannedContact('right_foot', [0.0, -0.1, 0.0], activation_time=0.0),
    ])


def standing_reference(samples: int = 1):
    com = [np.array([0.0, 0.0, COM_HEIGHT])] * samples
    angular_momentum = [np.zeros(3)] * samples
    return com, angular_momentum
