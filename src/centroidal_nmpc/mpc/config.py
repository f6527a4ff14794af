#!/usr/bin/env python3
"""
Configuration of the centroidal MPC
Flat option set with one geometry group per contact slot
"""

import numpy as np
import yaml
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Tuple

from .errors import ConfigurationError


class WarmStartPolicy(Enum):
    """How the initial guess of a cycle is generated"""
    NONE = "none"                    # measured state held, zero forces
    FROM_PREVIOUS = "from_previous"  # previous solution shifted by one knot
    FROM_NOMINAL = "from_nominal"    # reference trajectory and nominal contacts


@dataclass
class ContactGeometry:
    """Corners and position adjustment bounds of a contact slot"""
    name: str
    corners: List[np.ndarray]             # (3,) each, local frame
    bounding_box_lower_limit: np.ndarray  # (3,) local frame
    bounding_box_upper_limit: np.ndarray  # (3,) local frame

    @property
    def number_of_corners(self) -> int:
        return len(self.corners)

    def validate(self):
        if not self.name:
            raise ConfigurationError("Contact with an empty name")
        if self.number_of_corners == 0:
            raise ConfigurationError(f"Contact '{self.name}' has no corners")
        if np.any(self.bounding_box_lower_limit > self.bounding_box_upper_limit):
            raise ConfigurationError(
                f"Contact '{self.name}': bounding box lower limit "
                f"{self.bounding_box_lower_limit} is greater than the upper limit "
                f"{self.bounding_box_upper_limit}"
            )


@dataclass
class CentroidalMPCConfig:
    """Centroidal MPC configuration parameters"""
    sampling_time: float                  # s
    time_horizon: float                   # s
    contacts: List[ContactGeometry]

    # Cost weights
    com_weight: np.ndarray = None         # (3,) [x, y, z]
    contact_position_weight: float = 0.0
    force_rate_of_change_weight: np.ndarray = None  # (3,)
    angular_momentum_weight: float = 0.0
    contact_force_symmetry_weight: float = 0.0
    contact_force_symmetry_pairs: List[Tuple[str, str]] = None

    # Model
    mass: float = 1.0                     # kg, 1.0 -> mass-normalised forces
    gravity: float = 9.81                 # m/s^2
    static_friction_coefficient: float = 0.33
    friction_cone_number_of_sides: int = 4

    # Solver
    linear_solver: str = "mumps"
    ipopt_tolerance: float = 1e-8
    ipopt_max_iteration: int = 3000
    solver_verbosity: int = 0
    is_cse_enabled: bool = False
    is_warm_start_enabled: bool = False
    warm_start_policy: WarmStartPolicy = None

    number_of_maximum_contacts: int = field(init=False)

    def __post_init__(self):
        self.number_of_maximum_contacts = len(self.contacts)
        if self.com_weight is None:
            self.com_weight = np.zeros(3)
        if self.force_rate_of_change_weight is None:
            self.force_rate_of_change_weight = np.zeros(3)
        self.com_weight = np.asarray(self.com_weight, dtype=float)
        self.force_rate_of_change_weight = np.asarray(
            self.force_rate_of_change_weight, dtype=float
        )
        if self.contact_force_symmetry_pairs is None:
            names = [c.name for c in self.contacts]
            self.contact_force_symmetry_pairs = list(zip(names[0::2], names[1::2]))
        if self.warm_start_policy is None:
            self.warm_start_policy = (
                WarmStartPolicy.FROM_PREVIOUS if self.is_warm_start_enabled
                else WarmStartPolicy.NONE
            )
        self.validate()

    @property
    def number_of_knots(self) -> int:
        """floor(time_horizon / sampling_time)"""
        return int(np.floor(self.time_horizon / self.sampling_time + 1e-9))

    @property
    def gravity_vector(self) -> np.ndarray:
        return np.array([0.0, 0.0, -self.gravity])

    def contact_names(self) -> List[str]:
        return [c.name for c in self.contacts]

    def geometry(self, name: str) -> ContactGeometry:
        for contact in self.contacts:
            if contact.name == name:
                return contact
        raise ConfigurationError(f"Contact '{name}' is not configured")

    def validate(self):
        """Check consistency of the configuration"""
        if self.sampling_time <= 0:
            raise ConfigurationError(
                f"sampling_time must be positive, got {self.sampling_time}"
            )
        if self.number_of_knots < 2:
            raise ConfigurationError(
                "time_horizon must span at least two samples "
                f"(time_horizon={self.time_horizon}, sampling_time={self.sampling_time})"
            )
        if self.mass <= 0:
            raise ConfigurationError(f"mass must be positive, got {self.mass}")
        if self.static_friction_coefficient <= 0:
            raise ConfigurationError("static_friction_coefficient must be positive")
        if self.friction_cone_number_of_sides < 3:
            raise ConfigurationError("friction_cone_number_of_sides must be at least 3")
        if self.ipopt_max_iteration <= 0:
            raise ConfigurationError("ipopt_max_iteration must be positive")

        for name, w in [('com_weight', self.com_weight),
                        ('force_rate_of_change_weight', self.force_rate_of_change_weight)]:
            if w.shape != (3,):
                raise ConfigurationError(f"{name} must contain three elements")
            if np.any(w < 0):
                raise ConfigurationError(f"{name} must be non-negative")
        for name in ['contact_position_weight', 'angular_momentum_weight',
                     'contact_force_symmetry_weight']:
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative")

        if not self.contacts:
            raise ConfigurationError("At least one contact must be configured")
        names = self.contact_names()
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Duplicated contact names in {names}")
        for contact in self.contacts:
            contact.validate()

        for pair in self.contact_force_symmetry_pairs:
            if len(pair) != 2 or pair[0] == pair[1]:
                raise ConfigurationError(f"Invalid symmetry pair {pair}")
            for name in pair:
                if name not in names:
                    raise ConfigurationError(
                        f"Symmetry pair {pair} refers to the unknown contact '{name}'"
                    )
            first, second = self.geometry(pair[0]), self.geometry(pair[1])
            if first.number_of_corners != second.number_of_corners:
                raise ConfigurationError(
                    f"Contacts in the symmetry pair {pair} have a different "
                    "number of corners"
                )

    @classmethod
    def from_dict(cls, params: Mapping[str, Any]) -> 'CentroidalMPCConfig':
        """
        Parse the flat option set

        Args:
            params: Mapping with the MPC options and one group
                CONTACT_<i> per contact slot

        Returns:
            Validated configuration

        Raises:
            ConfigurationError: if an option is missing or malformed
        """
        if not isinstance(params, Mapping):
            raise ConfigurationError(
                f"The options must be a mapping, got {type(params).__name__}"
            )

        number_of_contacts = _get(params, 'number_of_maximum_contacts', int)
        if number_of_contacts <= 0:
            raise ConfigurationError("number_of_maximum_contacts must be positive")

        contacts = []
        for i in range(number_of_contacts):
            group = params.get(f'CONTACT_{i}')
            if not isinstance(group, Mapping):
                raise ConfigurationError(f"Unable to find the group 'CONTACT_{i}'")
            contacts.append(_parse_contact_group(group, f'CONTACT_{i}'))

        extra_groups = [key for key in params
                        if isinstance(key, str) and key.startswith('CONTACT_')
                        and key[8:].isdigit() and int(key[8:]) >= number_of_contacts]
        if extra_groups:
            raise ConfigurationError(
                f"Found the groups {extra_groups} but number_of_maximum_contacts "
                f"is {number_of_contacts}"
            )

        pairs = params.get('contact_force_symmetry_pairs')
        if pairs is not None:
            pairs = _parse_pairs(pairs)

        policy = params.get('warm_start_policy')
        if policy is not None:
            try:
                policy = WarmStartPolicy(policy)
            except ValueError:
                raise ConfigurationError(f"Unknown warm_start_policy '{policy}'")

        return cls(
            sampling_time=_get(params, 'sampling_time', float),
            time_horizon=_get(params, 'time_horizon', float),
            contacts=contacts,
            com_weight=_get_vector(params, 'com_weight', 3, np.zeros(3)),
            contact_position_weight=_get(params, 'contact_position_weight', float, 0.0),
            force_rate_of_change_weight=_get_vector(
                params, 'force_rate_of_change_weight', 3, np.zeros(3)
            ),
            angular_momentum_weight=_get(params, 'angular_momentum_weight', float, 0.0),
            contact_force_symmetry_weight=_get(
                params, 'contact_force_symmetry_weight', float, 0.0
            ),
            contact_force_symmetry_pairs=pairs,
            mass=_get(params, 'mass', float, 1.0),
            gravity=_get(params, 'gravity', float, 9.81),
            static_friction_coefficient=_get(
                params, 'static_friction_coefficient', float, 0.33
            ),
            friction_cone_number_of_sides=_get(
                params, 'friction_cone_number_of_sides', int, 4
            ),
            linear_solver=_get(params, 'linear_solver', str, 'mumps'),
            ipopt_tolerance=_get(params, 'ipopt_tolerance', float, 1e-8),
            ipopt_max_iteration=_get(params, 'ipopt_max_iteration', int, 3000),
            solver_verbosity=_get(params, 'solver_verbosity', int, 0),
            is_cse_enabled=_get(params, 'is_cse_enabled', bool, False),
            is_warm_start_enabled=_get(params, 'is_warm_start_enabled', bool, False),
            warm_start_policy=policy
        )

    @classmethod
    def from_yaml(cls, filepath: str) -> 'CentroidalMPCConfig':
        """Load configuration from YAML file"""
        with open(filepath, 'r') as f:
            cfg = yaml.safe_load(f)

        if not isinstance(cfg, Mapping):
            raise ConfigurationError(f"'{filepath}' does not contain a mapping")
        return cls.from_dict(cfg.get('centroidal_mpc', cfg))


_MISSING = object()


def _get(params: Mapping[str, Any], key: str, cast, default: Any = _MISSING):
    if key not in params:
        if default is _MISSING:
            raise ConfigurationError(f"Unable to find the parameter '{key}'")
        return default

    value = params[key]
    if cast is bool:
        if not isinstance(value, (bool, np.bool_)):
            raise ConfigurationError(f"Parameter '{key}' must be a boolean")
        return bool(value)
    if cast in (int, float) and isinstance(value, bool):
        raise ConfigurationError(f"Parameter '{key}' must be a number")
    if cast is int and isinstance(value, float) and not value.is_integer():
        raise ConfigurationError(f"Parameter '{key}' must be an integer")
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigurationError(
            f"Parameter '{key}' cannot be interpreted as {cast.__name__}"
        )


def _get_vector(
    params: Mapping[str, Any],
    key: str,
    size: int,
    default: Optional[np.ndarray] = None
) -> np.ndarray:
    if key not in params:
        if default is not None:
            return default
        raise ConfigurationError(f"Unable to find the parameter '{key}'")
    try:
        vector = np.asarray(params[key], dtype=float).reshape(-1)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Parameter '{key}' must be a numeric vector")
    if vector.size != size:
        raise ConfigurationError(
            f"Parameter '{key}' must contain {size} elements, got {vector.size}"
        )
    return vector


def _parse_pairs(pairs: Any) -> List[Tuple[str, str]]:
    if isinstance(pairs, (str, Mapping)) or not isinstance(pairs, (list, tuple)):
        raise ConfigurationError(
            "contact_force_symmetry_pairs must be a list of contact name pairs"
        )
    parsed = []
    for pair in pairs:
        if (not isinstance(pair, (list, tuple)) or len(pair) != 2
                or not all(isinstance(name, str) for name in pair)):
            raise ConfigurationError(
                f"Invalid entry {pair!r} in contact_force_symmetry_pairs, "
                "expected two contact names"
            )
        parsed.append((pair[0], pair[1]))
    return parsed


def _parse_contact_group(group: Mapping[str, Any], group_name: str) -> ContactGeometry:
    try:
        name = _get(group, 'contact_name', str)
        number_of_corners = _get(group, 'number_of_corners', int)
        if number_of_corners <= 0:
            raise ConfigurationError("number_of_corners must be positive")

        declared = sorted(key for key in group
                          if isinstance(key, str) and key.startswith('corner_'))
        expected = sorted(f'corner_{j}' for j in range(number_of_corners))
        if declared != expected:
            raise ConfigurationError(
                f"number_of_corners is {number_of_corners} but the corners "
                f"{declared} are declared"
            )

        return ContactGeometry(
            name=name,
            corners=[_get_vector(group, f'corner_{j}', 3)
                     for j in range(number_of_corners)],
            bounding_box_lower_limit=_get_vector(group, 'bounding_box_lower_limit', 3),
            bounding_box_upper_limit=_get_vector(group, 'bounding_box_upper_limit', 3)
        )
    except ConfigurationError as e:
        raise ConfigurationError(f"[{group_name}] {e}") from e
