"""Utility modules for the centroidal controller"""

from .math_utils import rotation_from_rpy, polytope_friction_cone
from .logging_utils import get_logger

__all__ = ['rotation_from_rpy', 'polytope_friction_cone', 'get_logger']
