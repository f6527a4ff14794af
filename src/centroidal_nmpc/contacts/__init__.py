"""
Contact description types: nominal contact plans and discrete geometry contacts
"""

from .contact import (
    PlannedContact,
    Corner,
    DiscreteGeometryContact
)
from .contact_phase_list import ContactList, ContactPhase, ContactPhaseList

__all__ = [
    'PlannedContact',
    'Corner',
    'DiscreteGeometryContact',
    'ContactList',
    'ContactPhase',
    'ContactPhaseList'
]
