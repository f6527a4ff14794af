#!/usr/bin/env python3
"""
Nominal contact schedule
Time-ordered contact lists per contact and the derived contact phases
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional

from .contact import PlannedContact


class ContactList:
    """
    Time-ordered, non-overlapping contact events of a single contact
    """

    def __init__(self, name: str, contacts: Optional[List[PlannedContact]] = None):
        self.name = name
        self._contacts: List[PlannedContact] = []
        for contact in contacts or []:
            self.add_contact(contact)

    def add_contact(self, contact: PlannedContact):
        """
        Insert a contact keeping the list ordered by activation time

        Raises:
            ValueError: if the contact belongs to another contact name,
                has an empty interval or overlaps an existing event
        """
        if contact.name != self.name:
            raise ValueError(
                f"Contact named '{contact.name}' cannot be added to the list "
                f"of '{self.name}'"
            )
        if contact.deactivation_time <= contact.activation_time:
            raise ValueError(
                f"Contact '{self.name}' has an empty activation interval "
                f"[{contact.activation_time}, {contact.deactivation_time})"
            )
        for other in self._contacts:
            if (contact.activation_time < other.deactivation_time
                    and other.activation_time < contact.deactivation_time):
                raise ValueError(
                    f"Contact '{self.name}' overlaps the event active in "
                    f"[{other.activation_time}, {other.deactivation_time})"
                )

        self._contacts.append(contact)
        self._contacts.sort(key=lambda c: c.activation_time)
        for i, c in enumerate(self._contacts):
            c.index = i

    def active_contact(self, t: float) -> Optional[PlannedContact]:
        """Contact event active at time t, if any"""
        for contact in self._contacts:
            if contact.is_active(t):
                return contact
        return None

    def __getitem__(self, index: int) -> PlannedContact:
        return self._contacts[index]

    def __iter__(self) -> Iterator[PlannedContact]:
        return iter(self._contacts)

    def __len__(self) -> int:
        return len(self._contacts)


@dataclass
class ContactPhase:
    """Time interval with a constant set of active contacts"""
    begin_time: float
    end_time: float
    active_contacts: Dict[str, PlannedContact]


class ContactPhaseList:
    """
    Nominal contact schedule produced by the contact planner

    Built from one ContactList per contact. The phases are the intervals
    between consecutive activation/deactivation instants.
    """

    def __init__(self, contact_lists: Optional[Dict[str, ContactList]] = None):
        self._lists: Dict[str, ContactList] = {}
        self._phases: List[ContactPhase] = []
        if contact_lists:
            self.set_lists(contact_lists)

    @classmethod
    def from_contacts(cls, contacts: List[PlannedContact]) -> 'ContactPhaseList':
        """Build the phase list grouping the events by contact name"""
        lists: Dict[str, ContactList] = {}
        for contact in contacts:
            lists.setdefault(contact.name, ContactList(contact.name))
            lists[contact.name].add_contact(contact)
        return cls(lists)

    def set_lists(self, contact_lists: Dict[str, ContactList]):
        for key, contact_list in contact_lists.items():
            if key != contact_list.name:
                raise ValueError(
                    f"Contact list '{contact_list.name}' stored under key '{key}'"
                )
        self._lists = dict(contact_lists)
        self._build_phases()

    def _build_phases(self):
        """Split the time line at every activation/deactivation instant"""
        instants = set()
        for contact_list in self._lists.values():
            for contact in contact_list:
                instants.add(contact.activation_time)
                instants.add(contact.deactivation_time)

        instants = sorted(instants)
        self._phases = []
        for begin, end in zip(instants[:-1], instants[1:]):
            active = {}
            for name, contact_list in self._lists.items():
                contact = contact_list.active_contact(begin)
                if contact is not None:
                    active[name] = contact
            self._phases.append(ContactPhase(begin, end, active))

    def lists(self) -> Dict[str, ContactList]:
        return self._lists

    def phase_at(self, t: float) -> Optional[ContactPhase]:
        """
        Phase containing time t

        A time exactly at a phase boundary belongs to the phase that
        starts at that instant.
        """
        for phase in self._phases:
            if phase.begin_time <= t + 1e-9 and t + 1e-9 < phase.end_time:
                return phase
        return None

    def first_time(self) -> float:
        return self._phases[0].begin_time if self._phases else np.inf

    def last_time(self) -> float:
        return self._phases[-1].end_time if self._phases else -np.inf

    def __iter__(self) -> Iterator[ContactPhase]:
        return iter(self._phases)

    def __len__(self) -> int:
        return len(self._phases)
