#!/usr/bin/env python3
"""
Contact Schedule Tracker
Samples the nominal contact phase list on the MPC horizon
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..contacts import ContactPhaseList, PlannedContact
from .config import CentroidalMPCConfig
from .errors import ScheduleError


@dataclass
class AdjustableContact:
    """Contact event whose location is a decision variable of the cycle"""
    slot: int
    nominal: PlannedContact
    first_knot: int                       # first knot in which it is active

    @property
    def name(self) -> str:
        return self.nominal.name


@dataclass
class SlotSchedule:
    """Activation and nominal contact of one contact slot at every knot"""
    name: str
    is_active: np.ndarray                 # (N,) bool
    events: List[Optional[PlannedContact]]
    # Index in HorizonSchedule.adjustable_contacts, None if pinned or inactive
    adjustable_index: List[Optional[int]]
    # Latest event started before knot 0
    last_event: Optional[PlannedContact] = None

    def upcoming_event(self) -> Optional[PlannedContact]:
        """Event active at knot 0 or, if none, the first one in the horizon"""
        for event in self.events:
            if event is not None:
                return event
        return self.last_event


@dataclass
class HorizonSchedule:
    """Contact schedule sampled at the knots of one MPC cycle"""
    initial_time: float
    sampling_time: float
    number_of_knots: int
    slots: List[SlotSchedule]
    adjustable_contacts: List[AdjustableContact] = field(default_factory=list)

    def knot_time(self, k: int) -> float:
        return self.initial_time + k * self.sampling_time

    def active_slots(self, k: int) -> List[int]:
        return [i for i, s in enumerate(self.slots) if s.is_active[k]]

    def activation_matrix(self) -> np.ndarray:
        """(N, n_slots) boolean activation table"""
        return np.stack([s.is_active for s in self.slots], axis=1)


class ContactScheduleTracker:
    """
    Tracks the nominal contact schedule

    For each knot of the horizon and each configured contact slot it
    determines whether the contact is active, which nominal contact it
    refers to and whether its location is free in the current cycle.
    A contact already active at the first knot is pinned to its nominal
    pose. A contact becoming active later in the horizon contributes one
    adjustable location shared by all the knots of that event.
    """

    def __init__(self, config: CentroidalMPCConfig):
        self.config = config
        self.contact_names = config.contact_names()
        self.phase_list: Optional[ContactPhaseList] = None

    def set_contact_phase_list(self, phase_list: ContactPhaseList):
        """
        Set the nominal contact schedule

        Raises:
            ScheduleError: if the list refers to unknown contacts or more
                contacts than configured are active at the same time
        """
        if not isinstance(phase_list, ContactPhaseList):
            raise ScheduleError(
                f"Expected a ContactPhaseList, got {type(phase_list).__name__}"
            )

        unknown = [name for name in phase_list.lists()
                   if name not in self.contact_names]
        if unknown:
            raise ScheduleError(
                f"The contacts {unknown} are not configured. "
                f"Available contacts: {self.contact_names}"
            )

        for phase in phase_list:
            if len(phase.active_contacts) > self.config.number_of_maximum_contacts:
                raise ScheduleError(
                    f"{len(phase.active_contacts)} contacts are active in "
                    f"[{phase.begin_time}, {phase.end_time}) while the maximum "
                    f"number of contacts is {self.config.number_of_maximum_contacts}"
                )

        self.phase_list = phase_list

    def sample(self, initial_time: float) -> HorizonSchedule:
        """
        Sample the schedule on the horizon starting at initial_time

        Args:
            initial_time: Time associated to knot 0

        Returns:
            HorizonSchedule of the cycle
        """
        if self.phase_list is None:
            raise ScheduleError("The contact phase list has not been set")

        N = self.config.number_of_knots
        dt = self.config.sampling_time
        lists = self.phase_list.lists()

        schedule = HorizonSchedule(
            initial_time=initial_time,
            sampling_time=dt,
            number_of_knots=N,
            slots=[]
        )
        # Adjustable events indexed by (slot, activation_time)
        adjustable_lookup: Dict[tuple, int] = {}

        for slot, name in enumerate(self.contact_names):
            is_active = np.zeros(N, dtype=bool)
            events: List[Optional[PlannedContact]] = [None] * N
            adjustable_index: List[Optional[int]] = [None] * N

            contact_list = lists.get(name)
            last_event = None
            if contact_list is not None:
                started = [c for c in contact_list
                           if c.activation_time <= initial_time + 1e-9]
                last_event = started[-1] if started else None

            for k in range(N):
                event = (contact_list.active_contact(schedule.knot_time(k))
                         if contact_list is not None else None)
                if event is None:
                    continue

                is_active[k] = True
                events[k] = event

                # Events already in contact at knot 0 are pinned
                if event.is_active(initial_time):
                    continue

                key = (slot, event.activation_time)
                if key not in adjustable_lookup:
                    adjustable_lookup[key] = len(schedule.adjustable_contacts)
                    schedule.adjustable_contacts.append(
                        AdjustableContact(slot=slot, nominal=event, first_knot=k)
                    )
                adjustable_index[k] = adjustable_lookup[key]

            schedule.slots.append(SlotSchedule(
                name=name,
                is_active=is_active,
                events=events,
                adjustable_index=adjustable_index,
                last_event=last_event
            ))

        return schedule
