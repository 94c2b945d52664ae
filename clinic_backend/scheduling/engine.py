"""Slot availability for a single clinic day.

Everything in this module is a pure function of its arguments: working hours,
a duration, the day's appointments and an optional selected start. Nothing is
cached, so results are recomputed on every call.

Appointments are read by attribute (``start_time``, ``end_time``, ``status``),
so ORM rows and plain objects can be passed interchangeably.
"""

from dataclasses import dataclass
from datetime import time
from enum import Enum
from typing import Any, Iterable

from clinic_backend.scheduling.errors import NoTypeSelected

DEFAULT_STEP_MINUTES = 15
MINUTES_PER_DAY = 24 * 60


class AppointmentStatus(str, Enum):
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class SlotStatus(str, Enum):
    AVAILABLE = 'available'
    SELECTED = 'selected'
    BOOKED = 'booked'
    COMPLETED = 'completed'
    UNAVAILABLE = 'unavailable'


@dataclass(frozen=True)
class WorkingHours:
    is_open: bool
    start: time
    end: time


@dataclass(frozen=True)
class TimeSlot:
    start: time
    end: time


@dataclass(frozen=True)
class ClassifiedSlot:
    start: time
    end: time
    status: SlotStatus


@dataclass(frozen=True)
class BookingValidation:
    slot: TimeSlot
    conflict: Any = None

    @property
    def ok(self) -> bool:
        return self.conflict is None


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'{minutes} minutes is outside a single day.')
    return time(minutes // 60, minutes % 60)


def intervals_overlap(start1, end1, start2, end2) -> bool:
    """Half-open overlap test; touching intervals do not overlap."""
    return start1 < end2 and end1 > start2


def _require_duration(duration_minutes: int | None) -> int:
    if duration_minutes is None:
        raise NoTypeSelected()
    if duration_minutes <= 0:
        raise ValueError('Appointment duration must be a positive number of minutes.')
    return duration_minutes


def generate_candidate_starts(day_hours: WorkingHours, step_minutes: int = DEFAULT_STEP_MINUTES) -> list[time]:
    if step_minutes <= 0:
        raise ValueError('Slot step must be a positive number of minutes.')
    if not day_hours.is_open:
        return []

    starts: list[time] = []
    current = to_minutes(day_hours.start)
    closing = to_minutes(day_hours.end)

    while current < closing:
        starts.append(from_minutes(current))
        current += step_minutes

    return starts


def filter_fitting_starts(candidate_starts: Iterable[time], duration_minutes: int, closing_time: time) -> list[time]:
    """Drop starts whose appointment would run past closing time."""
    duration_minutes = _require_duration(duration_minutes)
    closing = to_minutes(closing_time)
    return [start for start in candidate_starts if to_minutes(start) + duration_minutes <= closing]


def is_blocking(appointment) -> bool:
    return appointment.status != AppointmentStatus.CANCELLED


def find_conflict(start: time, end_minutes: int, day_appointments: Iterable):
    # end is in minutes since midnight
    start_minutes = to_minutes(start)
    for appointment in day_appointments:
        if not is_blocking(appointment):
            continue
        if intervals_overlap(
            start_minutes,
            end_minutes,
            to_minutes(appointment.start_time),
            to_minutes(appointment.end_time),
        ):
            return appointment
    return None


def classify(
    start: time,
    duration_minutes: int,
    day_hours: WorkingHours,
    day_appointments: Iterable,
    selected_start: time | None = None,
) -> SlotStatus:
    duration_minutes = _require_duration(duration_minutes)
    end_minutes = to_minutes(start) + duration_minutes

    if not day_hours.is_open or end_minutes > to_minutes(day_hours.end):
        return SlotStatus.UNAVAILABLE

    conflict = find_conflict(start, end_minutes, day_appointments)
    if conflict is not None:
        if conflict.status == AppointmentStatus.COMPLETED:
            return SlotStatus.COMPLETED
        return SlotStatus.BOOKED

    if selected_start is not None and start == selected_start:
        return SlotStatus.SELECTED

    return SlotStatus.AVAILABLE


def validate_booking(slot: TimeSlot, day_appointments: Iterable) -> BookingValidation:
    """Authoritative overlap check run against a fresh read at confirm time."""
    conflict = find_conflict(slot.start, to_minutes(slot.end), day_appointments)
    return BookingValidation(slot=slot, conflict=conflict)


def slot_for(start: time, duration_minutes: int) -> TimeSlot:
    duration_minutes = _require_duration(duration_minutes)
    return TimeSlot(start=start, end=from_minutes(to_minutes(start) + duration_minutes))


def build_day_slots(
    day_hours: WorkingHours,
    duration_minutes: int | None,
    day_appointments: Iterable,
    selected_start: time | None = None,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    elapsed_until: time | None = None,
) -> list[ClassifiedSlot]:
    """Generate, fit and classify the day's slots.

    Starts at or before ``elapsed_until`` have already gone and are reported
    as unavailable.
    """
    duration_minutes = _require_duration(duration_minutes)
    appointments = list(day_appointments)
    fitting = filter_fitting_starts(
        generate_candidate_starts(day_hours, step_minutes),
        duration_minutes,
        day_hours.end,
    )

    return [
        ClassifiedSlot(
            start=start,
            end=slot_for(start, duration_minutes).end,
            status=(
                SlotStatus.UNAVAILABLE
                if elapsed_until is not None and start <= elapsed_until
                else classify(start, duration_minutes, day_hours, appointments, selected_start)
            ),
        )
        for start in fitting
    ]
