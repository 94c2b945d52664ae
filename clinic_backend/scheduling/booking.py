import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable

from clinic_backend.core import config
from clinic_backend.models.appointment import Appointment
from clinic_backend.scheduling import engine
from clinic_backend.scheduling.appointment_store import AppointmentStore
from clinic_backend.scheduling.errors import (
    ClinicClosed,
    NoTypeSelected,
    PatientNotFound,
    SlotConflict,
    SlotUnavailable,
)
from clinic_backend.scheduling.schedule_provider import WEEKDAY_NAMES, ClinicScheduleProvider

logger = logging.getLogger(__name__)


@dataclass
class DayAvailability:
    date: date
    is_open: bool
    duration_minutes: int
    opens_at: time | None = None
    closes_at: time | None = None
    reason: str | None = None
    slots: list[engine.ClassifiedSlot] = field(default_factory=list)


def closed_reason(day: date) -> str:
    return f'Clinic is closed on {WEEKDAY_NAMES[day.weekday()]}.'


@dataclass
class BookingService:
    schedule: ClinicScheduleProvider
    store: AppointmentStore
    step_minutes: int = config.SLOT_STEP_MINUTES
    reminder_lead_minutes: int = config.REMINDER_LEAD_MINUTES
    now: Callable[[], datetime] = datetime.now

    def _duration_for(self, appointment_type_id: int | None) -> int:
        if appointment_type_id is None:
            raise NoTypeSelected()
        appointment_type = self.schedule.get_appointment_type(appointment_type_id)
        if appointment_type is None:
            raise NoTypeSelected('Invalid appointment type.')
        return appointment_type.default_duration_minutes

    def _elapsed_until(self, day: date) -> time | None:
        current = self.now()
        if day > current.date():
            return None
        if day < current.date():
            return time.max
        return current.time()

    def day_availability(
        self,
        day: date,
        appointment_type_id: int | None,
        selected_start: time | None = None,
    ) -> DayAvailability:
        duration_minutes = self._duration_for(appointment_type_id)
        day_hours = self.schedule.get_working_hours(day.weekday())

        if not day_hours.is_open:
            return DayAvailability(
                date=day,
                is_open=False,
                duration_minutes=duration_minutes,
                reason=closed_reason(day),
            )

        slots = engine.build_day_slots(
            day_hours,
            duration_minutes,
            self.store.list_for_date(day),
            selected_start=selected_start,
            step_minutes=self.step_minutes,
            elapsed_until=self._elapsed_until(day),
        )
        return DayAvailability(
            date=day,
            is_open=True,
            duration_minutes=duration_minutes,
            opens_at=day_hours.start,
            closes_at=day_hours.end,
            reason=None if slots else 'No appointment of this length fits in the working hours.',
            slots=slots,
        )

    def book(
        self,
        patient_id: int,
        day: date,
        start_time: time,
        appointment_type_id: int | None,
        notes: str | None = None,
    ) -> Appointment:
        duration_minutes = self._duration_for(appointment_type_id)

        patient = self.store.get_patient(patient_id)
        if patient is None:
            raise PatientNotFound()

        day_hours = self.schedule.get_working_hours(day.weekday())
        if not day_hours.is_open:
            raise ClinicClosed(closed_reason(day))

        fitting_starts = engine.filter_fitting_starts(
            engine.generate_candidate_starts(day_hours, self.step_minutes),
            duration_minutes,
            day_hours.end,
        )
        if start_time not in fitting_starts:
            raise SlotUnavailable(
                f'Appointments must start on a {self.step_minutes}-minute boundary between '
                f'{day_hours.start:%H:%M} and {day_hours.end:%H:%M} and finish by closing time.'
            )

        starts_at = datetime.combine(day, start_time)
        if starts_at <= self.now():
            raise SlotUnavailable('Appointments must be scheduled in the future.')

        slot = engine.slot_for(start_time, duration_minutes)
        validation = engine.validate_booking(slot, self.store.list_for_date(day))
        if not validation.ok:
            logger.warning(
                'Booking for patient %s on %s at %s rejected: overlaps appointment %s',
                patient_id,
                day,
                f'{start_time:%H:%M}',
                validation.conflict.id,
            )
            raise SlotConflict(validation.conflict)

        # No lock is held between the check above and this write; two
        # concurrent bookers can still both succeed unless the store rejects it.
        appointment = self.store.create(
            patient_id=patient.id,
            appointment_date=day,
            start_time=slot.start,
            end_time=slot.end,
            appointment_type_id=appointment_type_id,
            notes=notes,
            reminder_time=starts_at - timedelta(minutes=self.reminder_lead_minutes),
        )
        logger.info(
            'Booked appointment %s for patient %s on %s %s-%s',
            appointment.id,
            patient.id,
            day,
            f'{slot.start:%H:%M}',
            f'{slot.end:%H:%M}',
        )
        return appointment
