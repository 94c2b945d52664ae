"""Errors raised by the scheduling layer.

Routers translate these into HTTP responses; nothing here is fatal to the
process and the caller can always retry with another time or day.
"""


class SchedulingError(Exception):
    """Base class for scheduling failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NoTypeSelected(SchedulingError):
    """No (or an unknown) appointment type was given, so the duration is unknown."""

    def __init__(self, message: str = 'Select an appointment type before choosing a time.'):
        super().__init__(message)


class ClinicClosed(SchedulingError):
    """The clinic is closed on the requested weekday."""


class SlotUnavailable(SchedulingError):
    """The requested start is off the slot grid, in the past or runs past closing."""


class SlotConflict(SchedulingError):
    """A non-cancelled appointment already overlaps the requested slot."""

    def __init__(self, conflicting_appointment, message: str | None = None):
        self.conflicting_appointment = conflicting_appointment
        if message is None:
            message = 'This time slot is already booked ({}-{}).'.format(
                conflicting_appointment.start_time.strftime('%H:%M'),
                conflicting_appointment.end_time.strftime('%H:%M'),
            )
        super().__init__(message)


class PatientNotFound(SchedulingError):
    def __init__(self, message: str = 'Patient not found.'):
        super().__init__(message)


class AppointmentNotFound(SchedulingError):
    def __init__(self, message: str = 'Appointment not found.'):
        super().__init__(message)


class InvalidStatusTransition(SchedulingError):
    pass


class StoreFailure(SchedulingError):
    """The backing store could not complete a read or write."""

    def __init__(self, message: str = 'Database unavailable. Verify DATABASE_URL and database credentials.'):
        super().__init__(message)
