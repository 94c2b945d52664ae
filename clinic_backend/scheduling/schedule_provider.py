import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.core import config
from clinic_backend.models.schedule import AppointmentType, WorkingHoursRow
from clinic_backend.scheduling.engine import WorkingHours
from clinic_backend.scheduling.errors import StoreFailure

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')

DEFAULT_APPOINTMENT_TYPES = (
    ('Consultation', 15, '#6366f1'),
    ('Check-up', 30, '#3b82f6'),
    ('Cleaning', 45, '#10b981'),
    ('Filling', 60, '#f59e0b'),
    ('Extraction', 45, '#ef4444'),
    ('Root canal', 90, '#8b5cf6'),
)


def default_working_hours(weekday: int) -> WorkingHours:
    return WorkingHours(
        is_open=weekday not in config.DEFAULT_CLOSED_WEEKDAYS,
        start=config.DEFAULT_OPEN_TIME,
        end=config.DEFAULT_CLOSE_TIME,
    )


def _check_weekday(weekday: int) -> None:
    if not 0 <= weekday <= 6:
        raise ValueError('Weekday must be between 0 (Monday) and 6 (Sunday).')


class ClinicScheduleProvider:
    """Weekly opening hours and the appointment-type catalogue.

    Weekdays without a stored row fall back to the configured defaults, so a
    fresh database is bookable without any setup.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_working_hours(self, weekday: int) -> WorkingHours:
        _check_weekday(weekday)
        try:
            row = self.db.get(WorkingHoursRow, weekday)
        except SQLAlchemyError as exc:
            logger.exception('Failed to load working hours for weekday %s', weekday)
            raise StoreFailure() from exc

        if row is None:
            return default_working_hours(weekday)
        return WorkingHours(is_open=row.is_open, start=row.start_time, end=row.end_time)

    def get_weekly_schedule(self) -> list[WorkingHours]:
        return [self.get_working_hours(weekday) for weekday in range(7)]

    def save_working_hours(self, weekday: int, hours: WorkingHours) -> WorkingHours:
        _check_weekday(weekday)
        if hours.is_open and hours.start >= hours.end:
            raise ValueError('Opening time must be earlier than closing time.')

        try:
            row = self.db.get(WorkingHoursRow, weekday)
            if row is None:
                row = WorkingHoursRow(weekday=weekday)
                self.db.add(row)
            row.is_open = hours.is_open
            row.start_time = hours.start
            row.end_time = hours.end
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to save working hours for weekday %s', weekday)
            raise StoreFailure() from exc

        logger.info(
            'Working hours for %s set to %s',
            WEEKDAY_NAMES[weekday],
            f'{hours.start:%H:%M}-{hours.end:%H:%M}' if hours.is_open else 'closed',
        )
        return hours

    def list_appointment_types(self, include_archived: bool = False) -> list[AppointmentType]:
        try:
            query = self.db.query(AppointmentType)
            if not include_archived:
                query = query.filter(AppointmentType.is_active.is_(True))
            return query.order_by(AppointmentType.default_duration_minutes.asc(), AppointmentType.name.asc()).all()
        except SQLAlchemyError as exc:
            logger.exception('Failed to list appointment types')
            raise StoreFailure() from exc

    def get_appointment_type(self, appointment_type_id: int) -> AppointmentType | None:
        try:
            appointment_type = self.db.get(AppointmentType, appointment_type_id)
        except SQLAlchemyError as exc:
            logger.exception('Failed to load appointment type %s', appointment_type_id)
            raise StoreFailure() from exc

        if appointment_type is None or not appointment_type.is_active:
            return None
        return appointment_type

    def create_appointment_type(self, name: str, default_duration_minutes: int, color: str) -> AppointmentType:
        if default_duration_minutes <= 0:
            raise ValueError('Duration must be a positive number of minutes.')

        try:
            existing = self.db.query(AppointmentType.id).filter(AppointmentType.name == name).first()
        except SQLAlchemyError as exc:
            logger.exception('Failed to look up appointment type %r', name)
            raise StoreFailure() from exc
        if existing is not None:
            raise ValueError('An appointment type with this name already exists.')

        appointment_type = AppointmentType(
            name=name,
            default_duration_minutes=default_duration_minutes,
            color=color,
            is_active=True,
        )
        try:
            self.db.add(appointment_type)
            self.db.commit()
            self.db.refresh(appointment_type)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to create appointment type %r', name)
            raise StoreFailure() from exc

        return appointment_type

    def archive_appointment_type(self, appointment_type_id: int) -> bool:
        try:
            appointment_type = self.db.get(AppointmentType, appointment_type_id)
            if appointment_type is None or not appointment_type.is_active:
                return False
            appointment_type.is_active = False
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to archive appointment type %s', appointment_type_id)
            raise StoreFailure() from exc

        return True

    def ensure_default_appointment_types(self) -> None:
        try:
            if self.db.query(AppointmentType.id).first() is not None:
                return
            for name, duration_minutes, color in DEFAULT_APPOINTMENT_TYPES:
                self.db.add(AppointmentType(
                    name=name,
                    default_duration_minutes=duration_minutes,
                    color=color,
                    is_active=True,
                ))
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to seed default appointment types')
            raise StoreFailure() from exc

        logger.info('Seeded %d default appointment types', len(DEFAULT_APPOINTMENT_TYPES))
