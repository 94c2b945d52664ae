import logging
from datetime import date, datetime, time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager

from clinic_backend.models.appointment import Appointment
from clinic_backend.models.patient import Patient
from clinic_backend.scheduling.engine import AppointmentStatus
from clinic_backend.scheduling.errors import AppointmentNotFound, InvalidStatusTransition, StoreFailure

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.SCHEDULED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}


class AppointmentStore:
    """Appointment records visible to one practitioner.

    Appointments are owned through their patient, so every query joins the
    patient row and filters on ``owner_id``.
    """

    def __init__(self, db: Session, owner_id: int):
        self.db = db
        self.owner_id = owner_id

    def _owned(self):
        return (
            self.db.query(Appointment)
            .join(Patient, Appointment.patient_id == Patient.id)
            .options(contains_eager(Appointment.patient))
            .filter(Patient.owner_id == self.owner_id)
        )

    def get_patient(self, patient_id: int) -> Patient | None:
        try:
            return self.db.query(Patient).filter(
                Patient.id == patient_id,
                Patient.owner_id == self.owner_id,
            ).first()
        except SQLAlchemyError as exc:
            logger.exception('Failed to load patient %s', patient_id)
            raise StoreFailure() from exc

    def list_for_date(self, appointment_date: date) -> list[Appointment]:
        try:
            return self._owned().filter(
                Appointment.appointment_date == appointment_date,
            ).order_by(Appointment.start_time.asc()).all()
        except SQLAlchemyError as exc:
            logger.exception('Failed to list appointments for %s', appointment_date)
            raise StoreFailure() from exc

    def list_all(self) -> list[Appointment]:
        try:
            return self._owned().order_by(
                Appointment.appointment_date.asc(),
                Appointment.start_time.asc(),
            ).all()
        except SQLAlchemyError as exc:
            logger.exception('Failed to list appointments')
            raise StoreFailure() from exc

    def list_between(self, first_day: date, last_day: date) -> list[Appointment]:
        try:
            return self._owned().filter(
                Appointment.appointment_date >= first_day,
                Appointment.appointment_date <= last_day,
            ).order_by(Appointment.appointment_date.asc(), Appointment.start_time.asc()).all()
        except SQLAlchemyError as exc:
            logger.exception('Failed to list appointments between %s and %s', first_day, last_day)
            raise StoreFailure() from exc

    def get(self, appointment_id: int) -> Appointment | None:
        try:
            return self._owned().filter(Appointment.id == appointment_id).first()
        except SQLAlchemyError as exc:
            logger.exception('Failed to load appointment %s', appointment_id)
            raise StoreFailure() from exc

    def create(
        self,
        patient_id: int,
        appointment_date: date,
        start_time: time,
        end_time: time,
        appointment_type_id: int | None = None,
        notes: str | None = None,
        reminder_time: datetime | None = None,
    ) -> Appointment:
        if start_time >= end_time:
            raise ValueError('Appointment must start before it ends.')

        appointment = Appointment(
            patient_id=patient_id,
            appointment_type_id=appointment_type_id,
            appointment_date=appointment_date,
            start_time=start_time,
            end_time=end_time,
            status=AppointmentStatus.SCHEDULED.value,
            notes=notes,
            reminder_time=reminder_time,
            reminder_sent=False,
        )
        try:
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to create appointment for patient %s', patient_id)
            raise StoreFailure() from exc

        return appointment

    def update_status(self, appointment_id: int, new_status: AppointmentStatus) -> Appointment:
        appointment = self.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound()

        current_status = AppointmentStatus(appointment.status)
        if new_status not in ALLOWED_TRANSITIONS[current_status]:
            raise InvalidStatusTransition(
                f'Cannot change a {current_status.value} appointment to {new_status.value}.'
            )

        try:
            appointment.status = new_status.value
            self.db.commit()
            self.db.refresh(appointment)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to update appointment %s', appointment_id)
            raise StoreFailure() from exc

        logger.info('Appointment %s moved from %s to %s', appointment_id, current_status.value, new_status.value)
        return appointment

    def delete(self, appointment_id: int) -> None:
        appointment = self.get(appointment_id)
        if appointment is None:
            raise AppointmentNotFound()

        try:
            self.db.delete(appointment)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Failed to delete appointment %s', appointment_id)
            raise StoreFailure() from exc

        logger.info('Appointment %s deleted', appointment_id)
