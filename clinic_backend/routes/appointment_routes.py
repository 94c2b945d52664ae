import calendar
from collections import Counter
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.core import config
from clinic_backend.database import ensure_database_ready, get_db
from clinic_backend.models.appointment import Appointment
from clinic_backend.models.user import User
from clinic_backend.routes.http_errors import to_http_exception
from clinic_backend.scheduling.appointment_store import AppointmentStore
from clinic_backend.scheduling.booking import BookingService
from clinic_backend.scheduling.engine import AppointmentStatus, SlotStatus
from clinic_backend.scheduling.errors import AppointmentNotFound, SchedulingError
from clinic_backend.scheduling.schedule_provider import ClinicScheduleProvider

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    patient_id: int
    appointment_type_id: int | None = None
    appointment_date: date
    start_time: time
    notes: str | None = None

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
            raise ValueError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

        return normalized


class UpdateAppointmentStatusRequest(BaseModel):
    status: AppointmentStatus

    @field_validator('status', mode='before')
    @classmethod
    def normalize_status(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value


class SlotResponse(BaseModel):
    start_time: time
    end_time: time
    status: SlotStatus
    is_available: bool


class DayAvailabilityResponse(BaseModel):
    date: date
    is_open: bool
    duration_minutes: int
    opens_at: time | None = None
    closes_at: time | None = None
    reason: str | None = None
    slots: list[SlotResponse]


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    patient_name: str | None = None
    patient_phone: str | None = None
    appointment_type_id: int | None = None
    appointment_date: date
    start_time: time
    end_time: time
    status: str
    notes: str | None = None
    reminder_time: datetime | None = None
    reminder_sent: bool = False


class CalendarDayResponse(BaseModel):
    date: date
    total: int
    scheduled: int
    completed: int
    cancelled: int


def build_booking_service(db: Session, current_user: User) -> BookingService:
    return BookingService(
        schedule=ClinicScheduleProvider(db),
        store=AppointmentStore(db, owner_id=current_user.id),
    )


def appointment_response(appointment: Appointment) -> AppointmentResponse:
    patient = appointment.patient
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        patient_name=patient.name if patient is not None else None,
        patient_phone=patient.phone if patient is not None else None,
        appointment_type_id=appointment.appointment_type_id,
        appointment_date=appointment.appointment_date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=appointment.status,
        notes=appointment.notes,
        reminder_time=appointment.reminder_time,
        reminder_sent=bool(appointment.reminder_sent),
    )


@router.get('/slots', response_model=DayAvailabilityResponse)
def list_day_slots(
    day: date = Query(..., alias='date'),
    appointment_type_id: int | None = Query(default=None),
    selected_start: time | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        availability = build_booking_service(db, current_user).day_availability(
            day,
            appointment_type_id,
            selected_start=selected_start,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return DayAvailabilityResponse(
        date=availability.date,
        is_open=availability.is_open,
        duration_minutes=availability.duration_minutes,
        opens_at=availability.opens_at,
        closes_at=availability.closes_at,
        reason=availability.reason,
        slots=[
            SlotResponse(
                start_time=slot.start,
                end_time=slot.end,
                status=slot.status,
                is_available=slot.status in (SlotStatus.AVAILABLE, SlotStatus.SELECTED),
            )
            for slot in availability.slots
        ],
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = build_booking_service(db, current_user).book(
            patient_id=data.patient_id,
            day=data.appointment_date,
            start_time=data.start_time,
            appointment_type_id=data.appointment_type_id,
            notes=data.notes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return appointment_response(appointment)


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    day: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    store = AppointmentStore(db, owner_id=current_user.id)
    try:
        if day is None:
            appointments = store.list_all()
        else:
            appointments = store.list_for_date(day)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [appointment_response(appointment) for appointment in appointments]


@router.get('/calendar', response_model=list[CalendarDayResponse])
def month_calendar(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    first_day = date(year, month, 1)
    last_day = date(year, month, calendar.monthrange(year, month)[1])

    try:
        appointments = AppointmentStore(db, owner_id=current_user.id).list_between(first_day, last_day)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    counts_by_day: dict[date, Counter] = {}
    for appointment in appointments:
        counts_by_day.setdefault(appointment.appointment_date, Counter())[appointment.status] += 1

    return [
        CalendarDayResponse(
            date=day,
            total=sum(counts.values()),
            scheduled=counts[AppointmentStatus.SCHEDULED.value],
            completed=counts[AppointmentStatus.COMPLETED.value],
            cancelled=counts[AppointmentStatus.CANCELLED.value],
        )
        for day, counts in sorted(counts_by_day.items())
    ]


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = AppointmentStore(db, owner_id=current_user.id).get(appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    if appointment is None:
        raise to_http_exception(AppointmentNotFound())

    return appointment_response(appointment)


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        appointment = AppointmentStore(db, owner_id=current_user.id).update_status(appointment_id, data.status)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return appointment_response(appointment)


@router.delete('/{appointment_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        AppointmentStore(db, owner_id=current_user.id).delete(appointment_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
