import re
from datetime import time

from fastapi import APIRouter, Depends, HTTPException, Path, status
from pydantic import BaseModel, field_validator, model_validator
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.database import ensure_database_ready, get_db
from clinic_backend.models.user import User
from clinic_backend.routes.http_errors import to_http_exception
from clinic_backend.scheduling.engine import WorkingHours
from clinic_backend.scheduling.errors import SchedulingError
from clinic_backend.scheduling.schedule_provider import WEEKDAY_NAMES, ClinicScheduleProvider

router = APIRouter(tags=['schedule'])

HEX_COLOR_PATTERN = re.compile(r'^#[0-9a-fA-F]{6}$')
MAX_APPOINTMENT_TYPE_DURATION_MINUTES = 8 * 60


class WorkingHoursRequest(BaseModel):
    is_open: bool
    start: time
    end: time

    @model_validator(mode='after')
    def validate_range(self) -> 'WorkingHoursRequest':
        if self.is_open and self.start >= self.end:
            raise ValueError('Opening time must be earlier than closing time.')
        return self


class WorkingHoursResponse(BaseModel):
    weekday: int
    weekday_name: str
    is_open: bool
    start: time
    end: time


class CreateAppointmentTypeRequest(BaseModel):
    name: str
    default_duration_minutes: int
    color: str = '#3b82f6'

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Appointment type name is required.')
        if len(normalized) > 100:
            raise ValueError('Appointment type name must be 100 characters or fewer.')
        return normalized

    @field_validator('default_duration_minutes')
    @classmethod
    def validate_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Duration must be greater than zero.')
        if value > MAX_APPOINTMENT_TYPE_DURATION_MINUTES:
            raise ValueError(f'Duration must be {MAX_APPOINTMENT_TYPE_DURATION_MINUTES} minutes or fewer.')
        return value

    @field_validator('color')
    @classmethod
    def validate_color(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not HEX_COLOR_PATTERN.match(normalized):
            raise ValueError('Color must be a hex value such as #3b82f6.')
        return normalized


class AppointmentTypeResponse(BaseModel):
    id: int
    name: str
    default_duration_minutes: int
    color: str

    class Config:
        from_attributes = True


def working_hours_response(weekday: int, hours: WorkingHours) -> WorkingHoursResponse:
    return WorkingHoursResponse(
        weekday=weekday,
        weekday_name=WEEKDAY_NAMES[weekday],
        is_open=hours.is_open,
        start=hours.start,
        end=hours.end,
    )


@router.get('/working-hours', response_model=list[WorkingHoursResponse])
def list_working_hours(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    del current_user
    ensure_database_ready()

    try:
        schedule = ClinicScheduleProvider(db).get_weekly_schedule()
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [working_hours_response(weekday, hours) for weekday, hours in enumerate(schedule)]


@router.put('/working-hours/{weekday}', response_model=WorkingHoursResponse)
def update_working_hours(
    data: WorkingHoursRequest,
    weekday: int = Path(..., ge=0, le=6),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    del current_user
    ensure_database_ready()

    hours = WorkingHours(is_open=data.is_open, start=data.start, end=data.end)
    try:
        saved = ClinicScheduleProvider(db).save_working_hours(weekday, hours)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return working_hours_response(weekday, saved)


@router.get('/appointment-types', response_model=list[AppointmentTypeResponse])
def list_appointment_types(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    del current_user
    ensure_database_ready()

    provider = ClinicScheduleProvider(db)
    try:
        provider.ensure_default_appointment_types()
        return provider.list_appointment_types()
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/appointment-types', response_model=AppointmentTypeResponse, status_code=status.HTTP_201_CREATED)
def create_appointment_type(
    data: CreateAppointmentTypeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    del current_user
    ensure_database_ready()

    try:
        return ClinicScheduleProvider(db).create_appointment_type(
            name=data.name,
            default_duration_minutes=data.default_duration_minutes,
            color=data.color,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/appointment-types/{appointment_type_id}', status_code=status.HTTP_204_NO_CONTENT)
def archive_appointment_type(
    appointment_type_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    del current_user
    ensure_database_ready()

    try:
        archived = ClinicScheduleProvider(db).archive_appointment_type(appointment_type_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    if not archived:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Appointment type not found.',
        )
