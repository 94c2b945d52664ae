from datetime import date, time, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from clinic_backend.routes.appointment_routes import (
    CreateAppointmentRequest,
    UpdateAppointmentStatusRequest,
    create_appointment,
    delete_appointment,
    get_appointment,
    list_appointments,
    list_day_slots,
    month_calendar,
    update_appointment_status,
)
from clinic_backend.scheduling.engine import AppointmentStatus, SlotStatus, WorkingHours
from clinic_backend.scheduling.schedule_provider import ClinicScheduleProvider

BOOKING_DAY = date.today() + timedelta(days=7)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('clinic_backend.routes.appointment_routes.ensure_database_ready', lambda: None)


@pytest.fixture
def cleaning(db):
    provider = ClinicScheduleProvider(db)
    for weekday in range(7):
        provider.save_working_hours(weekday, WorkingHours(is_open=True, start=time(9, 0), end=time(12, 0)))
    return provider.create_appointment_type('Cleaning', 45, '#10b981')


def _book(db, practitioner, patient, cleaning, start: time):
    return create_appointment(
        CreateAppointmentRequest(
            patient_id=patient.id,
            appointment_type_id=cleaning.id,
            appointment_date=BOOKING_DAY,
            start_time=start,
        ),
        db=db,
        current_user=practitioner,
    )


def test_create_appointment_request_normalizes_notes() -> None:
    request = CreateAppointmentRequest(
        patient_id=1,
        appointment_type_id=1,
        appointment_date=date(2026, 1, 5),
        start_time=time(9, 0),
        notes='   ',
    )

    assert request.notes is None


def test_create_appointment_request_rejects_long_notes() -> None:
    with pytest.raises(ValidationError):
        CreateAppointmentRequest(
            patient_id=1,
            appointment_type_id=1,
            appointment_date=date(2026, 1, 5),
            start_time=time(9, 0),
            notes='x' * 601,
        )


def test_update_status_request_normalizes_case() -> None:
    assert UpdateAppointmentStatusRequest(status=' Completed ').status is AppointmentStatus.COMPLETED

    with pytest.raises(ValidationError):
        UpdateAppointmentStatusRequest(status='no-show')


def test_list_day_slots_requires_appointment_type(db, practitioner) -> None:
    with pytest.raises(HTTPException) as exception_info:
        list_day_slots(day=BOOKING_DAY, appointment_type_id=None, selected_start=None, db=db, current_user=practitioner)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Select an appointment type before choosing a time.'


def test_list_day_slots_returns_classified_slots(db, practitioner, patient, cleaning) -> None:
    _book(db, practitioner, patient, cleaning, time(10, 0))

    response = list_day_slots(
        day=BOOKING_DAY,
        appointment_type_id=cleaning.id,
        selected_start=time(9, 0),
        db=db,
        current_user=practitioner,
    )

    statuses = {slot.start_time: slot for slot in response.slots}
    assert response.is_open
    assert response.duration_minutes == 45
    assert statuses[time(9, 0)].status is SlotStatus.SELECTED
    assert statuses[time(9, 15)].status is SlotStatus.AVAILABLE
    assert statuses[time(9, 30)].status is SlotStatus.BOOKED
    assert not statuses[time(9, 30)].is_available
    assert statuses[time(10, 45)].status is SlotStatus.AVAILABLE
    assert max(statuses) == time(11, 15)


def test_list_day_slots_reports_closed_day(db, practitioner, cleaning) -> None:
    ClinicScheduleProvider(db).save_working_hours(
        BOOKING_DAY.weekday(),
        WorkingHours(is_open=False, start=time(9, 0), end=time(12, 0)),
    )

    response = list_day_slots(
        day=BOOKING_DAY,
        appointment_type_id=cleaning.id,
        selected_start=None,
        db=db,
        current_user=practitioner,
    )

    assert not response.is_open
    assert response.slots == []
    assert response.reason.startswith('Clinic is closed on ')


def test_create_appointment_returns_patient_details(db, practitioner, patient, cleaning) -> None:
    response = _book(db, practitioner, patient, cleaning, time(9, 15))

    assert response.patient_name == 'Jane Doe'
    assert response.patient_phone == '+1 234 567 8900'
    assert response.start_time == time(9, 15)
    assert response.end_time == time(10, 0)
    assert response.status == 'scheduled'
    assert response.reminder_time is not None


def test_create_appointment_conflict_returns_409_with_details(db, practitioner, patient, cleaning) -> None:
    existing = _book(db, practitioner, patient, cleaning, time(10, 0))

    with pytest.raises(HTTPException) as exception_info:
        _book(db, practitioner, patient, cleaning, time(10, 30))

    assert exception_info.value.status_code == 409
    conflict = exception_info.value.detail['conflicting_appointment']
    assert conflict['id'] == existing.id
    assert conflict['patient_name'] == 'Jane Doe'
    assert conflict['start_time'] == '10:00'
    assert conflict['end_time'] == '10:45'


def test_create_appointment_for_unknown_patient_returns_404(db, practitioner, cleaning) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_appointment(
            CreateAppointmentRequest(
                patient_id=999,
                appointment_type_id=cleaning.id,
                appointment_date=BOOKING_DAY,
                start_time=time(9, 0),
            ),
            db=db,
            current_user=practitioner,
        )

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'Patient not found.'


def test_create_appointment_past_closing_returns_400(db, practitioner, patient, cleaning) -> None:
    with pytest.raises(HTTPException) as exception_info:
        _book(db, practitioner, patient, cleaning, time(11, 30))

    assert exception_info.value.status_code == 400


def test_list_appointments_filters_by_date(db, practitioner, patient, cleaning) -> None:
    _book(db, practitioner, patient, cleaning, time(11, 0))
    _book(db, practitioner, patient, cleaning, time(9, 0))

    same_day = list_appointments(day=BOOKING_DAY, db=db, current_user=practitioner)
    other_day = list_appointments(day=BOOKING_DAY + timedelta(days=1), db=db, current_user=practitioner)
    everything = list_appointments(day=None, db=db, current_user=practitioner)

    assert [appointment.start_time for appointment in same_day] == [time(9, 0), time(11, 0)]
    assert other_day == []
    assert len(everything) == 2


def test_status_update_and_cancellation_reopen_slot(db, practitioner, patient, cleaning) -> None:
    booked = _book(db, practitioner, patient, cleaning, time(10, 0))

    cancelled = update_appointment_status(
        booked.id,
        UpdateAppointmentStatusRequest(status='cancelled'),
        db=db,
        current_user=practitioner,
    )
    rebooked = _book(db, practitioner, patient, cleaning, time(10, 0))

    assert cancelled.status == 'cancelled'
    assert rebooked.status == 'scheduled'


def test_status_update_rejects_leaving_completed(db, practitioner, patient, cleaning) -> None:
    booked = _book(db, practitioner, patient, cleaning, time(10, 0))
    update_appointment_status(
        booked.id,
        UpdateAppointmentStatusRequest(status='completed'),
        db=db,
        current_user=practitioner,
    )

    with pytest.raises(HTTPException) as exception_info:
        update_appointment_status(
            booked.id,
            UpdateAppointmentStatusRequest(status='cancelled'),
            db=db,
            current_user=practitioner,
        )

    assert exception_info.value.status_code == 409


def test_delete_appointment_then_lookup_returns_404(db, practitioner, patient, cleaning) -> None:
    booked = _book(db, practitioner, patient, cleaning, time(10, 0))

    delete_appointment(booked.id, db=db, current_user=practitioner)

    with pytest.raises(HTTPException) as exception_info:
        get_appointment(booked.id, db=db, current_user=practitioner)
    assert exception_info.value.status_code == 404

    with pytest.raises(HTTPException) as exception_info:
        delete_appointment(booked.id, db=db, current_user=practitioner)
    assert exception_info.value.status_code == 404


def test_month_calendar_counts_by_status(db, practitioner, patient, cleaning) -> None:
    first = _book(db, practitioner, patient, cleaning, time(9, 0))
    _book(db, practitioner, patient, cleaning, time(10, 0))
    update_appointment_status(
        first.id,
        UpdateAppointmentStatusRequest(status='completed'),
        db=db,
        current_user=practitioner,
    )

    days = month_calendar(year=BOOKING_DAY.year, month=BOOKING_DAY.month, db=db, current_user=practitioner)

    assert len(days) == 1
    assert days[0].date == BOOKING_DAY
    assert days[0].total == 2
    assert days[0].scheduled == 1
    assert days[0].completed == 1
    assert days[0].cancelled == 0
