from fastapi import HTTPException, status

from clinic_backend.scheduling.errors import (
    AppointmentNotFound,
    ClinicClosed,
    InvalidStatusTransition,
    NoTypeSelected,
    PatientNotFound,
    SchedulingError,
    SlotConflict,
    SlotUnavailable,
    StoreFailure,
)

STATUS_CODES = {
    NoTypeSelected: status.HTTP_400_BAD_REQUEST,
    ClinicClosed: status.HTTP_400_BAD_REQUEST,
    SlotUnavailable: status.HTTP_400_BAD_REQUEST,
    PatientNotFound: status.HTTP_404_NOT_FOUND,
    AppointmentNotFound: status.HTTP_404_NOT_FOUND,
    SlotConflict: status.HTTP_409_CONFLICT,
    InvalidStatusTransition: status.HTTP_409_CONFLICT,
    StoreFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def to_http_exception(exc: SchedulingError) -> HTTPException:
    status_code = STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)

    if isinstance(exc, SlotConflict):
        conflict = exc.conflicting_appointment
        patient = getattr(conflict, 'patient', None)
        return HTTPException(
            status_code=status_code,
            detail={
                'message': exc.message,
                'conflicting_appointment': {
                    'id': conflict.id,
                    'patient_name': patient.name if patient is not None else None,
                    'start_time': conflict.start_time.strftime('%H:%M'),
                    'end_time': conflict.end_time.strftime('%H:%M'),
                },
            },
        )

    return HTTPException(status_code=status_code, detail=exc.message)
