import re

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth.dependencies import get_current_user
from clinic_backend.database import ensure_database_ready, get_db
from clinic_backend.models.patient import Patient
from clinic_backend.models.user import User

router = APIRouter(tags=['patients'])

PHONE_PATTERN = re.compile(r'^[+]?[(]?[0-9]{1,4}[)]?[-\s.]?[(]?[0-9]{1,4}[)]?[-\s.]?[0-9]{1,9}$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
MAX_PATIENT_NAME_LENGTH = 200


class CreatePatientRequest(BaseModel):
    name: str
    age: int | None = None
    phone: str | None = None
    email: str | None = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Patient name is required.')
        if len(normalized) > MAX_PATIENT_NAME_LENGTH:
            raise ValueError(f'Name must be {MAX_PATIENT_NAME_LENGTH} characters or fewer.')
        return normalized

    @field_validator('age')
    @classmethod
    def validate_age(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 150:
            raise ValueError('Age must be between 0 and 150.')
        return value

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        normalized = value.strip()
        if len(normalized) > 20 or not PHONE_PATTERN.match(normalized):
            raise ValueError('Invalid phone number format.')
        return normalized

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        normalized = value.strip().lower()
        if len(normalized) > 255 or not EMAIL_PATTERN.match(normalized):
            raise ValueError('Invalid email address.')
        return normalized


class PatientResponse(BaseModel):
    id: int
    name: str
    age: int | None = None
    phone: str | None = None
    email: str | None = None

    class Config:
        from_attributes = True


@router.post('', response_model=PatientResponse, status_code=status.HTTP_201_CREATED)
def create_patient(
    data: CreatePatientRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        patient = Patient(
            owner_id=current_user.id,
            name=data.name,
            age=data.age,
            phone=data.phone,
            email=data.email,
        )
        db.add(patient)
        db.commit()
        db.refresh(patient)

        return patient
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


@router.get('', response_model=list[PatientResponse])
def list_patients(
    search: str | None = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        query = db.query(Patient).filter(Patient.owner_id == current_user.id)
        if search and search.strip():
            query = query.filter(Patient.name.ilike(f'%{search.strip()}%'))

        return query.order_by(Patient.name.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc


@router.get('/{patient_id}', response_model=PatientResponse)
def get_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    ensure_database_ready()

    try:
        patient = db.query(Patient).filter(
            Patient.id == patient_id,
            Patient.owner_id == current_user.id,
        ).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc

    if not patient:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail='Patient not found.',
        )

    return patient
