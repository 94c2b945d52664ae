"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Time
from sqlalchemy.orm import relationship
from clinic_backend.database import Base
from clinic_backend.models import patient, schedule  # noqa: F401  tables referenced by foreign keys


class Appointment(Base):
    """Represents a booked appointment for one patient on one day."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False)
    appointment_type_id = Column(Integer, ForeignKey("appointment_types.id"))
    appointment_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String, nullable=False, default="scheduled")
    notes = Column(String)
    reminder_time = Column(DateTime)
    reminder_sent = Column(Boolean, default=False)
    created_at = Column(DateTime, default=datetime.now)

    patient = relationship("Patient")
