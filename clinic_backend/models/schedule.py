"""Clinic schedule model definitions."""

from sqlalchemy import Boolean, Column, Integer, String, Time
from clinic_backend.database import Base


class WorkingHoursRow(Base):
    """Opening hours for one weekday (0 is Monday)."""
    __tablename__ = "working_hours"

    weekday = Column(Integer, primary_key=True)
    is_open = Column(Boolean, nullable=False, default=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)


class AppointmentType(Base):
    """Catalogue entry fixing the duration of a booking."""
    __tablename__ = "appointment_types"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    default_duration_minutes = Column(Integer, nullable=False)
    color = Column(String, nullable=False, default="#3b82f6")
    is_active = Column(Boolean, nullable=False, default=True)
