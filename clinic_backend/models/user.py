"""User model definitions."""

from sqlalchemy import Column, Integer, String
from clinic_backend.database import Base


class User(Base):
    """Represents a practitioner signed in through the external auth service."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    full_name = Column(String)
    practice_name = Column(String)
