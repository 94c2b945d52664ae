"""Patient model definitions."""

from sqlalchemy import Column, Integer, ForeignKey, String
from clinic_backend.database import Base
from clinic_backend.models import user  # noqa: F401  table referenced by foreign key


class Patient(Base):
    """A patient record owned by one practitioner."""
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    age = Column(Integer)
    phone = Column(String)
    email = Column(String)
