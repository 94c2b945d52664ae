import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from clinic_backend.database import Base  # noqa: E402
from clinic_backend.models.appointment import Appointment  # noqa: E402, F401
from clinic_backend.models.patient import Patient  # noqa: E402
from clinic_backend.models.user import User  # noqa: E402


@pytest.fixture
def db():
    engine = create_engine('sqlite:///:memory:')
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def practitioner(db) -> User:
    user = User(email='dr.smile@example.com', full_name='Dr. Smile', practice_name='Smile Dental Clinic')
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_practitioner(db) -> User:
    user = User(email='dr.other@example.com', full_name='Dr. Other')
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def patient(db, practitioner) -> Patient:
    record = Patient(owner_id=practitioner.id, name='Jane Doe', phone='+1 234 567 8900')
    db.add(record)
    db.commit()
    db.refresh(record)
    return record
