import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from clinic_backend.core import config
from clinic_backend.database import Base, SessionLocal, engine, ensure_appointment_schema, ensure_patient_schema
from clinic_backend.models import appointment, patient, schedule, user  # noqa: F401  registers tables
from clinic_backend.routes import appointment_routes, auth_routes, patient_routes, schedule_routes
from clinic_backend.scheduling.errors import StoreFailure
from clinic_backend.scheduling.schedule_provider import ClinicScheduleProvider

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)

config.validate_runtime_config()

app = FastAPI(title='Dental Clinic Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_patient_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')
        return

    db = SessionLocal()
    try:
        ClinicScheduleProvider(db).ensure_default_appointment_types()
    except StoreFailure:
        logger.error('Default appointment types could not be seeded.')
    finally:
        db.close()


@app.get('/')
def root():
    return {'status': 'Dental Clinic Scheduling API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(schedule_routes.router, prefix='/schedule')
app.include_router(patient_routes.router, prefix='/patients')
app.include_router(appointment_routes.router, prefix='/appointments')
