import logging

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_backend.auth import jwt_handler
from clinic_backend.database import get_db
from clinic_backend.models.user import User

security = HTTPBearer()

logger = logging.getLogger(__name__)


def resolve_user(payload: dict, db: Session) -> User:
    """Find the practitioner for a verified token, creating the row on first sight."""
    email = (payload.get("sub") or "").strip().lower()
    if not email:
        raise HTTPException(status_code=401, detail="Invalid token subject")

    try:
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            user = User(
                email=email,
                full_name=payload.get("full_name"),
                practice_name=payload.get("practice_name"),
            )
            db.add(user)
            db.commit()
            db.refresh(user)
            logger.info("Registered practitioner %s", email)
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=503,
            detail="Database unavailable. Verify DATABASE_URL and database credentials.",
        ) from exc
    return user


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    token = credentials.credentials
    try:
        payload = jwt_handler.decode_access_token(token)
    except jwt.PyJWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid token") from exc

    return resolve_user(payload, db)
