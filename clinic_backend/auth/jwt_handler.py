from datetime import datetime, timedelta, timezone

import jwt

from clinic_backend.core import config


def create_access_token(subject: str, expires_minutes: int | None = None, claims: dict | None = None) -> str:
    """Mint a bearer token for tests and local use; production tokens come from the auth service."""
    if expires_minutes is None:
        expires_minutes = config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = dict(claims or {})
    payload.update({"sub": subject, "exp": issued_at + timedelta(minutes=expires_minutes), "iat": issued_at})
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
