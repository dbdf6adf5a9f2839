from datetime import datetime, timedelta, timezone
from uuid import uuid4

import jwt

from clinic_api.core import config

CSRF_PURPOSE = "booking-csrf"


def create_csrf_token(expires_minutes: int | None = None) -> str:
    expire_minutes = expires_minutes or config.CSRF_TOKEN_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {
        "purpose": CSRF_PURPOSE,
        "jti": uuid4().hex,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expire_minutes),
    }
    return jwt.encode(payload, config.CSRF_SECRET_KEY, algorithm=config.CSRF_ALGORITHM)


def decode_csrf_token(token: str) -> dict:
    payload = jwt.decode(token, config.CSRF_SECRET_KEY, algorithms=[config.CSRF_ALGORITHM])
    if payload.get("purpose") != CSRF_PURPOSE:
        raise jwt.InvalidTokenError("Token was not issued for booking forms.")
    return payload
