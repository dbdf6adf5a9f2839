from datetime import datetime, timedelta, timezone

import jwt
import pytest

from clinic_api.auth.csrf import CSRF_PURPOSE, create_csrf_token, decode_csrf_token
from clinic_api.core import config


def test_csrf_token_round_trips_with_purpose() -> None:
    payload = decode_csrf_token(create_csrf_token())

    assert payload['purpose'] == CSRF_PURPOSE
    assert payload['jti']


def test_csrf_tokens_are_unique() -> None:
    assert create_csrf_token() != create_csrf_token()


def test_decode_csrf_token_rejects_other_purposes() -> None:
    token = jwt.encode(
        {'purpose': 'login', 'exp': datetime.now(timezone.utc) + timedelta(minutes=5)},
        config.CSRF_SECRET_KEY,
        algorithm=config.CSRF_ALGORITHM,
    )

    with pytest.raises(jwt.InvalidTokenError):
        decode_csrf_token(token)


def test_decode_csrf_token_rejects_expired_tokens() -> None:
    token = jwt.encode(
        {'purpose': CSRF_PURPOSE, 'exp': datetime.now(timezone.utc) - timedelta(minutes=1)},
        config.CSRF_SECRET_KEY,
        algorithm=config.CSRF_ALGORITHM,
    )

    with pytest.raises(jwt.ExpiredSignatureError):
        decode_csrf_token(token)


def test_decode_csrf_token_rejects_tokens_signed_with_another_secret(monkeypatch) -> None:
    token = create_csrf_token()
    monkeypatch.setattr(config, 'CSRF_SECRET_KEY', 'rotated-secret')

    with pytest.raises(jwt.InvalidSignatureError):
        decode_csrf_token(token)
