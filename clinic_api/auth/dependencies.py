import logging

import jwt
from fastapi import Depends, Request

from clinic_api.auth import csrf
from clinic_api.core import config
from clinic_api.core.errors import CsrfRejected, RateLimited
from clinic_api.core.rate_limit import RateLimiter

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"


def get_client_ip(request: Request) -> str:
    """Return the address requests are keyed on.

    Forwarding headers are only read when the direct peer is listed in
    ``TRUSTED_PROXIES``.
    """
    peer = request.client.host if request.client else "unknown"
    if peer not in config.TRUSTED_PROXIES:
        return peer

    forwarded_for = request.headers.get("x-forwarded-for", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip", "")
    if real_ip:
        return real_ip.strip()

    return peer


def rate_limited(limiter_name: str):
    def dependency(request: Request, client_ip: str = Depends(get_client_ip)) -> None:
        limiter: RateLimiter | None = request.app.state.rate_limiters.get(limiter_name)
        if limiter is None:
            return
        if not limiter.hit(client_ip):
            raise RateLimited(f"{limiter_name} limit exceeded for {client_ip}.")

    return dependency


def require_csrf_token(request: Request) -> None:
    if not config.CSRF_ENFORCE:
        return

    token = request.headers.get(CSRF_HEADER)
    if not token:
        raise CsrfRejected("Missing CSRF token.")
    try:
        csrf.decode_csrf_token(token)
    except jwt.PyJWTError as exc:
        logger.warning("Rejected booking with invalid CSRF token: %s", exc)
        raise CsrfRejected(f"Invalid CSRF token: {exc}") from exc
