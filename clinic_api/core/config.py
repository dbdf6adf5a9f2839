import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str] | None = None) -> list[str]:
    if not value:
        return list(default or [])
    return [item.strip() for item in value.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")
SEED_DEFAULTS = _get_bool(os.getenv("SEED_DEFAULTS"), default=True)

CORS_ORIGINS = _get_list(
    os.getenv("CORS_ORIGINS"),
    default=["http://localhost:3000", "http://127.0.0.1:3000"],
)

# Booking and query windows, in days relative to today.
SLOT_QUERY_PAST_DAYS = int(os.getenv("SLOT_QUERY_PAST_DAYS", "365"))
SLOT_QUERY_FUTURE_DAYS = int(os.getenv("SLOT_QUERY_FUTURE_DAYS", "730"))
BOOKING_WINDOW_DAYS = int(os.getenv("BOOKING_WINDOW_DAYS", "365"))

SLOT_RATE_LIMIT = int(os.getenv("SLOT_RATE_LIMIT", "30"))
SLOT_RATE_WINDOW_SECONDS = int(os.getenv("SLOT_RATE_WINDOW_SECONDS", "60"))
BOOKING_RATE_LIMIT = int(os.getenv("BOOKING_RATE_LIMIT", "5"))
BOOKING_RATE_WINDOW_SECONDS = int(os.getenv("BOOKING_RATE_WINDOW_SECONDS", str(15 * 60)))
TRUSTED_IPS = _get_list(os.getenv("TRUSTED_IPS"))
# Reverse proxies whose X-Forwarded-For / X-Real-IP headers are believed.
TRUSTED_PROXIES = _get_list(os.getenv("TRUSTED_PROXIES"))

EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASS = os.getenv("EMAIL_PASS", "")
EMAIL_SECURE = _get_bool(os.getenv("EMAIL_SECURE"), default=False)
EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Dental Clinic")
EMAIL_TIMEOUT_SECONDS = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "15"))

CSRF_SECRET_KEY = os.getenv("CSRF_SECRET_KEY", "change-me")
CSRF_ALGORITHM = os.getenv("CSRF_ALGORITHM", "HS256")
CSRF_TOKEN_MINUTES = int(os.getenv("CSRF_TOKEN_MINUTES", "30"))
CSRF_ENFORCE = _get_bool(os.getenv("CSRF_ENFORCE"), default=False)


def is_development() -> bool:
    return APP_ENV.lower() == "development"


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and CSRF_SECRET_KEY == "change-me":
        raise RuntimeError("CSRF_SECRET_KEY must be set in production.")
