import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from clinic_api.booking.ledger import AppointmentLedger
from clinic_api.core import config
from clinic_api.core.errors import BookingError
from clinic_api.core.rate_limit import RateLimiter
from clinic_api.database import SessionLocal
from clinic_api.notifications.confirmation import ConfirmationNotifier
from clinic_api.routes import booking_routes, services_routes
from clinic_api.seed_database import create_tables, seed_defaults

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'DENY',
    'Referrer-Policy': 'strict-origin-when-cross-origin',
    'Permissions-Policy': 'geolocation=(), microphone=(), camera=()',
}


def build_rate_limiters() -> dict[str, RateLimiter]:
    return {
        booking_routes.SLOT_LIMITER: RateLimiter(
            booking_routes.SLOT_LIMITER,
            config.SLOT_RATE_LIMIT,
            config.SLOT_RATE_WINDOW_SECONDS,
            trusted_keys=config.TRUSTED_IPS,
        ),
        booking_routes.BOOKING_LIMITER: RateLimiter(
            booking_routes.BOOKING_LIMITER,
            config.BOOKING_RATE_LIMIT,
            config.BOOKING_RATE_WINDOW_SECONDS,
            trusted_keys=config.TRUSTED_IPS,
        ),
    }


app = FastAPI(title='Clinic Booking API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['GET', 'POST', 'OPTIONS'],
    allow_headers=['Content-Type', 'Authorization', 'X-Requested-With', 'X-CSRF-Token'],
)

app.state.ledger = AppointmentLedger()
app.state.rate_limiters = build_rate_limiters()
app.state.notifier = ConfirmationNotifier()


@app.middleware('http')
async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for header, value in SECURITY_HEADERS.items():
        response.headers.setdefault(header, value)
    return response


@app.exception_handler(BookingError)
async def handle_booking_error(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error('%s on %s %s: %s', type(exc).__name__, request.method, request.url.path, exc.detail)
    else:
        logger.warning('%s on %s %s: %s', type(exc).__name__, request.method, request.url.path, exc.detail)

    content = {'success': False, 'message': exc.public_message}
    if config.is_development():
        content['error'] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            'field': '.'.join(str(part) for part in error.get('loc', ()) if part not in ('body', 'query')),
            'message': error.get('msg', 'Invalid value'),
        }
        for error in exc.errors()
    ]
    logger.warning('Validation failed on %s %s: %s', request.method, request.url.path, errors)
    return JSONResponse(
        status_code=400,
        content={'success': False, 'message': 'Validation failed', 'errors': errors},
    )


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        create_tables()
        if config.SEED_DEFAULTS:
            db = SessionLocal()
            try:
                added_hours, added_services = seed_defaults(db)
            finally:
                db.close()
            if added_hours or added_services:
                logger.info('Seeded %s business-hours rows and %s services.', added_hours, added_services)
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('shutdown')
def stop_notifier() -> None:
    app.state.notifier.shutdown()


@app.get('/')
def root():
    return {'status': 'Clinic Booking API Running'}


app.include_router(services_routes.router, prefix='/services')
app.include_router(booking_routes.router, prefix='/booking')
