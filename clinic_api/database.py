import logging
from contextlib import contextmanager
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from clinic_api.core import config
from clinic_api.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_booking_schema_checked = False


def ensure_booking_schema() -> None:
    global _booking_schema_checked

    if _booking_schema_checked:
        return

    with _schema_lock:
        if _booking_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _booking_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('additional_notes', 'ALTER TABLE appointments ADD COLUMN additional_notes VARCHAR(500)'),
            ('status', "ALTER TABLE appointments ADD COLUMN status VARCHAR(20) DEFAULT 'confirmed'"),
            ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_date_start ON appointments(appointment_date, start_time)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_date_status ON appointments(appointment_date, status)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_services_category_name ON services(category, name)')
            )

        _booking_schema_checked = True


@contextmanager
def storage_guard(action: str, db: Session | None = None):
    """Turn driver failures into StorageUnavailable, rolling back ``db``."""
    try:
        yield
    except SQLAlchemyError as exc:
        if db is not None:
            db.rollback()
        logger.exception('Storage failure while %s.', action)
        raise StorageUnavailable(f'Storage failure while {action}.') from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_database_ready() -> None:
    try:
        ensure_booking_schema()
    except SQLAlchemyError as exc:
        logger.exception('Database initialization check failed.')
        raise StorageUnavailable('Database unavailable. Verify DATABASE_URL and credentials.') from exc
