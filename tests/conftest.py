import os

os.environ.setdefault('DATABASE_URL', 'sqlite://')
os.environ.setdefault('SEED_DEFAULTS', 'false')
os.environ.setdefault('APP_ENV', 'test')

import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from clinic_api.database import Base  # noqa: E402
from clinic_api.models.service import Service  # noqa: E402
from clinic_api.seed_database import seed_defaults  # noqa: E402


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f'sqlite:///{tmp_path / "booking.db"}',
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db = factory()
    try:
        seed_defaults(db)
        db.add(
            Service(
                service_id='retired_service',
                category='General Dentistry',
                name='Retired Service',
                description='No longer offered.',
                duration_minutes=30,
                is_active=False,
            )
        )
        db.commit()
    finally:
        db.close()

    try:
        yield factory
    finally:
        engine.dispose()

@pytest.fixture
def booking_db(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
