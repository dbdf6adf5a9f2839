"""Weekly business hours model definitions."""

from sqlalchemy import Boolean, Column, String, Time
from clinic_api.database import Base


class BusinessHours(Base):
    """Opening hours for one weekday, keyed by its English name."""
    __tablename__ = "business_hours"

    day_of_week = Column(String(10), primary_key=True)
    is_open = Column(Boolean, nullable=False, default=False)
    open_time = Column(Time)
    close_time = Column(Time)
