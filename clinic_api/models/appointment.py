"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Time
from clinic_api.database import Base

STATUS_CONFIRMED = "confirmed"
STATUS_CANCELLED = "cancelled"


class Appointment(Base):
    """Represents a booked appointment."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    full_name = Column(String(100), nullable=False)
    email = Column(String(254), nullable=False)
    phone = Column(String(20), nullable=False)
    service_id = Column(String(50), ForeignKey("services.service_id"), nullable=False)
    appointment_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    status = Column(String(20), nullable=False, default=STATUS_CONFIRMED)
    additional_notes = Column(String(500))
    created_at = Column(DateTime, default=datetime.now)
