"""Service catalog model definitions."""

from sqlalchemy import Boolean, Column, Integer, String, Text
from clinic_api.database import Base


class Service(Base):
    """Represents a bookable clinic service."""
    __tablename__ = "services"

    service_id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    category = Column(String(100), nullable=False)
    description = Column(Text)
    duration_minutes = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
