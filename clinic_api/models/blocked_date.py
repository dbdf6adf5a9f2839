"""Blocked date model definitions."""

from sqlalchemy import Column, Date, Integer, String
from clinic_api.database import Base


class BlockedDate(Base):
    """A calendar date on which nothing can be booked."""
    __tablename__ = "blocked_dates"

    id = Column(Integer, primary_key=True)
    blocked_date = Column(Date, nullable=False, unique=True, index=True)
    reason = Column(String(255))
