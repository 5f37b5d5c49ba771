from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.sql import func

from aqva.models.database import Base


class Rider(Base):
    __tablename__ = "riders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)
    display_name = Column(String(255), nullable=True)
    phone = Column(String(32), nullable=True)
    is_online = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class RiderLocation(Base):
    """Latest known position of a rider. One row per rider, no history."""

    __tablename__ = "rider_locations"

    rider_id = Column(Integer, ForeignKey("riders.id"), primary_key=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    last_updated_at = Column(DateTime(timezone=True), nullable=False)
