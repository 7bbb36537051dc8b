"""
External Integration Models
"""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class SalonIntegration(Base):
    __tablename__ = "salon_integrations"
    __table_args__ = (UniqueConstraint("salon_id", "provider", name="uq_salon_integrations_provider"),)

    id = Column(Integer, primary_key=True, index=True)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    provider = Column(String(20), nullable=False)  # google, trinks
    is_active = Column(Boolean, default=True, nullable=False)

    # OAuth tokens (encrypted)
    access_token = Column(Text, nullable=True)
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime, nullable=True)

    # Provider account info
    account_email = Column(String(255), nullable=True)
    # Provider specific settings, e.g. {"establishment_id": "123"} for Trinks
    settings = Column(JSON, default=dict, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    salon = relationship("Salon")
