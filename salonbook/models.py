import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


professional_services = Table(
    "professional_services",
    Base.metadata,
    Column("professional_id", String(36), ForeignKey("professionals.id"), primary_key=True),
    Column("service_id", String(36), ForeignKey("services.id"), primary_key=True),
)


class Salon(Base):
    __tablename__ = "salons"

    id = Column(String(36), primary_key=True, default=generate_id)
    owner_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, nullable=True)
    address = Column(String(500), nullable=True)
    phone = Column(String(20), nullable=True)
    description = Column(Text, nullable=True)
    timezone = Column(String(64), nullable=True)
    # {"0": {"start": "09:00", "end": "18:00"}, ...} with 0 = Sunday
    work_hours = Column(JSON, default=dict, nullable=True)
    settings = Column(JSON, default=dict, nullable=True)
    plan = Column(String(50), default="trial", nullable=True)  # trial, solo, team, cancelled

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    professionals = relationship("Professional", back_populates="salon")
    services = relationship("Service", back_populates="salon")


class Professional(Base):
    __tablename__ = "professionals"

    id = Column(String(36), primary_key=True, default=generate_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)
    role = Column(String(20), default="STAFF")
    is_active = Column(Boolean, default=True, nullable=False)
    google_calendar_id = Column(String(500), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    salon = relationship("Salon", back_populates="professionals")
    services = relationship("Service", secondary=professional_services, lazy="selectin")
    availability_rules = relationship("AvailabilityRule", back_populates="professional")


class Service(Base):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True, default=generate_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    price_type = Column(String(20), default="fixed")  # fixed, range
    price_min = Column(Numeric(10, 2), nullable=True)
    price_max = Column(Numeric(10, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    salon = relationship("Salon", back_populates="services")


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("salon_id", "phone", name="uq_customers_salon_phone"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    phone = Column(String(20), nullable=False)  # digits only
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    preferences = Column(JSON, default=dict, nullable=True)
    ai_preferences = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Lead(Base):
    __tablename__ = "leads"
    __table_args__ = (UniqueConstraint("salon_id", "phone_number", name="uq_leads_salon_phone"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    phone_number = Column(String(20), nullable=False)
    status = Column(String(30), default="new")  # new, cold, recently_scheduled
    notes = Column(Text, nullable=True)
    last_contact_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AvailabilityRule(Base):
    __tablename__ = "availability_rules"

    id = Column(String(36), primary_key=True, default=generate_id)
    professional_id = Column(String(36), ForeignKey("professionals.id"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)
    is_break = Column(Boolean, default=False, nullable=False)

    professional = relationship("Professional", back_populates="availability_rules")


class ScheduleOverride(Base):
    __tablename__ = "schedule_overrides"

    id = Column(String(36), primary_key=True, default=generate_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    professional_id = Column(String(36), ForeignKey("professionals.id"), nullable=True, index=True)
    start_time = Column(DateTime, nullable=False)  # UTC
    end_time = Column(DateTime, nullable=False)
    reason = Column(String(500), nullable=True)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (Index("ix_appointments_professional_starts", "professional_id", "starts_at"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    salon_id = Column(String(36), ForeignKey("salons.id"), nullable=False, index=True)
    customer_id = Column(String(36), ForeignKey("customers.id"), nullable=False, index=True)
    professional_id = Column(String(36), ForeignKey("professionals.id"), nullable=False)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    starts_at = Column(DateTime, nullable=False)  # UTC
    ends_at = Column(DateTime, nullable=False)
    status = Column(String(20), default="pending", nullable=False)  # pending, confirmed, cancelled, completed
    notes = Column(Text, nullable=True)

    # External integration fields, set only after a successful sync
    google_event_id = Column(String(500), nullable=True, index=True)
    trinks_event_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer")
    professional = relationship("Professional")
    service = relationship("Service")
