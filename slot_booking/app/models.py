# models.py
from sqlalchemy import CheckConstraint, Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

SLOT_AVAILABLE = "available"
SLOT_RESERVED = "reserved"
SLOT_CONFIRMED = "confirmed"
SLOT_STATUSES = (SLOT_AVAILABLE, SLOT_RESERVED, SLOT_CONFIRMED)


class Provider(Base):
    __tablename__ = 'providers'
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    availability_windows = relationship("Availability", back_populates="provider")
    slots = relationship("Slot", back_populates="provider")


class Client(Base):
    __tablename__ = 'clients'
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True)
    phone_number = Column(String, nullable=True)

    reservations = relationship("Reservation", back_populates="client")


class Availability(Base):
    __tablename__ = 'availability_windows'
    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey('providers.id'), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    provider = relationship("Provider", back_populates="availability_windows")

    __table_args__ = (
        CheckConstraint('start_time < end_time', name='ck_availability_windows_range'),
    )


class Slot(Base):
    __tablename__ = 'slots'
    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey('providers.id'), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=SLOT_AVAILABLE)
    # Set whenever status is reserved or confirmed, NULL while available
    reservation_id = Column(
        Integer,
        ForeignKey('reservations.id', use_alter=True, name='fk_slots_reservation_id'),
        nullable=True,
    )

    provider = relationship("Provider", back_populates="slots")

    __table_args__ = (
        Index('idx_slots_provider_status_start', 'provider_id', 'status', 'start_time'),
        CheckConstraint('start_time < end_time', name='ck_slots_range'),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{status}'" for status in SLOT_STATUSES) + ")",
            name='ck_slots_status',
        ),
    )


class Reservation(Base):
    __tablename__ = 'reservations'
    id = Column(Integer, primary_key=True, index=True)
    slot_id = Column(Integer, ForeignKey('slots.id'), nullable=False)
    client_id = Column(Integer, ForeignKey('clients.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)

    client = relationship("Client", back_populates="reservations")

    __table_args__ = (
        Index('idx_reservations_pending_expiry', 'confirmed_at', 'expires_at'),
    )
