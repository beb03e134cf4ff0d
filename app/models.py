import enum

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class UserRole(str, enum.Enum):
    CUSTOMER = "CUSTOMER"
    ADMIN = "ADMIN"


class ReservationStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    line_id = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    picture_url = Column(String(500), nullable=True)
    phone = Column(String(20), nullable=False)  # 09xxxxxxxx
    license = Column(String(16), nullable=True)  # Normalized uppercase plate
    role = Column(String(16), default=UserRole.CUSTOMER.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    reservations = relationship("Reservation", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User id={self.id} line_id={self.line_id!r}>"


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Integer, nullable=True)  # TWD
    duration = Column(Integer, nullable=True)  # Minutes
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self) -> str:
        return f"<Service id={self.id} name={self.name!r}>"


class TimeSlot(Base):
    """Weekly recurring template: a start time on a weekday with a seat count"""

    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    day_of_week = Column(Integer, nullable=False)  # 0 = Sunday ... 6 = Saturday
    start_time = Column(String(5), nullable=False)  # HH:mm
    capacity = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    reservations = relationship("Reservation", back_populates="time_slot")

    __table_args__ = (
        UniqueConstraint("day_of_week", "start_time", name="uq_time_slot_day_start"),
    )

    def __repr__(self) -> str:
        return f"<TimeSlot id={self.id} day={self.day_of_week} start={self.start_time}>"


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False)
    date = Column(Date, nullable=False)
    license = Column(String(16), nullable=False)
    user_memo = Column(Text, nullable=True)
    admin_memo = Column(Text, nullable=True)
    is_pickup = Column(Boolean, default=False, nullable=False)
    status = Column(String(16), default=ReservationStatus.PENDING.value, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="reservations")
    time_slot = relationship("TimeSlot", back_populates="reservations")
    service_links = relationship(
        "ReservationService",
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="ReservationService.position",
    )

    __table_args__ = (
        Index("ix_reservation_slot_date_status", "time_slot_id", "date", "status"),
    )

    @property
    def services(self) -> list[Service]:
        return [link.service for link in self.service_links]

    @property
    def service_ids(self) -> list[int]:
        return [link.service_id for link in self.service_links]

    def __repr__(self) -> str:
        return f"<Reservation id={self.id} slot={self.time_slot_id} date={self.date} status={self.status}>"


class ReservationService(Base):
    """Join row between a reservation and one of its services, kept in selection order"""

    __tablename__ = "reservation_services"

    reservation_id = Column(
        Integer, ForeignKey("reservations.id", ondelete="CASCADE"), primary_key=True
    )
    service_id = Column(Integer, ForeignKey("services.id"), primary_key=True)
    position = Column(Integer, default=0, nullable=False)

    reservation = relationship("Reservation", back_populates="service_links")
    service = relationship("Service")
