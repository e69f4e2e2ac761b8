import uuid
from sqlalchemy import Column, String, Integer, Numeric, Text, ForeignKey, DateTime, Index, JSON
from sqlalchemy.orm import relationship
from ..database import Base, utcnow
import enum


class BookingStatus(str, enum.Enum):
    """Statuses the service writes itself; FareHarbor may send others"""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


DEFAULT_BOOKING_SOURCE = "fareharbor"


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Provider booking identifier, the idempotency key for upserts
    fareharbor_id = Column(String(255), nullable=False, unique=True)

    customer_id = Column(String(36), ForeignKey("customers.id", ondelete="SET NULL"), nullable=True)

    # Denormalized at write time, not joined
    customer_email = Column(String(255), nullable=True)
    customer_name = Column(String(255), nullable=True)

    tour_name = Column(String(500), nullable=True)
    tour_date = Column(DateTime, nullable=True)
    passenger_count = Column(Integer, default=1, nullable=False)
    amount = Column(Numeric(10, 2), default=0, nullable=False)
    status = Column(String(50), default=BookingStatus.CONFIRMED.value, nullable=False)
    booking_source = Column(String(100), default=DEFAULT_BOOKING_SOURCE)
    special_requests = Column(Text, nullable=True)

    # Verbatim payload for forensic replay
    raw_data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="bookings")

    __table_args__ = (
        Index("ix_booking_customer_email", "customer_email"),
        Index("ix_booking_status", "status"),
        Index("ix_booking_created_at", "created_at"),
    )

    def __repr__(self):
        return f"<Booking {self.fareharbor_id} status={self.status}>"
