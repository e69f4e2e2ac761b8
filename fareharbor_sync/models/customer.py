import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import relationship
from ..database import Base, utcnow


class Customer(Base):
    """Guests seen in booking contact info, one row per email"""
    __tablename__ = "customers"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Email is stored exactly as received
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    bookings = relationship("Booking", back_populates="customer")

    def __repr__(self):
        return f"<Customer {self.email}>"
