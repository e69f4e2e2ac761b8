"""
Booking Reconciliation Engine

Applies canonical booking records to the store:
1. Customer upsert by email (failures degrade to no linkage)
2. Booking upsert by FareHarbor id (failures are returned as errors)
3. Cancellation: status-only update, unknown ids are a no-op

Both upserts are single INSERT ... ON CONFLICT DO UPDATE statements so
concurrent deliveries for the same id can never produce two rows.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import utcnow
from ..models.booking import Booking, BookingStatus
from ..models.customer import Customer
from ..utils.db_helpers import upsert_insert
from ..utils.logging_config import get_logger
from ..utils.metrics import record_booking_upsert
from .payload_normalizer import CanonicalBooking, ContactInfo

logger = get_logger(__name__)

# Columns a re-delivery is allowed to overwrite
BOOKING_MUTABLE_COLUMNS = (
    "customer_id",
    "customer_email",
    "customer_name",
    "tour_name",
    "tour_date",
    "passenger_count",
    "amount",
    "status",
    "booking_source",
    "special_requests",
    "raw_data",
    "updated_at",
)


@dataclass
class ReconcileResult:
    """Result of applying one event to the store"""
    success: bool
    action: str  # created, updated, cancelled, not_found, error
    fareharbor_id: Optional[str] = None
    booking_id: Optional[str] = None
    customer_id: Optional[str] = None
    error: Optional[str] = None


class ReconciliationEngine:
    """Sole writer of customers and bookings."""

    def __init__(self, db: Session):
        self.db = db

    def upsert_customer(self, contact: Optional[ContactInfo]) -> Optional[str]:
        """
        Insert the customer or refresh name/phone for an existing email.

        Returns the customer id, or None when there is no email or the
        write failed.
        """
        if not contact or not contact.has_email:
            return None

        now = utcnow()
        try:
            stmt = upsert_insert(self.db, Customer).values(
                id=str(uuid.uuid4()),
                email=contact.email,
                name=contact.name,
                phone=contact.phone,
                created_at=now,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["email"],
                set_={
                    "name": stmt.excluded.name,
                    "phone": stmt.excluded.phone,
                    "updated_at": now,
                },
            ).returning(Customer.id)

            customer_id = self.db.execute(stmt).scalar_one()
            self.db.commit()
            return customer_id
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Customer upsert failed for {contact.email}, continuing without linkage: {e}")
            return None

    def upsert_booking(self, record: CanonicalBooking, customer_id: Optional[str] = None) -> ReconcileResult:
        """Insert the booking or overwrite the mutable fields of the existing row."""
        now = utcnow()
        values = {
            "id": str(uuid.uuid4()),
            "fareharbor_id": record.fareharbor_id,
            "customer_id": customer_id,
            "customer_email": record.customer_email,
            "customer_name": record.customer_name,
            "tour_name": record.tour_name,
            "tour_date": record.tour_date,
            "passenger_count": record.passenger_count,
            "amount": record.amount,
            "status": record.status,
            "booking_source": record.booking_source,
            "special_requests": record.special_requests,
            "raw_data": record.raw_payload,
            "created_at": now,
            "updated_at": now,
        }

        try:
            stmt = upsert_insert(self.db, Booking).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["fareharbor_id"],
                set_={column: stmt.excluded[column] for column in BOOKING_MUTABLE_COLUMNS},
            ).returning(Booking.id, Booking.created_at)

            row = self.db.execute(stmt).one()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Booking upsert failed for {record.fareharbor_id}: {e}")
            return ReconcileResult(
                success=False,
                action="error",
                fareharbor_id=record.fareharbor_id,
                customer_id=customer_id,
                error=str(e)[:1000]
            )

        # A fresh insert keeps the created_at we just sent
        action = "created" if row.created_at == now else "updated"
        record_booking_upsert(action)
        logger.booking_upserted(record.fareharbor_id, action, record.status, record.amount)

        return ReconcileResult(
            success=True,
            action=action,
            fareharbor_id=record.fareharbor_id,
            booking_id=row.id,
            customer_id=customer_id
        )

    def apply(self, record: CanonicalBooking) -> ReconcileResult:
        """Customer upsert followed by booking upsert."""
        customer_id = self.upsert_customer(record.contact)
        return self.upsert_booking(record, customer_id)

    def cancel_booking(self, fareharbor_id: str) -> ReconcileResult:
        """Mark a booking cancelled. Unknown ids are tolerated (cancel before create)."""
        try:
            result = self.db.execute(
                update(Booking)
                .where(Booking.fareharbor_id == fareharbor_id)
                .values(status=BookingStatus.CANCELLED.value, updated_at=utcnow())
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Cancellation failed for {fareharbor_id}: {e}")
            return ReconcileResult(
                success=False,
                action="error",
                fareharbor_id=fareharbor_id,
                error=str(e)[:1000]
            )

        if result.rowcount == 0:
            logger.info(f"Cancellation for unknown booking {fareharbor_id}, nothing to update")
            return ReconcileResult(success=True, action="not_found", fareharbor_id=fareharbor_id)

        record_booking_upsert("cancelled")
        logger.info(f"Cancelled booking {fareharbor_id}")
        return ReconcileResult(success=True, action="cancelled", fareharbor_id=fareharbor_id)
