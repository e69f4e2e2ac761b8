# Models package
from .customer import Customer
from .booking import Booking, BookingStatus, DEFAULT_BOOKING_SOURCE
from .webhook_event import WebhookAuditEntry, WebhookEventStatus

__all__ = [
    "Customer",
    "Booking", "BookingStatus", "DEFAULT_BOOKING_SOURCE",
    "WebhookAuditEntry", "WebhookEventStatus",
]
