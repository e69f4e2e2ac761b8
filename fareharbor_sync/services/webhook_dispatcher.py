"""
Webhook Event Dispatcher

Routes a FareHarbor event by its declared type:
- booking.created / booking.updated -> normalize + full reconciliation
- booking.cancelled -> status-only cancellation
- item/availability lifecycle events -> accepted, no writes
- anything else -> logged as unhandled, still acknowledged
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..config import Settings
from ..models.booking import DEFAULT_BOOKING_SOURCE
from .payload_normalizer import normalize_booking, resolve_booking_id
from .reconciliation import ReconciliationEngine

logger = logging.getLogger(__name__)

BOOKING_UPSERT_EVENTS = ("booking.created", "booking.updated")
BOOKING_CANCEL_EVENTS = ("booking.cancelled",)

# Delivered by FareHarbor but intentionally not stored
INERT_EVENTS = (
    "item.created",
    "item.updated",
    "item.deleted",
    "availability.created",
    "availability.updated",
)


def booking_id_for(event_type: Optional[str], payload: Dict[str, Any]) -> Optional[str]:
    """Booking identifier for booking events; other events carry none"""
    if event_type in BOOKING_UPSERT_EVENTS or event_type in BOOKING_CANCEL_EVENTS:
        return resolve_booking_id(payload)
    return None


@dataclass
class DispatchResult:
    """Outcome of dispatching one event"""
    success: bool
    action: str  # created, updated, cancelled, not_found, skipped, ignored, unhandled, error
    fareharbor_id: Optional[str] = None
    error: Optional[str] = None


class WebhookDispatcher:
    """Selects and runs the reconciliation path for an event type."""

    def __init__(self, db: Session, settings: Optional[Settings] = None, request_id: Optional[str] = None):
        self.db = db
        self.engine = ReconciliationEngine(db)
        self.default_source = settings.default_booking_source if settings else DEFAULT_BOOKING_SOURCE
        self.request_id = request_id or "no-request-id"

    def dispatch(self, event_type: Optional[str], payload: Dict[str, Any]) -> DispatchResult:
        if event_type in BOOKING_UPSERT_EVENTS:
            return self._handle_booking_upsert(event_type, payload)
        if event_type in BOOKING_CANCEL_EVENTS:
            return self._handle_booking_cancelled(payload)
        if event_type in INERT_EVENTS:
            logger.info(f"[{self.request_id}] Received {event_type}, no action required")
            return DispatchResult(success=True, action="ignored", fareharbor_id=None)

        logger.warning(f"[{self.request_id}] Unhandled event type: {event_type}")
        return DispatchResult(success=True, action="unhandled", fareharbor_id=None)

    def _handle_booking_upsert(self, event_type: str, payload: Dict[str, Any]) -> DispatchResult:
        normalized = normalize_booking(event_type, payload, default_source=self.default_source)
        if not normalized.ok:
            logger.warning(f"[{self.request_id}] Skipping {event_type}: {normalized.error}")
            return DispatchResult(success=True, action="skipped", error=normalized.error)

        result = self.engine.apply(normalized.record)
        return DispatchResult(
            success=result.success,
            action=result.action,
            fareharbor_id=result.fareharbor_id,
            error=result.error
        )

    def _handle_booking_cancelled(self, payload: Dict[str, Any]) -> DispatchResult:
        fareharbor_id = resolve_booking_id(payload)
        if not fareharbor_id:
            logger.warning(f"[{self.request_id}] Cancellation without a booking identifier, skipping")
            return DispatchResult(success=True, action="skipped", error="missing_identifier")

        result = self.engine.cancel_booking(fareharbor_id)
        return DispatchResult(
            success=result.success,
            action=result.action,
            fareharbor_id=fareharbor_id,
            error=result.error
        )
