# Services package
from .signature import compute_signature, verify_signature
from .payload_normalizer import (
    PayloadShape, ContactInfo, CanonicalBooking, NormalizeResult,
    normalize_booking, resolve_booking_id, detect_shape
)
from .reconciliation import ReconciliationEngine, ReconcileResult
from .audit_recorder import AuditRecorder
from .webhook_dispatcher import WebhookDispatcher, DispatchResult
from .analytics_service import AnalyticsService

__all__ = [
    "compute_signature", "verify_signature",
    "PayloadShape", "ContactInfo", "CanonicalBooking", "NormalizeResult",
    "normalize_booking", "resolve_booking_id", "detect_shape",
    "ReconciliationEngine", "ReconcileResult",
    "AuditRecorder",
    "WebhookDispatcher", "DispatchResult",
    "AnalyticsService",
]
