"""
FareHarbor Payload Normalizer

FareHarbor has delivered booking payloads in several incompatible shapes
across event types and API versions:

- nested_booking: booking fields live under ``payload["booking"]``
- nested_contact: booking fields at the top level, guest details in a
  ``contact`` (or ``customer``) object
- legacy_flat: everything flat, guest details as ``customer_*`` fields

Each logical field has one ordered list of lookup paths; the first
non-empty value wins. A nested booking object is searched first, then
the top level of the payload. The output is a CanonicalBooking that the
reconciliation engine can write directly.
"""

import enum
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models.booking import BookingStatus, DEFAULT_BOOKING_SOURCE

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]

MISSING_IDENTIFIER = "missing_identifier"


class PayloadShape(str, enum.Enum):
    NESTED_BOOKING = "nested_booking"
    NESTED_CONTACT = "nested_contact"
    LEGACY_FLAT = "legacy_flat"


# ================================
# FIELD RESOLUTION ORDER
# ================================

BOOKING_ID_PATHS: List[Path] = [("display_id",), ("pk",), ("id",)]

CONTACT_PATHS: Dict[str, List[Path]] = {
    "email": [("contact", "email"), ("customer", "email"), ("customer_email",)],
    "name": [("contact", "name"), ("customer", "name"), ("customer_name",)],
    "phone": [("contact", "phone"), ("customer", "phone"), ("customer_phone",)],
}

TOUR_NAME_PATHS: List[Path] = [("availability", "item", "name"), ("item", "name"), ("tour_name",)]
TOUR_DATE_PATHS: List[Path] = [("availability", "start_at"), ("start_at",), ("tour_date",)]

PASSENGER_COUNT_PATHS: List[Path] = [("passenger_count",), ("customer_count",)]
AMOUNT_PATHS: List[Path] = [("amount",), ("total",)]
STATUS_PATHS: List[Path] = [("status",)]
SOURCE_PATHS: List[Path] = [("booking_source",), ("source",)]
SPECIAL_REQUESTS_PATHS: List[Path] = [("special_requests",), ("note",)]


@dataclass
class ContactInfo:
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None

    @property
    def has_email(self) -> bool:
        return bool(self.email)


@dataclass
class CanonicalBooking:
    """Shape-independent booking record, ready for storage"""
    fareharbor_id: str
    contact: Optional[ContactInfo] = None
    tour_name: Optional[str] = None
    tour_date: Optional[datetime] = None
    passenger_count: int = 1
    amount: Decimal = Decimal("0")
    status: str = BookingStatus.CONFIRMED.value
    booking_source: str = DEFAULT_BOOKING_SOURCE
    special_requests: Optional[str] = None
    # Provenance; not part of the record's identity
    shape: PayloadShape = field(default=PayloadShape.LEGACY_FLAT, compare=False)
    raw_payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def customer_email(self) -> Optional[str]:
        return self.contact.email if self.contact else None

    @property
    def customer_name(self) -> Optional[str]:
        return self.contact.name if self.contact else None


@dataclass
class NormalizeResult:
    event_type: str
    record: Optional[CanonicalBooking] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.record is not None


# ================================
# RESOLUTION HELPERS
# ================================

def _walk(data: Any, path: Path) -> Any:
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


def first_present(roots: Sequence[Dict[str, Any]], paths: Sequence[Path]) -> Any:
    """Value at the first path that resolves to a non-empty value, else None"""
    for data in roots:
        for path in paths:
            value = _walk(data, path)
            if _is_present(value):
                return value
    return None


def detect_shape(payload: Dict[str, Any]) -> Tuple[PayloadShape, Dict[str, Any]]:
    """Tag the payload variant and return the dict holding the booking fields"""
    if not isinstance(payload, dict):
        return PayloadShape.LEGACY_FLAT, {}

    booking = payload.get("booking")
    if isinstance(booking, dict):
        return PayloadShape.NESTED_BOOKING, booking

    if isinstance(payload.get("contact"), dict) or isinstance(payload.get("customer"), dict):
        return PayloadShape.NESTED_CONTACT, payload

    return PayloadShape.LEGACY_FLAT, payload


def field_roots(payload: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Dicts searched for booking fields, nested booking first"""
    shape, root = detect_shape(payload)
    if shape == PayloadShape.NESTED_BOOKING:
        return [root, payload]
    return [root]


def resolve_booking_id(payload: Dict[str, Any]) -> Optional[str]:
    """Provider booking identifier from any known shape, or None"""
    value = first_present(field_roots(payload), BOOKING_ID_PATHS)
    if value is None:
        return None
    return str(value).strip()


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value).strip()


def _resolve_contact(roots: List[Dict[str, Any]]) -> Optional[ContactInfo]:
    values = {
        name: _as_text(first_present(roots, paths))
        for name, paths in CONTACT_PATHS.items()
    }
    if not any(values.values()):
        return None
    return ContactInfo(**values)


def _resolve_passenger_count(roots: List[Dict[str, Any]]) -> int:
    value = first_present(roots, PASSENGER_COUNT_PATHS)
    if value is None:
        customers = first_present(roots, [("customers",)])
        if isinstance(customers, list) and customers:
            return len(customers)
        return 1
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        logger.warning(f"Unparseable passenger count {value!r}, using 1")
        return 1


def _resolve_amount(roots: List[Dict[str, Any]]) -> Decimal:
    value = first_present(roots, AMOUNT_PATHS)
    if value is None or isinstance(value, bool):
        return Decimal("0")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        amount = None
    if amount is None or not amount.is_finite():
        logger.warning(f"Unparseable amount {value!r}, using 0")
        return Decimal("0")
    return amount


_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into a naive UTC datetime.

    Accepts a trailing Z, +HH:MM or +HHMM offset. Returns None for
    anything that does not parse.
    """
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        text = _COMPACT_OFFSET.sub(r"\1:\2", text) if "T" in text else text
        try:
            dt = datetime.fromisoformat(text)
        except ValueError:
            logger.warning(f"Unparseable tour date {value!r}")
            return None
    else:
        return None

    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


# ================================
# NORMALIZER
# ================================

def normalize_booking(
    event_type: str,
    payload: Dict[str, Any],
    default_source: str = DEFAULT_BOOKING_SOURCE
) -> NormalizeResult:
    """
    Map a FareHarbor booking payload onto a CanonicalBooking.

    Returns a result with error="missing_identifier" when no identifier
    path resolves; the caller must skip persistence but still audit.
    """
    shape, _ = detect_shape(payload)
    roots = field_roots(payload)

    fareharbor_id = resolve_booking_id(payload)
    if not fareharbor_id:
        logger.warning(f"No booking identifier in {event_type} payload (shape={shape.value})")
        return NormalizeResult(event_type=event_type, error=MISSING_IDENTIFIER)

    record = CanonicalBooking(
        fareharbor_id=fareharbor_id,
        contact=_resolve_contact(roots),
        tour_name=_as_text(first_present(roots, TOUR_NAME_PATHS)),
        tour_date=parse_datetime(first_present(roots, TOUR_DATE_PATHS)),
        passenger_count=_resolve_passenger_count(roots),
        amount=_resolve_amount(roots),
        status=_as_text(first_present(roots, STATUS_PATHS)) or BookingStatus.CONFIRMED.value,
        booking_source=_as_text(first_present(roots, SOURCE_PATHS)) or default_source,
        special_requests=_as_text(first_present(roots, SPECIAL_REQUESTS_PATHS)),
        shape=shape,
        raw_payload=payload,
    )

    return NormalizeResult(event_type=event_type, record=record)
