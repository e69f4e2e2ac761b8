"""
FareHarbor Webhook Router

POST /webhook

Flow: read raw body -> verify signature -> dispatch -> audit -> respond.

The sender only ever sees:
- 200 for handled and intentionally ignored events
- 401 when the signature check fails
- 500 when the booking could not be stored (the sender retries)
"""

import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from ..config import Settings
from ..database import get_db
from ..models.webhook_event import WebhookEventStatus
from ..schemas.webhook import WebhookResponse, WebhookErrorResponse, WebhookUnauthorizedResponse
from ..services.audit_recorder import AuditRecorder
from ..services.signature import verify_signature
from ..services.webhook_dispatcher import DispatchResult, WebhookDispatcher, booking_id_for
from ..utils.dependencies import get_app_settings, get_request_id
from ..utils.logging_config import get_logger
from ..utils.metrics import record_signature_failure, record_webhook_event, webhook_processing_seconds

logger = logging.getLogger(__name__)
structured_logger = get_logger(__name__)

router = APIRouter(tags=["Webhooks"])

UNKNOWN_EVENT_TYPE = "unknown"


def parse_webhook_body(body: bytes) -> Dict[str, Any]:
    """
    Parse the JSON body. Empty or malformed bodies become an empty payload
    (malformed text is kept under "raw_body" for the audit log).
    """
    if not body:
        return {}
    try:
        parsed = json.loads(body)
    except (UnicodeDecodeError, ValueError):
        logger.warning("Webhook body is not valid JSON, treating as empty payload")
        return {"raw_body": body.decode("utf-8", errors="replace")}
    if not isinstance(parsed, dict):
        logger.warning("Webhook body is not a JSON object, treating as empty payload")
        return {"raw_body": parsed}
    return parsed


def split_event(body: Dict[str, Any]) -> Tuple[Optional[str], Dict[str, Any]]:
    """Declared event type and the event payload (the body itself when no payload key)"""
    event_type = body.get("event_type")
    if event_type is not None:
        event_type = str(event_type)

    payload = body.get("payload")
    if isinstance(payload, dict):
        return event_type, payload
    if "raw_body" in body:
        return event_type, {}
    return event_type, {k: v for k, v in body.items() if k != "event_type"}


def is_authentic(settings: Settings, body: bytes, signature: Optional[str]) -> bool:
    if settings.webhook_signature_required and not settings.signature_verification_enabled:
        logger.error("Webhook signature required but FAREHARBOR_WEBHOOK_SECRET is not configured")
        return False
    return verify_signature(body, settings.fareharbor_webhook_secret, signature)


def process_webhook(
    db: Session,
    settings: Settings,
    request_id: str,
    body: Dict[str, Any]
) -> DispatchResult:
    """Dispatch one authenticated event and append its audit entry."""
    event_type, payload = split_event(body)
    audit_event_type = event_type or UNKNOWN_EVENT_TYPE
    started = time.perf_counter()

    with webhook_processing_seconds.time(event_type=audit_event_type):
        try:
            dispatcher = WebhookDispatcher(db, settings, request_id)
            result = dispatcher.dispatch(event_type, payload)
        except Exception as e:
            logger.exception(f"[{request_id}] Unexpected error processing {audit_event_type}: {e}")
            db.rollback()
            result = DispatchResult(
                success=False,
                action="error",
                fareharbor_id=booking_id_for(event_type, payload),
                error=str(e)[:1000]
            )

    AuditRecorder(db, request_id).record(
        event_type=audit_event_type,
        fareharbor_id=result.fareharbor_id,
        payload=body,
        status=WebhookEventStatus.SUCCESS if result.success else WebhookEventStatus.ERROR,
        error_message=None if result.success else result.error
    )

    record_webhook_event(audit_event_type, result.success)
    structured_logger.webhook_processed(
        audit_event_type,
        result.action,
        result.fareharbor_id,
        duration_ms=round((time.perf_counter() - started) * 1000, 2)
    )
    return result


def reject_webhook(db: Session, settings: Settings, request_id: str, body: Dict[str, Any]) -> None:
    record_signature_failure()
    logger.warning(f"[{request_id}] Webhook signature verification failed")
    if not settings.audit_rejected_webhooks:
        return

    event_type, payload = split_event(body)
    AuditRecorder(db, request_id).record(
        event_type=event_type or UNKNOWN_EVENT_TYPE,
        fareharbor_id=booking_id_for(event_type, payload),
        payload=body,
        status=WebhookEventStatus.REJECTED,
        error_message="Invalid webhook signature"
    )


@router.post(
    "/webhook",
    response_model=WebhookResponse,
    responses={401: {"model": WebhookUnauthorizedResponse}, 500: {"model": WebhookErrorResponse}},
)
async def fareharbor_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings)
):
    """
    Receive a FareHarbor booking webhook.

    Event types handled:
    - booking.created / booking.updated: customer + booking upsert
    - booking.cancelled: status set to cancelled
    """
    request_id = get_request_id(request)

    # Signature covers the exact bytes, read them before any parsing
    raw_body = await request.body()
    if len(raw_body) > settings.max_payload_bytes:
        raise HTTPException(status_code=413, detail="Payload too large")

    body = parse_webhook_body(raw_body)
    signature = request.headers.get(settings.webhook_signature_header)

    if not is_authentic(settings, raw_body, signature):
        await run_in_threadpool(reject_webhook, db, settings, request_id, body)
        return JSONResponse(status_code=401, content={"error": "Invalid webhook signature"})

    result = await run_in_threadpool(process_webhook, db, settings, request_id, body)
    event_type, _ = split_event(body)

    if not result.success:
        return JSONResponse(
            status_code=500,
            content=WebhookErrorResponse(
                message="Failed to process webhook",
                error=result.error
            ).model_dump()
        )

    return WebhookResponse(
        event_type=event_type,
        timestamp=datetime.now(timezone.utc).isoformat()
    )
