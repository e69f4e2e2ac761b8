"""
Webhook Audit Recorder

Appends one WebhookAuditEntry per inbound request. Losing an audit row
is preferable to failing the acknowledgment, so errors are logged and
swallowed here.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from ..models.webhook_event import WebhookAuditEntry, WebhookEventStatus

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Sole writer of webhook_events."""

    def __init__(self, db: Session, request_id: Optional[str] = None):
        self.db = db
        self.request_id = request_id

    def record(
        self,
        event_type: Optional[str],
        fareharbor_id: Optional[str],
        payload: Any,
        status: WebhookEventStatus,
        error_message: Optional[str] = None
    ) -> bool:
        """
        Append one audit entry.

        Returns:
            True if the entry was committed, False if the write failed
        """
        try:
            entry = WebhookAuditEntry(
                event_type=event_type,
                fareharbor_id=fareharbor_id,
                payload=payload,
                status=WebhookEventStatus(status).value,
                error_message=error_message[:2000] if error_message else None,
                request_id=self.request_id,
            )
            self.db.add(entry)
            self.db.commit()
            return True
        except Exception as e:
            logger.error(f"[{self.request_id}] Failed to write audit entry for {event_type}: {e}")
            try:
                self.db.rollback()
            except Exception as rollback_error:
                logger.error(f"[{self.request_id}] Rollback after audit failure failed: {rollback_error}")
            return False
