"""
Webhook Audit Log Model

One append-only row per inbound webhook request, written once the
outcome of processing is known. Rows are never updated.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, Index, JSON
from ..database import Base, utcnow
import enum


class WebhookEventStatus(str, enum.Enum):
    SUCCESS = "success"
    ERROR = "error"
    REJECTED = "rejected"  # Failed signature verification (only when auditing is enabled)


class WebhookAuditEntry(Base):
    __tablename__ = "webhook_events"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_type = Column(String(100), nullable=True)
    fareharbor_id = Column(String(255), nullable=True)

    # Request body as received
    payload = Column(JSON, nullable=True)

    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    request_id = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_webhook_events_fareharbor_id", "fareharbor_id"),
        Index("ix_webhook_events_status", "status", "created_at"),
    )

    def __repr__(self):
        return f"<WebhookAuditEntry {self.event_type} status={self.status}>"
