from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class WebhookResponse(BaseModel):
    """Acknowledgment for handled and intentionally ignored events"""
    status: str = "success"
    event_type: Optional[str] = None
    timestamp: str


class WebhookErrorResponse(BaseModel):
    """Returned with HTTP 500 so the sender retries"""
    status: str = "error"
    message: str
    error: Optional[str] = None


class WebhookUnauthorizedResponse(BaseModel):
    error: str


class StatsResponse(BaseModel):
    stats: Dict[str, Any]


class AnalyticsResponse(BaseModel):
    summary: Dict[str, Any]
    dailyRevenue: List[Dict[str, Any]]
    topTours: List[Dict[str, Any]]
    recentBookings: List[Dict[str, Any]]
