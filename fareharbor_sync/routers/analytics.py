"""
Analytics Router

Read-only aggregate reports over stored bookings:
- GET /stats
- GET /analytics
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.webhook import AnalyticsResponse, StatsResponse
from ..services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Analytics"])


@router.get("/stats", response_model=StatsResponse)
def get_stats(db: Session = Depends(get_db)):
    try:
        return {"stats": AnalyticsService(db).get_stats()}
    except SQLAlchemyError as e:
        logger.error(f"Stats query failed: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)[:200]})


@router.get("/analytics", response_model=AnalyticsResponse)
def get_analytics(db: Session = Depends(get_db)):
    try:
        return AnalyticsService(db).get_analytics()
    except SQLAlchemyError as e:
        logger.error(f"Analytics error: {e}")
        return JSONResponse(status_code=500, content={"error": "Failed to fetch analytics data"})
