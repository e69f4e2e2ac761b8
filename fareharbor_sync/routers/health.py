"""
Health Check Endpoint

GET /health probes store connectivity with SELECT 1.
"""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..database import get_db

router = APIRouter(tags=["Health"])


def get_db_health(db: Session) -> dict:
    """Check database connectivity and latency"""
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": db.get_bind().dialect.name
        }
    except Exception as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    database = get_db_health(db)
    if database["status"] != "up":
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "database": database}
        )
    return {"status": "healthy", "database": database}
