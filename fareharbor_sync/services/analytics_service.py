"""
Booking Analytics Service

Read-only aggregates over the bookings table for the /stats and
/analytics endpoints.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import case, distinct, func
from sqlalchemy.orm import Session

from ..database import utcnow
from ..models.booking import Booking, BookingStatus

DAILY_REVENUE_DAYS = 30
TOP_TOURS_LIMIT = 10
RECENT_BOOKINGS_LIMIT = 20


def _money(value: Any) -> float:
    if value is None:
        return 0.0
    return float(Decimal(str(value)))


class AnalyticsService:
    def __init__(self, db: Session):
        self.db = db

    def _status_count(self, status: BookingStatus):
        return func.coalesce(func.sum(case((Booking.status == status.value, 1), else_=0)), 0)

    def get_stats(self) -> Dict[str, Any]:
        row = self.db.query(
            func.count(Booking.id).label("total_bookings"),
            self._status_count(BookingStatus.CONFIRMED).label("confirmed_bookings"),
            self._status_count(BookingStatus.CANCELLED).label("cancelled_bookings"),
            func.coalesce(func.sum(Booking.amount), 0).label("total_revenue"),
            func.count(distinct(Booking.customer_email)).label("unique_customers"),
        ).one()

        return {
            "total_bookings": int(row.total_bookings or 0),
            "confirmed_bookings": int(row.confirmed_bookings or 0),
            "cancelled_bookings": int(row.cancelled_bookings or 0),
            "total_revenue": _money(row.total_revenue),
            "unique_customers": int(row.unique_customers or 0),
        }

    def get_summary(self) -> Dict[str, Any]:
        summary = self.get_stats()
        average = self.db.query(func.avg(Booking.amount)).scalar()
        summary["average_booking_value"] = round(_money(average), 2)
        return summary

    def get_daily_revenue(self, days: int = DAILY_REVENUE_DAYS) -> List[Dict[str, Any]]:
        since = utcnow() - timedelta(days=days)
        booking_date = func.date(Booking.created_at)
        rows = self.db.query(
            booking_date.label("booking_date"),
            func.count(Booking.id).label("bookings_count"),
            func.coalesce(func.sum(Booking.amount), 0).label("daily_revenue"),
        ).filter(
            Booking.created_at >= since
        ).group_by(
            booking_date
        ).order_by(
            booking_date.desc()
        ).all()

        return [
            {
                "booking_date": str(row.booking_date),
                "bookings_count": int(row.bookings_count),
                "daily_revenue": _money(row.daily_revenue),
            }
            for row in rows
        ]

    def get_top_tours(self, limit: int = TOP_TOURS_LIMIT) -> List[Dict[str, Any]]:
        booking_count = func.count(Booking.id)
        rows = self.db.query(
            Booking.tour_name,
            booking_count.label("booking_count"),
            func.coalesce(func.sum(Booking.amount), 0).label("tour_revenue"),
        ).filter(
            Booking.tour_name.isnot(None)
        ).group_by(
            Booking.tour_name
        ).order_by(
            booking_count.desc()
        ).limit(limit).all()

        return [
            {
                "tour_name": row.tour_name,
                "booking_count": int(row.booking_count),
                "tour_revenue": _money(row.tour_revenue),
            }
            for row in rows
        ]

    def get_recent_bookings(self, limit: int = RECENT_BOOKINGS_LIMIT) -> List[Dict[str, Any]]:
        bookings = self.db.query(Booking).order_by(Booking.created_at.desc()).limit(limit).all()
        return [
            {
                "fareharbor_id": b.fareharbor_id,
                "customer_name": b.customer_name,
                "customer_email": b.customer_email,
                "tour_name": b.tour_name,
                "amount": _money(b.amount),
                "status": b.status,
                "created_at": b.created_at.isoformat() if b.created_at else None,
            }
            for b in bookings
        ]

    def get_analytics(self) -> Dict[str, Any]:
        return {
            "summary": self.get_summary(),
            "dailyRevenue": self.get_daily_revenue(),
            "topTours": self.get_top_tours(),
            "recentBookings": self.get_recent_bookings(),
        }
