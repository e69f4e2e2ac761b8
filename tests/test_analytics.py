"""
Tests for the read-only endpoints: /stats, /analytics, /health, /metrics, /
"""

from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from fareharbor_sync.services.analytics_service import AnalyticsService
from fareharbor_sync.services.payload_normalizer import normalize_booking
from fareharbor_sync.services.reconciliation import ReconciliationEngine
from fareharbor_sync.utils.metrics import bookings_upserted_total, webhook_events_total

from conftest import booking_event, post_webhook


def seed(db):
    engine = ReconciliationEngine(db)
    rows = [
        ("BK1", "ann@example.com", "Sunset Sail", 100),
        ("BK2", "ann@example.com", "Sunset Sail", 50),
        ("BK3", "bob@example.com", "Kayak Tour", 30),
    ]
    for fareharbor_id, email, tour, amount in rows:
        payload = {"display_id": fareharbor_id, "customer_email": email, "tour_name": tour, "amount": amount}
        engine.apply(normalize_booking("booking.created", payload).record)
    engine.cancel_booking("BK3")


class TestAnalyticsService:
    def test_stats(self, db):
        seed(db)
        stats = AnalyticsService(db).get_stats()

        assert stats == {
            "total_bookings": 3,
            "confirmed_bookings": 2,
            "cancelled_bookings": 1,
            "total_revenue": 180.0,
            "unique_customers": 2,
        }

    def test_stats_empty_store(self, db):
        stats = AnalyticsService(db).get_stats()
        assert stats["total_bookings"] == 0
        assert stats["total_revenue"] == 0.0

    def test_top_tours_ordered_by_count(self, db):
        seed(db)
        tours = AnalyticsService(db).get_top_tours()

        assert [t["tour_name"] for t in tours] == ["Sunset Sail", "Kayak Tour"]
        assert tours[0]["booking_count"] == 2
        assert tours[0]["tour_revenue"] == 150.0

    def test_daily_revenue_groups_today(self, db):
        seed(db)
        daily = AnalyticsService(db).get_daily_revenue()

        assert len(daily) == 1
        assert daily[0]["bookings_count"] == 3
        assert daily[0]["daily_revenue"] == 180.0

    def test_summary_average(self, db):
        seed(db)
        assert AnalyticsService(db).get_summary()["average_booking_value"] == 60.0


class TestAnalyticsEndpoints:
    def test_stats_endpoint(self, client, db):
        seed(db)
        response = client.get("/stats")

        assert response.status_code == 200
        assert response.json()["stats"]["total_bookings"] == 3

    def test_analytics_endpoint(self, client, db):
        seed(db)
        response = client.get("/analytics")

        assert response.status_code == 200
        data = response.json()
        assert set(data) == {"summary", "dailyRevenue", "topTours", "recentBookings"}
        assert len(data["recentBookings"]) == 3
        assert {b["fareharbor_id"] for b in data["recentBookings"]} == {"BK1", "BK2", "BK3"}

    def test_stats_store_failure(self, client):
        error = OperationalError("SELECT", {}, Exception("db down"))
        with patch.object(AnalyticsService, "get_stats", side_effect=error):
            response = client.get("/stats")

        assert response.status_code == 500
        assert "error" in response.json()

    def test_analytics_store_failure(self, client):
        error = OperationalError("SELECT", {}, Exception("db down"))
        with patch.object(AnalyticsService, "get_analytics", side_effect=error):
            response = client.get("/analytics")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to fetch analytics data"}


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"]["status"] == "up"
        assert data["database"]["type"] == "sqlite"

    def test_unhealthy(self, client):
        down = {"status": "down", "error": "connection refused"}
        with patch("fareharbor_sync.routers.health.get_db_health", return_value=down):
            response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


class TestMetricsAndRoot:
    def setup_method(self):
        webhook_events_total.reset()
        bookings_upserted_total.reset()

    def test_metrics_after_webhook(self, client):
        post_webhook(client, booking_event())
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        body = response.text
        assert 'webhook_events_total{event_type="booking.created",status="success"} 1.0' in body
        assert 'bookings_upserted_total{action="created"} 1.0' in body
        assert "webhook_processing_seconds_bucket" in body

    def test_signature_failures_counted(self, signed_client):
        post_webhook(signed_client, booking_event(), signature="sha256=bad")
        assert "webhook_signature_failures_total" in signed_client.get("/metrics").text

    def test_root(self, client):
        data = client.get("/").json()
        assert data["service"] == "fareharbor-webhook-server"
        assert data["status"] == "running"
