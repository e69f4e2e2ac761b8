"""
Tests for the Booking Reconciliation Engine

Tests cover:
- Idempotent booking upsert keyed on the FareHarbor id
- Customer upsert keyed on email, refreshing name and phone
- Bookings without an email are stored without customer linkage
- Cancellation touches only the status and tolerates unknown ids
- Customer write failures degrade, booking write failures are reported
"""

from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from fareharbor_sync.models import Booking, Customer
from fareharbor_sync.services.payload_normalizer import normalize_booking
from fareharbor_sync.services.reconciliation import ReconciliationEngine
from fareharbor_sync.utils.db_helpers import upsert_insert


def make_record(fareharbor_id="BK100", email="a@example.com", **fields):
    payload = {"display_id": fareharbor_id, "amount": 50, "tour_name": "Harbor Cruise"}
    if email is not None:
        payload["customer_email"] = email
        payload["customer_name"] = "Alex Rivera"
    payload.update(fields)
    return normalize_booking("booking.created", payload).record


def failing_db():
    """Mock session whose statements all fail at execution time"""
    db = MagicMock()
    db.get_bind.return_value.dialect.name = "sqlite"
    db.execute.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))
    return db


class TestBookingUpsert:
    """Tests for booking.created / booking.updated writes"""

    def test_first_delivery_creates(self, db):
        result = ReconciliationEngine(db).apply(make_record())

        assert result.success is True
        assert result.action == "created"
        assert result.booking_id is not None

        booking = db.query(Booking).filter_by(fareharbor_id="BK100").one()
        assert booking.amount == Decimal("50")
        assert booking.status == "confirmed"
        assert booking.booking_source == "fareharbor"
        assert booking.tour_name == "Harbor Cruise"

    def test_redelivery_updates_same_row(self, db, session_factory):
        """Delivering the same id twice leaves one row holding the second values"""
        engine = ReconciliationEngine(db)
        first = engine.apply(make_record(amount=50))
        second = engine.apply(make_record(amount=75, passenger_count=4))

        assert first.action == "created"
        assert second.action == "updated"
        assert second.booking_id == first.booking_id

        with session_factory() as fresh:
            rows = fresh.query(Booking).filter_by(fareharbor_id="BK100").all()
            assert len(rows) == 1
            assert rows[0].amount == Decimal("75")
            assert rows[0].passenger_count == 4

    def test_redelivery_keeps_created_at(self, db, session_factory):
        engine = ReconciliationEngine(db)
        engine.apply(make_record())
        with session_factory() as fresh:
            created_at = fresh.query(Booking.created_at).filter_by(fareharbor_id="BK100").scalar()

        engine.apply(make_record(amount=99))

        with session_factory() as fresh:
            booking = fresh.query(Booking).filter_by(fareharbor_id="BK100").one()
            assert booking.created_at == created_at
            assert booking.updated_at >= created_at

    def test_raw_payload_refreshed(self, db, session_factory):
        engine = ReconciliationEngine(db)
        engine.apply(make_record(note="first"))
        engine.apply(make_record(note="second"))

        with session_factory() as fresh:
            booking = fresh.query(Booking).filter_by(fareharbor_id="BK100").one()
            assert booking.raw_data["note"] == "second"
            assert booking.special_requests == "second"

    def test_tour_date_stored(self, db):
        ReconciliationEngine(db).apply(make_record(tour_date="2026-06-01T09:00:00Z"))
        booking = db.query(Booking).filter_by(fareharbor_id="BK100").one()
        assert booking.tour_date == datetime(2026, 6, 1, 9, 0)

    def test_distinct_ids_create_distinct_rows(self, db):
        engine = ReconciliationEngine(db)
        engine.apply(make_record("BK1"))
        engine.apply(make_record("BK2"))
        assert db.query(Booking).count() == 2


class TestCustomerUpsert:
    def test_customer_created_and_linked(self, db):
        result = ReconciliationEngine(db).apply(make_record())

        customer = db.query(Customer).filter_by(email="a@example.com").one()
        assert customer.name == "Alex Rivera"
        assert result.customer_id == customer.id

        booking = db.query(Booking).filter_by(fareharbor_id="BK100").one()
        assert booking.customer_id == customer.id
        assert booking.customer_email == "a@example.com"

    def test_same_email_reuses_customer(self, db, session_factory):
        """Two bookings by the same guest share one customer row with the latest details"""
        engine = ReconciliationEngine(db)
        first = engine.apply(make_record("BK1"))
        second = engine.apply(make_record("BK2", customer_name="Alex R.", customer_phone="555-0199"))

        assert first.customer_id == second.customer_id

        with session_factory() as fresh:
            customers = fresh.query(Customer).all()
            assert len(customers) == 1
            assert customers[0].name == "Alex R."
            assert customers[0].phone == "555-0199"

    def test_no_email_no_customer(self, db):
        result = ReconciliationEngine(db).apply(make_record(email=None, customer_name="Walk In"))

        assert result.success is True
        assert result.customer_id is None
        assert db.query(Customer).count() == 0

        booking = db.query(Booking).filter_by(fareharbor_id="BK100").one()
        assert booking.customer_id is None
        assert booking.customer_name == "Walk In"

    def test_no_contact_returns_none(self, db):
        assert ReconciliationEngine(db).upsert_customer(None) is None

    def test_customer_failure_degrades(self):
        db = failing_db()
        record = make_record()

        assert ReconciliationEngine(db).upsert_customer(record.contact) is None
        db.rollback.assert_called_once()


class TestBookingFailure:
    def test_booking_failure_returns_error(self):
        db = failing_db()
        result = ReconciliationEngine(db).upsert_booking(make_record())

        assert result.success is False
        assert result.action == "error"
        assert result.fareharbor_id == "BK100"
        assert "database is locked" in result.error
        db.rollback.assert_called_once()
        db.commit.assert_not_called()

    def test_apply_survives_customer_failure_then_reports_booking_failure(self):
        db = failing_db()
        result = ReconciliationEngine(db).apply(make_record())

        assert result.success is False
        assert result.customer_id is None
        assert db.rollback.call_count == 2


class TestCancellation:
    def test_cancel_changes_only_status(self, db, session_factory):
        engine = ReconciliationEngine(db)
        engine.apply(make_record(amount=120, tour_date="2026-06-01T09:00:00Z"))

        result = engine.cancel_booking("BK100")

        assert result.success is True
        assert result.action == "cancelled"
        with session_factory() as fresh:
            booking = fresh.query(Booking).filter_by(fareharbor_id="BK100").one()
            assert booking.status == "cancelled"
            assert booking.amount == Decimal("120")
            assert booking.tour_name == "Harbor Cruise"
            assert booking.tour_date == datetime(2026, 6, 1, 9, 0)
            assert booking.customer_email == "a@example.com"

    def test_cancel_unknown_is_noop(self, db):
        result = ReconciliationEngine(db).cancel_booking("NOPE")

        assert result.success is True
        assert result.action == "not_found"
        assert db.query(Booking).count() == 0

    def test_cancel_failure_returns_error(self):
        result = ReconciliationEngine(failing_db()).cancel_booking("BK100")
        assert result.success is False
        assert result.action == "error"


class TestUpsertDialects:
    def test_unsupported_dialect_raises(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "mysql"
        with pytest.raises(NotImplementedError):
            upsert_insert(db, Booking)
