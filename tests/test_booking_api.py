"""HTTP flows of the public booking link and the owner dashboard"""
import sqlite3
import threading
import time
import uuid
from decimal import Decimal

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session, sessionmaker

from app.api.dependencies import get_booking_manager, get_notifier
from app.config.database import build_engine, get_db
from app.config.settings import Settings
from app.main import create_app
from app.models.base import Base
from app.models.booking import Booking
from app.services.booking.booking_service import BookingTransactionManager
from tests.factories import (
    MONDAY,
    WEDNESDAY,
    add_exception,
    make_booking,
    make_link,
    make_modifier,
    make_service,
    make_shop,
)

OWNER_HEADERS = {"X-API-Key": "test-owner-key"}


@pytest.fixture
def client(db, notifier):
    app = create_app()

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def shop_setup(db):
    shop = make_shop(db)
    cut = make_service(db, shop, minutes=45, price="25.00")
    link = make_link(db, shop)
    return shop, cut, link


def _verified_token(client, notifier, token, email="ana@example.com"):
    response = client.post(f"/api/v1/public/booking/{token}/verification", json={"email": email})
    assert response.status_code == 202
    _, code = notifier.codes[-1]

    response = client.post(
        f"/api/v1/public/booking/{token}/verification/confirm",
        json={"email": email, "code": code},
    )
    assert response.status_code == 200
    return response.json()["verification_token"]


def _booking_body(cut, start="10:00", **overrides):
    body = {
        "customer_name": "Ana Lopez",
        "customer_email": "ana@example.com",
        "booking_date": MONDAY.isoformat(),
        "start_time": start,
        "service_ids": [str(cut.id)],
        "consent": True,
    }
    body.update(overrides)
    return body


class TestPublicBookingPage:

    def test_page_shows_shop_and_services(self, client, shop_setup):
        shop, cut, link = shop_setup

        response = client.get(f"/api/v1/public/booking/{link.token}")

        assert response.status_code == 200
        data = response.json()
        assert data["shop"]["name"] == "Studio Uno"
        assert [s["id"] for s in data["services"]] == [str(cut.id)]

    def test_unknown_token_is_not_found(self, client):
        response = client.get("/api/v1/public/booking/nope")

        assert response.status_code == 404
        assert response.json()["error"] == "invalid_or_expired_link"

    def test_inactive_link_is_not_found(self, client, db):
        link = make_link(db, make_shop(db), is_active=False)

        assert client.get(f"/api/v1/public/booking/{link.token}").status_code == 404

    def test_responses_carry_correlation_id(self, client, shop_setup):
        _, _, link = shop_setup

        response = client.get(f"/api/v1/public/booking/{link.token}", headers={"X-Correlation-ID": "abc-123"})

        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestPublicAvailability:

    def test_slots_for_selected_service(self, client, shop_setup):
        _, cut, link = shop_setup

        response = client.get(
            f"/api/v1/public/booking/{link.token}/availability",
            params={"date": MONDAY.isoformat(), "services": str(cut.id)},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["duration_minutes"] == 45
        assert data["slots"][0] == {"time": "09:00", "available": True}
        assert data["slots"][-1] == {"time": "17:30", "available": False}

    def test_booked_time_shows_unavailable(self, client, db, shop_setup):
        shop, cut, link = shop_setup
        make_booking(db, shop, MONDAY, "10:00", 45)

        data = client.get(
            f"/api/v1/public/booking/{link.token}/availability",
            params={"date": MONDAY.isoformat(), "services": str(cut.id)},
        ).json()
        slots = {s["time"]: s["available"] for s in data["slots"]}

        assert slots["09:30"] is False
        assert slots["11:00"] is True

    def test_closed_date_returns_empty_list(self, client, db, shop_setup):
        shop, cut, link = shop_setup
        add_exception(db, shop, WEDNESDAY)

        data = client.get(
            f"/api/v1/public/booking/{link.token}/availability",
            params={"date": WEDNESDAY.isoformat(), "services": str(cut.id)},
        ).json()

        assert data["slots"] == []

    def test_additional_minutes_extend_duration(self, client, shop_setup):
        _, cut, link = shop_setup

        data = client.get(
            f"/api/v1/public/booking/{link.token}/availability",
            params={"date": MONDAY.isoformat(), "services": str(cut.id), "additional_minutes": 15},
        ).json()

        assert data["duration_minutes"] == 60

    def test_malformed_service_id_is_a_validation_error(self, client, shop_setup):
        _, _, link = shop_setup

        response = client.get(
            f"/api/v1/public/booking/{link.token}/availability",
            params={"date": MONDAY.isoformat(), "services": "not-a-uuid"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"

    def test_unknown_service_is_not_found(self, client, shop_setup):
        _, _, link = shop_setup

        response = client.get(
            f"/api/v1/public/booking/{link.token}/availability",
            params={"date": MONDAY.isoformat(), "services": str(uuid.uuid4())},
        )

        assert response.status_code == 404

    def test_missing_date_is_a_validation_error(self, client, shop_setup):
        _, _, link = shop_setup

        response = client.get(f"/api/v1/public/booking/{link.token}/availability")

        assert response.status_code == 400


class TestPublicModifierPreview:

    def test_preview_splits_modifiers(self, client, db, shop_setup):
        _, cut, link = shop_setup
        extra = make_modifier(db, cut, name="Beard trim", duration=15, price="8")
        make_modifier(db, cut, name="Welcome", condition_type="first_visit", auto_apply=True)

        data = client.get(f"/api/v1/public/booking/{link.token}/services/{cut.id}/modifiers").json()

        assert data["auto_applied"] == []
        assert {m["name"] for m in data["selectable"]} == {"Beard trim", "Welcome"}
        assert str(extra.id) in {m["id"] for m in data["selectable"]}


class TestPublicBookingCreation:

    def test_verified_booking_is_created(self, client, db, notifier, shop_setup):
        _, cut, link = shop_setup
        token = _verified_token(client, notifier, link.token)

        response = client.post(
            f"/api/v1/public/booking/{link.token}/bookings",
            json=_booking_body(cut, verification_token=token),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["start_time"] == "10:00:00"
        assert Decimal(data["total_price"]) == Decimal("25.00")
        assert notifier.created == [uuid.UUID(data["id"])]
        db.refresh(link)
        assert link.current_uses == 1

    def test_booking_without_verification_is_forbidden(self, client, shop_setup):
        _, cut, link = shop_setup

        response = client.post(f"/api/v1/public/booking/{link.token}/bookings", json=_booking_body(cut))

        assert response.status_code == 403
        assert response.json()["error"] == "verification_failed"

    def test_wrong_code_is_forbidden(self, client, notifier, shop_setup):
        _, _, link = shop_setup
        client.post(f"/api/v1/public/booking/{link.token}/verification", json={"email": "ana@example.com"})
        _, code = notifier.codes[-1]
        wrong = "000000" if code != "000000" else "111111"

        response = client.post(
            f"/api/v1/public/booking/{link.token}/verification/confirm",
            json={"email": "ana@example.com", "code": wrong},
        )

        assert response.status_code == 403

    def test_taken_slot_is_a_conflict(self, client, db, notifier, shop_setup):
        shop, cut, link = shop_setup
        make_booking(db, shop, MONDAY, "10:00", 45)
        token = _verified_token(client, notifier, link.token)

        response = client.post(
            f"/api/v1/public/booking/{link.token}/bookings",
            json=_booking_body(cut, start="09:30", verification_token=token),
        )

        assert response.status_code == 409
        assert response.json()["error"] == "slot_unavailable"
        assert db.query(Booking).count() == 1

    def test_used_up_link_is_not_found(self, client, db, notifier):
        shop = make_shop(db)
        cut = make_service(db, shop)
        link = make_link(db, shop, max_uses=1, current_uses=1)

        response = client.post(f"/api/v1/public/booking/{link.token}/bookings", json=_booking_body(cut))

        assert response.status_code == 404
        assert response.json()["error"] == "invalid_or_expired_link"

    def test_body_validation(self, client, shop_setup):
        _, cut, link = shop_setup

        response = client.post(
            f"/api/v1/public/booking/{link.token}/bookings",
            json=_booking_body(cut, customer_email="not-an-email", service_ids=[]),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestDashboard:

    def test_api_key_is_required(self, client, shop_setup):
        shop, _, _ = shop_setup

        assert client.get(f"/api/v1/dashboard/shops/{shop.id}/bookings").status_code == 401
        assert client.get(
            f"/api/v1/dashboard/shops/{shop.id}/bookings", headers={"X-API-Key": "wrong"}
        ).status_code == 401

    def test_list_bookings(self, client, db, shop_setup):
        shop, _, _ = shop_setup
        make_booking(db, shop, MONDAY, "10:00", 45)

        data = client.get(f"/api/v1/dashboard/shops/{shop.id}/bookings", headers=OWNER_HEADERS).json()

        assert data["total"] == 1
        assert data["bookings"][0]["customer_email"] == "existing@example.com"

    def test_confirm_and_cancel(self, client, db, notifier, shop_setup):
        shop, _, _ = shop_setup
        booking = make_booking(db, shop, MONDAY, "10:00", 45)
        url = f"/api/v1/dashboard/shops/{shop.id}/bookings/{booking.id}/status"

        confirmed = client.patch(url, json={"status": "confirmed"}, headers=OWNER_HEADERS)
        again = client.patch(url, json={"status": "confirmed"}, headers=OWNER_HEADERS)
        cancelled = client.patch(url, json={"status": "cancelled"}, headers=OWNER_HEADERS)
        revived = client.patch(url, json={"status": "pending"}, headers=OWNER_HEADERS)

        assert confirmed.json()["changed"] is True
        assert again.json()["changed"] is False
        assert cancelled.json()["booking"]["status"] == "cancelled"
        assert revived.status_code == 400
        assert revived.json()["error"] == "invalid_status_transition"
        assert len(notifier.status_changes) == 2

    def test_unknown_booking_is_not_found(self, client, shop_setup):
        shop, _, _ = shop_setup

        response = client.get(f"/api/v1/dashboard/shops/{shop.id}/bookings/{uuid.uuid4()}", headers=OWNER_HEADERS)

        assert response.status_code == 404

    def test_stats(self, client, db, shop_setup):
        shop, _, _ = shop_setup
        make_booking(db, shop, MONDAY, "10:00", 45, status="confirmed")
        make_booking(db, shop, MONDAY, "12:00", 45, status="cancelled")

        data = client.get(f"/api/v1/dashboard/shops/{shop.id}/bookings/stats", headers=OWNER_HEADERS).json()

        assert data["total"] == 2
        assert data["by_status"]["cancelled"] == 1
        assert Decimal(data["revenue"]) == Decimal("10.00")

    def test_calendar_applies_exceptions(self, client, db, shop_setup):
        shop, _, _ = shop_setup
        add_exception(db, shop, WEDNESDAY, reason="Holiday")

        data = client.get(
            f"/api/v1/dashboard/shops/{shop.id}/calendar",
            params={"start_date": MONDAY.isoformat(), "end_date": WEDNESDAY.isoformat()},
            headers=OWNER_HEADERS,
        ).json()

        assert [d["is_open"] for d in data["days"]] == [True, True, False]
        assert data["days"][2]["reason"] == "Holiday"

    def test_calendar_range_is_limited(self, client, shop_setup):
        shop, _, _ = shop_setup

        response = client.get(
            f"/api/v1/dashboard/shops/{shop.id}/calendar",
            params={"start_date": "2024-01-01", "end_date": "2024-12-31"},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 400

    def test_issue_and_deactivate_link(self, client, shop_setup):
        shop, _, _ = shop_setup
        base = f"/api/v1/dashboard/shops/{shop.id}/booking-links"

        created = client.post(base, json={"expires_in_days": 7, "max_uses": 5}, headers=OWNER_HEADERS)
        link_id = created.json()["id"]
        deactivated = client.delete(f"{base}/{link_id}", headers=OWNER_HEADERS)
        listed = client.get(base, headers=OWNER_HEADERS).json()

        assert created.status_code == 201
        assert created.json()["max_uses"] == 5
        assert deactivated.json()["is_active"] is False
        assert len(listed) == 2
        assert client.get(f"/api/v1/public/booking/{created.json()['token']}").status_code == 404

    def test_unknown_shop_is_not_found(self, client):
        response = client.get(f"/api/v1/dashboard/shops/{uuid.uuid4()}/bookings", headers=OWNER_HEADERS)

        assert response.status_code == 404


class TestBlockingWork:

    def test_booking_waiting_on_the_day_lock_does_not_stall_other_requests(self, tmp_path, notifier):
        """Session work runs in the threadpool, so the event loop keeps serving"""
        db_path = tmp_path / "locked.db"
        engine = build_engine(f"sqlite:///{db_path}")
        Base.metadata.create_all(engine)
        SessionFactory = sessionmaker(bind=engine, autoflush=False)

        setup = SessionFactory()
        shop = make_shop(setup)
        cut = make_service(setup, shop, minutes=45)
        link = make_link(setup, shop)
        token, body = link.token, _booking_body(cut)
        setup.close()

        app = create_app()

        def override_get_db():
            session = SessionFactory()
            try:
                yield session
            finally:
                session.close()

        def unverified_manager(db: Session = Depends(get_db)):
            return BookingTransactionManager.from_session(
                db, notifier=notifier, settings=Settings(REQUIRE_CONTACT_VERIFICATION=False)
            )

        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_booking_manager] = unverified_manager

        responses = {}

        with TestClient(app) as client:
            holder = sqlite3.connect(str(db_path), isolation_level=None)
            holder.execute("BEGIN IMMEDIATE")

            def book():
                responses["booking"] = client.post(f"/api/v1/public/booking/{token}/bookings", json=body)

            booking_thread = threading.Thread(target=book)
            booking_thread.start()
            time.sleep(0.3)

            started = time.monotonic()
            health = client.get("/health/")
            elapsed = time.monotonic() - started

            holder.execute("ROLLBACK")
            holder.close()
            booking_thread.join(timeout=20)

        engine.dispose()

        assert health.status_code == 200
        assert elapsed < 1.0
        assert responses["booking"].status_code == 201
