"""
Comprehensive test suite for registration endpoints.

Tests cover:
- POST /trips/{trip_id}/registrations (public, single and multi-seat)
- POST /trips/{trip_id}/registrations/admin
- GET /trips/{trip_id}/registrations
- GET /registrations/{registration_id}
- PUT /registrations/{registration_id}
- PATCH /registrations/{registration_id}/toggle-paid
- DELETE /registrations/{registration_id}
"""
import importlib

import pytest
from fastapi import status

from app.core.exceptions import NotFoundError
from app.models.registration import Registration
from app.services.seat_allocation import SeatAllocationEngine

# app.routes re-exports the APIRouter under this name; the test needs the module.
registration_router = importlib.import_module("app.routes.registration_router")

SIGNATURE = "data:image/png;base64,iVBORw0KGgo="


def submit_payload(passengers, **overrides):
    payload = {
        "passengers": passengers,
        "payment_method": "on-trip",
        "signature_data": SIGNATURE,
        "agreed_to_cancellation_policy": True,
        "agreed_to_waiver": True,
    }
    payload.update(overrides)
    return payload


# ==========================================
# Test Class: Public Registration
# ==========================================

class TestSubmitRegistration:

    def test_single_seat(self, client, test_trip, passenger, notifier):
        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(4)]),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["booking_group_id"] is None
        registration = data["registrations"][0]
        assert registration["seat_number"] == 4
        assert registration["paid"] is False
        assert registration["has_signature"] is True
        assert "signature_data" not in registration
        assert registration["added_by_admin"] is False

        assert len(notifier.calls) == 1
        call = notifier.calls[0]
        assert call["trip"]["title"] == "Beach Trip"
        assert [r["seat_number"] for r in call["registrations"]] == [4]

    def test_multi_seat_booking(self, client, test_db, test_trip, passenger, notifier):
        passengers = [passenger(5, "Ana"), passenger(6, "Ben"), passenger(7, "Cy")]
        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload(passengers, payment_method="card"),
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        registrations = data["registrations"]
        assert [r["seat_number"] for r in registrations] == [5, 6, 7]
        assert [r["first_name"] for r in registrations] == ["Ana", "Ben", "Cy"]
        assert all(r["is_multi_seat"] and r["seat_count"] == 3 for r in registrations)
        assert all(r["booking_group_id"] == data["booking_group_id"] for r in registrations)
        assert all(r["payment_method"] == "card" for r in registrations)
        assert test_db.query(Registration).count() == 3
        assert len(notifier.calls[0]["registrations"]) == 3

    def test_taken_seat_conflicts_and_writes_nothing(self, client, test_db, test_trip, passenger, make_registration, notifier):
        make_registration(test_trip.trip_id, 6)

        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(5, "Ana"), passenger(6, "Ben")]),
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        detail = response.json()["detail"]
        assert detail["error_code"] == "SEAT_CONFLICT"
        assert detail["details"]["seats"] == [6]
        assert test_db.query(Registration).count() == 1
        assert notifier.calls == []

    def test_seat_taken_since_page_load(self, client, test_trip, passenger, make_registration):
        make_registration(test_trip.trip_id, 2)

        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(2)], expected_occupied=[]),
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "just taken" in response.json()["detail"]["message"]

    def test_same_seat_twice_in_one_booking(self, client, test_db, test_trip, passenger):
        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(3, "Ana"), passenger(3, "Ben")]),
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert test_db.query(Registration).count() == 0

    def test_seat_outside_vehicle(self, client, small_trip, passenger):
        response = client.post(
            f"/api/v1/trips/{small_trip.trip_id}/registrations",
            json=submit_payload([passenger(6)]),
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["detail"]["error_code"] == "VALIDATION_ERROR"

    def test_unknown_trip(self, client, passenger):
        response = client.post("/api/v1/trips/999/registrations", json=submit_payload([passenger(1)]))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.parametrize("field", ["agreed_to_cancellation_policy", "agreed_to_waiver"])
    def test_agreements_required(self, client, test_trip, passenger, field):
        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(1)], **{field: False}),
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_signature_required(self, client, test_trip, passenger):
        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(1)], signature_data=""),
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_invalid_email(self, client, test_trip, passenger):
        bad = dict(passenger(1), email="not-an-email")
        response = client.post(f"/api/v1/trips/{test_trip.trip_id}/registrations", json=submit_payload([bad]))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_no_passengers(self, client, test_trip):
        response = client.post(f"/api/v1/trips/{test_trip.trip_id}/registrations", json=submit_payload([]))
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_trip_lookup_after_commit_cannot_fail_booking(self, client, test_db, test_trip, passenger, notifier, monkeypatch):
        original_get_trip = SeatAllocationEngine.get_trip
        lookups = []

        def get_trip_then_vanish(self, trip_id):
            lookups.append(trip_id)
            if len(lookups) > 2:
                raise NotFoundError("trip", trip_id)
            return original_get_trip(self, trip_id)

        monkeypatch.setattr(SeatAllocationEngine, "get_trip", get_trip_then_vanish)

        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(4)]),
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert test_db.query(Registration).count() == 1
        assert notifier.calls[0]["trip"]["title"] == "Beach Trip"

    def test_notification_failure_keeps_booking(self, client, test_db, test_trip, passenger, notifier, monkeypatch, caplog):
        def broken_snapshot(registration):
            raise RuntimeError("snapshot failed")

        monkeypatch.setattr(registration_router, "registration_snapshot", broken_snapshot)

        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(4)]),
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert test_db.query(Registration).count() == 1
        assert notifier.calls == []
        assert "Could not queue notifications" in caplog.text


# ==========================================
# Test Class: Admin Add Participant
# ==========================================

class TestAdminAddParticipant:

    def test_add_participant(self, client, admin_headers, test_trip, notifier):
        payload = {
            "first_name": "Dee",
            "last_name": "Park",
            "email": "dee@example.com",
            "phone": "+1 555 0199",
            "seat_number": 9,
            "paid": True,
        }
        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations/admin", json=payload, headers=admin_headers
        )

        assert response.status_code == status.HTTP_201_CREATED
        registration = response.json()["data"]["registration"]
        assert registration["added_by_admin"] is True
        assert registration["paid"] is True
        assert registration["agreed_to_waiver"] is True
        assert registration["has_signature"] is False
        assert len(notifier.calls) == 1

    def test_add_participant_to_taken_seat(self, client, admin_headers, test_trip, make_registration):
        make_registration(test_trip.trip_id, 9)
        payload = {
            "first_name": "Dee",
            "last_name": "Park",
            "email": "dee@example.com",
            "phone": "+1 555 0199",
            "seat_number": 9,
        }
        response = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations/admin", json=payload, headers=admin_headers
        )
        assert response.status_code == status.HTTP_409_CONFLICT

    def test_add_participant_requires_auth(self, client, test_trip):
        payload = {"first_name": "Dee", "last_name": "Park", "email": "dee@example.com", "phone": "+1 555 0199", "seat_number": 9}
        response = client.post(f"/api/v1/trips/{test_trip.trip_id}/registrations/admin", json=payload)
        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# ==========================================
# Test Class: Read Registrations
# ==========================================

class TestGetRegistrations:

    def test_list_by_trip(self, client, admin_headers, test_trip, make_registration):
        make_registration(test_trip.trip_id, 7, paid=True)
        make_registration(test_trip.trip_id, 2)

        response = client.get(f"/api/v1/trips/{test_trip.trip_id}/registrations", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert [r["seat_number"] for r in data["items"]] == [2, 7]
        assert data["total"] == 2
        assert data["paid"] == 1

    def test_list_requires_auth(self, client, test_trip):
        response = client.get(f"/api/v1/trips/{test_trip.trip_id}/registrations")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_get_registration(self, client, admin_headers, test_trip, make_registration):
        registration = make_registration(test_trip.trip_id, 3, signature_data=SIGNATURE)

        response = client.get(f"/api/v1/registrations/{registration.registration_id}", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]["registration"]
        assert data["seat_number"] == 3
        assert data["has_signature"] is True

    def test_get_registration_not_found(self, client, admin_headers):
        response = client.get("/api/v1/registrations/999", headers=admin_headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"]["error_code"] == "REGISTRATION_NOT_FOUND"


# ==========================================
# Test Class: Update / Toggle Paid
# ==========================================

class TestUpdateRegistration:

    def test_update_contact_details(self, client, admin_headers, test_trip, make_registration):
        registration = make_registration(test_trip.trip_id, 3)

        response = client.put(
            f"/api/v1/registrations/{registration.registration_id}",
            json={"phone": "+1 555 0142", "email": "new@example.com"},
            headers=admin_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]["registration"]
        assert data["phone"] == "+1 555 0142"
        assert data["email"] == "new@example.com"
        assert data["first_name"] == "Dana"
        assert data["seat_number"] == 3

    def test_seat_number_is_ignored(self, client, admin_headers, test_trip, make_registration):
        registration = make_registration(test_trip.trip_id, 3)

        response = client.put(
            f"/api/v1/registrations/{registration.registration_id}",
            json={"seat_number": 4},
            headers=admin_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["registration"]["seat_number"] == 3

    def test_invalid_phone(self, client, admin_headers, test_trip, make_registration):
        registration = make_registration(test_trip.trip_id, 3)
        response = client.put(
            f"/api/v1/registrations/{registration.registration_id}",
            json={"phone": "call me"},
            headers=admin_headers,
        )
        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    def test_toggle_paid(self, client, admin_headers, test_trip, make_registration):
        registration = make_registration(test_trip.trip_id, 3)
        url = f"/api/v1/registrations/{registration.registration_id}/toggle-paid"

        first = client.patch(url, headers=admin_headers)
        second = client.patch(url, headers=admin_headers)

        assert first.status_code == status.HTTP_200_OK
        assert first.json()["data"]["registration"]["paid"] is True
        assert first.json()["message"] == "Registration marked as paid"
        assert second.json()["data"]["registration"]["paid"] is False

    def test_toggle_paid_read_only(self, client, read_only_token, test_trip, make_registration):
        registration = make_registration(test_trip.trip_id, 3)
        response = client.patch(
            f"/api/v1/registrations/{registration.registration_id}/toggle-paid",
            headers={"Authorization": f"Bearer {read_only_token}"},
        )
        assert response.status_code == status.HTTP_403_FORBIDDEN


# ==========================================
# Test Class: Delete Registration
# ==========================================

class TestDeleteRegistration:

    def test_delete_frees_seat(self, client, admin_headers, test_trip, make_registration, passenger):
        registration = make_registration(test_trip.trip_id, 5)
        registration_id = registration.registration_id

        response = client.delete(f"/api/v1/registrations/{registration_id}", headers=admin_headers)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"] == {
            "registration_id": registration_id,
            "trip_id": test_trip.trip_id,
            "seat_number": 5,
        }

        seats = client.get(f"/api/v1/trips/{test_trip.trip_id}/seats").json()["data"]
        assert 5 in seats["available_seats"]

        rebook = client.post(
            f"/api/v1/trips/{test_trip.trip_id}/registrations",
            json=submit_payload([passenger(5, "Eve")]),
        )
        assert rebook.status_code == status.HTTP_201_CREATED

    def test_delete_not_found(self, client, admin_headers):
        response = client.delete("/api/v1/registrations/999", headers=admin_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
