# tests/test_api.py
from datetime import date, timedelta

import pytest

from bloodlink.scheduling import BloodType
from conftest import MONDAY, NOW, TUESDAY


def as_user(user):
    return {"X-User-Id": user.user_id}


def booking(bank, start="10:00", end="11:00", on_date=MONDAY, **extra):
    return {
        "blood_bank_id": bank.user_id,
        "appointment_date": on_date.isoformat(),
        "start_time": start,
        "end_time": end,
        **extra,
    }


async def create_booking(client, donor, bank, **kwargs):
    response = await client.post("/appointments", json=booking(bank, **kwargs), headers=as_user(donor))
    assert response.status_code == 201, response.text
    return response.json()


class TestUsers:
    async def test_create_and_fetch_blood_bank(self, client):
        payload = {
            "role": "blood_bank",
            "name": "City Bank",
            "email": "city@example.org",
            "organization_name": "City Blood Bank",
            "operating_hours": {"monday": {"open": "9:00", "close": "17:00"}},
        }
        response = await client.post("/users", json=payload)
        assert response.status_code == 201
        body = response.json()
        assert body["operating_hours"]["monday"] == {"open": "09:00", "close": "17:00"}
        assert body["operating_hours"]["sunday"] is None
        assert body["is_active"] is True

        fetched = await client.get(f"/users/{body['user_id']}")
        assert fetched.status_code == 200
        assert fetched.json()["email"] == "city@example.org"

    async def test_duplicate_email(self, client):
        payload = {"role": "donor", "name": "Ada Donor", "email": "ada@example.org", "blood_type": "AB-"}
        created = await client.post("/users", json=payload)
        assert created.status_code == 201
        assert created.json()["blood_type"] == "AB-"

        response = await client.post("/users", json=payload)
        assert response.status_code == 409
        assert response.json()["error"] == "USER_ALREADY_EXISTS"

    async def test_invalid_operating_hours(self, client):
        payload = {
            "role": "blood_bank",
            "name": "Bad Hours",
            "email": "bad@example.org",
            "operating_hours": {"monday": {"open": "17:00", "close": "09:00"}},
        }
        response = await client.post("/users", json=payload)
        assert response.status_code == 422

    async def test_unknown_user(self, client):
        response = await client.get("/users/nope")
        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"


class TestBooking:
    async def test_donor_books_for_themselves(self, client, donor, blood_bank):
        body = await create_booking(client, donor, blood_bank, donation_type="platelets")

        assert body["donor_id"] == donor.user_id
        assert body["status"] == "scheduled"
        assert body["donation_type"] == "platelets"
        assert body["duration_minutes"] == 60
        assert body["formatted_duration"] == "1h 0m"
        assert body["is_upcoming"] is True
        assert body["is_overdue"] is False

    async def test_conflict_error_shape(self, client, make_donor, blood_bank):
        first, second = await make_donor(), await make_donor()
        await create_booking(client, first, blood_bank)

        response = await client.post(
            "/appointments", json=booking(blood_bank, "10:30", "11:30"), headers=as_user(second)
        )
        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "SLOT_CONFLICT"
        assert set(body) == {"error", "message", "timestamp"}
        assert "10:30-11:30" in body["message"]

    async def test_bad_time_format(self, client, donor, blood_bank):
        response = await client.post(
            "/appointments", json=booking(blood_bank, "9.30", "10:30"), headers=as_user(donor)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_TIME_FORMAT"

    async def test_ineligible_donor(self, client, make_donor, blood_bank):
        donor = await make_donor(last_donation_date=NOW.date() - timedelta(days=30))
        response = await client.post("/appointments", json=booking(blood_bank), headers=as_user(donor))
        assert response.status_code == 422
        assert response.json()["error"] == "INELIGIBLE_DONOR"

    async def test_blood_bank_books_on_behalf(self, client, donor, blood_bank):
        response = await client.post(
            "/appointments", json=booking(blood_bank), headers=as_user(blood_bank)
        )
        assert response.status_code == 400
        assert response.json()["error"] == "DONOR_REQUIRED"

        response = await client.post(
            "/appointments",
            json=booking(blood_bank, donor_id=donor.user_id),
            headers=as_user(blood_bank),
        )
        assert response.status_code == 201
        assert response.json()["donor_id"] == donor.user_id

    @pytest.mark.parametrize("headers", [{}, {"X-User-Id": "ghost"}])
    async def test_identity_required(self, client, blood_bank, headers):
        response = await client.post("/appointments", json=booking(blood_bank), headers=headers)
        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHENTICATED"


class TestLifecycle:
    async def test_reschedule_status_and_cancel(self, client, donor, blood_bank):
        appointment_id = (await create_booking(client, donor, blood_bank))["appointment_id"]
        headers = as_user(donor)

        response = await client.post(
            f"/appointments/{appointment_id}/reschedule",
            json={
                "appointment_date": TUESDAY.isoformat(),
                "start_time": "09:00",
                "end_time": "10:00",
                "reason": "Work meeting",
            },
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "rescheduled"
        assert body["reschedule_count"] == 1
        assert body["original_date"] == MONDAY.isoformat()
        assert body["rescheduled_by"] == "donor"

        response = await client.patch(
            f"/appointments/{appointment_id}/status",
            json={"status": "confirmed"},
            headers=as_user(blood_bank),
        )
        assert response.json()["status"] == "confirmed"

        response = await client.request(
            "DELETE",
            f"/appointments/{appointment_id}",
            json={"reason": "Feeling unwell"},
            headers=headers,
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "cancelled"
        assert body["cancellation_reason"] == "Feeling unwell"
        assert body["cancelled_by"] == "donor"

        # cancelling again is a no-op
        response = await client.delete(f"/appointments/{appointment_id}", headers=headers)
        assert response.status_code == 200
        assert response.json()["cancellation_reason"] == "Feeling unwell"

    async def test_completed_cannot_change(self, client, donor, blood_bank):
        appointment_id = (await create_booking(client, donor, blood_bank))["appointment_id"]
        admin_headers = as_user(blood_bank)

        await client.patch(
            f"/appointments/{appointment_id}/status",
            json={"status": "completed"},
            headers=admin_headers,
        )
        response = await client.delete(f"/appointments/{appointment_id}", headers=admin_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "INVALID_TRANSITION"

    async def test_unknown_appointment(self, client, donor):
        response = await client.get("/appointments/missing", headers=as_user(donor))
        assert response.status_code == 404

    async def test_unknown_status_value(self, client, donor, blood_bank):
        appointment_id = (await create_booking(client, donor, blood_bank))["appointment_id"]
        response = await client.patch(
            f"/appointments/{appointment_id}/status",
            json={"status": "archived"},
            headers=as_user(donor),
        )
        assert response.status_code == 422


async def test_list_is_scoped_to_caller(client, make_donor, make_blood_bank):
    bank_a, bank_b = await make_blood_bank(), await make_blood_bank()
    alice, bob = await make_donor(), await make_donor()
    await create_booking(client, alice, bank_a, start="11:00", end="12:00")
    await create_booking(client, alice, bank_b)
    await create_booking(client, bob, bank_a, start="09:00", end="10:00")

    mine = (await client.get("/appointments", headers=as_user(alice))).json()
    assert mine["total"] == 2
    assert {item["donor_id"] for item in mine["items"]} == {alice.user_id}

    bank_view = (await client.get("/appointments", headers=as_user(bank_a))).json()
    assert bank_view["total"] == 2
    assert [item["start_time"] for item in bank_view["items"]] == ["09:00", "11:00"]

    paged = (
        await client.get("/appointments", params={"limit": 1, "page": 2}, headers=as_user(bank_a))
    ).json()
    assert paged["pages"] == 2
    assert [item["donor_id"] for item in paged["items"]] == [alice.user_id]

    filtered = await client.get(
        "/appointments", params={"status": "cancelled"}, headers=as_user(alice)
    )
    assert filtered.json()["items"] == []


class TestAvailability:
    async def test_open_slots(self, client, donor, blood_bank):
        await create_booking(client, donor, blood_bank)

        response = await client.get(
            f"/appointments/availability/{blood_bank.user_id}",
            params={"date": MONDAY.isoformat()},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["duration_minutes"] == 60
        assert body["slots"] == [
            {"start_time": "09:00", "end_time": "10:00"},
            {"start_time": "11:00", "end_time": "12:00"},
        ]
        assert body["message"] is None
        assert "app;dur=" in response.headers["Server-Timing"]

    async def test_custom_duration(self, client, blood_bank):
        response = await client.get(
            f"/appointments/availability/{blood_bank.user_id}",
            params={"date": MONDAY.isoformat(), "duration": 90},
        )
        assert [slot["start_time"] for slot in response.json()["slots"]] == ["09:00", "10:30"]

    async def test_closed_day(self, client, blood_bank):
        response = await client.get(
            f"/appointments/availability/{blood_bank.user_id}",
            params={"date": "2030-01-19"},
        )
        body = response.json()
        assert body["slots"] == []
        assert body["message"] == "Blood bank is closed on Saturday"

    async def test_fully_booked(self, client, make_donor, blood_bank):
        for start, end in [("09:00", "10:00"), ("10:00", "11:00"), ("11:00", "12:00")]:
            await create_booking(client, await make_donor(), blood_bank, start=start, end=end)

        response = await client.get(
            f"/appointments/availability/{blood_bank.user_id}",
            params={"date": MONDAY.isoformat()},
        )
        assert response.json()["message"] == "No slots available on this date"

    @pytest.mark.parametrize("duration", [0, -30, 1000])
    async def test_invalid_duration(self, client, blood_bank, duration):
        response = await client.get(
            f"/appointments/availability/{blood_bank.user_id}",
            params={"date": MONDAY.isoformat(), "duration": duration},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "INVALID_DURATION"

    async def test_unknown_bank(self, client):
        response = await client.get(
            "/appointments/availability/missing", params={"date": MONDAY.isoformat()}
        )
        assert response.status_code == 404


async def test_blood_bank_status(client, blood_bank):
    response = await client.get(f"/blood-banks/{blood_bank.user_id}/status")
    assert response.status_code == 200
    body = response.json()
    assert body["is_open"] is False
    assert body["name"] == blood_bank.organization_name
    assert body["today_hours"] == {"open": "09:00", "close": "12:00"}
    assert body["next_opening"] == {
        "on_date": NOW.date().isoformat(),
        "day": "monday",
        "open": "09:00",
        "close": "12:00",
    }


async def test_donor_eligibility(client, make_donor):
    donor = await make_donor(last_donation_date=NOW.date() - timedelta(days=10))
    response = await client.get(f"/donors/{donor.user_id}/eligibility")
    assert response.status_code == 200
    body = response.json()
    assert body["is_eligible"] is False
    assert body["next_eligible_date"] == "2030-03-29"
    assert body["reasons"] == ["Must wait 3 months between donations"]


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "Healthy"
    assert body["database"]["healthy"] is True


async def test_request_id_is_echoed(client):
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"

    generated = await client.get("/health")
    assert generated.headers["X-Request-ID"]


async def test_metrics(client):
    await client.get("/health")
    body = (await client.get("/metrics")).json()
    assert body["logger"]["total_calls"] >= 0
    assert "file" in body["backends"]


async def test_routes_by_id_are_not_scoped_to_the_caller(client, make_donor, blood_bank, app):
    owner, stranger = await make_donor(), await make_donor()
    appointment_id = (await create_booking(client, owner, blood_bank))["appointment_id"]

    response = await client.get(f"/appointments/{appointment_id}", headers=as_user(stranger))
    assert response.status_code == 200
    assert response.json()["donor_id"] == owner.user_id

    operations = app.openapi()["paths"]["/appointments/{appointment_id}"]
    assert "Not scoped to the caller" in operations["get"]["description"]
    assert "Not scoped to the caller" in operations["delete"]["description"]


def donation(donor, **extra):
    return {
        "donor_id": donor.user_id,
        "blood_type": "O+",
        "quantity_ml": 450,
        "donation_date": NOW.date().isoformat(),
        **extra,
    }


class TestDonations:
    async def test_bank_records_at_its_own_bank(self, client, donor, blood_bank):
        appointment_id = (await create_booking(client, donor, blood_bank))["appointment_id"]

        response = await client.post(
            "/donations",
            json=donation(donor, appointment_id=appointment_id, donation_type="plasma"),
            headers=as_user(blood_bank),
        )
        assert response.status_code == 201, response.text
        body = response.json()
        assert body["blood_bank_id"] == blood_bank.user_id
        assert body["status"] == "completed"
        assert body["expiration_date"] == "2031-01-07"
        assert body["is_expired"] is False

        appointment = await client.get(
            f"/appointments/{appointment_id}", headers=as_user(donor)
        )
        assert appointment.json()["status"] == "completed"

        eligibility = (await client.get(f"/donors/{donor.user_id}/eligibility")).json()
        assert eligibility["last_donation_date"] == NOW.date().isoformat()
        assert eligibility["next_eligible_date"] == "2030-04-08"

    async def test_donors_cannot_record(self, client, donor):
        response = await client.post("/donations", json=donation(donor), headers=as_user(donor))
        assert response.status_code == 403
        assert response.json()["error"] == "FORBIDDEN"

    async def test_admin_names_the_bank(self, client, admin, donor, blood_bank):
        response = await client.post("/donations", json=donation(donor), headers=as_user(admin))
        assert response.status_code == 400
        assert response.json()["error"] == "BLOOD_BANK_REQUIRED"

        response = await client.post(
            "/donations",
            json=donation(donor, blood_bank_id=blood_bank.user_id),
            headers=as_user(admin),
        )
        assert response.status_code == 201
        assert response.json()["blood_bank_id"] == blood_bank.user_id

    async def test_second_donation_inside_wait(self, client, donor, blood_bank):
        first = await client.post("/donations", json=donation(donor), headers=as_user(blood_bank))
        assert first.status_code == 201

        again = await client.post("/donations", json=donation(donor), headers=as_user(blood_bank))
        assert again.status_code == 422
        assert again.json()["error"] == "INELIGIBLE_DONOR"

    async def test_quantity_is_validated(self, client, donor, blood_bank):
        response = await client.post(
            "/donations", json=donation(donor, quantity_ml=600), headers=as_user(blood_bank)
        )
        assert response.status_code == 422

    async def test_visibility_and_update(self, client, make_donor, make_blood_bank):
        owner, stranger = await make_donor(), await make_donor()
        bank, other_bank = await make_blood_bank(), await make_blood_bank()
        created = await client.post("/donations", json=donation(owner), headers=as_user(bank))
        donation_id = created.json()["donation_id"]

        mine = (await client.get("/donations", headers=as_user(owner))).json()
        assert [d["donation_id"] for d in mine["items"]] == [donation_id]
        assert (await client.get("/donations", headers=as_user(stranger))).json()["total"] == 0
        assert (await client.get("/donations", headers=as_user(other_bank))).json()["total"] == 0

        response = await client.get(f"/donations/{donation_id}", headers=as_user(stranger))
        assert response.status_code == 403
        response = await client.get(f"/donations/{donation_id}", headers=as_user(owner))
        assert response.status_code == 200

        response = await client.put(
            f"/donations/{donation_id}", json={"status": "screening_failed"}, headers=as_user(owner)
        )
        assert response.status_code == 403
        response = await client.put(
            f"/donations/{donation_id}",
            json={"status": "screening_failed"},
            headers=as_user(other_bank),
        )
        assert response.status_code == 403

        response = await client.put(
            f"/donations/{donation_id}",
            json={"status": "screening_failed", "staff_notes": "Low hemoglobin"},
            headers=as_user(bank),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "screening_failed"
        assert body["staff_notes"] == "Low hemoglobin"
        assert body["quantity_ml"] == 450

    async def test_unknown_donation(self, client, blood_bank):
        response = await client.get("/donations/missing", headers=as_user(blood_bank))
        assert response.status_code == 404


async def test_list_blood_banks(client, make_blood_bank):
    first = await make_blood_bank()
    await make_blood_bank(is_active=False)
    second = await make_blood_bank()

    response = await client.get("/blood-banks", params={"limit": 1})
    assert response.status_code == 200
    body = response.json()
    assert (body["total"], body["pages"]) == (2, 2)
    assert body["items"][0]["user_id"] == first.user_id
    assert body["items"][0]["is_open"] is False

    body = (await client.get("/blood-banks", params={"page": 2, "limit": 1})).json()
    assert [bank["user_id"] for bank in body["items"]] == [second.user_id]


async def test_search_eligible_donors(client, make_donor, blood_bank):
    recent = NOW.date() - timedelta(days=30)
    fresh = await make_donor(blood_type=BloodType.A_POS)
    universal = await make_donor(blood_type=BloodType.O_NEG, last_donation_date=date(2029, 6, 1))
    waited = await make_donor(blood_type=BloodType.A_POS, last_donation_date=date(2029, 9, 1))
    await make_donor(blood_type=BloodType.A_POS, last_donation_date=recent)
    await make_donor(blood_type=BloodType.B_POS)
    await make_donor()
    await make_donor(blood_type=BloodType.A_NEG, eligible_to_donate=False)

    response = await client.get(
        "/donors/search/eligible", params={"blood_type": "A+"}, headers=as_user(blood_bank)
    )
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["compatible_types"] == ["A+", "A-", "O+", "O-"]
    assert [(d["user_id"], d["compatibility_score"]) for d in body["items"]] == [
        (fresh.user_id, 10),
        (waited.user_id, 10),
        (universal.user_id, 9),
    ]


async def test_donors_cannot_search(client, donor):
    response = await client.get(
        "/donors/search/eligible", params={"blood_type": "O-"}, headers=as_user(donor)
    )
    assert response.status_code == 403
