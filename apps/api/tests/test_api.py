from datetime import date, time
from uuid import uuid4

import pytest
from freezegun import freeze_time

from carehome.core.identity import UserRole

pytestmark = pytest.mark.asyncio


@pytest.fixture
def super_admin(auth_headers):
    return auth_headers(uuid4(), UserRole.SUPER_ADMIN)


@pytest.fixture
def home(seed):
    loc = seed.location()
    return {"location": loc, "caregiver": seed.caregiver(loc)}


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_auth_is_required_and_role_gated(client, auth_headers):
    r = await client.get("/locations")
    assert r.status_code in (401, 403)

    r = await client.get("/locations", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

    caregiver = auth_headers(uuid4(), UserRole.CAREGIVER)
    r = await client.post("/locations", json={"name": "X", "address": "Y"}, headers=caregiver)
    assert r.status_code == 403


async def test_registry_and_occupancy_flow(client, super_admin):
    r = await client.post("/locations", json={"name": "Rosewood House", "address": "1 Garden Lane"}, headers=super_admin)
    assert r.status_code == 201, r.text
    loc_id = r.json()["id"]

    r = await client.post(
        "/caregivers",
        json={"location_id": loc_id, "first_name": "Ada", "last_name": "Okafor", "email": "ada@example.com"},
        headers=super_admin,
    )
    assert r.status_code == 201, r.text
    assert r.json()["full_name"] == "Ada Okafor"

    r = await client.post(
        "/caregivers",
        json={"location_id": loc_id, "first_name": "Ada", "last_name": "Two", "email": "ADA@example.com"},
        headers=super_admin,
    )
    assert r.status_code == 400

    beds = []
    for bed in ("A", "B"):
        r = await client.post(
            "/room-beds", json={"location_id": loc_id, "room_number": "101", "bed_number": bed}, headers=super_admin
        )
        assert r.status_code == 201, r.text
        assert r.json()["is_occupied"] is False
        beds.append(r.json()["id"])
    bed_a, bed_b = beds

    r = await client.post(
        "/room-beds", json={"location_id": loc_id, "room_number": "101", "bed_number": "A"}, headers=super_admin
    )
    assert r.status_code == 400

    r = await client.post(
        "/room-beds", json={"location_id": loc_id, "room_number": "1 01", "bed_number": "A"}, headers=super_admin
    )
    assert r.status_code == 422

    r = await client.post(
        "/care-receivers",
        json={"location_id": loc_id, "first_name": "Edith", "last_name": "Crane", "room_bed_id": bed_a},
        headers=super_admin,
    )
    assert r.status_code == 201, r.text
    cr_id = r.json()["id"]
    assert r.json()["current_room_bed_id"] == bed_a

    r = await client.get(f"/room-beds/location/{loc_id}/available", headers=super_admin)
    assert [b["id"] for b in r.json()] == [bed_b]

    r = await client.post("/room-beds/assign", json={"care_receiver_id": cr_id, "room_bed_id": bed_b}, headers=super_admin)
    assert r.status_code == 200, r.text
    assert r.json()["success"] is True
    assert r.json()["room_bed"]["is_occupied"] is True

    r = await client.get(f"/room-beds/location/{loc_id}/available", headers=super_admin)
    assert [b["id"] for b in r.json()] == [bed_a]

    r = await client.post("/room-beds/assign", json={"care_receiver_id": cr_id, "room_bed_id": bed_b}, headers=super_admin)
    assert r.status_code == 200
    assert "already in room" in r.json()["message"]

    r = await client.get(f"/care-receivers/{cr_id}/room-bed", headers=super_admin)
    assert r.json()["current_room_bed"]["id"] == bed_b

    r = await client.post(f"/room-beds/unassign/{cr_id}", headers=super_admin)
    assert r.status_code == 200
    r = await client.post(f"/room-beds/unassign/{cr_id}", headers=super_admin)
    assert r.status_code == 400

    await client.post("/room-beds/assign", json={"care_receiver_id": cr_id, "room_bed_id": bed_a}, headers=super_admin)
    r = await client.post(f"/care-receivers/{cr_id}/discharge", headers=super_admin)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "DISCHARGED"
    assert r.json()["current_room_bed_id"] is None

    r = await client.get(f"/room-beds/location/{loc_id}/available", headers=super_admin)
    assert len(r.json()) == 2

    r = await client.get("/audit-logs", params={"entity_id": cr_id}, headers=super_admin)
    assert r.status_code == 200
    actions = sorted(log["action"] for log in r.json()["logs"])
    assert actions.count("ASSIGN_ROOM_BED") == 4
    assert "UNASSIGN_ROOM_BED" in actions
    assert "CARE_RECEIVER_CREATE" in actions
    assert "CARE_RECEIVER_DISCHARGE" in actions


async def test_roster_endpoints(client, home, auth_headers, calendar):
    loc, cg = home["location"], home["caregiver"]
    admin = auth_headers(uuid4(), UserRole.ADMIN, loc.id)
    me = auth_headers(cg.id, UserRole.CAREGIVER, loc.id)

    body = {
        "location_id": str(loc.id),
        "caregiver_id": str(cg.id),
        "shift_date": "2030-05-01",
        "shift_type": "MORNING",
        "start_time": "08:00:00",
        "end_time": "12:00:00",
        "status": "PUBLISHED",
        "metadata": {"source": "planner"},
    }
    r = await client.post("/rosters", json=body, headers=admin)
    assert r.status_code == 201, r.text
    roster = r.json()
    assert roster["shift_status"] == "SCHEDULED"
    assert roster["duration_hours"] == 4.0
    assert roster["metadata"] == {"source": "planner"}
    assert roster["external_calendar_event_id"] == "evt-1"

    r = await client.post("/rosters", json={**body, "start_time": "11:00:00", "end_time": "15:00:00"}, headers=admin)
    assert r.status_code == 400
    assert "conflicting shift" in r.json()["detail"]

    r = await client.post("/rosters", json=body, headers=me)
    assert r.status_code == 403

    r = await client.get("/rosters", params={"startDate": "2030-05-01", "endDate": "2030-05-31"}, headers=me)
    assert [x["id"] for x in r.json()] == [roster["id"]]

    r = await client.patch(f"/rosters/{roster['id']}/confirm", headers=me)
    assert r.status_code == 200, r.text
    assert r.json()["shift_status"] == "CONFIRMED"

    r = await client.patch(f"/rosters/{roster['id']}/complete", headers=me)
    assert r.status_code == 400

    r = await client.put(f"/rosters/{roster['id']}", json={"end_time": "13:00:00"}, headers=admin)
    assert r.status_code == 200
    assert r.json()["duration_hours"] == 5.0
    calendar.update_event.assert_called_once()

    r = await client.delete(f"/rosters/{roster['id']}", headers=admin)
    assert r.status_code == 200
    r = await client.get(f"/rosters/{roster['id']}", headers=admin)
    assert r.status_code == 404


async def test_leave_cutoff_boundary_over_http(client, home, auth_headers):
    cg = home["caregiver"]
    me = auth_headers(cg.id, UserRole.CAREGIVER, home["location"].id)
    form = {"date": "2030-05-01", "type": "FULL_DAY", "reason": "sick"}

    with freeze_time("2030-05-01 06:00:00", real_asyncio=True):
        r = await client.post("/leaves", data=form, headers=me)
    assert r.status_code == 400
    assert r.json()["detail"] == "Full day leave requests must be submitted before 6:00 AM on the leave date"

    with freeze_time("2030-05-01 05:59:59", real_asyncio=True):
        r = await client.post(
            "/leaves",
            data=form,
            files=[("attachments", ("note.txt", b"fit note", "text/plain"))],
            headers=me,
        )
    assert r.status_code == 201, r.text
    leave = r.json()
    assert leave["status"] == "PENDING"
    assert leave["attachments"][0]["filename"] == "note.txt"
    assert leave["attachments"][0]["size"] == 8


async def test_leave_rejected_when_rostered(client, home, seed, auth_headers):
    cg = home["caregiver"]
    seed.roster(cg, date(2030, 5, 1), time(8), time(12))
    me = auth_headers(cg.id, UserRole.CAREGIVER, home["location"].id)

    with freeze_time("2030-04-30 12:00:00", real_asyncio=True):
        r = await client.post("/leaves", data={"date": "2030-05-01", "type": "FULL_DAY", "reason": "x"}, headers=me)
    assert r.status_code == 400
    assert "roster assignment" in r.json()["detail"]


async def test_leave_decisions_over_http(client, home, seed, auth_headers):
    loc, cg = home["location"], home["caregiver"]
    me = auth_headers(cg.id, UserRole.CAREGIVER, loc.id)
    colleague = seed.caregiver(loc, first_name="Bea")
    them = auth_headers(colleague.id, UserRole.CAREGIVER, loc.id)
    admin = auth_headers(uuid4(), UserRole.ADMIN, loc.id)

    with freeze_time("2030-04-30 12:00:00", real_asyncio=True):
        r = await client.post("/leaves", data={"date": "2030-05-01", "type": "HALF_DAY_AM", "reason": "x"}, headers=me)
        assert r.status_code == 201, r.text
        leave_id = r.json()["id"]

        r = await client.post("/leaves", data={"date": "2030-05-01", "type": "FULL_DAY", "reason": "y"}, headers=me)
        assert r.status_code == 400

    r = await client.patch(f"/leaves/{leave_id}/cancel", headers=them)
    assert r.status_code == 403

    r = await client.get("/leaves/my", headers=me)
    assert [x["id"] for x in r.json()] == [leave_id]

    r = await client.get("/leaves", params={"status": "PENDING"}, headers=admin)
    assert [x["id"] for x in r.json()] == [leave_id]

    r = await client.patch(f"/leaves/{leave_id}/approve", json={"decision_note": "ok"}, headers=admin)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "APPROVED"
    assert r.json()["decision_note"] == "ok"

    r = await client.patch(f"/leaves/{leave_id}/reject", headers=admin)
    assert r.status_code == 400

    r = await client.patch(f"/leaves/{leave_id}/cancel", headers=me)
    assert r.status_code == 400


async def test_admission_into_taken_bed_creates_nothing(client, seed, db, super_admin):
    loc = seed.location()
    bed = seed.bed(loc)
    resident = seed.care_receiver(loc)
    resident.current_room_bed_id = bed.id
    bed.is_occupied = True
    db.commit()
    far_bed = seed.bed(seed.location(name="Elm Court"), "9", "Z")

    for bed_id in (bed.id, far_bed.id):
        r = await client.post(
            "/care-receivers",
            json={"location_id": str(loc.id), "first_name": "Nell", "last_name": "Hart", "room_bed_id": str(bed_id)},
            headers=super_admin,
        )
        assert r.status_code == 400

    r = await client.get("/care-receivers", params={"location_id": str(loc.id)}, headers=super_admin)
    assert [x["id"] for x in r.json()] == [str(resident.id)]


async def test_caregiver_update_status_and_deletion(client, seed, super_admin):
    loc = seed.location()
    cg = seed.caregiver(loc)
    seed.caregiver(loc, first_name="Bea", email="taken@example.com")

    r = await client.put(f"/caregivers/{cg.id}", json={"phone": "07700 900123", "email": "NEW@example.com"}, headers=super_admin)
    assert r.status_code == 200, r.text
    assert r.json()["email"] == "new@example.com"
    assert r.json()["phone"] == "07700 900123"

    r = await client.put(f"/caregivers/{cg.id}", json={"email": "taken@example.com"}, headers=super_admin)
    assert r.status_code == 400

    r = await client.patch(f"/caregivers/{cg.id}/status", json={"status": "ON_LEAVE"}, headers=super_admin)
    assert r.status_code == 200
    assert r.json()["status"] == "ON_LEAVE"

    r = await client.post(f"/caregivers/{cg.id}/request-deletion", json={"reason": "left the company"}, headers=super_admin)
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "TERMINATED"
    assert r.json()["deletion_requested"] is True

    r = await client.post(f"/caregivers/{cg.id}/request-deletion", headers=super_admin)
    assert r.status_code == 400

    r = await client.put(f"/caregivers/{uuid4()}", json={"phone": "1"}, headers=super_admin)
    assert r.status_code == 404

    r = await client.get(f"/audit-logs/entity/CAREGIVER/{cg.id}", headers=super_admin)
    assert {log["action"] for log in r.json()} == {
        "CAREGIVER_UPDATE",
        "CAREGIVER_STATUS_UPDATE",
        "DATA_DELETION_REQUEST",
    }


async def test_care_receiver_update_consent_and_deletion(client, seed, super_admin):
    loc = seed.location()
    bed_a, bed_b = seed.bed(loc, "101", "A"), seed.bed(loc, "101", "B")

    r = await client.post(
        "/care-receivers",
        json={"location_id": str(loc.id), "first_name": "Edith", "last_name": "Crane", "room_bed_id": str(bed_a.id)},
        headers=super_admin,
    )
    assert r.status_code == 201, r.text
    cr_id = r.json()["id"]

    r = await client.put(
        f"/care-receivers/{cr_id}", json={"first_name": "Edie", "room_bed_id": str(bed_b.id)}, headers=super_admin
    )
    assert r.status_code == 200, r.text
    assert r.json()["first_name"] == "Edie"
    assert r.json()["current_room_bed_id"] == str(bed_b.id)

    r = await client.get(f"/room-beds/location/{loc.id}/available", headers=super_admin)
    assert [b["id"] for b in r.json()] == [str(bed_a.id)]

    r = await client.put(f"/care-receivers/{cr_id}", json={"room_bed_id": None}, headers=super_admin)
    assert r.status_code == 200
    assert r.json()["current_room_bed_id"] is None

    r = await client.put(f"/care-receivers/{cr_id}", json={"room_bed_id": str(bed_b.id)}, headers=super_admin)
    assert r.json()["current_room_bed_id"] == str(bed_b.id)

    consent = {
        "data_processing": True,
        "health_data_sharing": True,
        "emergency_contact_sharing": True,
        "research_participation": False,
        "marketing_communications": False,
        "consent_given_by": "Mary Crane",
        "relationship_to_care_receiver": "daughter",
        "has_legal_authority": True,
    }
    r = await client.put(f"/care-receivers/{cr_id}/gdpr-consent", json=consent, headers=super_admin)
    assert r.status_code == 200, r.text
    (snapshot,) = r.json()["consent_history"].values()
    assert snapshot["consent_given_by"] == "Mary Crane"
    assert snapshot["research_participation"] is False

    r = await client.put(f"/care-receivers/{cr_id}/gdpr-consent", json={"data_processing": True}, headers=super_admin)
    assert r.status_code == 422

    r = await client.post(f"/care-receivers/{cr_id}/request-deletion", headers=super_admin)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["status"] == "DISCHARGED"
    assert body["deletion_requested"] is True
    assert body["current_room_bed_id"] is None
    assert body["consent_history"]["deletion_request"]["status"] == "PENDING"

    r = await client.get(f"/room-beds/location/{loc.id}/available", headers=super_admin)
    assert len(r.json()) == 2

    r = await client.get(f"/audit-logs/entity/CARE_RECEIVER/{cr_id}", headers=super_admin)
    actions = [log["action"] for log in r.json()]
    assert actions.count("CARE_RECEIVER_UPDATE") == 3
    assert actions.count("ASSIGN_ROOM_BED") == 3
    assert "UNASSIGN_ROOM_BED" in actions
    assert "GDPR_CONSENT_UPDATE" in actions
    assert "DATA_DELETION_REQUEST" in actions


async def test_location_update_delete_and_stats(client, seed, auth_headers, super_admin):
    home = seed.location()
    empty = seed.location(name="Elm Court")
    seed.caregiver(home)
    bed = seed.bed(home)
    resident = seed.care_receiver(home)

    r = await client.put(f"/locations/{home.id}", json={"name": "Elm Court"}, headers=super_admin)
    assert r.status_code == 400
    r = await client.put(f"/locations/{home.id}", json={"timezone": "Mars/Olympus"}, headers=super_admin)
    assert r.status_code == 400
    r = await client.put(f"/locations/{home.id}", json={"city": "Leeds"}, headers=super_admin)
    assert r.status_code == 200
    assert r.json()["city"] == "Leeds"

    admin = auth_headers(uuid4(), UserRole.ADMIN, home.id)
    r = await client.put(f"/locations/{home.id}", json={"city": "York"}, headers=admin)
    assert r.status_code == 403

    await client.post(
        "/room-beds/assign", json={"care_receiver_id": str(resident.id), "room_bed_id": str(bed.id)}, headers=admin
    )
    r = await client.get(f"/locations/{home.id}/stats", headers=admin)
    assert r.json() == {
        "caregiver_count": 1,
        "care_receiver_count": 1,
        "room_bed_count": 1,
        "occupied_room_beds": 1,
        "available_room_beds": 0,
    }

    r = await client.delete(f"/locations/{home.id}", headers=super_admin)
    assert r.status_code == 400
    assert "caregivers" in r.json()["detail"]

    r = await client.delete(f"/locations/{empty.id}", headers=super_admin)
    assert r.status_code == 200
    r = await client.get(f"/locations/{empty.id}", headers=super_admin)
    assert r.status_code == 404


async def test_audit_stats(client, seed, super_admin):
    loc = seed.location()
    for email in ("a@example.com", "b@example.com"):
        r = await client.post(
            "/caregivers",
            json={"location_id": str(loc.id), "first_name": "A", "last_name": "B", "email": email},
            headers=super_admin,
        )
        assert r.status_code == 201

    r = await client.get("/audit-logs/stats", headers=super_admin)
    assert r.status_code == 200, r.text
    stats = r.json()
    assert stats["total_logs"] == 2
    assert stats["success_count"] == 2
    assert stats["failure_count"] == 0
    assert stats["action_breakdown"] == {"CAREGIVER_CREATE": 2}
    assert stats["entity_type_breakdown"] == {"CAREGIVER": 2}
    assert sum(stats["user_breakdown"].values()) == 2
