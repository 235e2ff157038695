from uuid import uuid4

import pytest
from sqlalchemy import select

from carehome.core.errors import Conflict, InvalidState, NotFound
from carehome.models.audit_log import AuditLog
from carehome.models.care_receiver import CareReceiver, CareReceiverStatus
from carehome.models.room_bed import RoomBed


def assert_bijection(db):
    """Every occupied bed has exactly one occupant and every occupant points at an occupied bed."""
    db.expire_all()
    beds = db.execute(select(RoomBed)).scalars().all()
    residents = db.execute(select(CareReceiver)).scalars().all()
    for bed in beds:
        occupants = [cr for cr in residents if cr.current_room_bed_id == bed.id]
        assert bed.is_occupied == (len(occupants) == 1), bed.label
        assert len(occupants) <= 1
    for cr in residents:
        if cr.current_room_bed_id:
            bed = db.get(RoomBed, cr.current_room_bed_id)
            assert bed.is_occupied
            assert bed.location_id == cr.location_id


@pytest.fixture
def ledger(app):
    return app.state.ledger


@pytest.fixture
def home(seed):
    loc = seed.location()
    return {
        "location": loc,
        "bed_a": seed.bed(loc, "101", "A"),
        "bed_b": seed.bed(loc, "101", "B"),
        "resident": seed.care_receiver(loc),
    }


def test_assign_reassign_noop_unassign(db, ledger, home, admin):
    cr, bed_a, bed_b = home["resident"], home["bed_a"], home["bed_b"]

    out = ledger.assign(db, cr.id, bed_a.id, admin.id)
    assert out["success"] is True
    assert cr.current_room_bed_id == bed_a.id
    assert bed_a.is_occupied
    assert_bijection(db)

    ledger.assign(db, cr.id, bed_b.id, admin.id)
    db.expire_all()
    assert db.get(RoomBed, bed_a.id).is_occupied is False
    assert db.get(RoomBed, bed_b.id).is_occupied is True
    assert db.get(CareReceiver, cr.id).current_room_bed_id == bed_b.id
    assert_bijection(db)

    out = ledger.assign(db, cr.id, bed_b.id, admin.id)
    assert "already in room" in out["message"]
    assert db.get(RoomBed, bed_b.id).is_occupied is True

    out = ledger.unassign(db, cr.id, admin.id)
    assert out["room_bed"].id == bed_b.id
    db.expire_all()
    assert db.get(RoomBed, bed_b.id).is_occupied is False
    assert db.get(CareReceiver, cr.id).current_room_bed_id is None
    assert_bijection(db)

    actions = db.execute(select(AuditLog.action, AuditLog.changes).where(AuditLog.entity_id == cr.id)).all()
    assert sorted(a for a, _ in actions) == [
        "ASSIGN_ROOM_BED",
        "ASSIGN_ROOM_BED",
        "ASSIGN_ROOM_BED",
        "UNASSIGN_ROOM_BED",
    ]
    noops = [c for a, c in actions if a == "ASSIGN_ROOM_BED" and c["assigned"].get("noop")]
    assert len(noops) == 1


def test_assign_to_occupied_bed_conflicts(db, ledger, home, seed, admin):
    other = seed.care_receiver(home["location"], first_name="Walter")
    ledger.assign(db, other.id, home["bed_a"].id, admin.id)

    with pytest.raises(Conflict):
        ledger.assign(db, home["resident"].id, home["bed_a"].id, admin.id)

    db.rollback()
    assert_bijection(db)


def test_assign_across_locations_conflicts(db, ledger, home, seed, admin):
    elsewhere = seed.location(name="Elm Court")
    far_bed = seed.bed(elsewhere, "201", "A")

    with pytest.raises(Conflict):
        ledger.assign(db, home["resident"].id, far_bed.id, admin.id)


def test_assign_missing_entities(db, ledger, home, admin):
    with pytest.raises(NotFound):
        ledger.assign(db, uuid4(), home["bed_a"].id, admin.id)
    with pytest.raises(NotFound):
        ledger.assign(db, home["resident"].id, uuid4(), admin.id)


def test_assign_requires_active_resident(db, ledger, home, admin):
    cr = home["resident"]
    cr.status = CareReceiverStatus.DISCHARGED
    db.commit()

    with pytest.raises(InvalidState):
        ledger.assign(db, cr.id, home["bed_a"].id, admin.id)


def test_unassign_without_bed(db, ledger, home, admin):
    with pytest.raises(InvalidState):
        ledger.unassign(db, home["resident"].id, admin.id)


def test_free_clears_both_sides_without_committing(db, ledger, home, admin):
    cr, bed = home["resident"], home["bed_a"]
    ledger.assign(db, cr.id, bed.id, admin.id)

    ledger.free(db, bed.id)
    assert bed.is_occupied is False
    assert cr.current_room_bed_id is None

    db.rollback()
    db.expire_all()
    assert db.get(RoomBed, bed.id).is_occupied is True
    assert db.get(CareReceiver, cr.id).current_room_bed_id == bed.id


def test_bed_assignment_lookup(db, ledger, home, admin):
    cr, bed = home["resident"], home["bed_a"]

    _, current = ledger.bed_assignment(db, cr.id)
    assert current is None

    ledger.assign(db, cr.id, bed.id, admin.id)
    _, current = ledger.bed_assignment(db, cr.id)
    assert current.id == bed.id

    with pytest.raises(NotFound):
        ledger.bed_assignment(db, uuid4())


def test_place_for_new_admission_rolls_back_with_it(db, ledger, home, seed):
    taken = home["bed_a"]
    seed_resident = home["resident"]
    seed_resident.current_room_bed_id = taken.id
    taken.is_occupied = True
    db.commit()

    newcomer = CareReceiver(
        location_id=home["location"].id, first_name="Nell", last_name="Hart", status=CareReceiverStatus.ACTIVE
    )
    db.add(newcomer)
    db.flush()

    with pytest.raises(Conflict):
        ledger.place(db, newcomer, taken.id)
    db.rollback()

    names = db.execute(select(CareReceiver.first_name)).scalars().all()
    assert "Nell" not in names
    assert_bijection(db)


def test_place_does_not_commit(db, ledger, home):
    cr, bed = home["resident"], home["bed_b"]

    placed, previous = ledger.place(db, cr, bed.id)
    assert placed.id == bed.id
    assert previous is None
    assert cr.current_room_bed_id == bed.id

    db.rollback()
    db.expire_all()
    assert db.get(RoomBed, bed.id).is_occupied is False
    assert db.get(CareReceiver, cr.id).current_room_bed_id is None
