from uuid import UUID

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from carehome.core.database import commit_or_conflict, get_db
from carehome.core.errors import NotFound
from carehome.core.identity import CurrentUser
from carehome.models.location import Location
from carehome.models.room_bed import RoomBed
from carehome.routers.auth import get_current_user, require_admin
from carehome.schemas.room_beds import BedAssignmentResult, BedAssignRequest, RoomBedCreate, RoomBedOut
from carehome.services.occupancy import OccupancyLedger

router = APIRouter()


def get_ledger(request: Request) -> OccupancyLedger:
    return request.app.state.ledger


def _result(out: dict) -> BedAssignmentResult:
    bed = out.get("room_bed")
    return BedAssignmentResult(
        success=out["success"],
        message=out["message"],
        room_bed=RoomBedOut.model_validate(bed) if bed else None,
    )


@router.post("", response_model=RoomBedOut, status_code=status.HTTP_201_CREATED)
def create_room_bed(
    payload: RoomBedCreate,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    if not db.get(Location, payload.location_id):
        raise NotFound("Location not found")

    # occupancy is never set here; only the ledger flips it
    bed = RoomBed(**payload.model_dump(), is_occupied=False)
    db.add(bed)
    commit_or_conflict(db, f"Room {payload.room_number} bed {payload.bed_number} already exists at this location")
    return RoomBedOut.model_validate(bed)


@router.get("/location/{location_id}", response_model=list[RoomBedOut])
def list_room_beds(
    location_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    beds = db.execute(
        select(RoomBed)
        .where(RoomBed.location_id == location_id)
        .order_by(RoomBed.room_number.asc(), RoomBed.bed_number.asc())
    ).scalars().all()
    return [RoomBedOut.model_validate(b) for b in beds]


@router.get("/location/{location_id}/available", response_model=list[RoomBedOut])
def list_available_room_beds(
    location_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    beds = db.execute(
        select(RoomBed)
        .where(RoomBed.location_id == location_id, RoomBed.is_occupied.is_(False))
        .order_by(RoomBed.room_number.asc(), RoomBed.bed_number.asc())
    ).scalars().all()
    return [RoomBedOut.model_validate(b) for b in beds]


@router.post("/assign", response_model=BedAssignmentResult)
def assign_room_bed(
    payload: BedAssignRequest,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    ledger: OccupancyLedger = Depends(get_ledger),
):
    return _result(ledger.assign(db, payload.care_receiver_id, payload.room_bed_id, admin.id))


@router.post("/unassign/{care_receiver_id}", response_model=BedAssignmentResult)
def unassign_room_bed(
    care_receiver_id: UUID,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    ledger: OccupancyLedger = Depends(get_ledger),
):
    return _result(ledger.unassign(db, care_receiver_id, admin.id))
