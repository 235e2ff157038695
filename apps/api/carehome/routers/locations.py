from uuid import UUID
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from carehome.core.database import get_db
from carehome.core.errors import Conflict, InvalidRequest, NotFound
from carehome.core.identity import CurrentUser
from carehome.models.care_receiver import CareReceiver
from carehome.models.caregiver import Caregiver
from carehome.models.location import Location
from carehome.models.room_bed import RoomBed
from carehome.routers.auth import get_current_user, require_admin, require_super_admin
from carehome.schemas.locations import LocationCreate, LocationOut, LocationStats, LocationUpdate

router = APIRouter()

PURPOSE = "Location Management"


def _check_timezone(name: str) -> None:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise InvalidRequest(f"Unknown timezone: {name}")


def _get_location(db: Session, location_id: UUID) -> Location:
    loc = db.get(Location, location_id)
    if not loc:
        raise NotFound("Location not found")
    return loc


def _count(db: Session, model, *where) -> int:
    return db.execute(select(func.count()).select_from(model).where(*where)).scalar_one()


@router.post("", response_model=LocationOut, status_code=status.HTTP_201_CREATED)
def create_location(
    payload: LocationCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_super_admin),
):
    _check_timezone(payload.timezone)

    loc = Location(**payload.model_dump())
    db.add(loc)
    db.commit()

    request.app.state.audit.log(
        db,
        "LOCATION_CREATE",
        "LOCATION",
        entity_id=loc.id,
        user_id=admin.id,
        changes={"operation": "CREATE", "location_data": payload.model_dump()},
        purpose=PURPOSE,
    )
    return LocationOut.model_validate(loc)


@router.get("", response_model=list[LocationOut])
def list_locations(
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    rows = db.execute(select(Location).order_by(Location.name.asc())).scalars().all()
    return [LocationOut.model_validate(r) for r in rows]


@router.get("/{location_id}", response_model=LocationOut)
def get_location(
    location_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
):
    return LocationOut.model_validate(_get_location(db, location_id))


@router.put("/{location_id}", response_model=LocationOut)
def update_location(
    location_id: UUID,
    payload: LocationUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_super_admin),
):
    loc = _get_location(db, location_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

    if "timezone" in changes:
        _check_timezone(changes["timezone"])

    if changes.get("name") and changes["name"] != loc.name:
        taken = db.execute(
            select(Location.id).where(Location.name == changes["name"], Location.id != loc.id)
        ).first()
        if taken:
            raise Conflict("Location with this name already exists")

    previous = {k: getattr(loc, k) for k in changes}
    for k, v in changes.items():
        setattr(loc, k, v)
    db.commit()

    request.app.state.audit.log(
        db,
        "LOCATION_UPDATE",
        "LOCATION",
        entity_id=loc.id,
        user_id=admin.id,
        changes={"operation": "UPDATE", "previous": previous, "changes": changes},
        purpose=PURPOSE,
    )
    return LocationOut.model_validate(loc)


@router.delete("/{location_id}")
def delete_location(
    location_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_super_admin),
):
    loc = _get_location(db, location_id)

    # refuse rather than cascade into people and beds
    if _count(db, Caregiver, Caregiver.location_id == loc.id):
        raise Conflict("Cannot delete location with caregivers")
    if _count(db, CareReceiver, CareReceiver.location_id == loc.id):
        raise Conflict("Cannot delete location with care receivers")
    if _count(db, RoomBed, RoomBed.location_id == loc.id):
        raise Conflict("Cannot delete location with room/beds")

    deleted = LocationOut.model_validate(loc).model_dump()
    db.delete(loc)
    db.commit()

    request.app.state.audit.log(
        db,
        "LOCATION_DELETE",
        "LOCATION",
        entity_id=location_id,
        user_id=admin.id,
        changes={"operation": "DELETE", "deleted": deleted},
        purpose=PURPOSE,
    )
    return {"ok": True, "message": "Location deleted successfully"}


@router.get("/{location_id}/stats", response_model=LocationStats)
def location_stats(
    location_id: UUID,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    loc = _get_location(db, location_id)

    beds = _count(db, RoomBed, RoomBed.location_id == loc.id)
    occupied = _count(db, RoomBed, RoomBed.location_id == loc.id, RoomBed.is_occupied.is_(True))
    return LocationStats(
        caregiver_count=_count(db, Caregiver, Caregiver.location_id == loc.id),
        care_receiver_count=_count(db, CareReceiver, CareReceiver.location_id == loc.id),
        room_bed_count=beds,
        occupied_room_beds=occupied,
        available_room_beds=beds - occupied,
    )
