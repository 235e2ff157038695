from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from carehome.core.database import get_db
from carehome.core.identity import CurrentUser, UserRole
from carehome.routers.auth import get_current_user, require_admin
from carehome.schemas.rosters import RosterCreate, RosterOut, RosterUpdate
from carehome.services.rosters import RosterService, roster_to_out

router = APIRouter()


def get_roster_service(request: Request) -> RosterService:
    return request.app.state.rosters


@router.post("", response_model=RosterOut, status_code=status.HTTP_201_CREATED)
def create_roster(
    payload: RosterCreate,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    svc: RosterService = Depends(get_roster_service),
):
    return roster_to_out(svc.create(db, payload, admin.id))


@router.get("", response_model=list[RosterOut])
def list_rosters(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    location_id: Optional[UUID] = Query(None, alias="locationId"),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    svc: RosterService = Depends(get_roster_service),
):
    # caregivers only ever see their own shifts
    caregiver_id = user.id if user.role == UserRole.CAREGIVER else None
    entries = svc.list_by_date_range(db, start_date, end_date, location_id=location_id, caregiver_id=caregiver_id)
    return [roster_to_out(e) for e in entries]


@router.get("/{roster_id}", response_model=RosterOut)
def get_roster(
    roster_id: UUID,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    svc: RosterService = Depends(get_roster_service),
):
    return roster_to_out(svc.get(db, roster_id))


@router.put("/{roster_id}", response_model=RosterOut)
def update_roster(
    roster_id: UUID,
    payload: RosterUpdate,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    svc: RosterService = Depends(get_roster_service),
):
    return roster_to_out(svc.update(db, roster_id, payload, admin.id))


@router.patch("/{roster_id}/confirm", response_model=RosterOut)
def confirm_shift(
    roster_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    svc: RosterService = Depends(get_roster_service),
):
    return roster_to_out(svc.confirm(db, roster_id, user))


@router.patch("/{roster_id}/start", response_model=RosterOut)
def start_shift(
    roster_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    svc: RosterService = Depends(get_roster_service),
):
    return roster_to_out(svc.start(db, roster_id, user))


@router.patch("/{roster_id}/complete", response_model=RosterOut)
def complete_shift(
    roster_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(get_current_user),
    svc: RosterService = Depends(get_roster_service),
):
    return roster_to_out(svc.complete(db, roster_id, user))


@router.delete("/{roster_id}")
def delete_roster(
    roster_id: UUID,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    svc: RosterService = Depends(get_roster_service),
):
    svc.delete(db, roster_id, admin.id)
    return {"ok": True, "message": "Roster deleted successfully"}
