from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from carehome.core.database import commit_or_conflict, get_db
from carehome.core.errors import Conflict, InvalidState, NotFound
from carehome.core.identity import CurrentUser
from carehome.models.caregiver import Caregiver, CaregiverStatus
from carehome.models.location import Location
from carehome.routers.auth import require_admin
from carehome.schemas.caregivers import (
    CaregiverCreate,
    CaregiverOut,
    CaregiverStatusUpdate,
    CaregiverUpdate,
    DeletionRequest,
)

router = APIRouter()

DUPLICATE_EMAIL = "A caregiver with this email already exists"


@router.post("", response_model=CaregiverOut, status_code=status.HTTP_201_CREATED)
def create_caregiver(
    payload: CaregiverCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    if not db.get(Location, payload.location_id):
        raise NotFound("Location not found")

    email = str(payload.email).lower()
    if db.execute(select(Caregiver.id).where(Caregiver.email == email)).first():
        raise Conflict(DUPLICATE_EMAIL)

    caregiver = Caregiver(
        location_id=payload.location_id,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=email,
        phone=payload.phone,
    )
    db.add(caregiver)
    commit_or_conflict(db, DUPLICATE_EMAIL)

    request.app.state.audit.log(
        db,
        "CAREGIVER_CREATE",
        "CAREGIVER",
        entity_id=caregiver.id,
        user_id=admin.id,
        changes={"operation": "CREATE", "location_id": caregiver.location_id},
    )
    return CaregiverOut.model_validate(caregiver)


@router.get("", response_model=list[CaregiverOut])
def list_caregivers(
    location_id: Optional[UUID] = Query(None),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    stmt = select(Caregiver)
    if location_id:
        stmt = stmt.where(Caregiver.location_id == location_id)
    rows = db.execute(stmt.order_by(Caregiver.last_name.asc(), Caregiver.first_name.asc())).scalars().all()
    return [CaregiverOut.model_validate(c) for c in rows]


@router.get("/{caregiver_id}", response_model=CaregiverOut)
def get_caregiver(
    caregiver_id: UUID,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    caregiver = db.get(Caregiver, caregiver_id)
    if not caregiver:
        raise NotFound("Caregiver not found")
    return CaregiverOut.model_validate(caregiver)


def _get_caregiver(db: Session, caregiver_id: UUID) -> Caregiver:
    caregiver = db.execute(
        select(Caregiver).where(Caregiver.id == caregiver_id).with_for_update()
    ).scalar_one_or_none()
    if not caregiver:
        raise NotFound("Caregiver not found")
    return caregiver


@router.put("/{caregiver_id}", response_model=CaregiverOut)
def update_caregiver(
    caregiver_id: UUID,
    payload: CaregiverUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    caregiver = _get_caregiver(db, caregiver_id)
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}

    if "email" in changes:
        changes["email"] = str(changes["email"]).lower()
        taken = db.execute(
            select(Caregiver.id).where(Caregiver.email == changes["email"], Caregiver.id != caregiver.id)
        ).first()
        if taken:
            raise Conflict(DUPLICATE_EMAIL)

    for k, v in changes.items():
        setattr(caregiver, k, v)
    commit_or_conflict(db, DUPLICATE_EMAIL)

    request.app.state.audit.log(
        db,
        "CAREGIVER_UPDATE",
        "CAREGIVER",
        entity_id=caregiver.id,
        user_id=admin.id,
        changes={"operation": "UPDATE", "changes": changes},
    )
    return CaregiverOut.model_validate(caregiver)


@router.patch("/{caregiver_id}/status", response_model=CaregiverOut)
def update_caregiver_status(
    caregiver_id: UUID,
    payload: CaregiverStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    caregiver = _get_caregiver(db, caregiver_id)
    previous = caregiver.status
    caregiver.status = payload.status
    db.commit()

    request.app.state.audit.log(
        db,
        "CAREGIVER_STATUS_UPDATE",
        "CAREGIVER",
        entity_id=caregiver.id,
        user_id=admin.id,
        changes={"operation": "UPDATE", "status_transition": {"from": previous.value, "to": payload.status.value}},
    )
    return CaregiverOut.model_validate(caregiver)


@router.post("/{caregiver_id}/request-deletion", response_model=CaregiverOut)
def request_caregiver_deletion(
    caregiver_id: UUID,
    request: Request,
    payload: Optional[DeletionRequest] = None,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    state = request.app.state
    caregiver = _get_caregiver(db, caregiver_id)
    if caregiver.deletion_requested:
        raise InvalidState("Data deletion has already been requested")

    now = state.now_fn()
    reason = payload.reason if payload else None

    # soft delete: the record stays until the erasure is processed
    caregiver.status = CaregiverStatus.TERMINATED
    caregiver.deletion_requested = True
    caregiver.deletion_requested_at = now
    caregiver.deletion_request_reason = reason
    caregiver.consent_history = {
        **(caregiver.consent_history or {}),
        "deletion_request": {"requested_at": now.isoformat(), "requested_by": str(admin.id), "status": "PENDING"},
    }
    db.commit()

    state.audit.log(
        db,
        "DATA_DELETION_REQUEST",
        "CAREGIVER",
        entity_id=caregiver.id,
        user_id=admin.id,
        changes={"operation": "DELETE_REQUEST", "reason": "GDPR_RIGHT_TO_ERASURE", "note": reason},
        purpose="GDPR Right to Erasure",
    )
    return CaregiverOut.model_validate(caregiver)
