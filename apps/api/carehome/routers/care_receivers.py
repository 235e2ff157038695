from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from carehome.core.database import commit_or_conflict, get_db
from carehome.core.errors import InvalidState, NotFound
from carehome.core.identity import CurrentUser
from carehome.models.care_receiver import CareReceiver, CareReceiverStatus
from carehome.models.location import Location
from carehome.routers.auth import require_admin
from carehome.schemas.care_receivers import (
    BedAssignmentOut,
    CareReceiverCreate,
    CareReceiverOut,
    CareReceiverUpdate,
    GdprConsent,
)
from carehome.schemas.caregivers import DeletionRequest
from carehome.schemas.room_beds import RoomBedOut
from carehome.services.occupancy import lock_care_receiver

router = APIRouter()

BED_TAKEN = "Room/Bed is already occupied"


@router.post("", response_model=CareReceiverOut, status_code=status.HTTP_201_CREATED)
def create_care_receiver(
    payload: CareReceiverCreate,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    state = request.app.state

    if not db.get(Location, payload.location_id):
        raise NotFound("Location not found")

    cr = CareReceiver(
        **payload.model_dump(exclude={"room_bed_id"}),
        status=CareReceiverStatus.ACTIVE,
        admission_date=state.now_fn().date(),
    )
    db.add(cr)
    db.flush()

    # admission and the first bed commit together or not at all
    placed = None
    if payload.room_bed_id:
        placed = state.ledger.place(db, cr, payload.room_bed_id)
    commit_or_conflict(db, BED_TAKEN)

    state.audit.log(
        db,
        "CARE_RECEIVER_CREATE",
        "CARE_RECEIVER",
        entity_id=cr.id,
        user_id=admin.id,
        changes={"operation": "CREATE", "location_id": cr.location_id},
        purpose="Care Receiver Admission",
    )
    if placed:
        bed, previous_bed_id = placed
        state.ledger.record_assignment(db, cr, bed, previous_bed_id, admin.id)

    return CareReceiverOut.model_validate(cr)


@router.get("", response_model=list[CareReceiverOut])
def list_care_receivers(
    location_id: Optional[UUID] = Query(None),
    status_filter: Optional[CareReceiverStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    stmt = select(CareReceiver)
    if location_id:
        stmt = stmt.where(CareReceiver.location_id == location_id)
    if status_filter:
        stmt = stmt.where(CareReceiver.status == status_filter)

    rows = db.execute(stmt.order_by(CareReceiver.last_name.asc(), CareReceiver.first_name.asc())).scalars().all()
    return [CareReceiverOut.model_validate(r) for r in rows]


@router.get("/{care_receiver_id}", response_model=CareReceiverOut)
def get_care_receiver(
    care_receiver_id: UUID,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    cr = db.get(CareReceiver, care_receiver_id)
    if not cr:
        raise NotFound("Care receiver not found")
    return CareReceiverOut.model_validate(cr)


@router.put("/{care_receiver_id}", response_model=CareReceiverOut)
def update_care_receiver(
    care_receiver_id: UUID,
    payload: CareReceiverUpdate,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    state = request.app.state
    cr = lock_care_receiver(db, care_receiver_id)

    data = payload.model_dump(exclude_unset=True)
    bed_given = "room_bed_id" in data
    new_bed_id = data.pop("room_bed_id", None)
    changes = {k: v for k, v in data.items() if v is not None}

    for k, v in changes.items():
        setattr(cr, k, v)

    # bed moves go through the ledger, in the same transaction as the profile
    placed = released_bed_id = None
    if bed_given and new_bed_id != cr.current_room_bed_id:
        if new_bed_id:
            placed = state.ledger.place(db, cr, new_bed_id)
        else:
            released_bed_id = cr.current_room_bed_id
            state.ledger.free(db, released_bed_id)
    commit_or_conflict(db, BED_TAKEN)

    state.audit.log(
        db,
        "CARE_RECEIVER_UPDATE",
        "CARE_RECEIVER",
        entity_id=cr.id,
        user_id=admin.id,
        changes={"operation": "UPDATE", "changes": payload.model_dump(exclude_unset=True)},
    )
    if placed:
        bed, previous_bed_id = placed
        state.ledger.record_assignment(db, cr, bed, previous_bed_id, admin.id)
    if released_bed_id:
        state.ledger.record_unassignment(db, cr.id, released_bed_id, admin.id)

    return CareReceiverOut.model_validate(cr)


@router.get("/{care_receiver_id}/room-bed", response_model=BedAssignmentOut)
def get_care_receiver_room_bed(
    care_receiver_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    cr, bed = request.app.state.ledger.bed_assignment(db, care_receiver_id)
    return BedAssignmentOut(
        care_receiver=CareReceiverOut.model_validate(cr),
        current_room_bed=RoomBedOut.model_validate(bed) if bed else None,
    )


@router.put("/{care_receiver_id}/gdpr-consent", response_model=CareReceiverOut)
def update_gdpr_consent(
    care_receiver_id: UUID,
    payload: GdprConsent,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    state = request.app.state
    cr = lock_care_receiver(db, care_receiver_id)

    now = state.now_fn()
    previous = dict(cr.consent_history or {})
    consent = payload.model_dump()
    # append-only: each change is kept under its own timestamp
    cr.consent_history = {
        **previous,
        now.isoformat(): {**consent, "recorded_by": str(admin.id)},
    }
    db.commit()

    state.audit.log(
        db,
        "GDPR_CONSENT_UPDATE",
        "CARE_RECEIVER",
        entity_id=cr.id,
        user_id=admin.id,
        changes={"operation": "UPDATE", "consent_changes": consent, "previous_consent": previous},
        purpose="GDPR Consent Management",
    )
    return CareReceiverOut.model_validate(cr)


@router.post("/{care_receiver_id}/request-deletion", response_model=CareReceiverOut)
def request_care_receiver_deletion(
    care_receiver_id: UUID,
    request: Request,
    payload: Optional[DeletionRequest] = None,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    state = request.app.state
    cr = lock_care_receiver(db, care_receiver_id)
    if cr.deletion_requested:
        raise InvalidState("Data deletion has already been requested")

    now = state.now_fn()
    reason = payload.reason if payload else None

    released_bed_id = cr.current_room_bed_id
    if released_bed_id:
        state.ledger.free(db, released_bed_id)

    # soft delete: the record stays until the erasure is processed
    if cr.status == CareReceiverStatus.ACTIVE:
        cr.status = CareReceiverStatus.DISCHARGED
        cr.discharge_date = now.date()
    cr.deletion_requested = True
    cr.deletion_requested_at = now
    cr.deletion_request_reason = reason
    cr.consent_history = {
        **(cr.consent_history or {}),
        "deletion_request": {"requested_at": now.isoformat(), "requested_by": str(admin.id), "status": "PENDING"},
    }
    db.commit()

    state.audit.log(
        db,
        "DATA_DELETION_REQUEST",
        "CARE_RECEIVER",
        entity_id=cr.id,
        user_id=admin.id,
        changes={
            "operation": "DELETE_REQUEST",
            "reason": "GDPR_RIGHT_TO_ERASURE",
            "note": reason,
            "released_room_bed_id": released_bed_id,
        },
        purpose="GDPR Right to Erasure",
    )
    return CareReceiverOut.model_validate(cr)


@router.post("/{care_receiver_id}/discharge", response_model=CareReceiverOut)
def discharge_care_receiver(
    care_receiver_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    state = request.app.state

    cr = lock_care_receiver(db, care_receiver_id)
    if cr.status != CareReceiverStatus.ACTIVE:
        raise InvalidState(f"Care receiver is already {cr.status.value}")

    released_bed_id = cr.current_room_bed_id
    if released_bed_id:
        state.ledger.free(db, released_bed_id)

    cr.status = CareReceiverStatus.DISCHARGED
    cr.discharge_date = state.now_fn().date()
    db.commit()

    state.audit.log(
        db,
        "CARE_RECEIVER_DISCHARGE",
        "CARE_RECEIVER",
        entity_id=cr.id,
        user_id=admin.id,
        changes={"operation": "UPDATE", "status": cr.status.value, "released_room_bed_id": released_bed_id},
        purpose="Care Receiver Discharge",
    )
    return CareReceiverOut.model_validate(cr)
