from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from sqlalchemy.orm import Session

from carehome.core.database import get_db
from carehome.core.identity import CurrentUser, UserRole
from carehome.models.leave_request import LeaveType
from carehome.routers.auth import require_admin, require_roles
from carehome.schemas.leaves import LeaveDecision, LeaveQuery, LeaveRequestOut
from carehome.services.attachments import IncomingFile
from carehome.services.leaves import LeaveService

router = APIRouter()

require_caregiver = require_roles(UserRole.CAREGIVER)


def get_leave_service(request: Request) -> LeaveService:
    return request.app.state.leaves


@router.post("", response_model=LeaveRequestOut, status_code=status.HTTP_201_CREATED)
def create_leave_request(
    leave_date: date = Form(..., alias="date"),
    leave_type: LeaveType = Form(..., alias="type"),
    reason: str = Form(...),
    attachments: Optional[list[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_caregiver),
    svc: LeaveService = Depends(get_leave_service),
):
    files = [
        IncomingFile(filename=f.filename or "attachment", content_type=f.content_type, data=f.file.read())
        for f in attachments or []
    ]
    leave = svc.create(db, user.id, leave_date, leave_type, reason, files)
    return LeaveRequestOut.model_validate(leave)


@router.get("/my", response_model=list[LeaveRequestOut])
def my_leave_requests(
    query: LeaveQuery = Depends(),
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_caregiver),
    svc: LeaveService = Depends(get_leave_service),
):
    return [LeaveRequestOut.model_validate(r) for r in svc.list_mine(db, user.id, query)]


@router.get("", response_model=list[LeaveRequestOut])
def list_leave_requests(
    query: LeaveQuery = Depends(),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    svc: LeaveService = Depends(get_leave_service),
):
    return [LeaveRequestOut.model_validate(r) for r in svc.list_all(db, query, admin)]


@router.patch("/{leave_id}/approve", response_model=LeaveRequestOut)
def approve_leave_request(
    leave_id: UUID,
    payload: Optional[LeaveDecision] = None,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    svc: LeaveService = Depends(get_leave_service),
):
    return LeaveRequestOut.model_validate(svc.approve(db, leave_id, payload.decision_note if payload else None, admin.id))


@router.patch("/{leave_id}/reject", response_model=LeaveRequestOut)
def reject_leave_request(
    leave_id: UUID,
    payload: Optional[LeaveDecision] = None,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
    svc: LeaveService = Depends(get_leave_service),
):
    return LeaveRequestOut.model_validate(svc.reject(db, leave_id, payload.decision_note if payload else None, admin.id))


@router.patch("/{leave_id}/cancel", response_model=LeaveRequestOut)
def cancel_leave_request(
    leave_id: UUID,
    db: Session = Depends(get_db),
    user: CurrentUser = Depends(require_caregiver),
    svc: LeaveService = Depends(get_leave_service),
):
    return LeaveRequestOut.model_validate(svc.cancel(db, leave_id, user.id))
