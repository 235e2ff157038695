from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from carehome.core.database import get_db
from carehome.core.identity import CurrentUser
from carehome.routers.auth import require_admin
from carehome.schemas.audit import AuditLogOut, AuditLogPage, AuditStats

router = APIRouter()


@router.get("", response_model=AuditLogPage)
def list_audit_logs(
    request: Request,
    user_id: Optional[UUID] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[UUID] = Query(None),
    action: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    rows, total = request.app.state.audit.query(
        db,
        user_id=user_id,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )
    return AuditLogPage(total=total, logs=[AuditLogOut.model_validate(r) for r in rows])


@router.get("/stats", response_model=AuditStats)
def audit_stats(
    request: Request,
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    return AuditStats(**request.app.state.audit.stats(db, start=start, end=end))


@router.get("/entity/{entity_type}/{entity_id}", response_model=list[AuditLogOut])
def entity_history(
    entity_type: str,
    entity_id: UUID,
    request: Request,
    db: Session = Depends(get_db),
    admin: CurrentUser = Depends(require_admin),
):
    rows = request.app.state.audit.entity_history(db, entity_type, entity_id)
    return [AuditLogOut.model_validate(r) for r in rows]
