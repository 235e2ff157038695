"""
AuditService: append-only GDPR audit trail.

Records are written after the primary action has committed. A failed audit
write is rolled back and logged; it never undoes or fails the action itself.
"""

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carehome.models.audit_log import AuditLog, AuditStatus

logger = logging.getLogger(__name__)


class AuditService:
    def log(
        self,
        db: Session,
        action: str,
        entity_type: str,
        entity_id: Optional[UUID] = None,
        user_id: Optional[UUID] = None,
        changes: Optional[dict[str, Any]] = None,
        status: AuditStatus = AuditStatus.SUCCESS,
        reason: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> Optional[AuditLog]:
        entry = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            changes=jsonable_encoder(changes or {}),
            status=status,
            reason=reason,
            purpose=purpose,
        )
        try:
            db.add(entry)
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Failed to write audit log %s on %s %s", action, entity_type, entity_id)
            return None

        logger.info("Audit log created: %s on %s by user %s", action, entity_type, user_id)
        return entry

    def query(
        self,
        db: Session,
        user_id: Optional[UUID] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        action: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[list[AuditLog], int]:
        stmt = select(AuditLog)
        if user_id:
            stmt = stmt.where(AuditLog.user_id == user_id)
        if entity_type:
            stmt = stmt.where(AuditLog.entity_type == entity_type)
        if entity_id:
            stmt = stmt.where(AuditLog.entity_id == entity_id)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if start:
            stmt = stmt.where(AuditLog.created_at >= start)
        if end:
            stmt = stmt.where(AuditLog.created_at <= end)

        total = db.execute(select(func.count()).select_from(stmt.subquery())).scalar_one()
        rows = db.execute(
            stmt.order_by(AuditLog.created_at.desc()).limit(limit).offset(offset)
        ).scalars().all()
        return list(rows), total

    def entity_history(self, db: Session, entity_type: str, entity_id: UUID) -> list[AuditLog]:
        stmt = (
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.created_at.desc())
        )
        return list(db.execute(stmt).scalars().all())

    def stats(self, db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict[str, Any]:
        """Counts per status, action, entity type and user over an optional created_at window."""

        def grouped(column) -> dict[Any, int]:
            stmt = select(column, func.count()).group_by(column)
            if start:
                stmt = stmt.where(AuditLog.created_at >= start)
            if end:
                stmt = stmt.where(AuditLog.created_at <= end)
            return {key: n for key, n in db.execute(stmt).all() if key is not None}

        by_status = grouped(AuditLog.status)
        return {
            "total_logs": sum(by_status.values()),
            "success_count": by_status.get(AuditStatus.SUCCESS, 0),
            "failure_count": by_status.get(AuditStatus.FAILURE, 0),
            "action_breakdown": grouped(AuditLog.action),
            "entity_type_breakdown": grouped(AuditLog.entity_type),
            "user_breakdown": {str(k): n for k, n in grouped(AuditLog.user_id).items()},
        }
