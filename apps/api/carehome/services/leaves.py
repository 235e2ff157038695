"""
Leave request gate.

Submission rules, in order:
  1. the caregiver must exist
  2. cutoff: FULL_DAY before 06:00, half days before 05:00, both on the
     leave date itself in the home's local clock
  3. FULL_DAY is refused when the caregiver has any roster entry that day
  4. one PENDING request per caregiver and date

Decisions (approve/reject/cancel) only move a request out of PENDING.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, time
from typing import Callable, Optional
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.orm import Session

from carehome.core.database import commit_or_conflict
from carehome.core.errors import Conflict, Forbidden, InvalidRequest, InvalidState, NotFound
from carehome.core.identity import CurrentUser
from carehome.models.caregiver import Caregiver
from carehome.models.leave_request import LeaveRequest, LeaveStatus, LeaveType
from carehome.models.roster import RosterEntry
from carehome.schemas.leaves import LeaveQuery
from carehome.services.attachments import AttachmentStore, IncomingFile
from carehome.services.audit import AuditService
from carehome.services.notifications import Notifier
from carehome.services.validators import cutoff_at, validate_date_range

logger = logging.getLogger(__name__)

FULL_DAY_CUTOFF = time(6, 0)
HALF_DAY_CUTOFF = time(5, 0)

DUPLICATE_PENDING = "Pending leave request already exists for this date"


def check_cutoff(leave_date: date, leave_type: LeaveType, now: datetime, tz: ZoneInfo) -> None:
    if leave_type == LeaveType.FULL_DAY:
        if now >= cutoff_at(leave_date, FULL_DAY_CUTOFF, tz):
            raise InvalidRequest("Full day leave requests must be submitted before 6:00 AM on the leave date")
    else:
        if now >= cutoff_at(leave_date, HALF_DAY_CUTOFF, tz):
            raise InvalidRequest("Half day leave requests must be submitted before 5:00 AM on the leave date")


class LeaveService:
    def __init__(
        self,
        audit: AuditService,
        notifier: Notifier,
        attachments: AttachmentStore,
        now_fn: Callable[[], datetime],
        tz: ZoneInfo,
        max_attachments: int = 5,
    ):
        self.audit = audit
        self.notifier = notifier
        self.attachments = attachments
        self.now_fn = now_fn
        self.tz = tz
        self.max_attachments = max_attachments

    def get(self, db: Session, leave_id: UUID, lock: bool = False) -> LeaveRequest:
        stmt = select(LeaveRequest).where(LeaveRequest.id == leave_id)
        if lock:
            stmt = stmt.with_for_update()
        leave = db.execute(stmt).scalar_one_or_none()
        if not leave:
            raise NotFound("Leave request not found")
        return leave

    def create(
        self,
        db: Session,
        caregiver_id: UUID,
        leave_date: date,
        leave_type: LeaveType,
        reason: str,
        files: Optional[list[IncomingFile]] = None,
    ) -> LeaveRequest:
        files = files or []
        if len(files) > self.max_attachments:
            raise InvalidRequest(f"At most {self.max_attachments} attachments are allowed")

        caregiver = db.execute(
            select(Caregiver).where(Caregiver.id == caregiver_id).with_for_update()
        ).scalar_one_or_none()
        if not caregiver:
            raise NotFound("Caregiver not found")

        check_cutoff(leave_date, leave_type, self.now_fn(), self.tz)

        if leave_type == LeaveType.FULL_DAY:
            rostered = db.execute(
                select(RosterEntry.id)
                .where(RosterEntry.caregiver_id == caregiver_id, RosterEntry.shift_date == leave_date)
                .limit(1)
            ).first()
            if rostered:
                raise Conflict("Cannot request full day leave when you have a roster assignment for this date")

        pending = db.execute(
            select(LeaveRequest.id).where(
                LeaveRequest.caregiver_id == caregiver_id,
                LeaveRequest.date == leave_date,
                LeaveRequest.status == LeaveStatus.PENDING,
            )
        ).first()
        if pending:
            raise Conflict(DUPLICATE_PENDING)

        stored = self.attachments.save(files)
        leave = LeaveRequest(
            caregiver_id=caregiver_id,
            location_id=caregiver.location_id,
            date=leave_date,
            type=leave_type,
            status=LeaveStatus.PENDING,
            reason=reason,
            attachments=stored,
            requested_at=self.now_fn(),
        )
        db.add(leave)
        try:
            commit_or_conflict(db, DUPLICATE_PENDING)
        except Exception:
            # no row refers to the files any more
            self.attachments.discard(stored)
            raise

        logger.info("Leave request %s created by %s for %s (%s)", leave.id, caregiver_id, leave_date, leave_type.value)

        try:
            self.notifier.send_leave_submitted(caregiver.full_name, leave_date, leave_type.value, reason)
        except Exception:
            logger.exception("Failed to notify admins of leave request %s", leave.id)

        self.audit.log(
            db,
            "LEAVE_REQUEST_CREATE",
            "LEAVE_REQUEST",
            entity_id=leave.id,
            user_id=caregiver_id,
            changes={
                "operation": "CREATE",
                "leave_request_data": {"date": leave_date, "type": leave_type.value, "reason": reason},
                "attachments": len(leave.attachments),
            },
        )
        return leave

    def _decide(
        self,
        db: Session,
        leave_id: UUID,
        decision: LeaveStatus,
        decision_note: Optional[str],
        admin_id: UUID,
    ) -> LeaveRequest:
        leave = self.get(db, leave_id, lock=True)
        verb = "approved" if decision == LeaveStatus.APPROVED else "rejected"
        if leave.status != LeaveStatus.PENDING:
            raise InvalidState(f"Only pending leave requests can be {verb}")

        leave.status = decision
        leave.decided_at = self.now_fn()
        leave.decided_by = admin_id
        leave.decision_note = decision_note
        db.commit()

        logger.info("Leave request %s %s by %s", leave.id, verb, admin_id)

        caregiver = db.get(Caregiver, leave.caregiver_id)
        if caregiver:
            try:
                self.notifier.send_leave_decision(
                    caregiver.email, caregiver.full_name, leave.date, decision.value, decision_note
                )
            except Exception:
                logger.exception("Failed to notify caregiver of leave decision %s", leave.id)

        self.audit.log(
            db,
            "LEAVE_REQUEST_APPROVE" if decision == LeaveStatus.APPROVED else "LEAVE_REQUEST_REJECT",
            "LEAVE_REQUEST",
            entity_id=leave.id,
            user_id=admin_id,
            changes={"operation": "UPDATE", "decision": decision.value, "decision_note": decision_note},
        )
        return leave

    def approve(self, db: Session, leave_id: UUID, decision_note: Optional[str], admin_id: UUID) -> LeaveRequest:
        return self._decide(db, leave_id, LeaveStatus.APPROVED, decision_note, admin_id)

    def reject(self, db: Session, leave_id: UUID, decision_note: Optional[str], admin_id: UUID) -> LeaveRequest:
        return self._decide(db, leave_id, LeaveStatus.REJECTED, decision_note, admin_id)

    def cancel(self, db: Session, leave_id: UUID, caregiver_id: UUID) -> LeaveRequest:
        leave = self.get(db, leave_id, lock=True)
        if leave.caregiver_id != caregiver_id:
            raise Forbidden("You can only cancel your own leave requests")
        if leave.status != LeaveStatus.PENDING:
            raise InvalidState("Only pending leave requests can be cancelled")

        leave.status = LeaveStatus.CANCELLED
        db.commit()

        logger.info("Leave request %s cancelled by requester", leave.id)
        self.audit.log(
            db,
            "LEAVE_REQUEST_CANCEL",
            "LEAVE_REQUEST",
            entity_id=leave.id,
            user_id=caregiver_id,
            changes={"operation": "UPDATE", "decision": LeaveStatus.CANCELLED.value},
        )
        return leave

    # -------------------------
    # listing
    # -------------------------

    def _filtered(self, query: LeaveQuery):
        try:
            validate_date_range(query.date_from, query.date_to)
        except ValueError as e:
            raise InvalidRequest(str(e))

        stmt = select(LeaveRequest)
        if query.status:
            stmt = stmt.where(LeaveRequest.status == query.status)
        if query.date_from:
            stmt = stmt.where(LeaveRequest.date >= query.date_from)
        if query.date_to:
            stmt = stmt.where(LeaveRequest.date <= query.date_to)
        return stmt

    def list_mine(self, db: Session, caregiver_id: UUID, query: LeaveQuery) -> list[LeaveRequest]:
        stmt = self._filtered(query).where(LeaveRequest.caregiver_id == caregiver_id)
        return list(db.execute(stmt.order_by(LeaveRequest.date.desc())).scalars().all())

    def list_all(self, db: Session, query: LeaveQuery, caller: CurrentUser) -> list[LeaveRequest]:
        stmt = self._filtered(query)

        if not caller.is_super_admin:
            if not caller.location_id:
                raise Forbidden("Your account is not assigned to a location")
            stmt = stmt.where(LeaveRequest.location_id == caller.location_id)
        elif query.location_id:
            stmt = stmt.where(LeaveRequest.location_id == query.location_id)

        if query.caregiver_id:
            stmt = stmt.where(LeaveRequest.caregiver_id == query.caregiver_id)

        return list(db.execute(stmt.order_by(LeaveRequest.date.desc())).scalars().all())
