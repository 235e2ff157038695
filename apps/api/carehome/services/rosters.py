"""
Roster entry store.

Owns the overlap rule: for one caregiver on one date, no two entries in a
blocking status (PUBLISHED, ACTIVE) may have intersecting [start, end)
windows. The conflict check and the write run in the same transaction with the
caregiver row locked, so concurrent creations for one caregiver serialize.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from carehome.core.database import commit_or_conflict
from carehome.core.errors import Conflict, Forbidden, InvalidRequest, InvalidState, NotFound
from carehome.core.identity import CurrentUser
from carehome.models.caregiver import Caregiver
from carehome.models.location import Location
from carehome.models.room_bed import RoomBed
from carehome.models.roster import BLOCKING_STATUSES, RosterEntry, RosterStatus, ShiftStatus
from carehome.schemas.rosters import RosterCreate, RosterOut, RosterUpdate
from carehome.services.audit import AuditService
from carehome.services.shift_sync import ShiftSync
from carehome.services.validators import (
    duration_hours,
    overlaps,
    shift_window,
    validate_date_range,
    validate_time_range,
)

logger = logging.getLogger(__name__)

NowFn = Callable[[], datetime]

# Fields whose change moves a published shift in time or to another person
RESCHEDULE_FIELDS = {"caregiver_id", "shift_date", "start_time", "end_time"}
CONFLICT_FIELDS = RESCHEDULE_FIELDS | {"status"}
CLEARABLE_FIELDS = {"room_bed_id", "notes", "recurrence_pattern", "metadata"}

# target shift_status -> (allowed current states, timestamp column, audit action)
EXECUTION_TRANSITIONS = {
    ShiftStatus.CONFIRMED: ({ShiftStatus.SCHEDULED}, "confirmed_at", "SHIFT_CONFIRM"),
    ShiftStatus.IN_PROGRESS: ({ShiftStatus.SCHEDULED, ShiftStatus.CONFIRMED}, "started_at", "SHIFT_START"),
    ShiftStatus.COMPLETED: ({ShiftStatus.IN_PROGRESS}, "completed_at", "SHIFT_COMPLETE"),
}


def roster_to_out(entry: RosterEntry) -> RosterOut:
    return RosterOut(
        id=entry.id,
        location_id=entry.location_id,
        caregiver_id=entry.caregiver_id,
        room_bed_id=entry.room_bed_id,
        shift_date=entry.shift_date,
        shift_type=entry.shift_type,
        start_time=entry.start_time,
        end_time=entry.end_time,
        status=entry.status,
        shift_status=entry.shift_status,
        is_recurring=entry.is_recurring,
        recurrence_pattern=entry.recurrence_pattern,
        notes=entry.notes,
        metadata=entry.extra,
        external_calendar_event_id=entry.external_calendar_event_id,
        confirmed_at=entry.confirmed_at,
        started_at=entry.started_at,
        completed_at=entry.completed_at,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
        duration_hours=duration_hours(entry.start_time, entry.end_time),
        is_active=entry.shift_status == ShiftStatus.IN_PROGRESS,
        is_completed=entry.shift_status == ShiftStatus.COMPLETED,
    )


def find_conflict(
    db: Session,
    caregiver_id: UUID,
    shift_date: date,
    start_time,
    end_time,
    exclude_id: Optional[UUID] = None,
) -> Optional[RosterEntry]:
    """First blocking entry of the caregiver on that date whose window intersects [start, end)."""
    stmt = select(RosterEntry).where(
        RosterEntry.caregiver_id == caregiver_id,
        RosterEntry.shift_date == shift_date,
        RosterEntry.status.in_(BLOCKING_STATUSES),
    )
    if exclude_id is not None:
        stmt = stmt.where(RosterEntry.id != exclude_id)

    new_start, new_end = shift_window(start_time, end_time)
    for existing in db.execute(stmt.order_by(RosterEntry.start_time)).scalars():
        ex_start, ex_end = shift_window(existing.start_time, existing.end_time)
        if overlaps(new_start, new_end, ex_start, ex_end):
            return existing
    return None


class RosterService:
    def __init__(self, audit: AuditService, sync: ShiftSync, now_fn: NowFn):
        self.audit = audit
        self.sync = sync
        self.now_fn = now_fn

    # -------------------------
    # validation helpers
    # -------------------------

    def _lock_caregiver(self, db: Session, caregiver_id: UUID) -> Caregiver:
        caregiver = db.execute(
            select(Caregiver).where(Caregiver.id == caregiver_id).with_for_update()
        ).scalar_one_or_none()
        if not caregiver:
            raise NotFound("Caregiver not found")
        return caregiver

    def _check_references(self, db: Session, caregiver: Caregiver, location_id: UUID, room_bed_id: Optional[UUID]) -> None:
        if not db.get(Location, location_id):
            raise NotFound("Location not found")

        if caregiver.location_id != location_id:
            raise Conflict("Caregiver does not belong to this location")

        if room_bed_id:
            bed = db.get(RoomBed, room_bed_id)
            if not bed:
                raise NotFound("Room/Bed not found")
            if bed.location_id != location_id:
                raise Conflict("Room/Bed does not belong to this location")

    def _check_conflicts(self, db: Session, entry_fields: dict, exclude_id: Optional[UUID] = None) -> None:
        try:
            validate_time_range(entry_fields["start_time"], entry_fields["end_time"])
        except ValueError as e:
            raise InvalidRequest(str(e))

        clash = find_conflict(
            db,
            entry_fields["caregiver_id"],
            entry_fields["shift_date"],
            entry_fields["start_time"],
            entry_fields["end_time"],
            exclude_id=exclude_id,
        )
        if clash:
            raise Conflict(
                "Caregiver has a conflicting shift at this time "
                f"({clash.start_time:%H:%M}-{clash.end_time:%H:%M})"
            )

    def get(self, db: Session, roster_id: UUID) -> RosterEntry:
        entry = db.get(RosterEntry, roster_id)
        if not entry:
            raise NotFound("Roster not found")
        return entry

    # -------------------------
    # store operations
    # -------------------------

    def create(self, db: Session, payload: RosterCreate, actor_id: UUID) -> RosterEntry:
        caregiver = self._lock_caregiver(db, payload.caregiver_id)
        self._check_references(db, caregiver, payload.location_id, payload.room_bed_id)

        fields = payload.model_dump(exclude={"metadata"})
        self._check_conflicts(db, fields)

        entry = RosterEntry(**fields, extra=payload.metadata, shift_status=ShiftStatus.SCHEDULED)
        db.add(entry)
        commit_or_conflict(db, "Caregiver has a conflicting shift at this time")

        logger.info(
            "Created roster %s for caregiver %s on %s (%s)",
            entry.id, entry.caregiver_id, entry.shift_date, entry.status.value,
        )

        if entry.status == RosterStatus.PUBLISHED:
            self.sync.published(db, entry)

        self.audit.log(
            db,
            "ROSTER_CREATE",
            "ROSTER",
            entity_id=entry.id,
            user_id=actor_id,
            changes={"operation": "CREATE", "roster_data": payload.model_dump()},
        )
        return entry

    def list_by_date_range(
        self,
        db: Session,
        start: date,
        end: date,
        location_id: Optional[UUID] = None,
        caregiver_id: Optional[UUID] = None,
    ) -> list[RosterEntry]:
        try:
            validate_date_range(start, end)
        except ValueError as e:
            raise InvalidRequest(str(e))

        stmt = select(RosterEntry).where(RosterEntry.shift_date.between(start, end))
        if location_id:
            stmt = stmt.where(RosterEntry.location_id == location_id)
        if caregiver_id:
            stmt = stmt.where(RosterEntry.caregiver_id == caregiver_id)

        stmt = stmt.order_by(RosterEntry.shift_date, RosterEntry.start_time)
        return list(db.execute(stmt).scalars().all())

    def update(self, db: Session, roster_id: UUID, patch: RosterUpdate, actor_id: UUID) -> RosterEntry:
        entry = self.get(db, roster_id)
        changes = {
            k: v
            for k, v in patch.model_dump(exclude_unset=True).items()
            if v is not None or k in CLEARABLE_FIELDS
        }
        if "metadata" in changes:
            changes["extra"] = changes.pop("metadata")

        touched = {k for k, v in changes.items() if getattr(entry, k) != v}
        old_status = entry.status
        was_published = old_status == RosterStatus.PUBLISHED

        caregiver_id = changes.get("caregiver_id", entry.caregiver_id)
        caregiver = self._lock_caregiver(db, caregiver_id)

        if touched & {"caregiver_id", "location_id", "room_bed_id"}:
            self._check_references(
                db,
                caregiver,
                changes.get("location_id", entry.location_id),
                changes.get("room_bed_id", entry.room_bed_id),
            )

        merged = {
            "caregiver_id": caregiver_id,
            "shift_date": changes.get("shift_date", entry.shift_date),
            "start_time": changes.get("start_time", entry.start_time),
            "end_time": changes.get("end_time", entry.end_time),
        }
        # cancelling never introduces an overlap
        if touched & CONFLICT_FIELDS and changes.get("status", old_status) != RosterStatus.CANCELLED:
            self._check_conflicts(db, merged, exclude_id=entry.id)

        for k, v in changes.items():
            setattr(entry, k, v)
        commit_or_conflict(db, "Caregiver has a conflicting shift at this time")

        new_status = entry.status
        if new_status != old_status:
            logger.info("Roster %s status %s -> %s", entry.id, old_status.value, new_status.value)

        if new_status == RosterStatus.PUBLISHED and not was_published:
            self.sync.published(db, entry)
        elif new_status == RosterStatus.PUBLISHED and touched & RESCHEDULE_FIELDS:
            self.sync.rescheduled(db, entry)
        elif new_status == RosterStatus.CANCELLED and old_status != RosterStatus.CANCELLED:
            # drops any calendar event; only a published entry gets a notice
            self.sync.cancelled(db, entry, was_published=was_published)

        audit_changes = {"operation": "UPDATE", "changes": patch.model_dump(exclude_unset=True)}
        if new_status != old_status:
            audit_changes["status_transition"] = {"from": old_status.value, "to": new_status.value}
        self.audit.log(db, "ROSTER_UPDATE", "ROSTER", entity_id=entry.id, user_id=actor_id, changes=audit_changes)
        return entry

    def delete(self, db: Session, roster_id: UUID, actor_id: UUID) -> None:
        entry = self.get(db, roster_id)
        was_published = entry.status == RosterStatus.PUBLISHED

        self.sync.cancelled(db, entry, was_published=was_published, deleting=True)

        deleted = {"id": entry.id, "shift_date": entry.shift_date, "status": entry.status.value}
        db.delete(entry)
        db.commit()

        logger.info("Deleted roster %s", roster_id)
        self.audit.log(
            db,
            "ROSTER_DELETE",
            "ROSTER",
            entity_id=roster_id,
            user_id=actor_id,
            changes={"operation": "DELETE", "deleted_roster": deleted},
        )

    # -------------------------
    # execution lifecycle
    # -------------------------

    def _transition(self, db: Session, roster_id: UUID, target: ShiftStatus, user: CurrentUser) -> RosterEntry:
        entry = self.get(db, roster_id)

        if not user.is_admin and entry.caregiver_id != user.id:
            raise Forbidden("You can only update your own shifts")

        if entry.status not in BLOCKING_STATUSES:
            raise InvalidState(f"Shift is {entry.status.value}; only published or active shifts can progress")

        allowed, stamp_field, action = EXECUTION_TRANSITIONS[target]
        if entry.shift_status not in allowed:
            raise InvalidState(f"Cannot move shift from {entry.shift_status.value} to {target.value}")

        now = self.now_fn()
        entry.shift_status = target
        setattr(entry, stamp_field, now)
        db.commit()

        logger.info("Roster %s shift status -> %s", entry.id, target.value)
        self.audit.log(
            db,
            action,
            "ROSTER",
            entity_id=entry.id,
            user_id=user.id,
            changes={"operation": action.removeprefix("SHIFT_"), stamp_field: now},
        )
        return entry

    def confirm(self, db: Session, roster_id: UUID, user: CurrentUser) -> RosterEntry:
        return self._transition(db, roster_id, ShiftStatus.CONFIRMED, user)

    def start(self, db: Session, roster_id: UUID, user: CurrentUser) -> RosterEntry:
        return self._transition(db, roster_id, ShiftStatus.IN_PROGRESS, user)

    def complete(self, db: Session, roster_id: UUID, user: CurrentUser) -> RosterEntry:
        return self._transition(db, roster_id, ShiftStatus.COMPLETED, user)
