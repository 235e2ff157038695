"""
Occupancy ledger: the only writer of RoomBed.is_occupied and
CareReceiver.current_room_bed_id.

A bed is occupied iff exactly one care-receiver references it. Every flip of
the pair happens inside one transaction with the involved rows locked, so a
reassignment is observed either fully before or fully after.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from carehome.core.database import commit_or_conflict
from carehome.core.errors import Conflict, InvalidState, NotFound
from carehome.models.care_receiver import CareReceiver, CareReceiverStatus
from carehome.models.room_bed import RoomBed
from carehome.services.audit import AuditService

logger = logging.getLogger(__name__)

PURPOSE_ASSIGN = "Care Receiver Room Assignment"
PURPOSE_UNASSIGN = "Care Receiver Room Unassignment"


def lock_care_receiver(db: Session, care_receiver_id: UUID) -> CareReceiver:
    cr = db.execute(
        select(CareReceiver).where(CareReceiver.id == care_receiver_id).with_for_update()
    ).scalar_one_or_none()
    if not cr:
        raise NotFound("Care receiver not found")
    return cr


def _lock_bed(db: Session, room_bed_id: UUID) -> Optional[RoomBed]:
    return db.execute(
        select(RoomBed).where(RoomBed.id == room_bed_id).with_for_update()
    ).scalar_one_or_none()


class OccupancyLedger:
    def __init__(self, audit: AuditService):
        self.audit = audit

    def place(self, db: Session, cr: CareReceiver, room_bed_id: UUID) -> tuple[RoomBed, Optional[UUID]]:
        """
        Move an already-locked care-receiver into a bed. Does not commit: the
        caller owns the transaction (assign, admission, profile update).
        Returns the bed and the id of the bed previously held.
        """
        bed = _lock_bed(db, room_bed_id)
        if not bed:
            raise NotFound("Room/Bed not found")

        previous_bed_id = cr.current_room_bed_id
        if previous_bed_id == bed.id:
            return bed, previous_bed_id

        if cr.status != CareReceiverStatus.ACTIVE:
            raise InvalidState(f"Care receiver is {cr.status.value} and cannot be assigned a bed")

        if cr.location_id != bed.location_id:
            raise Conflict("Care receiver and room/bed must be in the same location")

        if bed.is_occupied:
            raise Conflict("Room/Bed is already occupied")

        if previous_bed_id:
            previous = _lock_bed(db, previous_bed_id)
            if previous:
                previous.is_occupied = False

        bed.is_occupied = True
        cr.current_room_bed_id = bed.id
        return bed, previous_bed_id

    def record_assignment(
        self,
        db: Session,
        cr: CareReceiver,
        bed: RoomBed,
        previous_bed_id: Optional[UUID],
        actor_id: Optional[UUID],
    ) -> None:
        logger.info("Assigned care receiver %s to bed %s (previous %s)", cr.id, bed.id, previous_bed_id)
        self.audit.log(
            db,
            "ASSIGN_ROOM_BED",
            "CARE_RECEIVER",
            entity_id=cr.id,
            user_id=actor_id,
            changes={
                "assigned": {
                    "care_receiver_id": cr.id,
                    "room_bed_id": bed.id,
                    "room_number": bed.room_number,
                    "bed_number": bed.bed_number,
                    "previous_room_bed_id": previous_bed_id,
                }
            },
            purpose=PURPOSE_ASSIGN,
        )

    def assign(self, db: Session, care_receiver_id: UUID, room_bed_id: UUID, actor_id: Optional[UUID]) -> dict:
        cr = lock_care_receiver(db, care_receiver_id)
        bed, previous_bed_id = self.place(db, cr, room_bed_id)

        if previous_bed_id == bed.id:
            # nothing flipped; the audit commit releases the row locks
            self.audit.log(
                db,
                "ASSIGN_ROOM_BED",
                "CARE_RECEIVER",
                entity_id=cr.id,
                user_id=actor_id,
                changes={"assigned": {"care_receiver_id": cr.id, "room_bed_id": bed.id, "noop": True}},
                purpose=PURPOSE_ASSIGN,
            )
            return {
                "success": True,
                "message": f"Care receiver {cr.full_name} is already in room {bed.room_number}, bed {bed.bed_number}",
                "room_bed": bed,
            }

        commit_or_conflict(db, "Room/Bed is already occupied")
        self.record_assignment(db, cr, bed, previous_bed_id, actor_id)

        return {
            "success": True,
            "message": f"Care receiver {cr.full_name} has been assigned to room {bed.room_number}, bed {bed.bed_number}",
            "room_bed": bed,
        }

    def record_unassignment(
        self, db: Session, care_receiver_id: UUID, room_bed_id: UUID, actor_id: Optional[UUID]
    ) -> None:
        logger.info("Unassigned care receiver %s from bed %s", care_receiver_id, room_bed_id)
        self.audit.log(
            db,
            "UNASSIGN_ROOM_BED",
            "CARE_RECEIVER",
            entity_id=care_receiver_id,
            user_id=actor_id,
            changes={"unassigned": {"care_receiver_id": care_receiver_id, "room_bed_id": room_bed_id}},
            purpose=PURPOSE_UNASSIGN,
        )

    def unassign(self, db: Session, care_receiver_id: UUID, actor_id: Optional[UUID]) -> dict:
        cr = lock_care_receiver(db, care_receiver_id)
        if not cr.current_room_bed_id:
            raise InvalidState("Care receiver is not assigned to any bed")

        room_bed_id = cr.current_room_bed_id
        self.free(db, room_bed_id)
        commit_or_conflict(db, "Room/Bed assignment changed concurrently")

        self.record_unassignment(db, cr.id, room_bed_id, actor_id)

        return {
            "success": True,
            "message": f"Care receiver {cr.full_name} has been unassigned from their current bed",
            "room_bed": db.get(RoomBed, room_bed_id),
        }

    def free(self, db: Session, room_bed_id: UUID) -> None:
        """
        Release a bed without a successor occupant. Does not commit: the caller
        owns the transaction (discharge, unassign, profile update).
        """
        bed = _lock_bed(db, room_bed_id)
        if bed:
            bed.is_occupied = False
        db.execute(
            update(CareReceiver)
            .where(CareReceiver.current_room_bed_id == room_bed_id)
            .values(current_room_bed_id=None)
            .execution_options(synchronize_session="fetch")
        )

    def bed_assignment(self, db: Session, care_receiver_id: UUID) -> tuple[CareReceiver, Optional[RoomBed]]:
        cr = db.get(CareReceiver, care_receiver_id)
        if not cr:
            raise NotFound("Care receiver not found")
        bed = db.get(RoomBed, cr.current_room_bed_id) if cr.current_room_bed_id else None
        return cr, bed
