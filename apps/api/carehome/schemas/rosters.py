from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, JsonValue

from carehome.models.roster import RosterStatus, ShiftStatus, ShiftType


class RosterCreate(BaseModel):
    location_id: UUID
    caregiver_id: UUID
    room_bed_id: UUID | None = None
    shift_date: date
    shift_type: ShiftType
    start_time: time
    end_time: time
    status: RosterStatus = RosterStatus.DRAFT
    notes: str | None = None
    is_recurring: bool = False
    recurrence_pattern: dict[str, JsonValue] | None = None
    metadata: dict[str, JsonValue] | None = None


class RosterUpdate(BaseModel):
    location_id: UUID | None = None
    caregiver_id: UUID | None = None
    room_bed_id: UUID | None = None
    shift_date: date | None = None
    shift_type: ShiftType | None = None
    start_time: time | None = None
    end_time: time | None = None
    status: RosterStatus | None = None
    notes: str | None = None
    is_recurring: bool | None = None
    recurrence_pattern: dict[str, JsonValue] | None = None
    metadata: dict[str, JsonValue] | None = None


class RosterOut(BaseModel):
    id: UUID
    location_id: UUID
    caregiver_id: UUID
    room_bed_id: UUID | None = None
    shift_date: date
    shift_type: ShiftType
    start_time: time
    end_time: time
    status: RosterStatus
    shift_status: ShiftStatus
    is_recurring: bool
    recurrence_pattern: dict[str, JsonValue] | None = None
    notes: str | None = None
    metadata: dict[str, JsonValue] | None = None
    external_calendar_event_id: str | None = None
    confirmed_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    # computed
    duration_hours: float
    is_active: bool
    is_completed: bool
