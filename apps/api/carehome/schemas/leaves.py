from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, JsonValue

from carehome.models.leave_request import LeaveStatus, LeaveType


class LeaveDecision(BaseModel):
    decision_note: str | None = None


class LeaveQuery(BaseModel):
    location_id: UUID | None = None
    caregiver_id: UUID | None = None
    status: LeaveStatus | None = None
    date_from: date | None = None
    date_to: date | None = None


class LeaveRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    caregiver_id: UUID
    location_id: UUID
    date: date
    type: LeaveType
    status: LeaveStatus
    reason: str
    attachments: list[dict[str, JsonValue]] = []
    requested_at: datetime | None = None
    decided_at: datetime | None = None
    decided_by: UUID | None = None
    decision_note: str | None = None
