import re
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator

_LABEL_RE = re.compile(r"^[A-Za-z0-9-]+$")


class RoomBedCreate(BaseModel):
    location_id: UUID
    room_number: str
    bed_number: str
    floor: str | None = None
    wing: str | None = None
    features: dict[str, JsonValue] = Field(default_factory=dict)

    @field_validator("room_number", "bed_number")
    @classmethod
    def _label(cls, v: str) -> str:
        v = v.strip()
        if not v or not _LABEL_RE.match(v):
            raise ValueError("must be letters, digits or dashes")
        return v


class RoomBedOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    location_id: UUID
    room_number: str
    bed_number: str
    label: str
    is_occupied: bool
    floor: str | None = None
    wing: str | None = None
    features: dict[str, JsonValue] = Field(default_factory=dict)
    created_at: datetime | None = None


class BedAssignRequest(BaseModel):
    care_receiver_id: UUID
    room_bed_id: UUID


class BedAssignmentResult(BaseModel):
    success: bool
    message: str
    room_bed: RoomBedOut | None = None
