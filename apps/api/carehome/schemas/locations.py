from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class LocationCreate(BaseModel):
    name: str
    address: str
    city: str | None = None
    timezone: str = "Europe/London"


class LocationUpdate(BaseModel):
    name: str | None = None
    address: str | None = None
    city: str | None = None
    timezone: str | None = None
    is_active: bool | None = None


class LocationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    address: str
    city: str | None = None
    timezone: str
    is_active: bool
    created_at: datetime | None = None


class LocationStats(BaseModel):
    caregiver_count: int
    care_receiver_count: int
    room_bed_count: int
    occupied_room_beds: int
    available_room_beds: int
