from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, JsonValue

from carehome.models.care_receiver import CareReceiverStatus
from carehome.schemas.room_beds import RoomBedOut


class CareReceiverCreate(BaseModel):
    location_id: UUID
    first_name: str
    last_name: str
    date_of_birth: date | None = None
    room_bed_id: UUID | None = None


class CareReceiverUpdate(BaseModel):
    """Partial update. An explicit null `room_bed_id` releases the current bed."""

    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    room_bed_id: UUID | None = None


class GdprConsent(BaseModel):
    data_processing: bool
    health_data_sharing: bool
    emergency_contact_sharing: bool
    research_participation: bool
    marketing_communications: bool
    consent_given_by: str
    relationship_to_care_receiver: str | None = None
    has_legal_authority: bool
    data_sharing_permissions: dict[str, JsonValue] | None = None


class CareReceiverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    location_id: UUID
    first_name: str
    last_name: str
    date_of_birth: date | None = None
    status: CareReceiverStatus
    current_room_bed_id: UUID | None = None
    admission_date: date | None = None
    discharge_date: date | None = None
    consent_history: dict[str, JsonValue] = Field(default_factory=dict)
    deletion_requested: bool = False
    deletion_requested_at: datetime | None = None
    created_at: datetime | None = None


class BedAssignmentOut(BaseModel):
    care_receiver: CareReceiverOut
    current_room_bed: RoomBedOut | None = None
