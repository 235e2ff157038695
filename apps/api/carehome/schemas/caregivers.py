from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr

from carehome.models.caregiver import CaregiverStatus


class CaregiverCreate(BaseModel):
    location_id: UUID
    first_name: str
    last_name: str
    email: EmailStr
    phone: str | None = None


class CaregiverUpdate(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None


class CaregiverStatusUpdate(BaseModel):
    status: CaregiverStatus


class DeletionRequest(BaseModel):
    reason: str | None = None


class CaregiverOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    location_id: UUID
    first_name: str
    last_name: str
    full_name: str
    email: str
    phone: str | None = None
    status: CaregiverStatus
    deletion_requested: bool = False
    deletion_requested_at: datetime | None = None
    created_at: datetime | None = None
