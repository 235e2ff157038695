import enum
import uuid
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.sql import func

from carehome.core.database import Base
from carehome.models.types import JSONBag


class CaregiverStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"
    ON_LEAVE = "ON_LEAVE"


class Caregiver(Base):
    __tablename__ = "caregivers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    location_id = Column(
        Uuid,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    phone = Column(String, nullable=True)

    status = Column(Enum(CaregiverStatus, name="caregiver_status"), nullable=False, default=CaregiverStatus.ACTIVE)

    consent_history = Column(JSONBag, nullable=False, default=dict)
    deletion_requested = Column(Boolean, nullable=False, default=False)
    deletion_requested_at = Column(DateTime(timezone=True), nullable=True)
    deletion_request_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
