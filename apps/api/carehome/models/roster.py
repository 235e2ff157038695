import enum
import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, String, Text, Time, Uuid
from sqlalchemy.sql import func

from carehome.core.database import Base
from carehome.models.types import JSONBag


class ShiftType(str, enum.Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    NIGHT = "NIGHT"
    FULL_DAY = "FULL_DAY"


class RosterStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ShiftStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# Entries in these states hold the caregiver's time
BLOCKING_STATUSES = (RosterStatus.PUBLISHED, RosterStatus.ACTIVE)


class RosterEntry(Base):
    __tablename__ = "rosters"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)
    caregiver_id = Column(Uuid, ForeignKey("caregivers.id", ondelete="CASCADE"), nullable=False, index=True)
    room_bed_id = Column(Uuid, ForeignKey("room_beds.id", ondelete="SET NULL"), nullable=True)

    shift_date = Column(Date, nullable=False, index=True)
    shift_type = Column(Enum(ShiftType, name="shift_type"), nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)

    status = Column(Enum(RosterStatus, name="roster_status"), nullable=False, default=RosterStatus.DRAFT, index=True)
    shift_status = Column(Enum(ShiftStatus, name="shift_status"), nullable=False, default=ShiftStatus.SCHEDULED)

    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_pattern = Column(JSONBag, nullable=True)
    notes = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    extra = Column("metadata", JSONBag, nullable=True)

    external_calendar_event_id = Column(String, nullable=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
