import enum
import uuid
from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Text, Uuid, text
from sqlalchemy.sql import func

from carehome.core.database import Base
from carehome.models.types import JSONBag


class LeaveType(str, enum.Enum):
    FULL_DAY = "FULL_DAY"
    HALF_DAY_AM = "HALF_DAY_AM"
    HALF_DAY_PM = "HALF_DAY_PM"


class LeaveStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"
    __table_args__ = (
        # one open request per caregiver and day; decided ones may repeat
        Index(
            "uq_leave_requests_pending",
            "caregiver_id",
            "date",
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
        Index("ix_leave_requests_location_date", "location_id", "date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    caregiver_id = Column(Uuid, ForeignKey("caregivers.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Uuid, ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True)

    date = Column(Date, nullable=False, index=True)
    type = Column(Enum(LeaveType, name="leave_type"), nullable=False)
    status = Column(Enum(LeaveStatus, name="leave_status"), nullable=False, default=LeaveStatus.PENDING, index=True)

    reason = Column(Text, nullable=False)
    attachments = Column(JSONBag, nullable=False, default=list)

    requested_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    decided_at = Column(DateTime(timezone=True), nullable=True)
    decided_by = Column(Uuid, nullable=True)
    decision_note = Column(Text, nullable=True)
