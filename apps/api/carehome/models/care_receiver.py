import enum
import uuid
from sqlalchemy import Boolean, Column, Date, DateTime, Enum, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.sql import func

from carehome.core.database import Base
from carehome.models.types import JSONBag


class CareReceiverStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    DISCHARGED = "DISCHARGED"
    DECEASED = "DECEASED"
    TRANSFERRED = "TRANSFERRED"


class CareReceiver(Base):
    __tablename__ = "care_receivers"
    __table_args__ = (
        # at most one occupant per bed
        Index(
            "uq_care_receivers_current_room_bed",
            "current_room_bed_id",
            unique=True,
            postgresql_where=text("current_room_bed_id IS NOT NULL"),
            sqlite_where=text("current_room_bed_id IS NOT NULL"),
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    location_id = Column(
        Uuid,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    date_of_birth = Column(Date, nullable=True)

    status = Column(Enum(CareReceiverStatus, name="care_receiver_status"), nullable=False, default=CareReceiverStatus.ACTIVE)

    # Occupies the bed, does not own it
    current_room_bed_id = Column(Uuid, ForeignKey("room_beds.id", ondelete="SET NULL"), nullable=True)

    admission_date = Column(Date, nullable=True)
    discharge_date = Column(Date, nullable=True)

    # GDPR: consent snapshots keyed by ISO timestamp, plus erasure requests
    consent_history = Column(JSONBag, nullable=False, default=dict)
    deletion_requested = Column(Boolean, nullable=False, default=False)
    deletion_requested_at = Column(DateTime(timezone=True), nullable=True)
    deletion_request_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
