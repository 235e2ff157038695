import uuid
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.sql import func

from carehome.core.database import Base
from carehome.models.types import JSONBag


class RoomBed(Base):
    __tablename__ = "room_beds"
    __table_args__ = (
        UniqueConstraint("location_id", "room_number", "bed_number", name="uq_room_beds_location_room_bed"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    location_id = Column(
        Uuid,
        ForeignKey("locations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    room_number = Column(String, nullable=False)
    bed_number = Column(String, nullable=False)

    # Denormalized; only the occupancy ledger writes it
    is_occupied = Column(Boolean, nullable=False, default=False, index=True)

    floor = Column(String, nullable=True)
    wing = Column(String, nullable=True)
    features = Column(JSONBag, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def label(self) -> str:
        return f"{self.room_number}-{self.bed_number}"
