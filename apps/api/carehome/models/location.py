import uuid
from sqlalchemy import Boolean, Column, DateTime, String, Text, Uuid
from sqlalchemy.sql import func

from carehome.core.database import Base


class Location(Base):
    __tablename__ = "locations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    name = Column(String, nullable=False, index=True)
    address = Column(Text, nullable=False)
    city = Column(String, nullable=True)
    timezone = Column(String, nullable=False, default="Europe/London")

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
