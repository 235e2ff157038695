import enum
import uuid
from sqlalchemy import Column, DateTime, Enum, Index, String, Text, Uuid
from sqlalchemy.sql import func

from carehome.core.database import Base
from carehome.models.types import JSONBag

class AuditStatus(str, enum.Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

class AuditLog(Base):
    """Append-only; rows are never updated or deleted."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_entity", "entity_type", "entity_id"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id = Column(Uuid, nullable=True, index=True)
    action = Column(String, nullable=False, index=True)
    entity_type = Column(String, nullable=False)
    entity_id = Column(Uuid, nullable=True)

    changes = Column(JSONBag, nullable=False, default=dict)

    status = Column(Enum(AuditStatus, name="audit_status"), nullable=False, default=AuditStatus.SUCCESS)
    reason = Column(Text, nullable=True)
    # GDPR: purpose of the processing
    purpose = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
