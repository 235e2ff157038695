from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, JsonValue

from carehome.models.audit_log import AuditStatus


class AuditLogOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID | None = None
    action: str
    entity_type: str
    entity_id: UUID | None = None
    changes: dict[str, JsonValue]
    status: AuditStatus
    reason: str | None = None
    purpose: str | None = None
    created_at: datetime | None = None


class AuditLogPage(BaseModel):
    total: int
    logs: list[AuditLogOut]


class AuditStats(BaseModel):
    total_logs: int
    success_count: int
    failure_count: int
    action_breakdown: dict[str, int]
    entity_type_breakdown: dict[str, int]
    user_breakdown: dict[str, int]
