import enum
from dataclasses import dataclass
from typing import Optional
from uuid import UUID


class UserRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    ADMIN = "ADMIN"
    CAREGIVER = "CAREGIVER"


ADMIN_ROLES = (UserRole.SUPER_ADMIN, UserRole.ADMIN)


@dataclass(frozen=True)
class CurrentUser:
    """Caller identity as issued by the authentication layer."""

    id: UUID
    role: UserRole
    location_id: Optional[UUID] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN
