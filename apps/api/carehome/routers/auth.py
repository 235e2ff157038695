from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from carehome.core.identity import ADMIN_ROLES, CurrentUser, UserRole

security = HTTPBearer()

ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24 * 7  # 7 days


def create_access_token(data: dict, secret_key: str, algorithm: str = "HS256", expires_delta: Optional[timedelta] = None):
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret_key, algorithm=algorithm)


def decode_token(token: str, secret_key: str, algorithm: str) -> dict:
    try:
        return jwt.decode(token, secret_key, algorithms=[algorithm])
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Get the current caller from the bearer token claims (sub, role, location_id)."""
    settings = request.app.state.settings
    payload = decode_token(credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm)

    try:
        user_id = UUID(payload["sub"])
        role = UserRole(payload["role"])
        location_id = UUID(payload["location_id"]) if payload.get("location_id") else None
    except (KeyError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    return CurrentUser(id=user_id, role=role, location_id=location_id)


def require_roles(*roles: UserRole):
    """Dependency factory: allow only callers holding one of `roles`."""

    def _check(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This endpoint requires one of: {', '.join(r.value for r in roles)}",
            )
        return user

    return _check


require_admin = require_roles(*ADMIN_ROLES)
require_super_admin = require_roles(UserRole.SUPER_ADMIN)
