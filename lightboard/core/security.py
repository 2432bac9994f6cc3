"""
Security core: JWT creation/validation, password hashing, operator permissions.

  - Access tokens — short-lived, carried in the Authorization header
  - Refresh tokens — longer-lived, exchanged for a fresh pair on /auth/refresh
  - Roles: admin > editor. Editors run the dashboard; admins also manage operators.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from lightboard.core.config import settings
from lightboard.core.logging import get_logger

logger = get_logger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
bearer_scheme = HTTPBearer()


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ── Roles & Permissions ────────────────────────────────────────────────────────
class Role(str, Enum):
    EDITOR = "editor"
    ADMIN = "admin"


class Permission(str, Enum):
    MANAGE_CONTENT = "content:manage"
    SET_TRAFFIC_LIGHT = "traffic_light:set"
    VIEW_ANALYTICS = "analytics:view"
    EXPORT_ANALYTICS = "analytics:export"
    MANAGE_OPERATORS = "operators:manage"


ROLE_PERMISSIONS: dict[Role, set[Permission]] = {
    Role.EDITOR: {
        Permission.MANAGE_CONTENT,
        Permission.SET_TRAFFIC_LIGHT,
        Permission.VIEW_ANALYTICS,
        Permission.EXPORT_ANALYTICS,
    },
    Role.ADMIN: {p for p in Permission},
}


def has_permission(role: Role, permission: Permission) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, set())


# ── Token schemas ──────────────────────────────────────────────────────────────
class TokenPayload(BaseModel):
    sub: str           # operator id
    role: Role
    jti: str
    exp: datetime
    iat: datetime
    token_type: str    # "access" or "refresh"


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int    # access token TTL in seconds


# ── Token creation ─────────────────────────────────────────────────────────────
def create_token(operator_id: str, role: Role, token_type: str = "access") -> str:
    now = datetime.now(timezone.utc)

    if token_type == "access":
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    else:
        expire = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

    payload = {
        "sub": str(operator_id),
        "role": role.value,
        "jti": str(uuid4()),
        "exp": expire,
        "iat": now,
        "token_type": token_type,
    }
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_token_pair(operator_id: str, role: Role) -> TokenPair:
    return TokenPair(
        access_token=create_token(operator_id, role, "access"),
        refresh_token=create_token(operator_id, role, "refresh"),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


# ── Token validation ───────────────────────────────────────────────────────────
def decode_token(token: str) -> TokenPayload:
    """Decode and validate a JWT. Raises HTTPException on any failure."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
        )
        return TokenPayload(**payload)

    except ExpiredSignatureError:
        logger.warning("auth.token_expired")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError as e:
        logger.warning("auth.token_invalid", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


# ── FastAPI dependencies ───────────────────────────────────────────────────────
async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> TokenPayload:
    """Dependency: validates the Bearer token and returns its payload."""
    payload = decode_token(credentials.credentials)

    if payload.token_type != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Refresh tokens cannot be used for API access",
        )
    return payload


def require_permission(permission: Permission):
    """
    Dependency factory: 403 unless the operator's role grants ``permission``.

    Usage:
        @router.post("/jobs")
        async def create(user = Depends(require_permission(Permission.MANAGE_CONTENT))):
            ...
    """
    async def _check(current_user: TokenPayload = Depends(get_current_user)) -> TokenPayload:
        if not has_permission(current_user.role, permission):
            logger.warning(
                "auth.permission_denied",
                operator_id=current_user.sub,
                role=current_user.role,
                required_permission=permission.value,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission '{permission.value}' required",
            )
        return current_user

    return _check
