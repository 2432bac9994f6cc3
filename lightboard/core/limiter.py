"""
Rate limiting via slowapi.

  - Key: operator id + role when a valid token is present, else client IP
  - Per-role limits for dashboard routes: editor, admin
  - Fixed limits on login and on public view recording

Usage in routes:
    @router.get("/jobs")
    @limiter.limit(get_role_limit)
    async def list_jobs(request: Request, ...):
        ...
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from lightboard.core.config import settings
from lightboard.core.logging import get_logger

logger = get_logger(__name__)


def get_operator_key(request: Request) -> str:
    """
    Rate limit key. Identity is set on request.state by IdentityMiddleware;
    the role rides along so get_role_limit can resolve from the key alone.
    """
    operator_id = getattr(request.state, "operator_id", None)
    role = getattr(request.state, "operator_role", None)
    if operator_id and role:
        return f"operator:{operator_id}:{role}"
    return get_remote_address(request)


def get_role_limit(key: str) -> str:
    """Dynamic limit resolver; slowapi passes the value of get_operator_key."""
    role = key.rsplit(":", 1)[-1] if key.startswith("operator:") else None

    limit_map = {
        "editor": settings.RATE_LIMIT_EDITOR,
        "admin": settings.RATE_LIMIT_ADMIN,
    }

    resolved = limit_map.get(role, settings.RATE_LIMIT_DEFAULT)
    logger.debug("rate_limit.resolved", role=role, limit=resolved)
    return resolved


limiter = Limiter(
    key_func=get_operator_key,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    enabled=settings.RATE_LIMIT_ENABLED,
)
