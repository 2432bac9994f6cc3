"""
Identity middleware — copies operator claims from a Bearer token into
request.state before routing, so the audit log and rate limiter can see who
is calling. It never rejects a request; route dependencies enforce auth.
"""

from jose import JWTError, jwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from lightboard.core.config import settings


class IdentityMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.operator_id = None
        request.state.operator_role = None

        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            try:
                payload = jwt.decode(
                    auth_header[7:],
                    settings.JWT_SECRET_KEY,
                    algorithms=[settings.JWT_ALGORITHM],
                )
            except JWTError:
                payload = {}
            if payload.get("token_type") == "access":
                request.state.operator_id = payload.get("sub")
                request.state.operator_role = payload.get("role")

        return await call_next(request)
