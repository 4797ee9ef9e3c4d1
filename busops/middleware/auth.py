"""Bearer-token middleware for route protection."""

from typing import Any, Dict

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from busops.core.errors import AuthError
from busops.core.logging import get_logger

logger = get_logger(__name__)

# Public routes that don't require authentication
PUBLIC_PATHS = frozenset([
    "/api/health",
    "/api/test",
    "/api/auth/login",
    "/docs",
    "/openapi.json",
    "/redoc",
])


class AuthMiddleware(BaseHTTPMiddleware):
    """Rejects unauthenticated requests before they reach the cache or upstream."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in PUBLIC_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get("Authorization", "")
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return JSONResponse(
                status_code=401,
                content={"error": "Access token required"}
            )

        user_auth = request.app.state.container.user_auth_service()
        try:
            claims = user_auth.verify_token(token.strip())
        except AuthError as e:
            logger.info("Rejected request token", path=request.url.path)
            return JSONResponse(
                status_code=e.status_code,
                content={"error": e.message}
            )

        # Attach claims to request state for downstream handlers
        request.state.claims = claims
        return await call_next(request)


def get_current_claims(request: Request) -> Dict[str, Any]:
    """FastAPI dependency returning the verified token claims."""
    return request.state.claims
