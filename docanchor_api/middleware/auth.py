"""Authentication middleware for write and lookup routes."""

import logging

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from docanchor_api.auth.api_key import authenticate_api_key

logger = logging.getLogger(__name__)

# Paths that never need a key
OPEN_PATHS = {"/health", "/ready", "/metrics", "/docs", "/redoc", "/openapi.json", "/"}

# Public operations: verification needs no secret
PUBLIC_ROUTES = {
    ("POST", "/v1/verify"),
    ("POST", "/v1/hash"),
    ("POST", "/v1/documents/check"),
}
PUBLIC_PREFIXES = (("GET", "/v1/documents/"),)


def is_public(method: str, path: str) -> bool:
    if path in OPEN_PATHS or path.startswith("/metrics"):
        return True
    if (method, path) in PUBLIC_ROUTES:
        return True
    return any(method == m and path.startswith(prefix) for m, prefix in PUBLIC_PREFIXES)


class AuthMiddleware(BaseHTTPMiddleware):
    """Require a valid x-api-key header outside public routes."""

    async def dispatch(self, request: Request, call_next):
        """Process request with API key check."""
        if request.method == "OPTIONS" or is_public(request.method, request.url.path):
            return await call_next(request)

        api_key = request.headers.get("x-api-key")
        if not api_key:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "message": "Missing API key. Provide x-api-key header."},
            )

        client_id = authenticate_api_key(api_key)
        if not client_id:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "message": "Invalid or revoked API key."},
            )

        request.state.client_id = client_id

        correlation_id = getattr(request.state, "correlation_id", None)
        logger.info(
            "Authenticated request",
            extra={
                "client_id": client_id,
                "correlation_id": correlation_id,
                "path": request.url.path,
            },
        )
        return await call_next(request)
