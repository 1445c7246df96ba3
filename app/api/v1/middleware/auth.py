"""JWT authentication middleware.

Verifies the bearer token on every protected request and stores the caller
on ``request.state.user``.
"""

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.jwt import jwt_verifier
from app.schemas.auth import CurrentUser
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

EXCLUDED_PATHS = {
    "/",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
}

# Customers reach these through the emailed upload link without logging in
PUBLIC_PREFIXES = ("/api/v1/claim-uploads/",)


def is_public_path(path: str) -> bool:
    normalized = path.rstrip("/") or "/"
    if normalized in EXCLUDED_PATHS or normalized.startswith("/health"):
        return True
    return any(path.startswith(prefix) for prefix in PUBLIC_PREFIXES)


def _unauthorized(detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": detail},
        headers={"WWW-Authenticate": "Bearer"},
    )


class JWTAuthenticationMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS" or is_public_path(request.url.path):
            return await call_next(request)

        auth_header = request.headers.get("Authorization")
        if not auth_header:
            LOGGER.warning(f"Missing Authorization header for {request.url.path}")
            return _unauthorized("Authorization header missing")

        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            return _unauthorized("Invalid authentication scheme. Use Bearer token.")

        try:
            claims = await jwt_verifier.verify_token(token)
        except jwt.InvalidTokenError as e:
            LOGGER.warning(f"Invalid token for {request.url.path}: {e}")
            return _unauthorized("Invalid authentication token")

        request.state.user = CurrentUser(
            id=claims.sub,
            email=claims.email,
            role=claims.role,
            app_metadata=claims.app_metadata,
            user_metadata=claims.user_metadata,
        )
        return await call_next(request)
