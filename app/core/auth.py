"""Authentication and role dependencies for FastAPI routes."""

from typing import Annotated, Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_async_session
from app.core.jwt import jwt_verifier
from app.repositories.user_repository import UserRoleRepository
from app.schemas.auth import CurrentUser
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

security = HTTPBearer(auto_error=False)

ADMIN_ROLES = ("admin", "system_admin")
STAFF_ROLES = (
    "admin",
    "system_admin",
    "retail_agent",
    "claims_agent",
    "backoffice_agent",
    "consultant",
    "complaints_agent",
    "commercial_agent",
)
CLAIMS_HANDLER_ROLES = ("admin", "system_admin", "claims_agent", "retail_agent", "backoffice_agent")


async def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentUser:
    """Return the caller authenticated by the middleware, or verify the bearer token.

    Raises:
        HTTPException: 401 if the token is missing or invalid
    """
    user = getattr(request.state, "user", None)
    if isinstance(user, CurrentUser):
        return user

    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header missing",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        claims = await jwt_verifier.verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        LOGGER.warning(f"Invalid token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    return CurrentUser(
        id=claims.sub,
        email=claims.email,
        role=claims.role,
        app_metadata=claims.app_metadata,
        user_metadata=claims.user_metadata,
    )


async def get_user_roles(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    db_session: Annotated[AsyncSession, Depends(get_async_session)],
) -> CurrentUser:
    """Attach the caller's ``user_roles`` grants."""
    if not user.roles:
        user.roles = await UserRoleRepository(db_session).get_roles(UUID(user.id))
    return user


def require_any_role(*allowed_roles: str):
    """Build a dependency that lets through callers holding any of ``allowed_roles``.

    Example:
        @router.post("/regenerate")
        async def regenerate(user: Annotated[CurrentUser, Depends(require_admin)]):
            ...
    """

    async def role_checker(user: Annotated[CurrentUser, Depends(get_user_roles)]) -> CurrentUser:
        if not user.has_any_role(*allowed_roles):
            LOGGER.warning(
                "Access denied",
                extra={"user_id": user.id, "roles": user.roles, "allowed": allowed_roles},
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required roles: {', '.join(allowed_roles)}",
            )
        return user

    return role_checker


require_admin = require_any_role(*ADMIN_ROLES)
require_staff = require_any_role(*STAFF_ROLES)
require_claims_handler = require_any_role(*CLAIMS_HANDLER_ROLES)
