"""
Shared dependencies for API endpoints.

Includes:
- Caller identity from the bearer token issued by the identity service
- Role guards for delegates and table allocators
- The schema capabilities resolved at startup
- The war-room update broker
"""

from typing import Annotated

import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.errors import Forbidden
from core.security import decode_token
from db.capabilities import SchemaCapabilities
from db.session import get_db
from schemas.identity import Identity
from services.warroom_events import WarRoomEvents

logger = structlog.get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

__all__ = [
    "get_capabilities",
    "get_current_identity",
    "get_db",
    "get_warroom_events",
    "require_admin",
    "require_allocator",
    "require_delegate",
]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_identity(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Identity:
    """
    Extract and validate the caller from the JWT token.

    Raises:
        HTTPException: If the token is missing, invalid or lacks a subject.
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise _unauthorized("Invalid or expired token")

    user_id = payload.get("sub")
    if user_id is None:
        raise _unauthorized("Invalid token payload")

    return Identity(
        user_id=str(user_id),
        role=str(payload.get("role") or "").lower(),
        delegate_id=payload.get("delegate_id"),
    )


async def require_delegate(
    identity: Annotated[Identity, Depends(get_current_identity)],
) -> Identity:
    """Ensure the caller acts as a delegate with a delegate profile."""
    if not identity.delegate_id:
        logger.warning("delegate_profile_missing", user_id=identity.user_id, role=identity.role)
        raise Forbidden("the caller has no delegate profile")
    return identity


async def require_allocator(
    identity: Annotated[Identity, Depends(get_current_identity)],
) -> Identity:
    """Ensure the caller may allocate tables to delegates."""
    if not identity.can_allocate:
        logger.warning("allocation_access_denied", user_id=identity.user_id, role=identity.role)
        raise Forbidden("only administrators, coordinators and leaders can assign tables")
    return identity


async def require_admin(
    identity: Annotated[Identity, Depends(get_current_identity)],
) -> Identity:
    """Ensure the caller is an administrator."""
    if not identity.is_admin:
        logger.warning("non_admin_access_attempt", user_id=identity.user_id, role=identity.role)
        raise Forbidden("administrator role required")
    return identity


def get_capabilities(request: Request) -> SchemaCapabilities:
    """Schema capabilities resolved once at startup."""
    capabilities = getattr(request.app.state, "capabilities", None)
    if capabilities is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return capabilities


def get_warroom_events(request: Request) -> WarRoomEvents:
    """War-room update broker created with the application."""
    return request.app.state.warroom_events
