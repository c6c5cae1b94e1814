"""
FastAPI Dependencies for Authentication and Authorization.

Key patterns:
1. get_current_identity: Verifies the identity provider's session token
2. User-scoped queries: every per-user lookup filters on the owner column
3. No global "current user" state - always pass the identity explicitly

Security model:
- Tokens are issued by an external identity provider (we never mint them)
- Token arrives in the `__session` cookie or an `Authorization: Bearer` header
- Ownership checks happen in route handlers, not middleware
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Annotated, Any
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.db.session import Database, get_database, get_db
from app.services.chat_service import ChatService, get_chat_service
from app.services.llm_service import LLMService, get_llm_service
from app.services.storage import StorageService, get_storage_service

logger = logging.getLogger(__name__)


# =============================================================================
# TOKEN UTILITIES
# =============================================================================


@dataclass(frozen=True)
class Identity:
    """Authenticated caller as asserted by the identity provider."""

    user_id: str
    name: str | None = None
    claims: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def display_name(self) -> str:
        return self.name or "Anonymous"


def decode_identity_token(token: str) -> Identity | None:
    """
    Decode and validate an identity-provider session token.

    Returns the identity if valid, None if invalid/expired or missing `sub`.
    """
    settings = get_settings()
    options = {"verify_aud": False}
    try:
        payload = jwt.decode(
            token,
            settings.identity_jwt_key,
            algorithms=[settings.identity_jwt_algorithm],
            issuer=settings.identity_jwt_issuer,
            options=options,
        )
    except JWTError:
        return None

    subject = payload.get("sub")
    if not subject:
        return None

    name = payload.get("name")
    if not name:
        first, last = payload.get("given_name"), payload.get("family_name")
        name = " ".join(part for part in (first, last) if part) or None
    return Identity(user_id=str(subject), name=name, claims=payload)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    session_token: Annotated[str | None, Cookie(alias="__session")] = None,
) -> str | None:
    """
    Extract the session token from the request.

    Supports two methods (in order of preference):
    1. The identity provider's `__session` cookie (browser requests)
    2. Authorization header: 'Bearer <token>' (API clients)
    """
    if session_token:
        return session_token

    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]

    return None


async def get_current_identity(
    token: Annotated[str | None, Depends(get_token_from_request)],
) -> Identity:
    """
    Validate the session token and return the caller's identity.

    This is the primary authentication dependency. Use it in route handlers:

        @router.get("/my-materials")
        async def list_my_materials(identity: CurrentIdentity):
            ...

    Raises 401 if the token is missing, invalid, or expired. Runs before any
    database session is opened so unauthenticated calls never touch storage.
    """
    if token is None:
        logger.warning("Unauthenticated request: no session token")
        raise _unauthorized()

    identity = decode_identity_token(token)
    if identity is None:
        logger.warning("Unauthenticated request: invalid session token")
        raise _unauthorized()

    return identity


async def get_admin_identity(
    identity: Annotated[Identity, Depends(get_current_identity)],
) -> Identity:
    """Require an identity listed in `admin_user_ids`."""
    if identity.user_id not in get_settings().admin_user_ids:
        logger.warning("Admin route denied for %s", identity.user_id)
        raise _unauthorized()
    return identity


# Type aliases for dependency injection
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
AdminIdentity = Annotated[Identity, Depends(get_admin_identity)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
DatabaseHandle = Annotated[Database, Depends(get_database)]
LLM = Annotated[LLMService, Depends(get_llm_service)]
Storage = Annotated[StorageService, Depends(get_storage_service)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]


# =============================================================================
# AUTHORIZATION HELPERS
# =============================================================================


def require_owner(resource_owner_id: str | None, identity: Identity) -> None:
    """
    Verify the current caller owns the resource.

        video = await db.get(VideoMaterial, video_id)
        if video is None:
            raise HTTPException(404)
        require_owner(video.generated_by, identity)  # Raises 403 if not owner

    Used where the lookup is by id alone; routes that fold ownership into the
    query use get_owned_resource_or_404 instead.
    """
    if resource_owner_id != identity.user_id:
        logger.warning(
            "Ownership check failed: caller=%s owner=%s", identity.user_id, resource_owner_id
        )
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unauthorized")


# =============================================================================
# QUERY HELPERS (enforce user scoping at query level)
# =============================================================================


async def get_owned_resource_or_404(
    db: AsyncSession,
    model: type,
    resource_id: UUID,
    owner_column,
    identity: Identity,
    *,
    detail: str = "Not found",
):
    """
    Fetch a user-owned resource by ID, filtering on the owner column.

    Usage:
        note = await get_owned_resource_or_404(
            db, HandwrittenNote, note_id, HandwrittenNote.uploaded_by, identity,
            detail="Note not found",
        )

    Absent and not-owned are indistinguishable to the caller (404 for both).
    """
    result = await db.execute(
        select(model).where(model.id == resource_id, owner_column == identity.user_id)
    )
    resource = result.scalar_one_or_none()

    if resource is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

    return resource


async def ensure_database_reachable(db: AsyncSession, *, generic_message: str) -> None:
    """
    Bound the first database round trip by `db_timeout_seconds`.

    On expiry raises 500 with `details: "Database connection timeout"`.
    """
    settings = get_settings()
    try:
        await asyncio.wait_for(db.connection(), timeout=settings.db_timeout_seconds)
    except asyncio.TimeoutError:
        logger.error("Database connection timed out after %.1fs", settings.db_timeout_seconds)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": generic_message, "details": "Database connection timeout"},
        )
