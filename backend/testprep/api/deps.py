"""
Mock Test Platform - API Dependencies
FastAPI dependencies for authentication and service wiring
"""
import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from testprep.core.database import get_db
from testprep.core.security import verify_token
from testprep.services.attempt import AttemptService
from testprep.services.catalog import CatalogService

# Security scheme
security = HTTPBearer()


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> uuid.UUID:
    """
    Resolve the caller from a JWT issued by the auth service.

    Raises:
        HTTPException: If the token is invalid, expired, or has no usable subject
    """
    subject = verify_token(credentials.credentials, token_type="access")

    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return uuid.UUID(subject)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token subject",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_attempt_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AttemptService:
    return AttemptService(db)


async def get_catalog_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CatalogService:
    return CatalogService(db)


# Type aliases for common dependencies
CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Attempts = Annotated[AttemptService, Depends(get_attempt_service)]
Catalog = Annotated[CatalogService, Depends(get_catalog_service)]
