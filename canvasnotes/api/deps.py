"""
FastAPI Dependencies for Authentication and Service Wiring

Provides dependency injection for:
- Current caller id (from the provider-issued bearer token)
- Graph data service bound to a request-scoped database session
"""

import logging
from typing import Optional
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from canvasnotes.core.auth import TokenValidator, TokenError, AuthConfigError
from canvasnotes.core.database import get_session
from canvasnotes.services.graph_service import GraphDataService
from canvasnotes.store.sql import SqlGraphStore

logger = logging.getLogger(__name__)

http_bearer = HTTPBearer(auto_error=False)

_token_validator: Optional[TokenValidator] = None


def get_token_validator() -> TokenValidator:
    global _token_validator
    if _token_validator is None:
        _token_validator = TokenValidator()
    return _token_validator


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    validator: TokenValidator = Depends(get_token_validator),
) -> Optional[str]:
    """
    Resolve the caller id from the Authorization header.

    A missing or invalid token yields None rather than an HTTP error: the
    GraphQL layer reports it as an UNAUTHENTICATED error per operation.

    Raises:
        HTTPException: 500 if token verification is not configured
    """
    if not credentials:
        logger.debug("No bearer token on request")
        return None

    try:
        payload = validator.validate_token(credentials.credentials)
    except TokenError as e:
        logger.warning(f"Token validation error: {e}")
        return None
    except AuthConfigError as e:
        logger.error(f"Auth configuration error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Authentication configuration error: {str(e)}",
        )

    user_id = validator.get_user_id(payload)
    if not user_id:
        logger.warning("Token is missing the sub claim")
        return None

    logger.debug(f"User {user_id} authenticated via token")
    return user_id


async def get_graph_service(session: AsyncSession = Depends(get_session)) -> GraphDataService:
    return GraphDataService(SqlGraphStore(session))
