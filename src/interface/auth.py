"""Bearer-token authentication dependency."""

import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.core.errors import UnauthorizedError
from src.domain.user import User
from src.services import user_service


logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> User:
    """Resolve the `Authorization: Bearer <token>` header to a user.

    Raises:
        UnauthorizedError: If no token is sent, or its user no longer exists
        InvalidTokenError: If the token is tampered with or expired
    """
    if credentials is None or not credentials.credentials:
        logger.debug("Request without bearer token")
        raise UnauthorizedError

    return await user_service.resolve_token(token=credentials.credentials)


CurrentUser = Annotated[User, Depends(get_current_user)]
