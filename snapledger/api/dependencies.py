"""FastAPI dependencies: authentication and application components."""

from functools import lru_cache
from typing import Optional
from uuid import UUID

from fastapi import Header, HTTPException

from snapledger.config import get_settings
from snapledger.orchestrator import AppComponents, create_app_components


@lru_cache()
def get_components() -> AppComponents:
    """
    Application components shared by all requests (cached).

    Tests replace this through app.dependency_overrides.
    """
    return create_app_components()


def get_current_user_id(authorization: Optional[str] = Header(default=None)) -> UUID:
    """
    Resolve the bearer token to a user id.

    Raises:
        HTTPException: 401 if the header is missing or the token is unknown
    """
    if not authorization:
        raise HTTPException(401, "Unauthorized")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(401, "Unauthorized")

    user_id = get_settings().auth.token_map.get(token.strip())
    if user_id is None:
        raise HTTPException(401, "Unauthorized")
    return user_id
