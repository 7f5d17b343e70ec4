from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import AuthenticationError
from .models import UserEntity
from .repositories import Repositories
from .security import decode_access_token
from .settings import Settings

_security = HTTPBearer(auto_error=False)

NOT_AUTHORIZED = "Not authorized to access this route"


# PUBLIC_INTERFACE
def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


# PUBLIC_INTERFACE
def get_repos(request: Request) -> Repositories:
    """Storage backends the running application was built with."""
    return request.app.state.repositories


# PUBLIC_INTERFACE
def get_current_user(
    creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
    settings: Settings = Depends(get_app_settings),
    repos: Repositories = Depends(get_repos),
) -> UserEntity:
    """
    Resolve the bearer token into the authenticated user.

    Raises:
        AuthenticationError(401) if the header is missing, the token does not
        verify or has expired, or its user no longer exists. The response is
        identical for every cause.
    """
    if creds is None or not creds.credentials:
        raise AuthenticationError(NOT_AUTHORIZED)

    user_id = decode_access_token(creds.credentials, settings)
    user = repos.users.get(user_id)
    if user is None:
        raise AuthenticationError(NOT_AUTHORIZED)
    return user
