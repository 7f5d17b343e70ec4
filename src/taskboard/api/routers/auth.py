from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ..auth import get_app_settings, get_current_user, get_repos
from ..models import UserEntity
from ..repositories import Repositories
from ..schemas import AuthEnvelope, LoginRequest, RegisterRequest, UserData, UserEnvelope, UserOut
from ..services import AccountService
from ..settings import Settings

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _get_service(
    repos: Repositories = Depends(get_repos),
    settings: Settings = Depends(get_app_settings),
) -> AccountService:
    return AccountService(repos, settings)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=AuthEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    responses={400: {"description": "Validation error"}, 409: {"description": "Email already exists"}},
)
def register(payload: RegisterRequest, service: AccountService = Depends(_get_service)) -> AuthEnvelope:
    """Create an account and return an access token for it."""
    user, token = service.register(payload.name, payload.email, payload.password)
    return AuthEnvelope(token=token, data=UserData(user=UserOut(**user)))


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=AuthEnvelope,
    summary="Login",
    responses={401: {"description": "Incorrect email or password"}},
)
def login(payload: LoginRequest, service: AccountService = Depends(_get_service)) -> AuthEnvelope:
    user, token = service.login(payload.email, payload.password)
    return AuthEnvelope(token=token, data=UserData(user=UserOut(**user)))


# PUBLIC_INTERFACE
@router.get("/me", response_model=UserEnvelope, summary="Current User", responses={401: {"description": "Not authorized"}})
def me(user: UserEntity = Depends(get_current_user)) -> UserEnvelope:
    return UserEnvelope(data=UserData(user=UserOut(**user)))
