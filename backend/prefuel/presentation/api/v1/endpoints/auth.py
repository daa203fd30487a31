"""Sign-in endpoints."""

from fastapi import APIRouter, Depends

from prefuel.application.schemas.auth import LoginRequest, LoginResponse, UserProfile
from prefuel.application.services import AuthService
from prefuel.domain.entities import User
from prefuel.infrastructure.dependencies import get_auth_service, get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    data: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Exchange email and password for a bearer token."""
    token, user = auth.login(data.email, data.password)
    return LoginResponse(token=token, user=UserProfile(**user.profile()))


@router.get("/me", response_model=UserProfile)
async def me(user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile(**user.profile())
