"""User account endpoints: registration, login, profile and stats."""

import logging

from fastapi import APIRouter, status

from src.domain.create_models import LoginRequest, UserCreate
from src.domain.update_models import PasswordChange, ProfileUpdate
from src.domain.user import UserPublic
from src.interface.auth import CurrentUser
from src.models.service_models import AuthResult, MessageResponse, ProfileResponse, UserStats
from src.services import stats_service, user_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=AuthResult)
async def register(payload: UserCreate) -> AuthResult:
    """Create an account and return a bearer token."""
    return await user_service.register(data=payload)


@router.post("/login", response_model=AuthResult)
async def login(payload: LoginRequest) -> AuthResult:
    return await user_service.login(email=payload.email, password=payload.password)


@router.get("/me", response_model=UserPublic)
async def me(user: CurrentUser) -> UserPublic:
    """Return the profile behind the bearer token."""
    return user_service.to_public(user)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(payload: ProfileUpdate, user: CurrentUser) -> ProfileResponse:
    updated = await user_service.update_profile(user_id=user.id, data=payload)
    return ProfileResponse(message="Profile updated successfully", user=updated)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(payload: PasswordChange, user: CurrentUser) -> MessageResponse:
    await user_service.change_password(user_id=user.id, data=payload)
    return MessageResponse(message="Password changed successfully")


@router.get("/stats", response_model=UserStats)
async def user_stats(user: CurrentUser) -> UserStats:
    """Completion statistics over the caller's visible tasks."""
    return await stats_service.get_user_stats(user_id=user.id)
