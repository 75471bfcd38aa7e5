"""
Account endpoints:
  POST /api/auth/register       create an account, returns a bearer token
  POST /api/auth/login          exchange credentials for a bearer token
  GET  /api/users/me            the caller's account
  PUT  /api/users/profile       edit name / bio / avatar
  GET  /api/users/search        find users by name or email
  GET  /api/users/{userId}      public profile with follow and post counts
"""
import logging

from fastapi import APIRouter, Depends, Query, status
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.auth import create_access_token, get_current_user
from devconnect.database import get_db
from devconnect.models import User
from devconnect.schemas import (
    AuthResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserProfile,
    UserResponse,
    UserSummary,
)
from devconnect.services import users

logger = logging.getLogger(__name__)
auth_router = APIRouter()
router = APIRouter()
tracer = trace.get_tracer(__name__)


@auth_router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterRequest, db: AsyncSession = Depends(get_db)):
    with tracer.start_as_current_span("register"):
        user = await users.create_user(db, body.name, body.email, body.password)
        return AuthResponse(token=create_access_token(user), user=UserResponse.model_validate(user))


@auth_router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)):
    user = await users.authenticate(db, body.email, body.password)
    return AuthResponse(token=create_access_token(user), user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)):
    return user


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await users.update_profile(db, user, name=body.name, bio=body.bio, avatar=body.avatar)


@router.get("/search", response_model=list[UserSummary])
async def search_users(
    query: str = Query(..., min_length=1),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await users.search_users(db, query, exclude_id=user.id)


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    profile = await users.get_profile(db, user_id)
    return UserProfile(
        id=profile.user.id,
        name=profile.user.name,
        avatar=profile.user.avatar,
        bio=profile.user.bio,
        created_at=profile.user.created_at,
        follower_count=profile.follower_count,
        following_count=profile.following_count,
        post_count=profile.post_count,
    )
