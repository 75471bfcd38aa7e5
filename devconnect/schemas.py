"""
Pydantic request / response schemas for the API layer.
Kept separate from ORM models to avoid coupling transport to storage.

Fields are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class MessageResponse(CamelModel):
    message: str


# ──────────────────────────── Users / auth ────────────────────────────────

class UserSummary(CamelModel):
    id: int
    name: str
    avatar: Optional[str] = None


class UserResponse(CamelModel):
    id: int
    name: str
    email: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    role: str
    is_verified: bool
    created_at: datetime


class UserProfile(CamelModel):
    id: int
    name: str
    avatar: Optional[str] = None
    bio: Optional[str] = None
    created_at: datetime
    follower_count: int = 0
    following_count: int = 0
    post_count: int = 0


class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=6)


class LoginRequest(CamelModel):
    email: str
    password: str


class AuthResponse(CamelModel):
    token: str
    user: UserResponse


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    bio: Optional[str] = None
    avatar: Optional[str] = None


class AdminUserCreate(RegisterRequest):
    role: str = Field("user", pattern="^(user|admin)$")


# ──────────────────────────── Follows ─────────────────────────────────────

class FollowRequest(CamelModel):
    user_id: int


class FollowStatus(CamelModel):
    is_following: bool


class FollowResult(CamelModel):
    """Server-confirmed follow state plus the target's authoritative counts."""
    message: str
    is_following: bool
    follower_count: int
    following_count: int


# ──────────────────────────── Notifications ───────────────────────────────

class NotificationResponse(CamelModel):
    id: int
    type: str
    message: str
    is_read: bool
    created_at: datetime
    user_id: int


class MarkReadRequest(CamelModel):
    id: int


class MarkAllReadResponse(CamelModel):
    message: str
    updated: int


# ──────────────────────────── Posts ───────────────────────────────────────

class PostCreate(CamelModel):
    description: str = Field(..., min_length=1)
    images: list[str] = Field(default_factory=list, max_length=10)


class PostResponse(CamelModel):
    id: int
    user_id: int
    description: str
    images: list[str]
    status: str
    created_at: datetime
    user: Optional[UserSummary] = None


class PostCreated(CamelModel):
    message: str
    post: PostResponse


class PostDeleted(CamelModel):
    message: str
    post_id: int


class LikeState(CamelModel):
    like_count: int
    liked_by_user: bool


class LikeResult(LikeState):
    message: str


class CommentCreate(CamelModel):
    text: str = Field(..., min_length=1)


class CommentResponse(CamelModel):
    id: int
    post_id: int
    user_id: int
    text: str
    created_at: datetime
    user: Optional[UserSummary] = None


# ──────────────────────────── Realtime ────────────────────────────────────

class RealtimeConfig(CamelModel):
    """The one reconnection policy every client is expected to follow."""
    ping_interval: float
    ping_timeout: float
    reconnect_attempts: int
    reconnect_delay: float
