"""
Admin endpoints (role 'admin' only):
  GET    /api/admin/users                list regular members
  POST   /api/admin/users                create a pre-verified account
  DELETE /api/admin/users/{userId}       delete an account and its content
  GET    /api/admin/posts/pending        review queue
  PUT    /api/admin/posts/{id}/approve   publish and notify the owner
  PUT    /api/admin/posts/{id}/reject    remove and notify the owner
"""
from fastapi import APIRouter, Depends, status
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.auth import require_admin
from devconnect.database import get_db
from devconnect.models import User
from devconnect.realtime.broadcaster import Broadcaster, get_broadcaster
from devconnect.routers.posts import _build_post_response
from devconnect.schemas import AdminUserCreate, MessageResponse, PostResponse, UserResponse
from devconnect.services import moderation, posts, users

router = APIRouter(dependencies=[Depends(require_admin)])
tracer = trace.get_tracer(__name__)


@router.get("/users", response_model=list[UserResponse])
async def list_users(db: AsyncSession = Depends(get_db)):
    return await users.list_members(db)


@router.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(body: AdminUserCreate, db: AsyncSession = Depends(get_db)):
    return await users.create_user(
        db, body.name, body.email, body.password, role=body.role, verified=True
    )


@router.delete("/users/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await users.delete_user(db, admin, user_id)
    return MessageResponse(message="User deleted successfully!")


@router.get("/posts/pending", response_model=list[PostResponse])
async def pending_posts(db: AsyncSession = Depends(get_db)):
    return [_build_post_response(p) for p in await posts.list_pending(db)]


@router.put("/posts/{post_id}/approve", response_model=PostResponse)
async def approve_post(
    post_id: int,
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    with tracer.start_as_current_span("approve_post") as span:
        span.set_attribute("post.id", post_id)
        post = await moderation.approve_post(db, broadcaster, post_id)
        return _build_post_response(post)


@router.put("/posts/{post_id}/reject", response_model=MessageResponse)
async def reject_post(
    post_id: int,
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    with tracer.start_as_current_span("reject_post") as span:
        span.set_attribute("post.id", post_id)
        await moderation.reject_post(db, broadcaster, post_id)
        return MessageResponse(message="Post rejected successfully")
