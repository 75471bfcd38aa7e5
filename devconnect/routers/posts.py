"""
Post endpoints:
  POST   /api/posts                   submit a post (enters review as 'pending')
  GET    /api/posts                   approved posts, newest first
  GET    /api/posts/user/pending      the caller's posts awaiting review
  GET    /api/posts/user/{userId}     a user's approved posts
  GET    /api/posts/search?query=     search approved posts
  DELETE /api/posts/{id}              owner or admin
  POST   /api/posts/{id}/like         toggle like
  GET    /api/posts/{id}/likes        like count + caller's state
  POST   /api/posts/{id}/comment      add a comment
  GET    /api/posts/{id}/comments     list comments
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.auth import get_current_user
from devconnect.database import get_db
from devconnect.models import Comment, Post, User
from devconnect.realtime.broadcaster import Broadcaster, get_broadcaster
from devconnect.schemas import (
    CommentCreate,
    CommentResponse,
    LikeResult,
    LikeState,
    PostCreate,
    PostCreated,
    PostDeleted,
    PostResponse,
    UserSummary,
)
from devconnect.services import posts

logger = logging.getLogger(__name__)
router = APIRouter()
tracer = trace.get_tracer(__name__)


def _build_post_response(post: Post, author: Optional[User] = None) -> PostResponse:
    author = author or post.author
    return PostResponse(
        id=post.id,
        user_id=post.user_id,
        description=post.description,
        images=post.images or [],
        status=post.status,
        created_at=post.created_at,
        user=UserSummary.model_validate(author) if author else None,
    )


def _build_comment_response(comment: Comment, author: Optional[User] = None) -> CommentResponse:
    author = author or comment.author
    return CommentResponse(
        id=comment.id,
        post_id=comment.post_id,
        user_id=comment.user_id,
        text=comment.text,
        created_at=comment.created_at,
        user=UserSummary.model_validate(author) if author else None,
    )


@router.post("", response_model=PostCreated, status_code=status.HTTP_201_CREATED)
async def create_post(
    body: PostCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    with tracer.start_as_current_span("create_post") as span:
        post = await posts.create_post(db, user, body.description, body.images)
        span.set_attribute("post.id", post.id)
        return PostCreated(
            message="Your post is under verification",
            post=_build_post_response(post, author=user),
        )


@router.get("", response_model=list[PostResponse])
async def list_posts(db: AsyncSession = Depends(get_db)):
    return [_build_post_response(p) for p in await posts.list_approved(db)]


@router.get("/user/pending", response_model=list[PostResponse])
async def my_pending_posts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return [_build_post_response(p) for p in await posts.list_pending_for(db, user.id)]


@router.get("/user/{user_id}", response_model=list[PostResponse])
async def posts_by_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return [_build_post_response(p) for p in await posts.list_by_user(db, user_id)]


@router.get("/search", response_model=list[PostResponse])
async def search_posts(
    query: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    return [_build_post_response(p) for p in await posts.search(db, query)]


@router.delete("/{post_id}", response_model=PostDeleted)
async def delete_post(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await posts.delete_post(db, user, post_id)
    return PostDeleted(message="Post deleted successfully!", post_id=post_id)


@router.post("/{post_id}/like", response_model=LikeResult)
async def toggle_like(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    with tracer.start_as_current_span("toggle_like"):
        result = await posts.toggle_like(db, broadcaster, user, post_id)
        return LikeResult(
            message="Post liked!" if result.liked else "Like removed!",
            like_count=result.like_count,
            liked_by_user=result.liked,
        )


@router.get("/{post_id}/likes", response_model=LikeState)
async def get_likes(
    post_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await posts.get_post(db, post_id)
    return LikeState(
        like_count=await posts.like_count(db, post_id),
        liked_by_user=await posts.liked_by(db, user.id, post_id),
    )


@router.post(
    "/{post_id}/comment",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    body: CommentCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    comment = await posts.add_comment(db, broadcaster, user, post_id, body.text)
    return _build_comment_response(comment, author=user)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
async def list_comments(post_id: int, db: AsyncSession = Depends(get_db)):
    return [_build_comment_response(c) for c in await posts.list_comments(db, post_id)]
