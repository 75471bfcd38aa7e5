"""
Posts, likes and comments.

New posts wait in 'pending' until an admin approves them; only approved
posts show up in public listings. Liking and commenting on someone else's
post notifies its owner after commit.
"""
import logging
from dataclasses import dataclass

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.errors import NotFound, Unauthorized, ValidationError
from devconnect.models import (
    POST_APPROVED,
    POST_PENDING,
    Comment,
    Like,
    Post,
    User,
)
from devconnect.realtime.broadcaster import Broadcaster
from devconnect.services import notifications

logger = logging.getLogger(__name__)


@dataclass
class LikeToggle:
    liked: bool
    like_count: int


async def create_post(db: AsyncSession, author: User, description: str, images: list[str]) -> Post:
    description = description.strip()
    if not description:
        raise ValidationError("Description is required.")

    post = Post(
        user_id=author.id,
        description=description,
        images=list(dict.fromkeys(images)),
        status=POST_PENDING,
    )
    db.add(post)
    await db.commit()
    logger.info("Post %s submitted by user %s (pending review)", post.id, author.id)
    return post


async def get_post(db: AsyncSession, post_id: int) -> Post:
    post = await db.get(Post, post_id)
    if post is None:
        raise NotFound("Post not found")
    return post


async def _list(db: AsyncSession, *criteria) -> list[Post]:
    rows = await db.execute(
        select(Post).where(*criteria).order_by(Post.created_at.desc(), Post.id.desc())
    )
    return list(rows.scalars().all())


async def list_approved(db: AsyncSession) -> list[Post]:
    return await _list(db, Post.status == POST_APPROVED)


async def list_by_user(db: AsyncSession, user_id: int) -> list[Post]:
    return await _list(db, Post.user_id == user_id, Post.status == POST_APPROVED)


async def list_pending_for(db: AsyncSession, user_id: int) -> list[Post]:
    return await _list(db, Post.user_id == user_id, Post.status == POST_PENDING)


async def list_pending(db: AsyncSession) -> list[Post]:
    return await _list(db, Post.status == POST_PENDING)


async def search(db: AsyncSession, query: str) -> list[Post]:
    query = query.strip()
    if not query:
        raise ValidationError("Query is required")
    return await _list(
        db,
        Post.status == POST_APPROVED,
        Post.description.ilike(f"%{query}%"),
    )


async def delete_post(db: AsyncSession, actor: User, post_id: int) -> None:
    post = await get_post(db, post_id)
    if post.user_id != actor.id and not actor.is_admin:
        raise Unauthorized("Unauthorized to delete this post")
    await db.delete(post)
    await db.commit()
    logger.info("Post %s deleted by user %s", post_id, actor.id)


# ─────────────────────────── Likes ───────────────────────────────────────

async def like_count(db: AsyncSession, post_id: int) -> int:
    count = await db.scalar(
        select(func.count()).select_from(Like).where(Like.post_id == post_id)
    )
    return count or 0


async def liked_by(db: AsyncSession, user_id: int, post_id: int) -> bool:
    return await db.get(Like, (user_id, post_id)) is not None


async def toggle_like(
    db: AsyncSession,
    broadcaster: Broadcaster,
    user: User,
    post_id: int,
) -> LikeToggle:
    """
    Flip the (user, post) like edge.

    An existing edge is deleted. Otherwise the insert is attempted; a
    primary-key violation means a concurrent request inserted the edge
    first, so the toggle becomes a delete.
    """
    user_id, user_name = user.id, user.name
    post = await get_post(db, post_id)
    owner_id = post.user_id

    existing = await db.get(Like, (user_id, post_id))
    if existing is not None:
        await db.delete(existing)
        await db.commit()
        return LikeToggle(liked=False, like_count=await like_count(db, post_id))

    notification = None
    db.add(Like(user_id=user_id, post_id=post_id))
    if owner_id != user_id:
        notification = notifications.create_notification(
            db, owner_id, "like", f"{user_name} liked your post."
        )
    try:
        await db.commit()
        liked = True
    except IntegrityError:
        await db.rollback()
        await db.execute(
            delete(Like).where(Like.user_id == user_id, Like.post_id == post_id)
        )
        await db.commit()
        notification = None
        liked = False

    if notification is not None:
        await notifications.publish(broadcaster, notification)
    return LikeToggle(liked=liked, like_count=await like_count(db, post_id))


# ─────────────────────────── Comments ────────────────────────────────────

async def add_comment(
    db: AsyncSession,
    broadcaster: Broadcaster,
    user: User,
    post_id: int,
    text: str,
) -> Comment:
    text = text.strip()
    if not text:
        raise ValidationError("Comment cannot be empty!")
    post = await get_post(db, post_id)

    comment = Comment(post_id=post_id, user_id=user.id, text=text)
    db.add(comment)
    notification = None
    if post.user_id != user.id:
        notification = notifications.create_notification(
            db, post.user_id, "comment", f"{user.name} commented on your post."
        )
    await db.commit()

    if notification is not None:
        await notifications.publish(broadcaster, notification)
    return comment


async def list_comments(db: AsyncSession, post_id: int) -> list[Comment]:
    await get_post(db, post_id)
    rows = await db.execute(
        select(Comment)
        .where(Comment.post_id == post_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    return list(rows.scalars().all())


async def delete_comment(db: AsyncSession, actor: User, comment_id: int) -> None:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFound("Comment not found")
    if comment.user_id != actor.id and not actor.is_admin:
        raise Unauthorized("You can only delete your own comments")
    await db.delete(comment)
    await db.commit()
