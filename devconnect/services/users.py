"""Accounts: registration, login, profiles and admin user management."""
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.auth import hash_password, verify_password
from devconnect.errors import Conflict, NotFound, Unauthenticated, ValidationError
from devconnect.models import POST_APPROVED, ROLE_USER, Post, User
from devconnect.services.follows import follow_counts

logger = logging.getLogger(__name__)


@dataclass
class Profile:
    user: User
    follower_count: int
    following_count: int
    post_count: int


async def create_user(
    db: AsyncSession,
    name: str,
    email: str,
    password: str,
    role: str = ROLE_USER,
    verified: bool = False,
) -> User:
    email = email.strip().lower()
    existing = await db.scalar(select(User).where(User.email == email))
    if existing is not None:
        raise Conflict("Email is already registered")

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        is_verified=verified,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("Email is already registered")
    logger.info("Created %s %s (id=%s)", role, email, user.id)
    return user


async def authenticate(db: AsyncSession, email: str, password: str) -> User:
    user = await db.scalar(select(User).where(User.email == email.strip().lower()))
    if user is None or not verify_password(password, user.password_hash):
        raise Unauthenticated("Invalid email or password")
    return user


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def get_profile(db: AsyncSession, user_id: int) -> Profile:
    user = await get_user(db, user_id)
    followers, following = await follow_counts(db, user_id)
    post_count = await db.scalar(
        select(func.count())
        .select_from(Post)
        .where(Post.user_id == user_id, Post.status == POST_APPROVED)
    )
    return Profile(user, followers, following, post_count or 0)


async def update_profile(
    db: AsyncSession,
    user: User,
    name: Optional[str] = None,
    bio: Optional[str] = None,
    avatar: Optional[str] = None,
) -> User:
    if name is not None:
        if not name.strip():
            raise ValidationError("Name cannot be empty")
        user.name = name.strip()
    if bio is not None:
        user.bio = bio
    if avatar is not None:
        user.avatar = avatar
    await db.commit()
    return user


async def search_users(db: AsyncSession, query: str, exclude_id: Optional[int] = None) -> list[User]:
    query = query.strip()
    if not query:
        raise ValidationError("Query is required")
    criteria = [or_(User.name.ilike(f"%{query}%"), User.email.ilike(f"%{query}%"))]
    if exclude_id is not None:
        criteria.append(User.id != exclude_id)
    rows = await db.execute(select(User).where(*criteria).order_by(User.name).limit(50))
    return list(rows.scalars().all())


async def list_members(db: AsyncSession) -> list[User]:
    rows = await db.execute(select(User).where(User.role == ROLE_USER).order_by(User.id))
    return list(rows.scalars().all())


async def delete_user(db: AsyncSession, actor: User, user_id: int) -> None:
    """Hard delete; the database cascades to everything the user owns."""
    if user_id == actor.id:
        raise ValidationError("Admins cannot delete their own account")
    await get_user(db, user_id)
    await db.execute(delete(User).where(User.id == user_id))
    await db.commit()
    logger.info("User %s deleted by admin %s", user_id, actor.id)
