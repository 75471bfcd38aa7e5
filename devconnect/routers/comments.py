"""
Comment endpoints:
  DELETE /api/comments/{id}   author or admin
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from devconnect.auth import get_current_user
from devconnect.database import get_db
from devconnect.models import User
from devconnect.schemas import MessageResponse
from devconnect.services import posts

router = APIRouter()


@router.delete("/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    comment_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await posts.delete_comment(db, user, comment_id)
    return MessageResponse(message="Comment deleted successfully")
