from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.models import User
from portal.schemas.lms import (
    PostCreateRequest,
    PostResponse,
    ThreadCreateRequest,
    ThreadResponse,
    ThreadSummary,
    ThreadUpdateRequest
)
from portal.services import ForumService

router = APIRouter(tags=["Forums"])


def get_forum_service(db: AsyncSession = Depends(get_db)) -> ForumService:
    return ForumService(db=db)


@router.get("/courses/{course_id}/threads", response_model=List[ThreadSummary])
async def list_threads(
    course_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    """Pinned threads first, then the most recently active"""
    return await service.list_threads(current_user.organization_id, course_id, current_user)


@router.post("/courses/{course_id}/threads", response_model=ThreadResponse, status_code=status.HTTP_201_CREATED)
async def create_thread(
    course_id: int,
    data: ThreadCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    return await service.create_thread(current_user.organization_id, course_id, data, current_user)


@router.get("/threads/{thread_id}", response_model=ThreadResponse)
async def get_thread(
    thread_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    return await service.get_thread(current_user.organization_id, thread_id, current_user)


@router.patch("/threads/{thread_id}", response_model=ThreadResponse)
async def update_thread(
    thread_id: int,
    data: ThreadUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    return await service.update_thread(current_user.organization_id, thread_id, data, current_user)


@router.delete("/threads/{thread_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_thread(
    thread_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    await service.delete_thread(current_user.organization_id, thread_id, current_user)


@router.get("/threads/{thread_id}/posts", response_model=List[PostResponse])
async def list_posts(
    thread_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    return await service.list_posts(current_user.organization_id, thread_id, current_user)


@router.post("/threads/{thread_id}/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def reply(
    thread_id: int,
    data: PostCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    return await service.reply(current_user.organization_id, thread_id, data, current_user)


@router.delete("/threads/{thread_id}/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    thread_id: int,
    post_id: int,
    current_user: User = Depends(get_current_active_user),
    service: ForumService = Depends(get_forum_service)
):
    await service.delete_post(current_user.organization_id, thread_id, post_id, current_user)
