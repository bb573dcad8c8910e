from typing import List

from sqlalchemy import or_, select

from portal.core.errors import NotFoundError, PermissionDenied
from portal.models import ForumPost, ForumThread, LMSCourse, User
from portal.schemas.lms.requests import PostCreateRequest, ThreadCreateRequest, ThreadUpdateRequest
from portal.services.base_service import BaseService
from portal.services.course_service import CourseService
from portal.utils.dates import utcnow


class ForumService(BaseService):
    """Per-course discussion threads."""

    @staticmethod
    def _moderates(course: LMSCourse, user: User) -> bool:
        return user.is_admin or course.instructor_id == user.id

    async def _participates(self, course: LMSCourse, user: User) -> bool:
        if self._moderates(course, user):
            return True
        if user.student_profile is None:
            return False
        return await CourseService(self.db).is_enrolled(course.id, user.student_profile.id)

    def _can_view(self, thread: ForumThread, course: LMSCourse, user: User) -> bool:
        return thread.is_public or thread.creator_id == user.id or self._moderates(course, user)

    async def list_threads(self, organization_id: int, course_id: int, user: User) -> List[ForumThread]:
        course = await self._fetch(LMSCourse, course_id, organization_id, label="Course")
        stmt = select(ForumThread).where(
            ForumThread.organization_id == organization_id,
            ForumThread.course_id == course_id
        )
        if not self._moderates(course, user):
            stmt = stmt.where(or_(ForumThread.is_public.is_(True), ForumThread.creator_id == user.id))
        return await self._scalars(
            stmt.order_by(ForumThread.is_pinned.desc(), ForumThread.updated_at.desc(), ForumThread.id.desc())
        )

    async def get_thread(self, organization_id: int, thread_id: int, user: User) -> ForumThread:
        """
        Raises:
            NotFoundError: If the thread does not exist or is hidden from the user
        """
        thread = await self._fetch(ForumThread, thread_id, organization_id, label="Thread")
        course = await self._fetch(LMSCourse, thread.course_id, organization_id, label="Course")
        if not self._can_view(thread, course, user):
            raise NotFoundError("Thread not found")
        return thread

    async def create_thread(
        self,
        organization_id: int,
        course_id: int,
        data: ThreadCreateRequest,
        user: User
    ) -> ForumThread:
        """
        Open a thread with its first post.

        Raises:
            PermissionDenied: If the user is neither enrolled nor teaching the course
        """
        course = await self._fetch(LMSCourse, course_id, organization_id, label="Course")
        if not await self._participates(course, user):
            raise PermissionDenied("You must be enrolled in this course to post")

        async with self.transaction():
            thread = ForumThread(
                organization_id=organization_id,
                course_id=course_id,
                creator_id=user.id,
                title=data.title,
                is_public=data.is_public,
                posts=[ForumPost(author_id=user.id, content=data.content)]
            )
            self.db.add(thread)
        return await self.get_thread(organization_id, thread.id, user)

    async def update_thread(self, organization_id: int, thread_id: int, data: ThreadUpdateRequest, user: User) -> ForumThread:
        thread = await self.get_thread(organization_id, thread_id, user)
        course = await self._fetch(LMSCourse, thread.course_id, organization_id, label="Course")
        fields = data.model_dump(exclude_unset=True)
        moderation = {"is_pinned", "is_locked"} & fields.keys()
        if moderation and not self._moderates(course, user):
            raise PermissionDenied("Only the instructor can pin or lock threads")
        if thread.creator_id != user.id and not self._moderates(course, user):
            raise PermissionDenied("You cannot edit this thread")

        async with self.transaction():
            self._apply(thread, fields)
        return await self.get_thread(organization_id, thread_id, user)

    async def delete_thread(self, organization_id: int, thread_id: int, user: User) -> None:
        thread = await self.get_thread(organization_id, thread_id, user)
        course = await self._fetch(LMSCourse, thread.course_id, organization_id, label="Course")
        if thread.creator_id != user.id and not self._moderates(course, user):
            raise PermissionDenied("You cannot delete this thread")
        async with self.transaction():
            await self.db.delete(thread)

    async def list_posts(self, organization_id: int, thread_id: int, user: User) -> List[ForumPost]:
        thread = await self.get_thread(organization_id, thread_id, user)
        return await self._scalars(
            select(ForumPost).where(ForumPost.thread_id == thread.id).order_by(ForumPost.id)
        )

    async def reply(self, organization_id: int, thread_id: int, data: PostCreateRequest, user: User) -> ForumPost:
        """
        Raises:
            PermissionDenied: If the thread is locked or the user does not take part in the course
        """
        thread = await self.get_thread(organization_id, thread_id, user)
        if thread.is_locked:
            raise PermissionDenied("Thread is locked")
        course = await self._fetch(LMSCourse, thread.course_id, organization_id, label="Course")
        if not await self._participates(course, user):
            raise PermissionDenied("You must be enrolled in this course to post")

        async with self.transaction():
            post = ForumPost(thread_id=thread.id, author_id=user.id, content=data.content)
            self.db.add(post)
            thread.updated_at = utcnow()
        return post

    async def delete_post(self, organization_id: int, thread_id: int, post_id: int, user: User) -> None:
        thread = await self.get_thread(organization_id, thread_id, user)
        result = await self.db.execute(
            select(ForumPost).where(ForumPost.id == post_id, ForumPost.thread_id == thread.id)
        )
        post = result.scalar_one_or_none()
        if post is None:
            raise NotFoundError("Post not found")
        if post.author_id != user.id and not user.is_admin:
            raise PermissionDenied("You can only delete your own posts")
        async with self.transaction():
            await self.db.delete(post)
