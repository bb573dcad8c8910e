from typing import Any, Dict, List

from sqlalchemy import func, or_, select

from portal.core.errors import NotFoundError
from portal.core.logging import logger
from portal.models import Announcement, AnnouncementRead, User
from portal.schemas.content.requests import AnnouncementCreateRequest
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.utils.dates import utcnow

FEED_LIMIT = 10


class AnnouncementService(BaseService):
    """Organization-wide notices and who has read them."""

    @staticmethod
    def _audience(user: User):
        """Filter matching announcements addressed to any of the user's roles."""
        clauses = [Announcement.send_to_all.is_(True)]
        if user.has_role("Student"):
            clauses.append(Announcement.send_to_students.is_(True))
        if user.has_role("Parent"):
            clauses.append(Announcement.send_to_parents.is_(True))
        if user.has_role("Teacher"):
            clauses.append(Announcement.send_to_teachers.is_(True))
        return or_(*clauses)

    def _visible(self, organization_id: int, user: User):
        stmt = select(Announcement).where(
            Announcement.organization_id == organization_id,
            Announcement.is_active.is_(True)
        )
        if not user.is_admin:
            stmt = stmt.where(self._audience(user))
        return stmt

    async def list_all(self, organization_id: int) -> List[Announcement]:
        return await self._scalars(
            select(Announcement)
            .where(Announcement.organization_id == organization_id)
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        )

    async def create(self, organization_id: int, data: AnnouncementCreateRequest, actor: User) -> Announcement:
        async with self.transaction():
            announcement = Announcement(
                organization_id=organization_id,
                author_id=actor.id,
                is_active=True,
                **data.model_dump(mode="json")
            )
            self.db.add(announcement)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "announcement_created", "announcement", announcement.id,
                user_id=actor.id
            )
        logger.info(f"Announcement {announcement.id} created by {actor.id}", extra={'user_id': actor.id})
        return await self._fetch(Announcement, announcement.id, organization_id, label="Announcement")

    async def set_active(self, organization_id: int, announcement_id: int, is_active: bool) -> Announcement:
        announcement = await self._fetch(Announcement, announcement_id, organization_id, label="Announcement")
        async with self.transaction():
            announcement.is_active = is_active
        return announcement

    async def delete(self, organization_id: int, announcement_id: int) -> None:
        announcement = await self._fetch(Announcement, announcement_id, organization_id, label="Announcement")
        async with self.transaction():
            await self.db.delete(announcement)

    async def feed(self, organization_id: int, user: User) -> List[Dict[str, Any]]:
        """Newest active announcements for the user's audience, flagged read or unread."""
        announcements = await self._scalars(
            self._visible(organization_id, user)
            .order_by(Announcement.created_at.desc(), Announcement.id.desc())
            .limit(FEED_LIMIT)
        )
        read_ids = set()
        if announcements:
            read_ids = set((await self.db.execute(
                select(AnnouncementRead.announcement_id).where(
                    AnnouncementRead.user_id == user.id,
                    AnnouncementRead.announcement_id.in_([a.id for a in announcements])
                )
            )).scalars().all())
        return [
            {**self._as_dict(announcement), "is_read": announcement.id in read_ids}
            for announcement in announcements
        ]

    @staticmethod
    def _as_dict(announcement: Announcement) -> Dict[str, Any]:
        return {
            "id": announcement.id,
            "title": announcement.title,
            "content": announcement.content,
            "type": announcement.type,
            "target_id": announcement.target_id,
            "send_to_all": announcement.send_to_all,
            "send_to_students": announcement.send_to_students,
            "send_to_parents": announcement.send_to_parents,
            "send_to_teachers": announcement.send_to_teachers,
            "is_active": announcement.is_active,
            "author": announcement.author,
            "created_at": announcement.created_at,
        }

    async def mark_read(self, organization_id: int, announcement_id: int, user: User) -> AnnouncementRead:
        """
        Record that the user has read an announcement; repeat calls are no-ops.

        Raises:
            NotFoundError: If the announcement is missing, inactive or not addressed to the user
        """
        result = await self.db.execute(
            self._visible(organization_id, user).where(Announcement.id == announcement_id)
        )
        if result.scalar_one_or_none() is None:
            raise NotFoundError("Announcement not found")

        existing = (await self.db.execute(
            select(AnnouncementRead).where(
                AnnouncementRead.announcement_id == announcement_id,
                AnnouncementRead.user_id == user.id
            )
        )).scalar_one_or_none()
        if existing is not None:
            return existing

        async with self.transaction():
            read = AnnouncementRead(announcement_id=announcement_id, user_id=user.id, read_at=utcnow())
            self.db.add(read)
        return read

    async def unread_count(self, organization_id: int, user: User) -> int:
        visible = self._visible(organization_id, user).where(
            ~Announcement.reads.any(AnnouncementRead.user_id == user.id)
        )
        return (await self.db.execute(
            select(func.count()).select_from(visible.subquery())
        )).scalar_one()
