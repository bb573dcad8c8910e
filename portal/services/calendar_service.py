from datetime import datetime
from typing import List, Optional

from sqlalchemy import or_, select

from portal.core.errors import BadRequestError, PermissionDenied
from portal.models import CalendarEvent, Team, TeamMember, User
from portal.schemas.content.requests import CalendarEventCreateRequest, CalendarEventUpdateRequest
from portal.services.base_service import BaseService
from portal.utils.ical import build_calendar


class CalendarService(BaseService):
    async def _team_ids(self, user: User) -> List[int]:
        result = await self.db.execute(select(TeamMember.team_id).where(TeamMember.user_id == user.id))
        return list(result.scalars().all())

    async def _check_team(self, organization_id: int, team_id: Optional[int]) -> None:
        if team_id is not None:
            await self._fetch(Team, team_id, organization_id, label="Team")

    async def list_events(
        self,
        organization_id: int,
        user: User,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        team_id: Optional[int] = None
    ) -> List[CalendarEvent]:
        """Events the user may see: their own, their teams', and public ones."""
        visibility = [CalendarEvent.created_by_id == user.id, CalendarEvent.is_public.is_(True)]
        team_ids = await self._team_ids(user)
        if team_ids:
            visibility.append(CalendarEvent.team_id.in_(team_ids))

        stmt = select(CalendarEvent).where(
            CalendarEvent.organization_id == organization_id,
            or_(*visibility)
        )
        if start is not None:
            stmt = stmt.where(or_(
                CalendarEvent.start_time >= start,
                CalendarEvent.end_time >= start
            ))
        if end is not None:
            stmt = stmt.where(CalendarEvent.start_time <= end)
        if team_id is not None:
            stmt = stmt.where(CalendarEvent.team_id == team_id)
        return await self._scalars(stmt.order_by(CalendarEvent.start_time, CalendarEvent.id))

    async def get_event(self, organization_id: int, event_id: int) -> CalendarEvent:
        return await self._fetch(CalendarEvent, event_id, organization_id, label="Event")

    def _check_owner(self, event: CalendarEvent, user: User) -> None:
        if event.created_by_id != user.id and not user.is_admin:
            raise PermissionDenied("Only the creator or an admin can modify this event")

    async def create_event(self, organization_id: int, data: CalendarEventCreateRequest, actor: User) -> CalendarEvent:
        await self._check_team(organization_id, data.team_id)
        async with self.transaction():
            event = CalendarEvent(organization_id=organization_id, created_by_id=actor.id, **data.model_dump())
            self.db.add(event)
        return await self.get_event(organization_id, event.id)

    async def update_event(
        self,
        organization_id: int,
        event_id: int,
        data: CalendarEventUpdateRequest,
        actor: User
    ) -> CalendarEvent:
        event = await self.get_event(organization_id, event_id)
        self._check_owner(event, actor)
        fields = data.model_dump(exclude_unset=True)
        if "team_id" in fields:
            await self._check_team(organization_id, fields["team_id"])

        start = fields.get("start_time", event.start_time)
        end = fields.get("end_time", event.end_time)
        if end is not None and end < start:
            raise BadRequestError("end_time cannot be before start_time")

        async with self.transaction():
            self._apply(event, fields)
        return await self.get_event(organization_id, event_id)

    async def delete_event(self, organization_id: int, event_id: int, actor: User) -> None:
        event = await self.get_event(organization_id, event_id)
        self._check_owner(event, actor)
        async with self.transaction():
            await self.db.delete(event)

    async def export_ics(self, organization_id: int, user: User, team_id: Optional[int] = None) -> str:
        events = await self.list_events(organization_id, user, team_id=team_id)
        return build_calendar(events)
