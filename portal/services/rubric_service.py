from typing import List

from sqlalchemy import select

from portal.models import Rubric, RubricCriterion, User
from portal.schemas.lms.requests import RubricCreateRequest, RubricCriterionRequest, RubricUpdateRequest
from portal.services.base_service import BaseService


def build_criteria(criteria: List[RubricCriterionRequest]) -> List[RubricCriterion]:
    return [
        RubricCriterion(
            title=criterion.title,
            description=criterion.description,
            max_points=criterion.max_points,
            order=position
        )
        for position, criterion in enumerate(criteria)
    ]


class RubricService(BaseService):
    async def list_rubrics(self, organization_id: int) -> List[Rubric]:
        return await self._scalars(
            select(Rubric).where(Rubric.organization_id == organization_id).order_by(Rubric.title, Rubric.id)
        )

    async def get_rubric(self, organization_id: int, rubric_id: int) -> Rubric:
        return await self._fetch(Rubric, rubric_id, organization_id, label="Rubric")

    async def create_rubric(self, organization_id: int, data: RubricCreateRequest, actor: User) -> Rubric:
        async with self.transaction():
            rubric = Rubric(
                organization_id=organization_id,
                title=data.title,
                description=data.description,
                created_by_id=actor.id,
                criteria=build_criteria(data.criteria)
            )
            self.db.add(rubric)
        return await self.get_rubric(organization_id, rubric.id)

    async def update_rubric(self, organization_id: int, rubric_id: int, data: RubricUpdateRequest) -> Rubric:
        """Update rubric fields; a criteria list replaces every existing criterion."""
        rubric = await self.get_rubric(organization_id, rubric_id)
        async with self.transaction():
            self._apply(rubric, data.model_dump(exclude_unset=True, exclude={"criteria"}))
            if data.criteria is not None:
                rubric.criteria = build_criteria(data.criteria)
        return await self.get_rubric(organization_id, rubric_id)

    async def delete_rubric(self, organization_id: int, rubric_id: int) -> None:
        rubric = await self.get_rubric(organization_id, rubric_id)
        async with self.transaction():
            await self.db.delete(rubric)
