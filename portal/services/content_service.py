from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from portal.core.errors import ConflictError, NotFoundError
from portal.core.logging import logger
from portal.models import ContactSubmission, Page, Testimonial, User
from portal.schemas.content.requests import (
    ContactCreateRequest,
    PageCreateRequest,
    PageUpdateRequest,
    TestimonialCreateRequest,
    TestimonialUpdateRequest
)
from portal.schemas.enums import ContactStatus
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.services.organization_service import OrganizationService
from portal.utils.dates import utcnow


class ContactService(BaseService):
    """Inbound messages from the public contact form."""

    async def submit(self, data: ContactCreateRequest) -> ContactSubmission:
        organization = await OrganizationService(self.db).get_by_slug(data.organization_slug)
        async with self.transaction():
            submission = ContactSubmission(
                organization_id=organization.id,
                status=ContactStatus.NEW.value,
                **data.model_dump(exclude={"organization_slug"})
            )
            self.db.add(submission)
        logger.info(f"Contact submission received for {organization.slug}", extra={'organization_id': organization.id})
        return submission

    async def list_submissions(self, organization_id: int, status: Optional[ContactStatus] = None) -> Dict[str, Any]:
        stmt = select(ContactSubmission).where(ContactSubmission.organization_id == organization_id)
        if status is not None:
            stmt = stmt.where(ContactSubmission.status == status.value)
        items = await self._scalars(stmt.order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc()))

        rows = (await self.db.execute(
            select(ContactSubmission.status, func.count(ContactSubmission.id))
            .where(ContactSubmission.organization_id == organization_id)
            .group_by(ContactSubmission.status)
        )).all()
        counts = {s.value: 0 for s in ContactStatus}
        counts.update(dict(rows))
        return {"items": items, "counts": counts}

    async def update_status(self, organization_id: int, submission_id: int, status: ContactStatus) -> ContactSubmission:
        submission = await self._fetch(ContactSubmission, submission_id, organization_id, label="Contact submission")
        async with self.transaction():
            submission.status = status.value
        return submission

    async def delete(self, organization_id: int, submission_id: int) -> None:
        submission = await self._fetch(ContactSubmission, submission_id, organization_id, label="Contact submission")
        async with self.transaction():
            await self.db.delete(submission)


class PageService(BaseService):
    async def _slug_taken(self, organization_id: int, slug: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(Page.id).where(Page.organization_id == organization_id, Page.slug == slug)
        if exclude_id is not None:
            stmt = stmt.where(Page.id != exclude_id)
        return (await self.db.execute(stmt)).first() is not None

    async def list_pages(self, organization_id: int) -> Dict[str, Any]:
        pages = await self._scalars(
            select(Page).where(Page.organization_id == organization_id).order_by(Page.updated_at.desc(), Page.id.desc())
        )
        published = sum(1 for page in pages if not page.is_draft)
        return {
            "items": pages,
            "stats": {"total": len(pages), "published": published, "drafts": len(pages) - published},
        }

    async def get_page(self, organization_id: int, page_id: int) -> Page:
        return await self._fetch(Page, page_id, organization_id, label="Page")

    async def get_published(self, organization_slug: str, slug: str) -> Page:
        organization = await OrganizationService(self.db).get_by_slug(organization_slug)
        result = await self.db.execute(
            select(Page).where(
                Page.organization_id == organization.id,
                Page.slug == slug,
                Page.is_draft.is_(False)
            )
        )
        page = result.scalar_one_or_none()
        if page is None:
            raise NotFoundError("Page not found")
        return page

    async def create_page(self, organization_id: int, data: PageCreateRequest, actor: User) -> Page:
        """
        Raises:
            ConflictError: If another page already uses the slug
        """
        if await self._slug_taken(organization_id, data.slug):
            raise ConflictError(f"A page with slug '{data.slug}' already exists")

        async with self.transaction():
            page = Page(
                organization_id=organization_id,
                author_id=actor.id,
                published_at=None if data.is_draft else utcnow(),
                **data.model_dump()
            )
            self.db.add(page)
            await self.db.flush()
            if not data.is_draft:
                await ActivityService(self.db).record(
                    organization_id, "page_published", "page", page.id, user_id=actor.id
                )
        return await self.get_page(organization_id, page.id)

    async def update_page(self, organization_id: int, page_id: int, data: PageUpdateRequest, actor: User) -> Page:
        page = await self.get_page(organization_id, page_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("slug") and await self._slug_taken(organization_id, fields["slug"], exclude_id=page.id):
            raise ConflictError(f"A page with slug '{fields['slug']}' already exists")

        async with self.transaction():
            self._apply(page, fields)
            if not page.is_draft and page.published_at is None:
                page.published_at = utcnow()
                await ActivityService(self.db).record(
                    organization_id, "page_published", "page", page.id, user_id=actor.id
                )
        return await self.get_page(organization_id, page_id)

    async def delete_page(self, organization_id: int, page_id: int) -> None:
        page = await self.get_page(organization_id, page_id)
        async with self.transaction():
            await self.db.delete(page)


class TestimonialService(BaseService):
    async def list_testimonials(self, organization_id: int) -> List[Testimonial]:
        return await self._scalars(
            select(Testimonial)
            .where(Testimonial.organization_id == organization_id)
            .order_by(Testimonial.display_order, Testimonial.id)
        )

    async def list_approved(self, organization_slug: str) -> List[Testimonial]:
        organization = await OrganizationService(self.db).get_by_slug(organization_slug)
        return await self._scalars(
            select(Testimonial)
            .where(Testimonial.organization_id == organization.id, Testimonial.is_approved.is_(True))
            .order_by(Testimonial.display_order, Testimonial.id)
        )

    async def get_testimonial(self, organization_id: int, testimonial_id: int) -> Testimonial:
        return await self._fetch(Testimonial, testimonial_id, organization_id, label="Testimonial")

    async def create_testimonial(self, organization_id: int, data: TestimonialCreateRequest) -> Testimonial:
        async with self.transaction():
            testimonial = Testimonial(organization_id=organization_id, **data.model_dump())
            self.db.add(testimonial)
        return await self.get_testimonial(organization_id, testimonial.id)

    async def update_testimonial(
        self,
        organization_id: int,
        testimonial_id: int,
        data: TestimonialUpdateRequest
    ) -> Testimonial:
        testimonial = await self.get_testimonial(organization_id, testimonial_id)
        async with self.transaction():
            self._apply(testimonial, data.model_dump(exclude_unset=True))
        return await self.get_testimonial(organization_id, testimonial_id)

    async def delete_testimonial(self, organization_id: int, testimonial_id: int) -> None:
        testimonial = await self.get_testimonial(organization_id, testimonial_id)
        async with self.transaction():
            await self.db.delete(testimonial)
