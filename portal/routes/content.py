from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_db
from portal.core.permissions import require_admin
from portal.core.rate_limiter import contact_rate_limit
from portal.models import User
from portal.schemas.content import (
    ContactCreateRequest,
    ContactListResponse,
    ContactResponse,
    ContactStatusUpdate,
    PageCreateRequest,
    PageListResponse,
    PageResponse,
    PageUpdateRequest,
    TestimonialCreateRequest,
    TestimonialResponse,
    TestimonialUpdateRequest
)
from portal.schemas.enums import ContactStatus
from portal.services import ContactService, PageService, TestimonialService

router = APIRouter(tags=["Content"])


# Service dependencies
def get_contact_service(db: AsyncSession = Depends(get_db)) -> ContactService:
    return ContactService(db=db)


def get_page_service(db: AsyncSession = Depends(get_db)) -> PageService:
    return PageService(db=db)


def get_testimonial_service(db: AsyncSession = Depends(get_db)) -> TestimonialService:
    return TestimonialService(db=db)


# Public

@router.post(
    "/public/contact",
    response_model=ContactResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(contact_rate_limit)]
)
async def submit_contact(
    data: ContactCreateRequest,
    service: ContactService = Depends(get_contact_service)
):
    """Public contact form; submissions land in the organization's CRM inbox"""
    return await service.submit(data)


@router.get("/public/pages/{slug}", response_model=PageResponse)
async def get_public_page(
    slug: str,
    organization_slug: str,
    service: PageService = Depends(get_page_service)
):
    return await service.get_published(organization_slug, slug)


@router.get("/public/testimonials", response_model=List[TestimonialResponse])
async def list_public_testimonials(
    organization_slug: str,
    service: TestimonialService = Depends(get_testimonial_service)
):
    return await service.list_approved(organization_slug)


# Contacts

@router.get("/contacts", response_model=ContactListResponse)
async def list_contacts(
    status_filter: Optional[ContactStatus] = Query(default=None, alias="status"),
    current_user: User = Depends(require_admin),
    service: ContactService = Depends(get_contact_service)
):
    return await service.list_submissions(current_user.organization_id, status_filter)


@router.patch("/contacts/{submission_id}", response_model=ContactResponse)
async def update_contact_status(
    submission_id: int,
    data: ContactStatusUpdate,
    current_user: User = Depends(require_admin),
    service: ContactService = Depends(get_contact_service)
):
    return await service.update_status(current_user.organization_id, submission_id, data.status)


@router.delete("/contacts/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contact(
    submission_id: int,
    current_user: User = Depends(require_admin),
    service: ContactService = Depends(get_contact_service)
):
    await service.delete(current_user.organization_id, submission_id)


# Pages

@router.get("/pages", response_model=PageListResponse)
async def list_pages(
    current_user: User = Depends(require_admin),
    service: PageService = Depends(get_page_service)
):
    return await service.list_pages(current_user.organization_id)


@router.post("/pages", response_model=PageResponse, status_code=status.HTTP_201_CREATED)
async def create_page(
    data: PageCreateRequest,
    current_user: User = Depends(require_admin),
    service: PageService = Depends(get_page_service)
):
    return await service.create_page(current_user.organization_id, data, current_user)


@router.get("/pages/{page_id}", response_model=PageResponse)
async def get_page(
    page_id: int,
    current_user: User = Depends(require_admin),
    service: PageService = Depends(get_page_service)
):
    return await service.get_page(current_user.organization_id, page_id)


@router.patch("/pages/{page_id}", response_model=PageResponse)
async def update_page(
    page_id: int,
    data: PageUpdateRequest,
    current_user: User = Depends(require_admin),
    service: PageService = Depends(get_page_service)
):
    return await service.update_page(current_user.organization_id, page_id, data, current_user)


@router.delete("/pages/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_page(
    page_id: int,
    current_user: User = Depends(require_admin),
    service: PageService = Depends(get_page_service)
):
    await service.delete_page(current_user.organization_id, page_id)


# Testimonials

@router.get("/testimonials", response_model=List[TestimonialResponse])
async def list_testimonials(
    current_user: User = Depends(require_admin),
    service: TestimonialService = Depends(get_testimonial_service)
):
    return await service.list_testimonials(current_user.organization_id)


@router.post("/testimonials", response_model=TestimonialResponse, status_code=status.HTTP_201_CREATED)
async def create_testimonial(
    data: TestimonialCreateRequest,
    current_user: User = Depends(require_admin),
    service: TestimonialService = Depends(get_testimonial_service)
):
    return await service.create_testimonial(current_user.organization_id, data)


@router.get("/testimonials/{testimonial_id}", response_model=TestimonialResponse)
async def get_testimonial(
    testimonial_id: int,
    current_user: User = Depends(require_admin),
    service: TestimonialService = Depends(get_testimonial_service)
):
    return await service.get_testimonial(current_user.organization_id, testimonial_id)


@router.patch("/testimonials/{testimonial_id}", response_model=TestimonialResponse)
async def update_testimonial(
    testimonial_id: int,
    data: TestimonialUpdateRequest,
    current_user: User = Depends(require_admin),
    service: TestimonialService = Depends(get_testimonial_service)
):
    return await service.update_testimonial(current_user.organization_id, testimonial_id, data)


@router.delete("/testimonials/{testimonial_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_testimonial(
    testimonial_id: int,
    current_user: User = Depends(require_admin),
    service: TestimonialService = Depends(get_testimonial_service)
):
    await service.delete_testimonial(current_user.organization_id, testimonial_id)
