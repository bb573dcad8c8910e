from typing import Any, Dict, List

from sqlalchemy import select

from portal.core.errors import ConflictError, NotFoundError, PermissionDenied
from portal.core.logging import logger
from portal.core.security import generate_temporary_password, get_password_hash
from portal.models import Invoice, ParentProfile, Role, StudentProfile, User
from portal.schemas.user.requests import ChildCreateRequest
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService


def parent_profile_of(user: User) -> ParentProfile:
    if user.parent_profile is None:
        raise PermissionDenied("No parent profile for this account")
    return user.parent_profile


def linked_student_ids(user: User) -> List[int]:
    if user.parent_profile is None:
        return []
    return [student.id for student in user.parent_profile.students]


class ParentService(BaseService):
    """A parent's view of their linked children and their own invoices."""

    async def list_children(self, organization_id: int, user: User) -> List[StudentProfile]:
        parent = parent_profile_of(user)
        return await self._scalars(
            select(StudentProfile)
            .where(StudentProfile.organization_id == organization_id, StudentProfile.parent_id == parent.id)
            .order_by(StudentProfile.id)
        )

    async def add_child(self, organization_id: int, data: ChildCreateRequest, user: User) -> Dict[str, Any]:
        """
        Register a new approved Student account linked to the parent.

        The generated password is returned once and never stored in clear.

        Raises:
            ConflictError: If the email is already registered
        """
        parent = parent_profile_of(user)
        email = data.email.lower()
        if (await self.db.execute(select(User.id).where(User.email == email))).first() is not None:
            raise ConflictError("A user with this email already exists")
        role = (await self.db.execute(
            select(Role).where(Role.organization_id == organization_id, Role.name == "Student")
        )).scalar_one_or_none()
        if role is None:
            raise NotFoundError("Student role not found")

        password = generate_temporary_password()
        async with self.transaction():
            child = User(
                organization_id=organization_id,
                email=email,
                password_hash=get_password_hash(password),
                first_name=data.first_name,
                last_name=data.last_name,
                is_active=True,
                is_approved=True,
                roles=[role],
                student_profile=StudentProfile(
                    organization_id=organization_id,
                    parent_id=parent.id,
                    date_of_birth=data.date_of_birth,
                    grade=data.grade,
                    school_name=data.school_name,
                ),
            )
            self.db.add(child)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "child_added", "user", child.id, user_id=user.id
            )
        logger.info(f"Parent {user.id} added student account {child.id}", extra={'user_id': user.id})

        profile = (await self.db.execute(
            select(StudentProfile)
            .where(StudentProfile.user_id == child.id)
            .execution_options(populate_existing=True)
        )).scalar_one()
        return {"child": profile, "temporary_password": password}

    async def list_invoices(self, organization_id: int, user: User) -> List[Invoice]:
        parent = parent_profile_of(user)
        return await self._scalars(
            select(Invoice)
            .where(Invoice.organization_id == organization_id, Invoice.parent_id == parent.id)
            .order_by(Invoice.issue_date.desc(), Invoice.id.desc())
        )

    async def get_invoice(self, organization_id: int, invoice_id: int, user: User) -> Invoice:
        """Another parent's invoice is reported as missing."""
        parent = parent_profile_of(user)
        invoice = await self._fetch(Invoice, invoice_id, organization_id, label="Invoice")
        if invoice.parent_id != parent.id:
            raise NotFoundError("Invoice not found")
        return invoice
