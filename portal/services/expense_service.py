from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import select

from portal.core.logging import logger
from portal.models import Expense, User
from portal.schemas.enums import ExpenseStatus, RecurringFrequency
from portal.schemas.finance.requests import (
    ExpenseCreateRequest,
    ExpenseFilterParams,
    ExpenseUpdateRequest
)
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.utils.dates import add_months, utcnow


def advance_recurring_date(current: datetime, frequency: Optional[str]) -> datetime:
    """Next occurrence of a recurring expense; unknown frequencies recur monthly."""
    if frequency == RecurringFrequency.WEEKLY.value:
        return current + timedelta(days=7)
    if frequency == RecurringFrequency.QUARTERLY.value:
        return add_months(current, 3)
    if frequency == RecurringFrequency.YEARLY.value:
        return add_months(current, 12)
    return add_months(current, 1)


def _enum_values(fields: Dict[str, Any]) -> Dict[str, Any]:
    for key in ("status", "recurring_frequency"):
        if fields.get(key) is not None:
            fields[key] = fields[key].value
    return fields


class ExpenseService(BaseService):
    async def list_expenses(self, organization_id: int, filters: ExpenseFilterParams) -> List[Expense]:
        stmt = select(Expense).where(Expense.organization_id == organization_id)
        if filters.category:
            stmt = stmt.where(Expense.category == filters.category)
        if filters.status:
            stmt = stmt.where(Expense.status == filters.status.value)
        if filters.start_date:
            stmt = stmt.where(Expense.date >= filters.start_date)
        if filters.end_date:
            stmt = stmt.where(Expense.date <= filters.end_date)
        return await self._scalars(stmt.order_by(Expense.date.desc(), Expense.id.desc()))

    async def get_expense(self, organization_id: int, expense_id: int) -> Expense:
        return await self._fetch(Expense, expense_id, organization_id, label="Expense")

    async def create_expense(self, organization_id: int, data: ExpenseCreateRequest, actor: User) -> Expense:
        fields = _enum_values(data.model_dump())
        if fields["incurred_by_id"] is None:
            fields["incurred_by_id"] = actor.id
        if fields["is_recurring"] and fields["next_recurring_date"] is None:
            fields["next_recurring_date"] = advance_recurring_date(
                fields["date"], fields["recurring_frequency"]
            )

        async with self.transaction():
            expense = Expense(organization_id=organization_id, **fields)
            self.db.add(expense)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "expense_created", "expense", expense.id,
                user_id=actor.id, details={"amount": expense.amount, "category": expense.category}
            )
        return await self.get_expense(organization_id, expense.id)

    async def update_expense(self, organization_id: int, expense_id: int, data: ExpenseUpdateRequest) -> Expense:
        expense = await self.get_expense(organization_id, expense_id)
        async with self.transaction():
            self._apply(expense, _enum_values(data.model_dump(exclude_unset=True)))
        return await self.get_expense(organization_id, expense_id)

    async def delete_expense(self, organization_id: int, expense_id: int) -> None:
        expense = await self.get_expense(organization_id, expense_id)
        async with self.transaction():
            await self.db.delete(expense)

    async def process_recurring(self, organization_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
        """
        Materialize every recurring expense that has come due.

        Each due template produces one pending, non-recurring copy dated now,
        and its next occurrence moves forward by its frequency.
        """
        now = now or utcnow()
        templates = await self._scalars(
            select(Expense).where(
                Expense.organization_id == organization_id,
                Expense.is_recurring.is_(True),
                Expense.next_recurring_date.is_not(None),
                Expense.next_recurring_date <= now
            ).order_by(Expense.id)
        )

        created: List[Expense] = []
        async with self.transaction():
            for template in templates:
                copy = Expense(
                    organization_id=organization_id,
                    amount=template.amount,
                    date=now,
                    vendor=template.vendor,
                    description=template.description,
                    category=template.category,
                    receipt_url=None,
                    status=ExpenseStatus.PENDING.value,
                    incurred_by_id=template.incurred_by_id,
                    project_id=template.project_id,
                    quarter=template.quarter,
                    is_recurring=False
                )
                self.db.add(copy)
                created.append(copy)
                template.next_recurring_date = advance_recurring_date(
                    template.next_recurring_date, template.recurring_frequency
                )
            await self.db.flush()

        logger.info(
            f"Processed {len(created)} recurring expenses",
            extra={'organization_id': organization_id}
        )
        return {"processed": len(created), "created_ids": [expense.id for expense in created]}
