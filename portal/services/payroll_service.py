from typing import List

from sqlalchemy import select

from portal.core.errors import BadRequestError
from portal.core.logging import logger
from portal.models import PayrollItem, PayrollRun, User
from portal.schemas.finance.requests import PayrollItemRequest, PayrollRunCreateRequest
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService


def compute_net_pay(item: PayrollItemRequest) -> float:
    if item.net_pay is not None:
        return round(item.net_pay, 2)
    return round(item.base_salary + item.bonus - item.deductions, 2)


class PayrollService(BaseService):
    async def list_runs(self, organization_id: int) -> List[PayrollRun]:
        return await self._scalars(
            select(PayrollRun)
            .where(PayrollRun.organization_id == organization_id)
            .order_by(PayrollRun.payment_date.desc(), PayrollRun.id.desc())
        )

    async def get_run(self, organization_id: int, run_id: int) -> PayrollRun:
        return await self._fetch(PayrollRun, run_id, organization_id, label="Payroll run")

    async def create_run(self, organization_id: int, data: PayrollRunCreateRequest, actor: User) -> PayrollRun:
        """
        Record a processed payroll run.

        Raises:
            BadRequestError: If a payee is not a user of the organization
        """
        user_ids = {item.user_id for item in data.items}
        result = await self.db.execute(
            select(User.id).where(User.organization_id == organization_id, User.id.in_(user_ids))
        )
        missing = user_ids - set(result.scalars().all())
        if missing:
            raise BadRequestError(f"Unknown user(s): {', '.join(str(i) for i in sorted(missing))}")

        items = [
            PayrollItem(
                user_id=item.user_id,
                base_salary=item.base_salary,
                bonus=item.bonus,
                deductions=item.deductions,
                net_pay=compute_net_pay(item),
                payment_method=item.payment_method,
                notes=item.notes
            )
            for item in data.items
        ]
        total = round(sum(item.net_pay for item in items), 2)

        async with self.transaction():
            run = PayrollRun(
                organization_id=organization_id,
                period_start=data.period_start,
                period_end=data.period_end,
                payment_date=data.payment_date,
                status="processed",
                total_amount=total,
                notes=data.notes,
                created_by_id=actor.id,
                items=items
            )
            self.db.add(run)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "payroll_run_created", "payroll_run", run.id,
                user_id=actor.id, details={"total_amount": total, "items": len(items)}
            )

        logger.info(f"Payroll run {run.id} processed for {total:.2f}", extra={'organization_id': organization_id})
        return await self.get_run(organization_id, run.id)

    async def delete_run(self, organization_id: int, run_id: int) -> None:
        run = await self.get_run(organization_id, run_id)
        async with self.transaction():
            await self.db.delete(run)
        logger.info(f"Payroll run {run_id} voided")
