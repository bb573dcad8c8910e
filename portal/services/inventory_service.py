from typing import List, Optional

from sqlalchemy import select

from portal.core.errors import BadRequestError, ConflictError, PermissionDenied
from portal.core.logging import logger
from portal.models import InventoryCheckout, InventoryItem, Project, User
from portal.schemas.enums import CheckoutStatus
from portal.schemas.finance.requests import (
    CheckoutCreateRequest,
    CheckoutUpdateRequest,
    InventoryItemCreateRequest,
    InventoryItemUpdateRequest
)
from portal.services.base_service import BaseService
from portal.services.team_service import TeamService
from portal.utils.dates import utcnow


def is_staff(user: User) -> bool:
    return user.has_role("Admin", "Teacher")


class InventoryService(BaseService):
    """Equipment stock and team checkouts against it."""

    def __init__(self, db):
        super().__init__(db)
        self.teams = TeamService(db)

    async def _sku_taken(self, organization_id: int, sku: Optional[str], exclude_id: Optional[int] = None) -> bool:
        if not sku:
            return False
        stmt = select(InventoryItem.id).where(
            InventoryItem.organization_id == organization_id,
            InventoryItem.sku == sku
        )
        if exclude_id is not None:
            stmt = stmt.where(InventoryItem.id != exclude_id)
        return (await self.db.execute(stmt)).first() is not None

    async def list_items(self, organization_id: int, category: Optional[str] = None) -> List[InventoryItem]:
        stmt = select(InventoryItem).where(InventoryItem.organization_id == organization_id)
        if category:
            stmt = stmt.where(InventoryItem.category == category)
        return await self._scalars(stmt.order_by(InventoryItem.name, InventoryItem.id))

    async def get_item(self, organization_id: int, item_id: int) -> InventoryItem:
        return await self._fetch(InventoryItem, item_id, organization_id, label="Inventory item")

    async def create_item(self, organization_id: int, data: InventoryItemCreateRequest) -> InventoryItem:
        """
        Raises:
            ConflictError: If another item already uses the SKU
        """
        if await self._sku_taken(organization_id, data.sku):
            raise ConflictError(f"SKU '{data.sku}' is already in use")
        async with self.transaction():
            item = InventoryItem(organization_id=organization_id, **data.model_dump())
            self.db.add(item)
        return item

    async def update_item(self, organization_id: int, item_id: int, data: InventoryItemUpdateRequest) -> InventoryItem:
        item = await self.get_item(organization_id, item_id)
        fields = data.model_dump(exclude_unset=True)
        if fields.get("sku") and await self._sku_taken(organization_id, fields["sku"], exclude_id=item.id):
            raise ConflictError(f"SKU '{fields['sku']}' is already in use")
        async with self.transaction():
            self._apply(item, fields)
        return item

    async def delete_item(self, organization_id: int, item_id: int) -> None:
        item = await self.get_item(organization_id, item_id)
        async with self.transaction():
            await self.db.delete(item)

    async def _get_checkout(self, organization_id: int, checkout_id: int) -> InventoryCheckout:
        return await self._fetch(InventoryCheckout, checkout_id, organization_id, label="Checkout")

    async def checkout(self, organization_id: int, data: CheckoutCreateRequest, actor: User) -> InventoryCheckout:
        """
        Take stock out for a team, decrementing the item's quantity.

        Raises:
            PermissionDenied: If a non-staff actor is not on the team
            BadRequestError: If the project is not the team's or stock is short
        """
        team = await self.teams.get_team(organization_id, data.team_id)
        if not is_staff(actor):
            await self.teams.require_member(team.id, actor)
        if data.project_id is not None:
            project = await self._fetch(Project, data.project_id, organization_id, label="Project")
            if project.team_id != team.id:
                raise BadRequestError("Project does not belong to this team")

        item = await self.get_item(organization_id, data.item_id)
        if item.quantity < data.quantity:
            raise BadRequestError(
                "Insufficient quantity available",
                details={"available": item.quantity, "requested": data.quantity}
            )

        async with self.transaction():
            item.quantity -= data.quantity
            checkout = InventoryCheckout(
                organization_id=organization_id,
                item_id=item.id,
                team_id=team.id,
                project_id=data.project_id,
                user_id=actor.id,
                quantity=data.quantity,
                checkout_date=utcnow(),
                expected_return=data.expected_return,
                status=CheckoutStatus.ACTIVE.value,
                notes=data.notes,
            )
            self.db.add(checkout)
            await self.db.flush()
        logger.info(
            f"{data.quantity} x item {item.id} checked out to team {team.id}",
            extra={'user_id': actor.id, 'organization_id': organization_id}
        )
        return await self._get_checkout(organization_id, checkout.id)

    async def update_checkout(
        self, organization_id: int, checkout_id: int, data: CheckoutUpdateRequest, actor: User
    ) -> InventoryCheckout:
        """
        Change a checkout's status or notes, moving stock when it is returned or reopened.

        Raises:
            PermissionDenied: If the actor is not staff, the borrower, or on the team
            BadRequestError: If reopening a returned checkout would overdraw stock
        """
        checkout = await self._get_checkout(organization_id, checkout_id)
        if not is_staff(actor) and checkout.user_id != actor.id:
            if await self.teams.member_role(checkout.team_id, actor.id) is None:
                raise PermissionDenied("Not allowed to update this checkout")

        fields = data.model_dump(exclude_unset=True, exclude={"status"})
        item = await self.get_item(organization_id, checkout.item_id)
        was_returned = checkout.status == CheckoutStatus.RETURNED.value

        async with self.transaction():
            if data.status is not None:
                if data.status == CheckoutStatus.RETURNED and not was_returned:
                    item.quantity += checkout.quantity
                    checkout.return_date = utcnow()
                elif data.status != CheckoutStatus.RETURNED and was_returned:
                    if item.quantity < checkout.quantity:
                        raise BadRequestError(
                            "Insufficient quantity available",
                            details={"available": item.quantity, "requested": checkout.quantity}
                        )
                    item.quantity -= checkout.quantity
                    checkout.return_date = None
                checkout.status = data.status.value
            self._apply(checkout, fields)
        return await self._get_checkout(organization_id, checkout.id)

    async def list_team_checkouts(
        self, organization_id: int, team_id: int, user: User, status: Optional[CheckoutStatus] = None
    ) -> List[InventoryCheckout]:
        team = await self.teams.get_team(organization_id, team_id)
        if not is_staff(user):
            await self.teams.require_member(team.id, user)
        stmt = select(InventoryCheckout).where(InventoryCheckout.team_id == team.id)
        if status is not None:
            stmt = stmt.where(InventoryCheckout.status == status.value)
        return await self._scalars(
            stmt.order_by(InventoryCheckout.checkout_date.desc(), InventoryCheckout.id.desc())
        )
