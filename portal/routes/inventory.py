from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_current_active_user, get_db
from portal.core.permissions import require_staff
from portal.models import User
from portal.schemas.enums import CheckoutStatus
from portal.schemas.finance import (
    CheckoutCreateRequest,
    CheckoutResponse,
    CheckoutUpdateRequest,
    InventoryCatalogItem,
    InventoryItemCreateRequest,
    InventoryItemResponse,
    InventoryItemUpdateRequest
)
from portal.services import InventoryService

router = APIRouter(tags=["Inventory"])


def get_inventory_service(db: AsyncSession = Depends(get_db)) -> InventoryService:
    return InventoryService(db=db)


@router.get("/catalog", response_model=List[InventoryCatalogItem])
async def catalog(
    category: Optional[str] = None,
    current_user: User = Depends(get_current_active_user),
    service: InventoryService = Depends(get_inventory_service)
):
    """Browsable stock without costing details"""
    return await service.list_items(current_user.organization_id, category)


# Items

@router.get("/items", response_model=List[InventoryItemResponse])
async def list_items(
    category: Optional[str] = None,
    current_user: User = Depends(require_staff),
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.list_items(current_user.organization_id, category)


@router.post("/items", response_model=InventoryItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    data: InventoryItemCreateRequest,
    current_user: User = Depends(require_staff),
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.create_item(current_user.organization_id, data)


@router.get("/items/{item_id}", response_model=InventoryItemResponse)
async def get_item(
    item_id: int,
    current_user: User = Depends(require_staff),
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.get_item(current_user.organization_id, item_id)


@router.patch("/items/{item_id}", response_model=InventoryItemResponse)
async def update_item(
    item_id: int,
    data: InventoryItemUpdateRequest,
    current_user: User = Depends(require_staff),
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.update_item(current_user.organization_id, item_id, data)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_item(
    item_id: int,
    current_user: User = Depends(require_staff),
    service: InventoryService = Depends(get_inventory_service)
):
    await service.delete_item(current_user.organization_id, item_id)


# Checkouts

@router.post("/checkouts", response_model=CheckoutResponse, status_code=status.HTTP_201_CREATED)
async def checkout_item(
    data: CheckoutCreateRequest,
    current_user: User = Depends(get_current_active_user),
    service: InventoryService = Depends(get_inventory_service)
):
    """Check stock out to a team; staff may check out for any team"""
    return await service.checkout(current_user.organization_id, data, current_user)


@router.patch("/checkouts/{checkout_id}", response_model=CheckoutResponse)
async def update_checkout(
    checkout_id: int,
    data: CheckoutUpdateRequest,
    current_user: User = Depends(get_current_active_user),
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.update_checkout(current_user.organization_id, checkout_id, data, current_user)


@router.get("/teams/{team_id}/checkouts", response_model=List[CheckoutResponse])
async def team_checkouts(
    team_id: int,
    status: Optional[CheckoutStatus] = None,
    current_user: User = Depends(get_current_active_user),
    service: InventoryService = Depends(get_inventory_service)
):
    return await service.list_team_checkouts(current_user.organization_id, team_id, current_user, status)
