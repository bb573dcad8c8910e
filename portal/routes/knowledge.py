from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.dependencies import get_db
from portal.core.permissions import PermissionChecker
from portal.models import User
from portal.schemas.content import (
    KnowledgeNodeCreateRequest,
    KnowledgeNodeMoveRequest,
    KnowledgeNodeResponse,
    KnowledgeNodeUpdateRequest,
    KnowledgeTreeNode
)
from portal.services import KnowledgeService

router = APIRouter(tags=["Knowledge Base"])

can_read = PermissionChecker("knowledge:read")
can_create = PermissionChecker("knowledge:create")
can_edit = PermissionChecker("knowledge:edit")
can_delete = PermissionChecker("knowledge:delete")
can_publish = PermissionChecker("knowledge:publish")


def get_knowledge_service(db: AsyncSession = Depends(get_db)) -> KnowledgeService:
    return KnowledgeService(db=db)


@router.get("", response_model=List[KnowledgeNodeResponse])
async def list_nodes(
    current_user: User = Depends(can_read),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    return await service.list_nodes(current_user.organization_id, current_user)


@router.get("/tree", response_model=List[KnowledgeTreeNode])
async def knowledge_tree(
    current_user: User = Depends(can_read),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    """Nested view of the nodes the user can see"""
    return await service.tree(current_user.organization_id, current_user)


@router.post("", response_model=KnowledgeNodeResponse, status_code=status.HTTP_201_CREATED)
async def create_node(
    data: KnowledgeNodeCreateRequest,
    current_user: User = Depends(can_create),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    return await service.create_node(current_user.organization_id, data, current_user)


@router.get("/{node_id}", response_model=KnowledgeNodeResponse)
async def get_node(
    node_id: int,
    current_user: User = Depends(can_read),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    return await service.get_node(current_user.organization_id, node_id, current_user)


@router.patch("/{node_id}", response_model=KnowledgeNodeResponse)
async def update_node(
    node_id: int,
    data: KnowledgeNodeUpdateRequest,
    current_user: User = Depends(can_edit),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    return await service.update_node(current_user.organization_id, node_id, data)


@router.post("/{node_id}/publish", response_model=KnowledgeNodeResponse)
async def toggle_publish(
    node_id: int,
    current_user: User = Depends(can_publish),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    return await service.toggle_publish(current_user.organization_id, node_id, current_user)


@router.post("/{node_id}/move", response_model=KnowledgeNodeResponse)
async def move_node(
    node_id: int,
    data: KnowledgeNodeMoveRequest,
    current_user: User = Depends(can_edit),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    return await service.move_node(current_user.organization_id, node_id, data)


@router.delete("/{node_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_node(
    node_id: int,
    current_user: User = Depends(can_delete),
    service: KnowledgeService = Depends(get_knowledge_service)
):
    await service.delete_node(current_user.organization_id, node_id)
