from typing import Any, Dict, List, Optional

from sqlalchemy import select, update

from portal.core.errors import BadRequestError, ConflictError, NotFoundError
from portal.core.permissions import has_permission
from portal.models import KnowledgeNode, User
from portal.schemas.content.requests import (
    KnowledgeNodeCreateRequest,
    KnowledgeNodeMoveRequest,
    KnowledgeNodeUpdateRequest
)
from portal.schemas.enums import KnowledgeNodeType
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService
from portal.utils.text import unique_slug


def build_tree(nodes: List[KnowledgeNode]) -> List[Dict[str, Any]]:
    """Nest nodes under their parents; nodes whose parent is not in the list become roots."""
    entries = {
        node.id: {
            "id": node.id,
            "title": node.title,
            "slug": node.slug,
            "node_type": node.node_type,
            "is_published": node.is_published,
            "children": [],
            "_sort": (node.order, node.id),
        }
        for node in nodes
    }
    roots = []
    for node in nodes:
        entry = entries[node.id]
        parent = entries.get(node.parent_id) if node.parent_id is not None else None
        (parent["children"] if parent is not None else roots).append(entry)

    def finish(level: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        level.sort(key=lambda e: e["_sort"])
        for entry in level:
            entry.pop("_sort", None)
            finish(entry["children"])
        return level

    return finish(roots)


def is_descendant(nodes_by_id: Dict[int, KnowledgeNode], candidate_id: int, ancestor_id: int) -> bool:
    """True when candidate_id is ancestor_id itself or sits anywhere below it."""
    seen = set()
    current: Optional[int] = candidate_id
    while current is not None and current not in seen:
        if current == ancestor_id:
            return True
        seen.add(current)
        node = nodes_by_id.get(current)
        current = node.parent_id if node is not None else None
    return False


class KnowledgeService(BaseService):
    """Wiki-style knowledge base arranged as a tree of nodes."""

    async def _slug_taken(self, organization_id: int, slug: str) -> bool:
        result = await self.db.execute(
            select(KnowledgeNode.id).where(
                KnowledgeNode.organization_id == organization_id,
                KnowledgeNode.slug == slug
            )
        )
        return result.first() is not None

    async def _check_folder(self, organization_id: int, parent_id: Optional[int]) -> None:
        if parent_id is None:
            return
        parent = await self._fetch(KnowledgeNode, parent_id, organization_id, label="Parent node")
        if parent.node_type != KnowledgeNodeType.FOLDER.value:
            raise BadRequestError("Parent node must be a folder")

    async def list_nodes(self, organization_id: int, user: User) -> List[KnowledgeNode]:
        stmt = select(KnowledgeNode).where(KnowledgeNode.organization_id == organization_id)
        if not has_permission(user, "knowledge:edit"):
            stmt = stmt.where(KnowledgeNode.is_published.is_(True))
        return await self._scalars(stmt.order_by(KnowledgeNode.order, KnowledgeNode.id))

    async def tree(self, organization_id: int, user: User) -> List[Dict[str, Any]]:
        return build_tree(await self.list_nodes(organization_id, user))

    async def get_node(self, organization_id: int, node_id: int, user: Optional[User] = None) -> KnowledgeNode:
        """
        Drafts are only visible to users who can edit the knowledge base.

        Raises:
            NotFoundError: If the node does not exist, or is a draft the user may not see
        """
        node = await self._fetch(KnowledgeNode, node_id, organization_id, label="Knowledge node")
        if user is not None and not node.is_published and not has_permission(user, "knowledge:edit"):
            raise NotFoundError("Knowledge node not found")
        return node

    async def create_node(self, organization_id: int, data: KnowledgeNodeCreateRequest, actor: User) -> KnowledgeNode:
        """
        Raises:
            ConflictError: If an explicit slug is already used
            BadRequestError: If the parent is not a folder
        """
        async def exists(slug: str) -> bool:
            return await self._slug_taken(organization_id, slug)

        if data.slug:
            if await exists(data.slug):
                raise ConflictError(f"Slug '{data.slug}' is already in use")
            slug = data.slug
        else:
            slug = await unique_slug(data.title, exists)
        await self._check_folder(organization_id, data.parent_id)

        async with self.transaction():
            node = KnowledgeNode(
                organization_id=organization_id,
                title=data.title,
                slug=slug,
                node_type=data.node_type.value,
                content=data.content,
                url=data.url,
                parent_id=data.parent_id,
                order=data.order,
                is_published=data.is_published,
                author_id=actor.id
            )
            self.db.add(node)
            await self.db.flush()
            await ActivityService(self.db).record(
                organization_id, "knowledge_created", "knowledge_node", node.id, user_id=actor.id
            )
        return await self.get_node(organization_id, node.id)

    async def update_node(self, organization_id: int, node_id: int, data: KnowledgeNodeUpdateRequest) -> KnowledgeNode:
        node = await self.get_node(organization_id, node_id)
        async with self.transaction():
            self._apply(node, data.model_dump(exclude_unset=True))
        return await self.get_node(organization_id, node_id)

    async def toggle_publish(self, organization_id: int, node_id: int, actor: User) -> KnowledgeNode:
        node = await self.get_node(organization_id, node_id)
        async with self.transaction():
            node.is_published = not node.is_published
            await ActivityService(self.db).record(
                organization_id,
                "knowledge_published" if node.is_published else "knowledge_unpublished",
                "knowledge_node", node.id, user_id=actor.id
            )
        return await self.get_node(organization_id, node_id)

    async def move_node(self, organization_id: int, node_id: int, data: KnowledgeNodeMoveRequest) -> KnowledgeNode:
        """
        Re-parent a node.

        Raises:
            BadRequestError: If the target is the node itself, one of its
                descendants, or not a folder
        """
        node = await self.get_node(organization_id, node_id)
        if data.parent_id is not None:
            all_nodes = await self._scalars(
                select(KnowledgeNode).where(KnowledgeNode.organization_id == organization_id)
            )
            if is_descendant({n.id: n for n in all_nodes}, data.parent_id, node.id):
                raise BadRequestError("Cannot move a node under itself or one of its descendants")
            await self._check_folder(organization_id, data.parent_id)

        async with self.transaction():
            node.parent_id = data.parent_id
            if data.order is not None:
                node.order = data.order
        return await self.get_node(organization_id, node_id)

    async def delete_node(self, organization_id: int, node_id: int) -> None:
        node = await self.get_node(organization_id, node_id)
        async with self.transaction():
            await self.db.execute(
                update(KnowledgeNode)
                .where(KnowledgeNode.organization_id == organization_id, KnowledgeNode.parent_id == node.id)
                .values(parent_id=node.parent_id)
            )
            await self.db.delete(node)
