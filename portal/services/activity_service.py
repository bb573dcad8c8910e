from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from portal.core.logging import logger
from portal.models import ActivityLog
from portal.services.base_service import BaseService


class ActivityService(BaseService):
    """Audit trail of notable mutations, stored per organization."""

    async def record(
        self,
        organization_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        user_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None
    ) -> Optional[ActivityLog]:
        """
        Write an audit row inside a savepoint of the caller's unit of work.

        A failed audit write is rolled back to the savepoint and logged; the
        caller's own changes stay pending and commit as usual.
        """
        # Caller errors surface here, outside the audit savepoint
        await self.db.flush()

        entry = ActivityLog(
            organization_id=organization_id,
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address,
        )
        try:
            async with self.db.begin_nested():
                self.db.add(entry)
                await self.db.flush()
        except SQLAlchemyError as e:
            logger.warning(
                f"Failed to record activity {action} on {entity_type}: {str(e)}",
                extra={'organization_id': organization_id, 'user_id': user_id}
            )
            return None
        return entry

    async def list_recent(self, organization_id: int, limit: int = 50) -> List[ActivityLog]:
        stmt = (
            select(ActivityLog)
            .where(ActivityLog.organization_id == organization_id)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
        )
        return await self._scalars(stmt)
