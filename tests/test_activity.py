from sqlalchemy import func, select

from portal.models import ActivityLog, Organization
from portal.services.activity_service import ActivityService
from portal.services.base_service import BaseService


async def _log_count(session) -> int:
    return (await session.execute(select(func.count(ActivityLog.id)))).scalar_one()


async def test_record_writes_an_audit_row(db_session, organization):
    service = BaseService(db_session)
    async with service.transaction():
        entry = await ActivityService(db_session).record(
            organization.id, "page_published", "page", 7, details={"slug": "about"}
        )

    assert entry is not None
    assert entry.id is not None
    assert await _log_count(db_session) == 1


async def test_failed_audit_write_keeps_the_main_change(db_session, session_factory, organization):
    service = BaseService(db_session)
    async with service.transaction():
        organization.name = "Riverside Academy of Arts"
        entry = await ActivityService(db_session).record(
            organization.id, "organization_renamed", "organization", organization.id,
            details={"unserializable": object()}
        )

    assert entry is None

    async with session_factory() as fresh:
        stored = await fresh.get(Organization, organization.id)
        assert stored.name == "Riverside Academy of Arts"
        assert await _log_count(fresh) == 0
