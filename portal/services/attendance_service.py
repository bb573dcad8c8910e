from typing import Any, Dict, List

from sqlalchemy import select

from portal.core.errors import BadRequestError
from portal.models import AttendanceRecord, ClassSession, LMSCourse, StudentProfile
from portal.schemas.enums import AttendanceStatus
from portal.schemas.lms.requests import (
    AttendanceRecordInput,
    ClassSessionCreateRequest,
    ClassSessionUpdateRequest
)
from portal.services.base_service import BaseService

VALID_STATUSES = [status.value for status in AttendanceStatus]


def validate_records(records: List[AttendanceRecordInput]) -> None:
    """
    Raises:
        BadRequestError: If any record carries an unknown status
    """
    for record in records:
        if record.status not in VALID_STATUSES:
            raise BadRequestError(
                f'Invalid status "{record.status}". Must be one of: {", ".join(VALID_STATUSES)}'
            )


def summarize_attendance(student_id: int, statuses: List[str]) -> Dict[str, Any]:
    counts = {status: statuses.count(status) for status in VALID_STATUSES}
    total = len(statuses)
    attended = counts[AttendanceStatus.PRESENT.value] + counts[AttendanceStatus.LATE.value]
    return {
        "student_id": student_id,
        "total": total,
        **counts,
        "attendance_rate": round(attended / total * 100, 2) if total else 0.0,
    }


class AttendanceService(BaseService):
    async def _check_students(self, organization_id: int, records: List[AttendanceRecordInput]) -> None:
        wanted = {record.student_id for record in records}
        if not wanted:
            return
        result = await self.db.execute(
            select(StudentProfile.id).where(
                StudentProfile.organization_id == organization_id,
                StudentProfile.id.in_(wanted)
            )
        )
        missing = wanted - set(result.scalars().all())
        if missing:
            raise BadRequestError(f"Student(s) not found: {', '.join(str(i) for i in sorted(missing))}")

    def _upsert_records(self, session: ClassSession, records: List[AttendanceRecordInput]) -> None:
        existing = {record.student_id: record for record in session.records}
        for entry in records:
            record = existing.get(entry.student_id)
            if record is None:
                record = AttendanceRecord(student_id=entry.student_id)
                session.records.append(record)
                existing[entry.student_id] = record
            record.status = entry.status
            record.note = entry.note

    async def list_sessions(self, organization_id: int, course_id: int) -> List[ClassSession]:
        await self._fetch(LMSCourse, course_id, organization_id, label="Course")
        return await self._scalars(
            select(ClassSession)
            .where(ClassSession.organization_id == organization_id, ClassSession.course_id == course_id)
            .order_by(ClassSession.date.desc(), ClassSession.id.desc())
        )

    async def get_session(self, organization_id: int, session_id: int) -> ClassSession:
        return await self._fetch(ClassSession, session_id, organization_id, label="Class session")

    async def create_session(self, organization_id: int, course_id: int, data: ClassSessionCreateRequest) -> ClassSession:
        await self._fetch(LMSCourse, course_id, organization_id, label="Course")
        validate_records(data.records)
        await self._check_students(organization_id, data.records)

        async with self.transaction():
            session = ClassSession(
                organization_id=organization_id,
                course_id=course_id,
                date=data.date,
                topic=data.topic,
                notes=data.notes,
                records=[]
            )
            self._upsert_records(session, data.records)
            self.db.add(session)
        return await self.get_session(organization_id, session.id)

    async def update_session(self, organization_id: int, session_id: int, data: ClassSessionUpdateRequest) -> ClassSession:
        session = await self.get_session(organization_id, session_id)
        if data.records is not None:
            validate_records(data.records)
            await self._check_students(organization_id, data.records)

        async with self.transaction():
            self._apply(session, data.model_dump(exclude_unset=True, exclude={"records"}))
            if data.records is not None:
                self._upsert_records(session, data.records)
        return await self.get_session(organization_id, session_id)

    async def delete_session(self, organization_id: int, session_id: int) -> None:
        session = await self.get_session(organization_id, session_id)
        async with self.transaction():
            await self.db.delete(session)

    async def student_summary(self, organization_id: int, course_id: int, student_id: int) -> Dict[str, Any]:
        await self._fetch(LMSCourse, course_id, organization_id, label="Course")
        result = await self.db.execute(
            select(AttendanceRecord.status)
            .join(ClassSession, AttendanceRecord.session_id == ClassSession.id)
            .where(ClassSession.course_id == course_id, AttendanceRecord.student_id == student_id)
        )
        return summarize_attendance(student_id, list(result.scalars().all()))
