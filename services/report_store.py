from datetime import UTC, datetime
from typing import Protocol
from uuid import uuid4

from sentry_sdk import trace
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine

from db import db_read, db_write
from models.db.report import ReportRow
from models.report import NewReport, Report, ReportFilter, ReportUpdate


class ReportStore(Protocol):
    async def create(self, new: NewReport) -> Report: ...

    async def get(self, id: str) -> Report | None: ...

    async def list(self, filters: ReportFilter) -> list[Report]: ...

    async def update(self, id: str, update: ReportUpdate) -> Report | None: ...

    async def count(self) -> int: ...


def _matches(report: Report, filters: ReportFilter) -> bool:
    if filters.species is not None and report.species != filters.species:
        return False
    if filters.breed and report.breed != filters.breed:
        return False
    if filters.user_id is not None and report.user_id != filters.user_id:
        return False
    return True


class MemoryReportStore:
    """
    Reports kept in a process-local dict, for tests and offline use.
    """

    def __init__(self) -> None:
        self._reports: dict[str, Report] = {}

    async def create(self, new: NewReport) -> Report:
        report = Report(
            **new.model_dump(),
            id=str(uuid4()),
            captured_at=datetime.now(UTC),
        )
        self._reports[report.id] = report
        return report

    async def get(self, id: str) -> Report | None:
        return self._reports.get(id)

    async def list(self, filters: ReportFilter) -> list[Report]:
        # newest first, id breaks ties between equal timestamps
        reports = [r for r in self._reports.values() if _matches(r, filters)]
        return sorted(reports, key=lambda r: (r.captured_at, r.id), reverse=True)

    async def update(self, id: str, update: ReportUpdate) -> Report | None:
        report = self._reports.get(id)
        if report is None:
            return None

        report = report.model_copy(update=update.changes())
        self._reports[id] = report
        return report

    async def count(self) -> int:
        return len(self._reports)


class DatabaseReportStore:
    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @trace
    async def create(self, new: NewReport) -> Report:
        async with db_write(self._engine) as session:
            row = ReportRow(**new.model_dump())
            session.add(row)
            await session.flush()
            report = Report.model_validate(row)

        return report

    @trace
    async def get(self, id: str) -> Report | None:
        async with db_read(self._engine) as session:
            row = await session.get(ReportRow, id)
            return Report.model_validate(row) if (row is not None) else None

    @trace
    async def list(self, filters: ReportFilter) -> list[Report]:
        stmt = select(ReportRow)

        if filters.species is not None:
            stmt = stmt.where(ReportRow.species == filters.species)
        if filters.breed:
            stmt = stmt.where(ReportRow.breed == filters.breed)
        if filters.user_id is not None:
            stmt = stmt.where(ReportRow.user_id == filters.user_id)

        stmt = stmt.order_by(ReportRow.captured_at.desc(), ReportRow.id.desc())

        async with db_read(self._engine) as session:
            rows = (await session.scalars(stmt)).all()
            return [Report.model_validate(row) for row in rows]

    @trace
    async def update(self, id: str, update: ReportUpdate) -> Report | None:
        async with db_write(self._engine) as session:
            row = await session.get(ReportRow, id, with_for_update=True)
            if row is None:
                return None

            for key, value in update.changes().items():
                setattr(row, key, value)

            await session.flush()
            report = Report.model_validate(row)

        return report

    @trace
    async def count(self) -> int:
        async with db_read(self._engine) as session:
            stmt = select(func.count()).select_from(ReportRow)
            return (await session.execute(stmt)).scalar_one()
