# gridsuite/dsa/core/results/service.py
"""
Result state store.

One row per job, keyed by the job id. Every mutation touches a single row or
an explicit id list, so concurrent jobs never contend.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gridsuite.dsa.contracts.run import ResultStatus
from gridsuite.dsa.db.models.result import ResultEntity
from gridsuite.dsa.db.upsert import dialect_upsert

logger = logging.getLogger(__name__)


class ResultService:
    def __init__(self, sessions: async_sessionmaker[AsyncSession]) -> None:
        self._sessions = sessions

    async def insert_status(self, result_uuids: Iterable[UUID], status: ResultStatus) -> None:
        """Create rows with ``status``, overwriting the status of existing ones."""
        async with self._sessions() as session, session.begin():
            for result_uuid in result_uuids:
                await dialect_upsert(
                    session,
                    ResultEntity,
                    {"result_uuid": result_uuid, "status": status.value},
                    index_elements=["result_uuid"],
                    update_columns=["status"],
                )

    async def update_status(self, result_uuids: Iterable[UUID], status: ResultStatus) -> list[UUID]:
        """Set ``status`` on the existing rows among ``result_uuids``; return their ids."""
        ids = list(result_uuids)
        if not ids:
            return []
        async with self._sessions() as session, session.begin():
            found = (
                await session.scalars(
                    select(ResultEntity.result_uuid).where(ResultEntity.result_uuid.in_(ids))
                )
            ).all()
            if found:
                await session.execute(
                    update(ResultEntity)
                    .where(ResultEntity.result_uuid.in_(found))
                    .values(status=status.value)
                )
        return list(found)

    async def update_result(self, result_uuid: UUID, status: ResultStatus) -> bool:
        """Write the final status. Returns False if the row no longer exists."""
        async with self._sessions() as session, session.begin():
            res = await session.execute(
                update(ResultEntity)
                .where(ResultEntity.result_uuid == result_uuid)
                .values(status=status.value)
            )
        updated = res.rowcount > 0
        if not updated:
            logger.warning("Result %s was deleted before its status %s was saved", result_uuid, status.value)
        return updated

    async def update_debug_file_location(self, result_uuid: UUID, location: str) -> None:
        """Record the debug archive, re-creating the row as NOT_DONE if it was deleted."""
        async with self._sessions() as session, session.begin():
            await dialect_upsert(
                session,
                ResultEntity,
                {
                    "result_uuid": result_uuid,
                    "status": ResultStatus.NOT_DONE.value,
                    "debug_file_location": location,
                },
                index_elements=["result_uuid"],
                update_columns=["debug_file_location"],
            )

    async def find_status(self, result_uuid: UUID) -> Optional[ResultStatus]:
        async with self._sessions() as session:
            status = await session.scalar(
                select(ResultEntity.status).where(ResultEntity.result_uuid == result_uuid)
            )
        return ResultStatus(status) if status is not None else None

    async def find_debug_file_location(self, result_uuid: UUID) -> Optional[str]:
        async with self._sessions() as session:
            return await session.scalar(
                select(ResultEntity.debug_file_location).where(ResultEntity.result_uuid == result_uuid)
            )

    async def delete(self, result_uuid: UUID) -> None:
        await self.delete_results([result_uuid])

    async def delete_results(self, result_uuids: Optional[Iterable[UUID]] = None) -> None:
        """Delete the listed rows, or every row when ``result_uuids`` is None."""
        stmt = delete(ResultEntity)
        if result_uuids is not None:
            ids = list(result_uuids)
            if not ids:
                return
            stmt = stmt.where(ResultEntity.result_uuid.in_(ids))
        async with self._sessions() as session, session.begin():
            await session.execute(stmt)
        logger.info("Deleted results: %s", "all" if result_uuids is None else ids)

    async def count(self) -> int:
        async with self._sessions() as session:
            return int(await session.scalar(select(func.count()).select_from(ResultEntity)) or 0)
