# gridsuite/dsa/core/parameters/service.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gridsuite.dsa.contracts.parameters import ParametersInfos, ParametersValues
from gridsuite.dsa.core.clients.actions import ActionsClient
from gridsuite.dsa.core.errors import ParametersNotFoundError
from gridsuite.dsa.db.models.parameters import ParametersEntity

logger = logging.getLogger(__name__)


class ParametersService:
    """Stored parameter sets."""

    def __init__(
        self,
        sessions: async_sessionmaker[AsyncSession],
        *,
        default_provider: str,
        actions_client: ActionsClient,
    ) -> None:
        self._sessions = sessions
        self._default_provider = default_provider
        self._actions = actions_client

    def get_default_parameters_values(self) -> ParametersInfos:
        return ParametersInfos(provider=self._default_provider)

    async def create_parameters(self, infos: ParametersInfos) -> UUID:
        entity = ParametersEntity.from_infos(infos)
        async with self._sessions() as session, session.begin():
            session.add(entity)
        logger.info("Created parameters %s", entity.id)
        return entity.id

    async def create_default_parameters(self) -> UUID:
        return await self.create_parameters(self.get_default_parameters_values())

    async def duplicate_parameters(self, source_uuid: UUID) -> UUID:
        return await self.create_parameters(await self.get_parameters(source_uuid))

    async def get_parameters(self, parameters_uuid: UUID) -> ParametersInfos:
        async with self._sessions() as session:
            return (await self._get_entity(session, parameters_uuid)).to_infos()

    async def get_all_parameters(self) -> list[ParametersInfos]:
        async with self._sessions() as session:
            entities = (await session.scalars(select(ParametersEntity))).all()
            return [e.to_infos() for e in entities]

    async def update_parameters(self, parameters_uuid: UUID, infos: Optional[ParametersInfos]) -> None:
        """Replace the stored values; no values means reset to defaults."""
        infos = infos or self.get_default_parameters_values()
        async with self._sessions() as session, session.begin():
            entity = await self._get_entity(session, parameters_uuid)
            entity.apply(infos)

    async def delete_parameters(self, parameters_uuid: UUID) -> None:
        async with self._sessions() as session, session.begin():
            entity = await self._get_entity(session, parameters_uuid)
            await session.delete(entity)
        logger.info("Deleted parameters %s", parameters_uuid)

    async def get_provider(self, parameters_uuid: UUID) -> Optional[str]:
        return (await self.get_parameters(parameters_uuid)).provider

    async def update_provider(self, parameters_uuid: UUID, provider: Optional[str]) -> None:
        async with self._sessions() as session, session.begin():
            entity = await self._get_entity(session, parameters_uuid)
            entity.provider = provider or self._default_provider

    async def get_parameters_values(
        self,
        parameters_uuid: UUID,
        network_uuid: UUID,
        variant_id: Optional[str] = None,
    ) -> ParametersValues:
        """The parameter set with its contingency lists resolved on a network."""
        parameters = await self.get_parameters(parameters_uuid)
        contingencies = await self._actions.get_contingencies(
            parameters.contingency_list_ids, network_uuid, variant_id
        )
        return ParametersValues(
            contingencies_start_time=parameters.contingencies_start_time,
            contingencies=[c.contingency.model_dump(by_alias=True) for c in contingencies if c.contingency],
        )

    @staticmethod
    async def _get_entity(session: AsyncSession, parameters_uuid: UUID) -> ParametersEntity:
        entity = await session.get(ParametersEntity, parameters_uuid)
        if entity is None:
            raise ParametersNotFoundError(f"Parameters {parameters_uuid} not found")
        return entity
