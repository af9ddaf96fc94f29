# gridsuite/dsa/core/clients/dynamic_simulation.py
from __future__ import annotations

import logging
from uuid import UUID

from gridsuite.dsa.core.clients.base import RestClient, extract_error_message
from gridsuite.dsa.core.errors import UpstreamResultFetchError, UpstreamResultNotFoundError

logger = logging.getLogger(__name__)


class DynamicSimulationClient(RestClient):
    """Prior-stage artifacts of a dynamic simulation result, as gzip archives."""

    async def get_output_state(self, result_uuid: UUID) -> bytes:
        return await self._get_artifact(result_uuid, "output-state")

    async def get_dynamic_model(self, result_uuid: UUID) -> bytes:
        return await self._get_artifact(result_uuid, "dynamic-model")

    async def get_parameters(self, result_uuid: UUID) -> bytes:
        return await self._get_artifact(result_uuid, "parameters")

    async def _get_artifact(self, result_uuid: UUID, artifact: str) -> bytes:
        async with self._client() as client:
            r = await client.get(self._url(f"results/{result_uuid}/{artifact}"))

        if r.status_code == 404:
            raise UpstreamResultNotFoundError(
                f"Dynamic simulation result {result_uuid} has no {artifact}"
            )
        if r.is_error:
            message = extract_error_message(r)
            logger.warning("Fetching %s of %s failed: %s", artifact, result_uuid, message)
            raise UpstreamResultFetchError(message)
        return r.content
