# gridsuite/dsa/core/clients/actions.py
from __future__ import annotations

import logging
from typing import Optional, Sequence
from uuid import UUID

from pydantic import TypeAdapter

from gridsuite.dsa.contracts.contingency import ContingencyInfos
from gridsuite.dsa.core.clients.base import RestClient, extract_error_message
from gridsuite.dsa.core.errors import ContingenciesNotFoundError, ContingencyListEmptyError

logger = logging.getLogger(__name__)

_CONTINGENCY_INFOS = TypeAdapter(list[ContingencyInfos])


class ActionsClient(RestClient):
    """Actions server: contingency lists resolved against a network."""

    async def get_contingencies(
        self,
        ids: Sequence[str],
        network_uuid: UUID,
        variant_id: Optional[str] = None,
    ) -> list[ContingencyInfos]:
        if not ids:
            raise ContingencyListEmptyError("The contingency list identifiers are empty")

        params: dict[str, object] = {"networkUuid": str(network_uuid), "ids": list(ids)}
        if variant_id:
            params["variantId"] = variant_id

        async with self._client() as client:
            r = await client.get(
                self._url("contingency-lists/contingency-infos/export"),
                params=params,
            )
        if r.status_code == 404:
            raise ContingenciesNotFoundError(
                f"Contingencies not found for lists {list(ids)}: {extract_error_message(r)}"
            )
        r.raise_for_status()

        contingencies = _CONTINGENCY_INFOS.validate_python(r.json() or [])
        logger.debug("Fetched %d contingencies for network %s", len(contingencies), network_uuid)
        return contingencies
