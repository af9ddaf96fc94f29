# gridsuite/dsa/core/clients/network_store.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from gridsuite.dsa.contracts.provider import NetworkSnapshot
from gridsuite.dsa.core.clients.base import RestClient


class NetworkStoreClient(RestClient):
    """Network snapshots. Errors are not business errors and propagate as is."""

    async def get_network(self, network_uuid: UUID, variant_id: Optional[str] = None) -> NetworkSnapshot:
        params = {"variantId": variant_id} if variant_id else None
        async with self._client() as client:
            r = await client.get(self._url(f"networks/{network_uuid}"), params=params)
            r.raise_for_status()
        return NetworkSnapshot(network_uuid=str(network_uuid), variant_id=variant_id, data=r.json())
