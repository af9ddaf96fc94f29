# gridsuite/dsa/core/clients/report.py
from __future__ import annotations

import logging
from uuid import UUID

from gridsuite.dsa.contracts.report import ReportNode
from gridsuite.dsa.core.clients.base import RestClient

logger = logging.getLogger(__name__)


class ReportClient(RestClient):
    async def send_report(self, report_uuid: UUID, report: ReportNode) -> None:
        async with self._client() as client:
            r = await client.put(self._url(f"reports/{report_uuid}"), json=report.to_dict())
            r.raise_for_status()
        logger.debug("Sent report %s", report_uuid)
