# gridsuite/dsa/core/analysis/service.py
"""
Run submission and result queries.

Submission validates the request synchronously (parameter set, engine name,
contingency lists), then creates the RUNNING row and sends the run message.
Nothing is stored when validation fails.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional
from uuid import UUID, uuid4

from gridsuite.dsa.contracts.run import ResultContext, ResultStatus, RunContext, RunRequest
from gridsuite.dsa.core.analysis.debug import DebugFileStore
from gridsuite.dsa.core.broker.notification import NotificationService
from gridsuite.dsa.core.errors import ContingencyListEmptyError, ResultNotFoundError
from gridsuite.dsa.core.parameters.service import ParametersService
from gridsuite.dsa.core.providers.registry import ProviderRegistry, resolve_provider
from gridsuite.dsa.core.results.service import ResultService

logger = logging.getLogger(__name__)


class DynamicSecurityAnalysisService:
    def __init__(
        self,
        *,
        results: ResultService,
        parameters: ParametersService,
        providers: ProviderRegistry,
        notifications: NotificationService,
        debug_store: DebugFileStore,
        default_provider: str,
    ) -> None:
        self._results = results
        self._parameters = parameters
        self._providers = providers
        self._notifications = notifications
        self._debug_store = debug_store
        self._default_provider = default_provider

    async def create_run_context(self, request: RunRequest) -> RunContext:
        parameters = await self._parameters.get_parameters(request.parameters_uuid)
        provider = resolve_provider(
            self._providers, request.provider, parameters.provider, self._default_provider
        )
        if not parameters.contingency_list_ids:
            raise ContingencyListEmptyError(
                f"Parameters {request.parameters_uuid} have no contingency list"
            )

        return RunContext(
            network_uuid=request.network_uuid,
            variant_id=request.variant_id,
            receiver=request.receiver,
            provider=provider,
            report_infos=request.report_infos,
            user_id=request.user_id,
            debug=request.debug,
            dynamic_simulation_result_uuid=request.dynamic_simulation_result_uuid,
            parameters=parameters,
        )

    async def run_and_save_result(self, run_context: RunContext) -> UUID:
        result_uuid = uuid4()
        await self._results.insert_status([result_uuid], ResultStatus.RUNNING)
        try:
            await self._notifications.send_run_message(ResultContext(result_uuid, run_context))
        except RuntimeError:
            await self._results.delete(result_uuid)
            raise
        logger.info("Run %s submitted on network %s with %s", result_uuid, run_context.network_uuid, run_context.provider)
        return result_uuid

    async def run(self, request: RunRequest) -> UUID:
        return await self.run_and_save_result(await self.create_run_context(request))

    async def stop(self, result_uuid: UUID, receiver: Optional[str], user_id: Optional[str]) -> None:
        await self._notifications.send_cancel_message(result_uuid, receiver, user_id)

    async def get_status(self, result_uuid: UUID) -> Optional[ResultStatus]:
        return await self._results.find_status(result_uuid)

    async def invalidate_status(self, result_uuids: Iterable[UUID]) -> list[UUID]:
        updated = await self._results.update_status(result_uuids, ResultStatus.NOT_DONE)
        if not updated:
            raise ResultNotFoundError("None of the results exist")
        return updated

    async def delete_result(self, result_uuid: UUID) -> None:
        await self._results.delete(result_uuid)

    async def delete_results(self, result_uuids: Optional[Iterable[UUID]] = None) -> None:
        await self._results.delete_results(result_uuids)

    async def results_count(self) -> int:
        return await self._results.count()

    async def get_debug_file(self, result_uuid: UUID) -> Optional[Path]:
        location = await self._results.find_debug_file_location(result_uuid)
        return self._debug_store.resolve(location)

    def get_providers(self) -> list[str]:
        return self._providers.names()

    def get_default_provider(self) -> str:
        return self._default_provider
