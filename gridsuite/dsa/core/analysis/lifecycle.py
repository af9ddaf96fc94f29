# gridsuite/dsa/core/analysis/lifecycle.py
from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError

from gridsuite.dsa.contracts.analysis import SecurityAnalysisReport
from gridsuite.dsa.contracts.report import ReportNode
from gridsuite.dsa.contracts.run import COMPUTATION_TYPE, CancelContext, ResultContext, ResultStatus
from gridsuite.dsa.core.analysis.assembler import ContextAssembler
from gridsuite.dsa.core.analysis.cancellation import JobState
from gridsuite.dsa.core.analysis.cleaner import ResourceCleaner
from gridsuite.dsa.core.analysis.debug import DebugFileStore
from gridsuite.dsa.core.analysis.dispatch import ProviderDispatcher
from gridsuite.dsa.core.analysis.enricher import ReportEnricher
from gridsuite.dsa.core.broker.notification import NotificationService
from gridsuite.dsa.core.clients.report import ReportClient
from gridsuite.dsa.core.results.service import ResultService

logger = logging.getLogger(__name__)

# Outcomes that leave no result to explain
_NO_ARCHIVE = (JobState.CANCELLED, JobState.INTERRUPTED)


class DynamicSecurityAnalysisLifecycle:
    """Dynamic security analysis steps, driven by the worker."""

    computation_type = COMPUTATION_TYPE

    def __init__(
        self,
        *,
        assembler: ContextAssembler,
        dispatcher: ProviderDispatcher,
        enricher: ReportEnricher,
        cleaner: ResourceCleaner,
        results: ResultService,
        notifications: NotificationService,
        report_client: ReportClient,
        debug_store: DebugFileStore,
    ) -> None:
        self._assembler = assembler
        self._dispatcher = dispatcher
        self._enricher = enricher
        self._cleaner = cleaner
        self._results = results
        self._notifications = notifications
        self._report_client = report_client
        self._debug_store = debug_store

    async def assemble(self, result_context: ResultContext) -> None:
        run_context = result_context.run_context
        report_type = run_context.report_infos.report_type
        run_context.report_node = ReportNode.root(
            report_type,
            "${reportType} (${providerToUse})",
            reportType=report_type,
            providerToUse=run_context.provider,
        )
        await self._assembler.assemble(run_context)

    def dispatch(self, result_context: ResultContext) -> "Future[SecurityAnalysisReport]":
        return self._dispatcher.dispatch(result_context.run_context)

    async def on_complete(self, result_context: ResultContext, report: SecurityAnalysisReport) -> None:
        run_context = result_context.run_context
        result = report.result

        if run_context.report_infos.requested and run_context.report_node is not None:
            self._enricher.enrich(run_context.report_node, result)
            await self._report_client.send_report(run_context.report_infos.report_uuid, run_context.report_node)

        status = ResultStatus.SUCCEED if result.all_converged else ResultStatus.FAILED
        if await self._results.update_result(result_context.result_uuid, status):
            await self._notifications.publish_result(
                result_context.result_uuid, run_context.receiver, run_context.user_id
            )
        logger.info("Run %s finished with status %s", result_context.result_uuid, status.value)

    async def on_failure(self, result_context: ResultContext, error: BaseException) -> None:
        run_context = result_context.run_context
        await self._results.insert_status([result_context.result_uuid], ResultStatus.FAILED)

        if run_context.report_infos.requested and run_context.report_node is not None:
            try:
                await self._report_client.send_report(run_context.report_infos.report_uuid, run_context.report_node)
            except httpx.HTTPError:
                logger.exception("Could not send partial report of %s", result_context.result_uuid)

        await self._notifications.publish_fail(
            result_context.result_uuid,
            run_context.receiver,
            run_context.user_id,
            message=str(error) or None,
        )

    async def on_abandon(self, result_context: ResultContext) -> None:
        await self._results.update_status([result_context.result_uuid], ResultStatus.NOT_DONE)

    async def on_cancel(self, cancel_context: CancelContext) -> None:
        await self._results.delete(cancel_context.result_uuid)
        await self._notifications.publish_stop(
            cancel_context.result_uuid, cancel_context.receiver, cancel_context.user_id
        )

    async def on_cancel_failed(self, cancel_context: CancelContext) -> None:
        await self._notifications.publish_cancel_failed(
            cancel_context.result_uuid, cancel_context.receiver, cancel_context.user_id
        )

    async def cleanup(self, result_context: ResultContext, outcome: Optional[str]) -> None:
        run_context = result_context.run_context
        if run_context.debug and outcome not in _NO_ARCHIVE and run_context.workspace is not None:
            try:
                location = await self._debug_store.save(result_context.result_uuid, run_context.workspace.path)
                await self._results.update_debug_file_location(result_context.result_uuid, location)
            except (OSError, SQLAlchemyError):
                logger.exception("Could not save debug files of %s", result_context.result_uuid)
        await self._cleaner.clean(result_context)
