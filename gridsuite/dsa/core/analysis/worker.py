# gridsuite/dsa/core/analysis/worker.py
"""
Run and cancel message consumers.

Consumers only decode the message and start a task, so the transport is never
blocked by a computation. Each run task owns its context; the only state
shared between runs is the result table and the cancellation coordinator.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional
from uuid import UUID

from gridsuite.dsa.contracts.broker import ReceivedMessage
from gridsuite.dsa.contracts.lifecycle import ComputationLifecycle
from gridsuite.dsa.contracts.run import CancelContext, ResultContext, ResultStatus
from gridsuite.dsa.core.analysis.cancellation import CancellationCoordinator, JobState, StopOutcome
from gridsuite.dsa.core.broker.notification import NotificationService
from gridsuite.dsa.core.results.service import ResultService

logger = logging.getLogger(__name__)


class WorkerService:
    def __init__(
        self,
        *,
        lifecycle: ComputationLifecycle,
        coordinator: CancellationCoordinator,
        results: ResultService,
        notifications: NotificationService,
    ) -> None:
        self._lifecycle = lifecycle
        self._coordinator = coordinator
        self._results = results
        self._notifications = notifications
        self._tasks: set[asyncio.Task] = set()
        self._subscriptions: list[str] = []

    @property
    def coordinator(self) -> CancellationCoordinator:
        return self._coordinator

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        broker = self._notifications.broker
        topics = self._notifications.topics
        # One worker takes each run; every worker sees each cancel, only the owner acts on it
        for topic, handler, group in (
            (topics.run, self.consume_run, topics.run_group),
            (topics.cancel, self.consume_cancel, None),
        ):
            sub = await broker.subscribe([topic], handler, group=group)
            if not sub.success or sub.subscription_id is None:
                raise RuntimeError(f"Could not subscribe to {topic}: {sub.error}")
            self._subscriptions.append(sub.subscription_id)
        logger.info("Worker consuming %s and %s", topics.run, topics.cancel)

    async def stop(self) -> None:
        broker = self._notifications.broker
        for subscription_id in self._subscriptions:
            await broker.unsubscribe(subscription_id)
        self._subscriptions.clear()

        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)

    async def wait_idle(self) -> None:
        """Wait for the runs in progress."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ---- consumers -----------------------------------------------

    async def consume_run(self, message: ReceivedMessage) -> None:
        try:
            result_context = ResultContext.from_payload(message.payload)
        except (KeyError, TypeError, ValueError):
            logger.exception("Dropping malformed run message on %s", message.topic)
            return

        task = asyncio.create_task(self.run(result_context), name=f"dsa-run-{result_context.result_uuid}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def consume_cancel(self, message: ReceivedMessage) -> None:
        try:
            cancel_context = CancelContext.from_payload(message.payload)
        except (KeyError, TypeError, ValueError):
            logger.exception("Dropping malformed cancel message on %s", message.topic)
            return

        await self.cancel(cancel_context)

    # ---- run -----------------------------------------------------

    async def run(self, result_context: ResultContext) -> None:
        result_uuid = result_context.result_uuid
        job = self._coordinator.register(result_uuid)
        logger.info("Run %s accepted", result_uuid)

        try:
            await self._lifecycle.assemble(result_context)

            future = self._coordinator.start(result_uuid, lambda: self._lifecycle.dispatch(result_context))
            if future is None:
                logger.info("Run %s was stopped before dispatch", result_uuid)
                await self._lifecycle.on_abandon(result_context)
                return

            try:
                report = await asyncio.wrap_future(future)
            except asyncio.CancelledError:
                if job.claimed is JobState.CANCELLED:
                    # The stop path owns the outcome
                    return
                raise

            if job.try_claim(JobState.COMPLETED):
                await self._lifecycle.on_complete(result_context, report)
        except asyncio.CancelledError:
            logger.warning("Run %s interrupted", result_uuid)
            if job.try_claim(JobState.INTERRUPTED):
                await self._abandon(result_context)
            raise
        except Exception as exc:
            logger.exception("Run %s failed", result_uuid)
            job.try_claim(JobState.COMPLETED)
            if job.claimed is JobState.COMPLETED:
                await self._fail(result_context, exc)
        finally:
            await self._cleanup(result_context, job.claimed)

    async def _fail(self, result_context: ResultContext, error: Exception) -> None:
        try:
            await self._lifecycle.on_failure(result_context, error)
        except Exception:
            logger.exception("Could not record failure of run %s", result_context.result_uuid)

    async def _abandon(self, result_context: ResultContext) -> None:
        try:
            await self._lifecycle.on_abandon(result_context)
        except Exception:
            logger.exception("Could not abandon run %s", result_context.result_uuid)

    async def _cleanup(self, result_context: ResultContext, outcome: Optional[JobState]) -> None:
        try:
            await self._lifecycle.cleanup(result_context, outcome)
        except Exception:
            logger.exception("Cleanup of run %s failed", result_context.result_uuid)

    # ---- cancel --------------------------------------------------

    async def cancel(self, cancel_context: CancelContext) -> StopOutcome:
        result_uuid = cancel_context.result_uuid
        outcome = self._coordinator.request_stop(result_uuid)

        if outcome is StopOutcome.NO_JOB:
            if self._notifications.topics.run_group is not None:
                # Another worker of the group may hold it and answers for it
                logger.debug("Ignoring stop of %s, not held by this worker", result_uuid)
                return outcome
            outcome = await self._stop_unknown(result_uuid)

        logger.info("Stop of run %s: %s", result_uuid, outcome.value)
        if outcome is StopOutcome.CANCELLED:
            await self._lifecycle.on_cancel(cancel_context)
        else:
            await self._lifecycle.on_cancel_failed(cancel_context)
        return outcome

    async def _stop_unknown(self, result_uuid: UUID) -> StopOutcome:
        # A run still RUNNING in the store may not have reached this worker yet
        if await self._results.find_status(result_uuid) is not ResultStatus.RUNNING:
            return StopOutcome.NO_JOB
        if self._coordinator.remember_stop(result_uuid):
            return StopOutcome.CANCEL_FAILED
        return self._coordinator.request_stop(result_uuid)
