# gridsuite/dsa/core/analysis/cancellation.py
"""
Cancellation coordinator.

Correlates stop requests with in-flight runs. A run moves through

    NOT_STARTED -> ASSEMBLING -> RUNNING -> (COMPLETED | CANCELLED)
                        \\-> STOP_REQUESTED -> CANCEL_FAILED

and ends in exactly one terminal state (INTERRUPTED when the worker shuts
down under it). The terminal state is taken with ``JobHandle.try_claim``: a
single compare-and-set under the handle's lock, so the completion path and the
stop path can never both act on the stored result.
"""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future
from enum import Enum
from typing import Callable, Optional
from uuid import UUID

logger = logging.getLogger(__name__)

DEFAULT_PENDING_STOP_TTL = 3600.0


class JobState(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    ASSEMBLING = "ASSEMBLING"
    RUNNING = "RUNNING"
    STOP_REQUESTED = "STOP_REQUESTED"
    CANCELLED = "CANCELLED"
    CANCEL_FAILED = "CANCEL_FAILED"
    COMPLETED = "COMPLETED"
    INTERRUPTED = "INTERRUPTED"

    @property
    def terminal(self) -> bool:
        return self in (
            JobState.CANCELLED,
            JobState.CANCEL_FAILED,
            JobState.COMPLETED,
            JobState.INTERRUPTED,
        )


class StopOutcome(str, Enum):
    CANCELLED = "CANCELLED"
    CANCEL_FAILED = "CANCEL_FAILED"
    NO_JOB = "NO_JOB"


class JobHandle:
    def __init__(self, result_uuid: UUID) -> None:
        self.result_uuid = result_uuid
        self._lock = threading.Lock()
        self._state = JobState.NOT_STARTED
        self._claimed: Optional[JobState] = None
        self.future: Optional[Future] = None
        self.stop_requested = False

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def claimed(self) -> Optional[JobState]:
        return self._claimed

    def mark(self, state: JobState) -> None:
        """Move to a non-terminal state; ignored once the job is claimed."""
        with self._lock:
            if self._claimed is None:
                self._state = state

    def try_claim(self, outcome: JobState) -> bool:
        """Take the terminal transition. Only the first caller wins."""
        if not outcome.terminal:
            raise ValueError(f"{outcome} is not a terminal state")
        with self._lock:
            if self._claimed is not None:
                return False
            self._claimed = outcome
            self._state = outcome
            return True


class CancellationCoordinator:
    """
    In-flight runs of this process, by result id.

    Stop requests for runs this process does not know yet, but whose stored
    status is RUNNING, are remembered for ``pending_stop_ttl`` seconds and
    applied when the run registers.
    """

    def __init__(
        self,
        *,
        pending_stop_ttl: float = DEFAULT_PENDING_STOP_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._lock = threading.Lock()
        self._jobs: dict[UUID, JobHandle] = {}
        self._pending_stops: dict[UUID, float] = {}
        self._pending_stop_ttl = pending_stop_ttl
        self._clock = clock

    def register(self, result_uuid: UUID) -> JobHandle:
        job = JobHandle(result_uuid)
        with self._lock:
            self._expire_pending_stops()
            job.mark(JobState.ASSEMBLING)
            if self._pending_stops.pop(result_uuid, None) is not None:
                job.stop_requested = True
                job.mark(JobState.STOP_REQUESTED)
            self._jobs[result_uuid] = job
        return job

    def start(self, result_uuid: UUID, launcher: Callable[[], Future]) -> Optional[Future]:
        """
        Dispatch checkpoint.

        Launches the engine unless a stop was requested meanwhile, in which case
        the job is claimed as CANCEL_FAILED and None is returned. The launcher
        runs outside the coordinator lock; a stop arriving during the launch
        cancels the engine future if it has not started yet.
        """
        with self._lock:
            job = self._jobs[result_uuid]
            if job.stop_requested:
                job.try_claim(JobState.CANCEL_FAILED)
                return None

        future = launcher()

        with self._lock:
            if job.stop_requested and future.cancel():
                job.try_claim(JobState.CANCEL_FAILED)
                return None
            job.future = future
            job.mark(JobState.RUNNING)
            return future

    def request_stop(self, result_uuid: UUID) -> StopOutcome:
        with self._lock:
            job = self._jobs.get(result_uuid)
            if job is None:
                return StopOutcome.NO_JOB

            job.stop_requested = True
            job.mark(JobState.STOP_REQUESTED)

            future = job.future
            if future is None:
                logger.info("Stop of %s requested before dispatch", result_uuid)
                return StopOutcome.CANCEL_FAILED

            # Future.cancel only succeeds while the engine has not started
            if future.cancel() and job.try_claim(JobState.CANCELLED):
                return StopOutcome.CANCELLED
            return StopOutcome.CANCEL_FAILED

    def remember_stop(self, result_uuid: UUID) -> bool:
        """Record a stop for a run not registered yet. False if it registered meanwhile."""
        with self._lock:
            if result_uuid in self._jobs:
                return False
            self._expire_pending_stops()
            self._pending_stops[result_uuid] = self._clock()
            return True

    def _expire_pending_stops(self) -> None:
        # Runs whose message never reaches this process would stay here forever
        now = self._clock()
        expired = [u for u, at in self._pending_stops.items() if now - at >= self._pending_stop_ttl]
        for result_uuid in expired:
            del self._pending_stops[result_uuid]
            logger.info("Forgetting stop of %s, the run never showed up", result_uuid)

    @property
    def pending_stops(self) -> int:
        with self._lock:
            return len(self._pending_stops)

    def release(self, result_uuid: UUID) -> None:
        with self._lock:
            self._jobs.pop(result_uuid, None)
            self._pending_stops.pop(result_uuid, None)

    def get(self, result_uuid: UUID) -> Optional[JobHandle]:
        with self._lock:
            return self._jobs.get(result_uuid)

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)
