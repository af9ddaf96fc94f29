# gridsuite/dsa/contracts/lifecycle.py
"""
Hooks a computation kind plugs into the generic worker.

The worker owns ordering and the stop/complete race; the hooks own what each
step means for one kind of computation.
"""
from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Optional, Protocol

from gridsuite.dsa.contracts.run import CancelContext, ResultContext


class ComputationLifecycle(Protocol):
    computation_type: str

    async def assemble(self, result_context: ResultContext) -> None:
        """Complete the run context. Runs before dispatch, may raise."""

    def dispatch(self, result_context: ResultContext) -> Future:
        """Start the engine and return its future without waiting."""

    async def on_complete(self, result_context: ResultContext, report: Any) -> None:
        """Persist and announce a finished computation."""

    async def on_failure(self, result_context: ResultContext, error: BaseException) -> None:
        """Persist and announce a run that could not finish."""

    async def on_abandon(self, result_context: ResultContext) -> None:
        """A stop was recorded before dispatch, so the engine never ran."""

    async def on_cancel(self, cancel_context: CancelContext) -> None:
        """The engine future was cancelled before it started."""

    async def on_cancel_failed(self, cancel_context: CancelContext) -> None:
        """The stop came too late, or for an unknown run."""

    async def cleanup(self, result_context: ResultContext, outcome: Optional[str]) -> None:
        """Release the run's resources. Must not raise."""
