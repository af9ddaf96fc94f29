# gridsuite/dsa/core/analysis/cleaner.py
from __future__ import annotations

import logging

from gridsuite.dsa.contracts.run import ResultContext
from gridsuite.dsa.core.analysis.cancellation import CancellationCoordinator

logger = logging.getLogger(__name__)


class ResourceCleaner:
    """Releases what a run holds once it is over. Never raises."""

    def __init__(self, coordinator: CancellationCoordinator) -> None:
        self._coordinator = coordinator

    async def clean(self, result_context: ResultContext) -> None:
        run_context = result_context.run_context
        workspace = run_context.workspace
        try:
            if workspace is not None:
                await workspace.cleanup()
        except OSError:
            logger.exception(
                "Failed to remove working directory %s of run %s",
                workspace.path,
                result_context.result_uuid,
            )
        finally:
            run_context.workspace = None
            self._coordinator.release(result_context.result_uuid)
