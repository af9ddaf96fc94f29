# gridsuite/dsa/core/analysis/dispatch.py
from __future__ import annotations

import logging
from concurrent.futures import Future

from gridsuite.dsa.contracts.analysis import SecurityAnalysisReport
from gridsuite.dsa.contracts.provider import RunParameters
from gridsuite.dsa.contracts.run import INITIAL_VARIANT_ID, RunContext
from gridsuite.dsa.core.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class ProviderDispatcher:
    """Starts the named engine on an assembled run context."""

    def __init__(self, providers: ProviderRegistry) -> None:
        self._providers = providers

    def dispatch(self, run_context: RunContext) -> "Future[SecurityAnalysisReport]":
        provider = self._providers.get(run_context.provider)

        if (
            run_context.network is None
            or run_context.workspace is None
            or run_context.analysis_parameters is None
            or run_context.report_node is None
        ):
            raise RuntimeError("Run context is not assembled")

        contingencies = list(run_context.contingencies)
        dynamic_models = list(run_context.dynamic_models)

        logger.info("Dispatching to provider %s (version %s)", provider.name, provider.version)
        return provider.run_async(
            run_context.network,
            run_context.variant_id or INITIAL_VARIANT_ID,
            lambda network: dynamic_models,
            lambda network: contingencies,
            RunParameters(
                parameters=run_context.analysis_parameters,
                report_node=run_context.report_node,
                working_dir=run_context.workspace.path,
            ),
        )
