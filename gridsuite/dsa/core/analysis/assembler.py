# gridsuite/dsa/core/analysis/assembler.py
"""
Context assembly (pre-run).

Turns a run context holding only request-level fields into one that can be
dispatched: contingencies, prior-stage artifacts, merged engine parameters,
network snapshot and a working directory holding the prior dump. Any failure
ends the run before dispatch.
"""
from __future__ import annotations

import asyncio
import logging
import zlib
from typing import Any

from pydantic import TypeAdapter, ValidationError

from gridsuite.dsa.contracts.dynamic_model import DynamicModelConfig
from gridsuite.dsa.contracts.parameters import ParametersInfos
from gridsuite.dsa.contracts.provider import DumpFileParameters, DynamicSecurityAnalysisParameters
from gridsuite.dsa.contracts.run import RunContext
from gridsuite.dsa.core.analysis.workspace import WorkspaceManager
from gridsuite.dsa.core.clients.actions import ActionsClient
from gridsuite.dsa.core.clients.dynamic_simulation import DynamicSimulationClient
from gridsuite.dsa.core.clients.network_store import NetworkStoreClient
from gridsuite.dsa.core.errors import (
    ContingenciesNotFoundError,
    DynamicModelDecodeError,
    DynamicSimulationParametersDecodeError,
    WorkingDirectoryError,
)
from gridsuite.dsa.core.providers.registry import ProviderRegistry, resolve_provider
from gridsuite.dsa.core.utils import decompress, decompress_json

logger = logging.getLogger(__name__)

DUMP_DIR = "dump"
DUMP_FILE_NAME = "outputState.dmp"

_DECODE_ERRORS = (OSError, EOFError, zlib.error, ValueError, UnicodeDecodeError)
_DYNAMIC_MODELS = TypeAdapter(list[DynamicModelConfig])


def decode_dynamic_models(archive: bytes) -> list[DynamicModelConfig]:
    try:
        return _DYNAMIC_MODELS.validate_python(decompress_json(archive))
    except (*_DECODE_ERRORS, ValidationError) as exc:
        raise DynamicModelDecodeError(f"Could not decode dynamic models: {exc}") from exc


def decode_simulation_parameters(archive: bytes) -> dict[str, Any]:
    try:
        parameters = decompress_json(archive)
    except _DECODE_ERRORS as exc:
        raise DynamicSimulationParametersDecodeError(
            f"Could not decode dynamic simulation parameters: {exc}"
        ) from exc
    if not isinstance(parameters, dict) or "stopTime" not in parameters:
        raise DynamicSimulationParametersDecodeError(
            "Dynamic simulation parameters have no stop time"
        )
    return parameters


def merge_parameters(
    prior: dict[str, Any],
    parameters: ParametersInfos,
    dump_file: DumpFileParameters,
) -> DynamicSecurityAnalysisParameters:
    """The scenario starts where the prior simulation stopped and lasts ``scenario_duration``."""
    start_time = float(prior["stopTime"])
    stop_time = start_time + parameters.scenario_duration
    if stop_time < start_time:
        raise ValueError(f"Scenario stop time {stop_time} is before its start time {start_time}")

    return DynamicSecurityAnalysisParameters(
        dynamic_simulation_parameters={**prior, "startTime": start_time, "stopTime": stop_time},
        contingencies_start_time=parameters.contingencies_start_time,
        dump_file=dump_file,
    )


class ContextAssembler:
    def __init__(
        self,
        *,
        providers: ProviderRegistry,
        actions_client: ActionsClient,
        dynamic_simulation_client: DynamicSimulationClient,
        network_store_client: NetworkStoreClient,
        workspaces: WorkspaceManager,
        default_provider: str,
    ) -> None:
        self._providers = providers
        self._actions = actions_client
        self._dynamic_simulation = dynamic_simulation_client
        self._network_store = network_store_client
        self._workspaces = workspaces
        self._default_provider = default_provider

    async def assemble(self, run_context: RunContext) -> None:
        run_context.provider = resolve_provider(
            self._providers,
            run_context.provider,
            run_context.parameters.provider,
            self._default_provider,
        )
        parameters = run_context.parameters

        contingency_infos = await self._actions.get_contingencies(
            parameters.contingency_list_ids,
            run_context.network_uuid,
            run_context.variant_id,
        )
        # Only contingencies with a definition reach the engine
        contingencies = [infos.contingency for infos in contingency_infos if infos.contingency is not None]
        if not contingencies:
            raise ContingenciesNotFoundError(
                f"No contingency of lists {parameters.contingency_list_ids} could be resolved"
            )

        simulation_uuid = run_context.dynamic_simulation_result_uuid
        dump_archive, models_archive, parameters_archive = await asyncio.gather(
            self._dynamic_simulation.get_output_state(simulation_uuid),
            self._dynamic_simulation.get_dynamic_model(simulation_uuid),
            self._dynamic_simulation.get_parameters(simulation_uuid),
        )
        dynamic_models = decode_dynamic_models(models_archive)
        prior_parameters = decode_simulation_parameters(parameters_archive)
        try:
            dump = decompress(dump_archive)
        except _DECODE_ERRORS as exc:
            raise WorkingDirectoryError(f"Could not decode dump file: {exc}") from exc

        network = await self._network_store.get_network(run_context.network_uuid, run_context.variant_id)

        # Attached right away so the cleaner removes it whatever happens next
        workspace = self._workspaces.create()
        run_context.workspace = workspace
        try:
            await workspace.write_bytes(f"{DUMP_DIR}/{DUMP_FILE_NAME}", dump)
        except OSError as exc:
            raise WorkingDirectoryError(f"Could not write dump file: {exc}") from exc

        run_context.network = network
        run_context.contingencies = contingencies
        run_context.dynamic_models = dynamic_models
        run_context.analysis_parameters = merge_parameters(
            prior_parameters,
            parameters,
            DumpFileParameters(dump_dir=workspace.path / DUMP_DIR, file_name=DUMP_FILE_NAME),
        )
        logger.info(
            "Assembled run on network %s: %d contingencies, %d dynamic models, window [%s, %s]",
            run_context.network_uuid,
            len(contingencies),
            len(dynamic_models),
            run_context.analysis_parameters.start_time,
            run_context.analysis_parameters.stop_time,
        )
