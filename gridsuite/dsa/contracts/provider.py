# gridsuite/dsa/contracts/provider.py
"""
Engine contract.

An engine receives a fully assembled job and returns a future immediately; the
computation runs on another thread. Cancelling the future is honored only until
the engine has started working.
"""
from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from gridsuite.dsa.contracts.analysis import SecurityAnalysisReport
from gridsuite.dsa.contracts.contingency import Contingency
from gridsuite.dsa.contracts.dynamic_model import DynamicModelConfig
from gridsuite.dsa.contracts.report import ReportNode


@dataclass(frozen=True)
class NetworkSnapshot:
    network_uuid: str
    variant_id: Optional[str]
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DumpFileParameters:
    dump_dir: Path
    file_name: str

    @property
    def path(self) -> Path:
        return self.dump_dir / self.file_name


@dataclass(frozen=True)
class DynamicSecurityAnalysisParameters:
    """
    Merged engine parameters.

    ``dynamic_simulation_parameters`` is the prior stage's parameter document
    with its time window moved to the scenario window.
    """

    dynamic_simulation_parameters: dict[str, Any]
    contingencies_start_time: float
    dump_file: DumpFileParameters

    @property
    def start_time(self) -> float:
        return float(self.dynamic_simulation_parameters["startTime"])

    @property
    def stop_time(self) -> float:
        return float(self.dynamic_simulation_parameters["stopTime"])


@dataclass(frozen=True)
class RunParameters:
    parameters: DynamicSecurityAnalysisParameters
    report_node: ReportNode
    working_dir: Path


DynamicModelsSupplier = Callable[[NetworkSnapshot], list[DynamicModelConfig]]
ContingenciesProvider = Callable[[NetworkSnapshot], list[Contingency]]


@runtime_checkable
class SecurityAnalysisProvider(Protocol):
    name: str
    version: str

    def run_async(
        self,
        network: NetworkSnapshot,
        variant_id: str,
        dynamic_models_supplier: DynamicModelsSupplier,
        contingencies_provider: ContingenciesProvider,
        run_parameters: RunParameters,
    ) -> "Future[SecurityAnalysisReport]":
        ...
