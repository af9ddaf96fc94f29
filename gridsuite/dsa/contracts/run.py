# gridsuite/dsa/contracts/run.py
"""
Run lifecycle types.

``RunRequest`` is what the API accepts. ``RunContext`` is the per-job working
object: it travels inside the run message (request-level fields only) and is
completed by the worker during assembly. ``ResultContext`` pairs it with the job
id.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Optional
from uuid import UUID

from gridsuite.dsa.contracts.contingency import Contingency
from gridsuite.dsa.contracts.dynamic_model import DynamicModelConfig
from gridsuite.dsa.contracts.parameters import ParametersInfos
from gridsuite.dsa.contracts.report import ReportNode

if TYPE_CHECKING:
    from gridsuite.dsa.contracts.provider import DynamicSecurityAnalysisParameters, NetworkSnapshot
    from gridsuite.dsa.core.analysis.workspace import FileWorkspace

COMPUTATION_TYPE = "dynamic security analysis"
DEFAULT_REPORT_TYPE = "DynamicSecurityAnalysis"
INITIAL_VARIANT_ID = "InitialState"


class ResultStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCEED = "SUCCEED"
    FAILED = "FAILED"
    NOT_DONE = "NOT_DONE"


@dataclass(frozen=True)
class ReportInfos:
    report_uuid: Optional[UUID] = None
    reporter_id: Optional[str] = None
    report_type: str = DEFAULT_REPORT_TYPE

    @property
    def requested(self) -> bool:
        return self.report_uuid is not None


@dataclass(frozen=True)
class RunRequest:
    network_uuid: UUID
    dynamic_simulation_result_uuid: UUID
    parameters_uuid: UUID
    user_id: str
    variant_id: Optional[str] = None
    receiver: Optional[str] = None
    provider: Optional[str] = None
    report_infos: ReportInfos = field(default_factory=ReportInfos)
    debug: bool = False


@dataclass
class RunContext:
    network_uuid: UUID
    dynamic_simulation_result_uuid: UUID
    provider: str
    parameters: ParametersInfos
    user_id: str
    variant_id: Optional[str] = None
    receiver: Optional[str] = None
    report_infos: ReportInfos = field(default_factory=ReportInfos)
    debug: bool = False

    # Filled by the worker, strictly before dispatch
    network: Optional["NetworkSnapshot"] = None
    workspace: Optional["FileWorkspace"] = None
    contingencies: list[Contingency] = field(default_factory=list)
    dynamic_models: list[DynamicModelConfig] = field(default_factory=list)
    analysis_parameters: Optional["DynamicSecurityAnalysisParameters"] = None
    report_node: Optional[ReportNode] = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "networkUuid": str(self.network_uuid),
            "variantId": self.variant_id,
            "receiver": self.receiver,
            "provider": self.provider,
            "userId": self.user_id,
            "debug": self.debug,
            "dynamicSimulationResultUuid": str(self.dynamic_simulation_result_uuid),
            "reportUuid": str(self.report_infos.report_uuid) if self.report_infos.report_uuid else None,
            "reporterId": self.report_infos.reporter_id,
            "reportType": self.report_infos.report_type,
            "parameters": self.parameters.model_dump(mode="json", by_alias=True),
        }

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "RunContext":
        report_uuid = payload.get("reportUuid")
        return cls(
            network_uuid=UUID(payload["networkUuid"]),
            variant_id=payload.get("variantId"),
            receiver=payload.get("receiver"),
            provider=payload["provider"],
            user_id=payload.get("userId") or "",
            debug=bool(payload.get("debug", False)),
            dynamic_simulation_result_uuid=UUID(payload["dynamicSimulationResultUuid"]),
            report_infos=ReportInfos(
                report_uuid=UUID(report_uuid) if report_uuid else None,
                reporter_id=payload.get("reporterId"),
                report_type=payload.get("reportType") or DEFAULT_REPORT_TYPE,
            ),
            parameters=ParametersInfos.model_validate(payload.get("parameters") or {}),
        )


@dataclass
class ResultContext:
    result_uuid: UUID
    run_context: RunContext

    def to_payload(self) -> dict[str, Any]:
        return {"resultUuid": str(self.result_uuid), **self.run_context.to_payload()}

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "ResultContext":
        return cls(
            result_uuid=UUID(payload["resultUuid"]),
            run_context=RunContext.from_payload(payload),
        )


@dataclass(frozen=True)
class CancelContext:
    result_uuid: UUID
    receiver: Optional[str] = None
    user_id: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "CancelContext":
        return cls(
            result_uuid=UUID(payload["resultUuid"]),
            receiver=payload.get("receiver"),
            user_id=payload.get("userId"),
        )
