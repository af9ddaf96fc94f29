# gridsuite/dsa/contracts/analysis.py
"""Security analysis outcome as produced by an engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ComputationStatus(str, Enum):
    CONVERGED = "CONVERGED"
    NO_IMPACT = "NO_IMPACT"
    MAX_ITERATION_REACHED = "MAX_ITERATION_REACHED"
    SOLVER_FAILED = "SOLVER_FAILED"
    FAILED = "FAILED"

    @property
    def converged(self) -> bool:
        return self in (ComputationStatus.CONVERGED, ComputationStatus.NO_IMPACT)


@dataclass(frozen=True)
class LimitViolation:
    subject_id: str
    limit_type: str
    limit: float
    value: float
    limit_name: Optional[str] = None
    side: Optional[str] = None


@dataclass
class PreContingencyResult:
    status: ComputationStatus = ComputationStatus.CONVERGED
    limit_violations: list[LimitViolation] = field(default_factory=list)


@dataclass
class PostContingencyResult:
    contingency_id: str
    status: ComputationStatus
    limit_violations: list[LimitViolation] = field(default_factory=list)


@dataclass
class SecurityAnalysisResult:
    pre_contingency_result: PreContingencyResult = field(default_factory=PreContingencyResult)
    post_contingency_results: list[PostContingencyResult] = field(default_factory=list)

    @property
    def all_converged(self) -> bool:
        return all(r.status.converged for r in self.post_contingency_results)


@dataclass
class SecurityAnalysisReport:
    result: SecurityAnalysisResult
    logs: Optional[bytes] = None
