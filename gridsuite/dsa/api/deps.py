from __future__ import annotations

from typing import cast

from fastapi import HTTPException, Request

from gridsuite.dsa.core.analysis.service import DynamicSecurityAnalysisService
from gridsuite.dsa.core.parameters.service import ParametersService
from gridsuite.dsa.core.runtime import DsaRuntime


def get_runtime(request: Request) -> DsaRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(status_code=500, detail="Runtime not initialized")
    return cast(DsaRuntime, runtime)


def get_analysis_service(request: Request) -> DynamicSecurityAnalysisService:
    return get_runtime(request).analysis


def get_parameters_service(request: Request) -> ParametersService:
    return get_runtime(request).parameters
