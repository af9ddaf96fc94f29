# gridsuite/dsa/api/runs.py
"""Run submission, stop, and result routes."""
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response
from fastapi.responses import FileResponse

from gridsuite.dsa.api.deps import get_analysis_service
from gridsuite.dsa.contracts.run import DEFAULT_REPORT_TYPE, ReportInfos, ResultStatus, RunRequest
from gridsuite.dsa.core.analysis.service import DynamicSecurityAnalysisService

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/networks/{network_uuid}/run")
async def run(
    network_uuid: UUID,
    dynamic_simulation_result_uuid: UUID = Query(alias="dynamicSimulationResultUuid"),
    parameters_uuid: UUID = Query(alias="parametersUuid"),
    variant_id: Optional[str] = Query(default=None, alias="variantId"),
    receiver: Optional[str] = Query(default=None),
    report_uuid: Optional[UUID] = Query(default=None, alias="reportUuid"),
    reporter_id: Optional[str] = Query(default=None, alias="reporterId"),
    report_type: str = Query(default=DEFAULT_REPORT_TYPE, alias="reportType"),
    provider: Optional[str] = Query(default=None),
    debug: bool = Query(default=False),
    user_id: str = Header(alias="userId"),
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> UUID:
    request = RunRequest(
        network_uuid=network_uuid,
        dynamic_simulation_result_uuid=dynamic_simulation_result_uuid,
        parameters_uuid=parameters_uuid,
        user_id=user_id,
        variant_id=variant_id,
        receiver=receiver,
        provider=provider,
        report_infos=ReportInfos(report_uuid=report_uuid, reporter_id=reporter_id, report_type=report_type),
        debug=debug,
    )
    return await service.run(request)


@router.get("/results/{result_uuid}/status", response_model=None)
async def get_status(
    result_uuid: UUID,
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> ResultStatus | Response:
    status = await service.get_status(result_uuid)
    if status is None:
        return Response(status_code=204)
    return status


@router.put("/results/invalidate-status")
async def invalidate_status(
    result_uuids: list[UUID] = Query(alias="resultUuid"),
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> list[UUID]:
    return await service.invalidate_status(result_uuids)


@router.delete("/results/{result_uuid}")
async def delete_result(
    result_uuid: UUID,
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> None:
    await service.delete_result(result_uuid)


@router.delete("/results")
async def delete_results(
    results_uuids: Optional[list[UUID]] = Query(default=None, alias="resultsUuids"),
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> None:
    await service.delete_results(results_uuids)


@router.put("/results/{result_uuid}/stop")
async def stop(
    result_uuid: UUID,
    receiver: Optional[str] = Query(default=None),
    user_id: Optional[str] = Header(default=None, alias="userId"),
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> None:
    await service.stop(result_uuid, receiver, user_id)


@router.get("/results/{result_uuid}/download-debug-file")
async def download_debug_file(
    result_uuid: UUID,
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> FileResponse:
    path = await service.get_debug_file(result_uuid)
    if path is None:
        raise HTTPException(status_code=404, detail=f"No debug file for result {result_uuid}")
    return FileResponse(path, media_type="application/zip", filename=path.name)


@router.get("/providers")
async def get_providers(
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> list[str]:
    return service.get_providers()


@router.get("/default-provider")
async def get_default_provider(
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> str:
    return service.get_default_provider()


@router.get("/supervision/results-count")
async def results_count(
    service: DynamicSecurityAnalysisService = Depends(get_analysis_service),
) -> int:
    return await service.results_count()
