# gridsuite/dsa/api/parameters.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from gridsuite.dsa.api.deps import get_parameters_service
from gridsuite.dsa.contracts.parameters import ParametersInfos, ParametersValues
from gridsuite.dsa.core.parameters.service import ParametersService

router = APIRouter()


@router.post("")
async def create_parameters(
    infos: ParametersInfos,
    service: ParametersService = Depends(get_parameters_service),
) -> UUID:
    return await service.create_parameters(infos)


@router.post("/default")
async def create_default_parameters(
    service: ParametersService = Depends(get_parameters_service),
) -> UUID:
    return await service.create_default_parameters()


@router.post("/duplicate")
async def duplicate_parameters(
    source_uuid: UUID = Query(alias="duplicateFrom"),
    service: ParametersService = Depends(get_parameters_service),
) -> UUID:
    return await service.duplicate_parameters(source_uuid)


@router.get("")
async def get_all_parameters(
    service: ParametersService = Depends(get_parameters_service),
) -> list[ParametersInfos]:
    return await service.get_all_parameters()


@router.get("/{parameters_uuid}")
async def get_parameters(
    parameters_uuid: UUID,
    service: ParametersService = Depends(get_parameters_service),
) -> ParametersInfos:
    return await service.get_parameters(parameters_uuid)


@router.put("/{parameters_uuid}")
async def update_parameters(
    parameters_uuid: UUID,
    infos: Optional[ParametersInfos] = Body(default=None),
    service: ParametersService = Depends(get_parameters_service),
) -> None:
    await service.update_parameters(parameters_uuid, infos)


@router.delete("/{parameters_uuid}")
async def delete_parameters(
    parameters_uuid: UUID,
    service: ParametersService = Depends(get_parameters_service),
) -> None:
    await service.delete_parameters(parameters_uuid)


@router.get("/{parameters_uuid}/provider")
async def get_provider(
    parameters_uuid: UUID,
    service: ParametersService = Depends(get_parameters_service),
) -> Optional[str]:
    return await service.get_provider(parameters_uuid)


@router.put("/{parameters_uuid}/provider")
async def update_provider(
    parameters_uuid: UUID,
    provider: Optional[str] = Body(default=None),
    service: ParametersService = Depends(get_parameters_service),
) -> None:
    await service.update_provider(parameters_uuid, provider)


@router.get("/{parameters_uuid}/values")
async def get_parameters_values(
    parameters_uuid: UUID,
    network_uuid: UUID = Query(alias="networkUuid"),
    variant_id: Optional[str] = Query(default=None, alias="variantId"),
    service: ParametersService = Depends(get_parameters_service),
) -> ParametersValues:
    return await service.get_parameters_values(parameters_uuid, network_uuid, variant_id)
