# gridsuite/dsa/core/runtime.py
"""Explicit wiring of the service graph, shared by the app and the tests."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from gridsuite.dsa.contracts.broker import BrokerBase
from gridsuite.dsa.core.analysis.assembler import ContextAssembler
from gridsuite.dsa.core.analysis.cancellation import CancellationCoordinator
from gridsuite.dsa.core.analysis.cleaner import ResourceCleaner
from gridsuite.dsa.core.analysis.debug import DebugFileStore
from gridsuite.dsa.core.analysis.dispatch import ProviderDispatcher
from gridsuite.dsa.core.analysis.enricher import ReportEnricher
from gridsuite.dsa.core.analysis.lifecycle import DynamicSecurityAnalysisLifecycle
from gridsuite.dsa.core.analysis.service import DynamicSecurityAnalysisService
from gridsuite.dsa.core.analysis.worker import WorkerService
from gridsuite.dsa.core.analysis.workspace import WorkspaceManager
from gridsuite.dsa.core.broker import NotificationService, Topics, create_broker
from gridsuite.dsa.core.clients.actions import ActionsClient
from gridsuite.dsa.core.clients.dynamic_simulation import DynamicSimulationClient
from gridsuite.dsa.core.clients.network_store import NetworkStoreClient
from gridsuite.dsa.core.clients.report import ReportClient
from gridsuite.dsa.core.config import Settings
from gridsuite.dsa.core.parameters.service import ParametersService
from gridsuite.dsa.core.providers.config import load_and_register_providers, load_providers_config
from gridsuite.dsa.core.providers.registry import ProviderRegistry
from gridsuite.dsa.core.results.service import ResultService
from gridsuite.dsa.db import build_async_engine, build_sessionmaker
from gridsuite.dsa.db.init import init_db

logger = logging.getLogger(__name__)


@dataclass
class DsaRuntime:
    settings: Settings
    engine: AsyncEngine
    broker: BrokerBase
    providers: ProviderRegistry
    results: ResultService
    parameters: ParametersService
    notifications: NotificationService
    analysis: DynamicSecurityAnalysisService
    worker: WorkerService

    async def start(self) -> None:
        await init_db(self.engine)
        await self.broker.connect()
        await self.worker.start()
        logger.info("Runtime started with providers %s", self.providers.names())

    async def stop(self) -> None:
        await self.worker.stop()
        await self.broker.disconnect()
        self.providers.close()
        await self.engine.dispose()
        logger.info("Runtime stopped")


def load_providers(settings: Settings) -> ProviderRegistry:
    registry = ProviderRegistry()
    load_and_register_providers(
        registry=registry,
        cfg=load_providers_config(settings.providers_config_paths),
    )
    return registry


def build_runtime(
    settings: Settings,
    *,
    engine: Optional[AsyncEngine] = None,
    broker: Optional[BrokerBase] = None,
    providers: Optional[ProviderRegistry] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> DsaRuntime:
    """Build every service from settings; each collaborator can be injected."""
    engine = engine or build_async_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    sessions = build_sessionmaker(engine)
    broker = broker or create_broker(settings)
    providers = providers if providers is not None else load_providers(settings)

    def client_kwargs(base_url: str) -> dict:
        return {"base_url": base_url, "timeout": settings.http_timeout_seconds, "transport": transport}

    actions_client = ActionsClient(**client_kwargs(settings.actions_server_url))
    dynamic_simulation_client = DynamicSimulationClient(**client_kwargs(settings.dynamic_simulation_server_url))
    network_store_client = NetworkStoreClient(**client_kwargs(settings.network_store_server_url))
    report_client = ReportClient(**client_kwargs(settings.report_server_url))

    results = ResultService(sessions)
    parameters = ParametersService(
        sessions,
        default_provider=settings.default_provider,
        actions_client=actions_client,
    )
    notifications = NotificationService(broker, Topics.from_settings(settings))
    debug_store = DebugFileStore(settings.debug_storage_root)
    coordinator = CancellationCoordinator()

    lifecycle = DynamicSecurityAnalysisLifecycle(
        assembler=ContextAssembler(
            providers=providers,
            actions_client=actions_client,
            dynamic_simulation_client=dynamic_simulation_client,
            network_store_client=network_store_client,
            workspaces=WorkspaceManager(settings.working_dir_root),
            default_provider=settings.default_provider,
        ),
        dispatcher=ProviderDispatcher(providers),
        enricher=ReportEnricher(),
        cleaner=ResourceCleaner(coordinator),
        results=results,
        notifications=notifications,
        report_client=report_client,
        debug_store=debug_store,
    )

    return DsaRuntime(
        settings=settings,
        engine=engine,
        broker=broker,
        providers=providers,
        results=results,
        parameters=parameters,
        notifications=notifications,
        analysis=DynamicSecurityAnalysisService(
            results=results,
            parameters=parameters,
            providers=providers,
            notifications=notifications,
            debug_store=debug_store,
            default_provider=settings.default_provider,
        ),
        worker=WorkerService(
            lifecycle=lifecycle,
            coordinator=coordinator,
            results=results,
            notifications=notifications,
        ),
    )
