from __future__ import annotations

from pathlib import Path
from uuid import UUID

import pytest

from gridsuite.dsa.contracts.parameters import ParametersInfos
from gridsuite.dsa.core.broker.memory import InMemoryBroker
from gridsuite.dsa.core.config import Settings
from gridsuite.dsa.core.providers.registry import ProviderRegistry
from gridsuite.dsa.core.runtime import DsaRuntime, build_runtime
from tests.helpers.fakes import FakeCollaborators, FakeProvider


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'dsa.db'}",
        database_schema=None,
        working_dir_root=str(tmp_path / "work"),
        debug_storage_root=str(tmp_path / "debug"),
        providers_config_paths=[],
        default_provider="Dynawo",
        log_json=False,
    )


@pytest.fixture
def collaborators() -> FakeCollaborators:
    return FakeCollaborators()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider("Dynawo")


@pytest.fixture
def providers(provider: FakeProvider) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register(provider)
    return registry


@pytest.fixture
def broker() -> InMemoryBroker:
    return InMemoryBroker(record=True)


@pytest.fixture
def unstarted_runtime(
    settings: Settings,
    collaborators: FakeCollaborators,
    providers: ProviderRegistry,
    broker: InMemoryBroker,
) -> DsaRuntime:
    return build_runtime(
        settings,
        broker=broker,
        providers=providers,
        transport=collaborators.transport,
    )


@pytest.fixture
async def runtime(unstarted_runtime: DsaRuntime):
    await unstarted_runtime.start()
    yield unstarted_runtime
    await unstarted_runtime.stop()


@pytest.fixture
async def parameters_uuid(runtime: DsaRuntime) -> UUID:
    return await runtime.parameters.create_parameters(
        ParametersInfos(
            provider="Dynawo",
            scenario_duration=20.0,
            contingencies_start_time=2.0,
            contingency_list_ids=["list1"],
        )
    )
