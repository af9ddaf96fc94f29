from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from gridsuite.dsa.core.runtime import DsaRuntime
from gridsuite.dsa.main import create_app


@pytest.fixture
def client(unstarted_runtime: DsaRuntime):
    with TestClient(create_app(unstarted_runtime)) as test_client:
        yield test_client


@pytest.fixture
def parameters_id(client: TestClient) -> str:
    resp = client.post(
        "/v1/parameters",
        json={"provider": "Dynawo", "scenarioDuration": 20, "contingenciesStartTime": 2, "contingencyListIds": ["list1"]},
    )
    assert resp.status_code == 200
    return resp.json()
