# tests/helpers/fakes.py
"""Test doubles for the engine and the collaborator services."""
from __future__ import annotations

import asyncio
import gzip
import inspect
import json
import threading
import time
from concurrent.futures import Future
from typing import Any, Awaitable, Callable, Optional, Union

import httpx

from gridsuite.dsa.contracts.analysis import (
    ComputationStatus,
    LimitViolation,
    PostContingencyResult,
    SecurityAnalysisReport,
    SecurityAnalysisResult,
)
from gridsuite.dsa.core.utils import compress_json

PRIOR_STOP_TIME = 10.0


class FakeProvider:
    """
    Engine double.

    The returned future stays pending for ``delay`` seconds, so it can be
    cancelled during that window, then runs on a timer thread: it writes one
    report node per contingency and returns a result with one post-contingency
    entry per contingency (``statuses`` overrides CONVERGED).
    When ``gate`` is set the running engine blocks on it, so it can be caught
    after it started but before it finished.
    """

    def __init__(
        self,
        name: str = "Dynawo",
        version: str = "1.0.0",
        *,
        delay: float = 0.0,
        statuses: Optional[dict[str, ComputationStatus]] = None,
        violations: Optional[dict[str, list[LimitViolation]]] = None,
        error: Optional[Exception] = None,
    ) -> None:
        self.name = name
        self.version = version
        self.delay = delay
        self.statuses = statuses or {}
        self.violations = violations or {}
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.executed = threading.Event()
        self.gate: Optional[threading.Event] = None

    def run_async(self, network, variant_id, dynamic_models_supplier, contingencies_provider, run_parameters):
        self.calls.append(
            {
                "network": network,
                "variant_id": variant_id,
                "dynamic_models": dynamic_models_supplier(network),
                "contingencies": contingencies_provider(network),
                "run_parameters": run_parameters,
            }
        )
        future: Future = Future()

        def execute() -> None:
            if not future.set_running_or_notify_cancel():
                return
            self.executed.set()
            if self.gate is not None:
                self.gate.wait(timeout=5)
            try:
                report_node = run_parameters.report_node
                results = []
                for contingency in contingencies_provider(network):
                    report_node.add_child(
                        "dsa.contingency", "Contingency ${contingencyId}", contingencyId=contingency.id
                    )
                    results.append(
                        PostContingencyResult(
                            contingency_id=contingency.id,
                            status=self.statuses.get(contingency.id, ComputationStatus.CONVERGED),
                            limit_violations=list(self.violations.get(contingency.id, [])),
                        )
                    )
                if self.error is not None:
                    raise self.error
                future.set_result(
                    SecurityAnalysisReport(SecurityAnalysisResult(post_contingency_results=results))
                )
            except Exception as exc:
                future.set_exception(exc)

        timer = threading.Timer(self.delay, execute)
        timer.daemon = True
        timer.start()
        return future


def contingency_infos(contingency_id: str, resolved: bool = True) -> dict[str, Any]:
    return {
        "id": contingency_id,
        "contingency": {"id": contingency_id, "elements": [{"id": f"LINE_{contingency_id}", "type": "LINE"}]}
        if resolved
        else None,
        "notFoundElements": [] if resolved else [f"LINE_{contingency_id}"],
        "notConnectedElements": [],
    }


class FakeCollaborators:
    """
    Actions server, dynamic simulation server, network store and report server
    behind one ``httpx.MockTransport``.

    ``failures`` maps a path suffix to a response returned instead of the normal
    one; ``delays`` maps a path suffix to a sleep before answering.
    """

    def __init__(self) -> None:
        self.contingencies: list[dict[str, Any]] = [contingency_infos("C1"), contingency_infos("C2")]
        self.dynamic_models: list[dict[str, Any]] = [
            {"model": "LoadAlphaBeta", "group": "LAB", "groupType": "FIXED", "properties": []}
        ]
        self.simulation_parameters: dict[str, Any] = {"startTime": 0.0, "stopTime": PRIOR_STOP_TIME}
        self.dump: bytes = b"dump-state"
        self.failures: dict[str, httpx.Response] = {}
        self.delays: dict[str, float] = {}
        self.requests: list[httpx.Request] = []
        self.sent_reports: dict[str, dict[str, Any]] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        for suffix, delay in self.delays.items():
            if path.endswith(suffix):
                await asyncio.sleep(delay)
        for suffix, response in self.failures.items():
            if path.endswith(suffix):
                return response

        if path.endswith("/contingency-infos/export"):
            return httpx.Response(200, json=self.contingencies)
        if path.endswith("/output-state"):
            return httpx.Response(200, content=gzip.compress(self.dump))
        if path.endswith("/dynamic-model"):
            return httpx.Response(200, content=compress_json(self.dynamic_models))
        if path.endswith("/parameters"):
            return httpx.Response(200, content=compress_json(self.simulation_parameters))
        if "/v1/networks/" in path:
            return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1]})
        if "/v1/reports/" in path and request.method == "PUT":
            self.sent_reports[path.rsplit("/", 1)[-1]] = json.loads(request.content)
            return httpx.Response(200)
        return httpx.Response(404, json={"message": f"Unexpected call {request.method} {path}"})

    def calls_to(self, suffix: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith(suffix)]


Predicate = Callable[[], Union[Any, Awaitable[Any]]]


async def wait_for(predicate: Predicate, timeout: float = 5.0, interval: float = 0.02) -> Any:
    """Poll ``predicate`` (sync or async) until it returns something truthy."""
    deadline = time.monotonic() + timeout
    while True:
        value = predicate()
        if inspect.isawaitable(value):
            value = await value
        if value:
            return value
        if time.monotonic() > deadline:
            raise AssertionError("Condition not met before timeout")
        await asyncio.sleep(interval)
