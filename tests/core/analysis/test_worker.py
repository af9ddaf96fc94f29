# tests/core/analysis/test_worker.py
"""End-to-end run lifecycle through the in-memory broker and a SQLite store."""
from __future__ import annotations

import threading
from pathlib import Path
from uuid import UUID, uuid4

import httpx
import pytest

from gridsuite.dsa.contracts.analysis import ComputationStatus
from gridsuite.dsa.contracts.parameters import ParametersInfos
from gridsuite.dsa.contracts.run import CancelContext, ReportInfos, ResultStatus, RunRequest
from gridsuite.dsa.core.analysis.cancellation import JobState, StopOutcome
from gridsuite.dsa.core.broker.notification import CANCEL_FAILED_MESSAGE, CANCEL_MESSAGE
from gridsuite.dsa.core.errors import ContingencyListEmptyError, ParametersNotFoundError, ProviderNotFoundError
from gridsuite.dsa.core.runtime import DsaRuntime
from tests.helpers.fakes import PRIOR_STOP_TIME, FakeProvider, contingency_infos, wait_for

RECEIVER = "receiver-token"
USER = "user1"


def make_request(parameters_uuid: UUID, **overrides) -> RunRequest:
    values = dict(
        network_uuid=uuid4(),
        dynamic_simulation_result_uuid=uuid4(),
        parameters_uuid=parameters_uuid,
        user_id=USER,
        receiver=RECEIVER,
    )
    values.update(overrides)
    return RunRequest(**values)


def payloads(runtime: DsaRuntime, topic: str) -> list[dict]:
    return [m.payload for m in runtime.broker.messages_on(topic)]


async def wait_final_status(runtime: DsaRuntime, result_uuid: UUID) -> ResultStatus:
    async def final():
        status = await runtime.results.find_status(result_uuid)
        return status if status is not ResultStatus.RUNNING else None

    status = await wait_for(final)
    await wait_for(lambda: runtime.worker.coordinator.get(result_uuid) is None)
    return status


def working_dirs(runtime: DsaRuntime) -> list[Path]:
    root = Path(runtime.settings.working_dir_root)
    return list(root.iterdir()) if root.exists() else []


class TestRunCompletion:
    async def test_run_succeeds(self, runtime, parameters_uuid, provider: FakeProvider):
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.SUCCEED
        result_events = payloads(runtime, runtime.notifications.topics.result)
        assert result_events[0]["resultUuid"] == str(result_uuid)
        assert result_events[0]["receiver"] == RECEIVER
        assert result_events[0]["userId"] == USER

        call = provider.calls[0]
        assert call["variant_id"] == "InitialState"
        assert [c.id for c in call["contingencies"]] == ["C1", "C2"]
        assert call["dynamic_models"][0].model == "LoadAlphaBeta"

        parameters = call["run_parameters"].parameters
        assert parameters.start_time == PRIOR_STOP_TIME
        assert parameters.stop_time == PRIOR_STOP_TIME + 20.0
        assert parameters.contingencies_start_time == 2.0
        assert parameters.dump_file.file_name == "outputState.dmp"

    async def test_engine_only_gets_resolved_contingencies(
        self, runtime, parameters_uuid, provider: FakeProvider, collaborators
    ):
        collaborators.contingencies = [contingency_infos("C1"), contingency_infos("C2", resolved=False)]

        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.SUCCEED
        dispatched = provider.calls[0]["contingencies"]
        assert [c.id for c in dispatched] == ["C1"]
        assert all(c.elements for c in dispatched)

    async def test_status_is_running_right_after_submission(self, runtime, parameters_uuid, provider):
        provider.delay = 0.5

        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await runtime.results.find_status(result_uuid) is ResultStatus.RUNNING
        await wait_final_status(runtime, result_uuid)

    async def test_working_directory_removed(self, runtime, parameters_uuid):
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        await wait_final_status(runtime, result_uuid)
        assert working_dirs(runtime) == []

    async def test_variant_is_forwarded(self, runtime, parameters_uuid, provider, collaborators):
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid, variant_id="variant_1"))

        await wait_final_status(runtime, result_uuid)
        assert provider.calls[0]["variant_id"] == "variant_1"
        export = collaborators.calls_to("/contingency-infos/export")[0]
        assert export.url.params["variantId"] == "variant_1"
        assert export.url.params.get_list("ids") == ["list1"]

    async def test_non_converged_contingency_fails_run(self, runtime, parameters_uuid, provider):
        provider.statuses = {"C2": ComputationStatus.SOLVER_FAILED}

        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.FAILED
        # The engine itself succeeded: this is a result, not a failure event
        assert len(payloads(runtime, runtime.notifications.topics.result)) == 1
        assert payloads(runtime, runtime.notifications.topics.failed) == []

    async def test_enriched_report_is_sent(self, runtime, parameters_uuid, provider, collaborators):
        provider.statuses = {"C2": ComputationStatus.FAILED}
        report_uuid = uuid4()

        result_uuid = await runtime.analysis.run(
            make_request(parameters_uuid, report_infos=ReportInfos(report_uuid=report_uuid, reporter_id="node"))
        )

        await wait_final_status(runtime, result_uuid)
        report = collaborators.sent_reports[str(report_uuid)]
        contingency_nodes = {c["values"]["contingencyId"]: c for c in report["children"]}
        c2_lines = contingency_nodes["C2"]["children"]
        assert c2_lines[0]["messageKey"] == "dsa.contingencyStatus"
        assert c2_lines[0]["values"]["reportSeverity"] == "WARN"
        assert contingency_nodes["C1"]["children"][0]["values"]["reportSeverity"] == "INFO"

    async def test_no_report_sent_without_routing(self, runtime, parameters_uuid, collaborators):
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        await wait_final_status(runtime, result_uuid)
        assert collaborators.sent_reports == {}


class TestRunFailures:
    async def test_engine_exception_fails_run(self, runtime, parameters_uuid, provider, collaborators):
        provider.error = RuntimeError("engine crashed")
        report_uuid = uuid4()

        result_uuid = await runtime.analysis.run(
            make_request(parameters_uuid, report_infos=ReportInfos(report_uuid=report_uuid))
        )

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.FAILED
        failed = payloads(runtime, runtime.notifications.topics.failed)
        assert failed[0]["message"] == "engine crashed"
        assert failed[0]["receiver"] == RECEIVER
        # Partial report with the nodes the engine wrote before crashing
        assert len(collaborators.sent_reports[str(report_uuid)]["children"]) == 2
        assert working_dirs(runtime) == []

    async def test_upstream_result_not_found_fails_before_dispatch(self, runtime, parameters_uuid, provider, collaborators):
        collaborators.failures["/dynamic-model"] = httpx.Response(404)

        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.FAILED
        assert provider.calls == []
        assert working_dirs(runtime) == []
        assert payloads(runtime, runtime.notifications.topics.failed)

    async def test_corrupt_dynamic_model_fails_run(self, runtime, parameters_uuid, provider, collaborators):
        collaborators.failures["/dynamic-model"] = httpx.Response(200, content=b"not gzip")

        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.FAILED
        assert provider.calls == []
        assert "dynamic models" in payloads(runtime, runtime.notifications.topics.failed)[0]["message"]

    async def test_unresolved_contingencies_fail_run(self, runtime, parameters_uuid, provider, collaborators):
        collaborators.contingencies = []

        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.FAILED
        assert provider.calls == []

    async def test_network_store_error_fails_run(self, runtime, parameters_uuid, provider, collaborators):
        network_uuid = uuid4()
        collaborators.failures[f"/v1/networks/{network_uuid}"] = httpx.Response(500)

        result_uuid = await runtime.analysis.run(make_request(parameters_uuid, network_uuid=network_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.FAILED
        assert provider.calls == []


class TestSubmissionValidation:
    async def test_empty_contingency_list(self, runtime):
        parameters_uuid = await runtime.parameters.create_parameters(ParametersInfos(contingency_list_ids=[]))

        with pytest.raises(ContingencyListEmptyError):
            await runtime.analysis.run(make_request(parameters_uuid))

        assert await runtime.results.count() == 0
        assert payloads(runtime, runtime.notifications.topics.run) == []

    async def test_unknown_provider(self, runtime, parameters_uuid):
        with pytest.raises(ProviderNotFoundError):
            await runtime.analysis.run(make_request(parameters_uuid, provider="Unknown"))

        assert await runtime.results.count() == 0
        assert payloads(runtime, runtime.notifications.topics.run) == []

    async def test_unknown_parameters(self, runtime):
        with pytest.raises(ParametersNotFoundError):
            await runtime.analysis.run(make_request(uuid4()))

        assert await runtime.results.count() == 0

    async def test_provider_falls_back_to_default(self, runtime):
        parameters_uuid = await runtime.parameters.create_parameters(
            ParametersInfos(provider=None, contingency_list_ids=["list1"])
        )

        context = await runtime.analysis.create_run_context(make_request(parameters_uuid))

        assert context.provider == "Dynawo"


class TestStop:
    async def test_stop_on_time(self, runtime, parameters_uuid, provider):
        """Stop while the engine future is still pending: run cancelled and deleted."""
        provider.delay = 1.0
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))
        await wait_for(
            lambda: (job := runtime.worker.coordinator.get(result_uuid)) is not None
            and job.state is JobState.RUNNING
        )

        await runtime.analysis.stop(result_uuid, RECEIVER, USER)

        stopped = await wait_for(lambda: payloads(runtime, runtime.notifications.topics.stopped))
        assert stopped[0]["resultUuid"] == str(result_uuid)
        assert stopped[0]["receiver"] == RECEIVER
        assert stopped[0]["message"] == CANCEL_MESSAGE
        assert await runtime.results.find_status(result_uuid) is None

        await wait_for(lambda: runtime.worker.coordinator.get(result_uuid) is None)
        assert not provider.executed.is_set()
        assert payloads(runtime, runtime.notifications.topics.result) == []
        assert payloads(runtime, runtime.notifications.topics.cancel_failed) == []
        assert working_dirs(runtime) == []

    async def test_stop_early(self, runtime, parameters_uuid, provider, collaborators):
        """Stop while assembling: cancel fails, status stays RUNNING, engine never starts."""
        collaborators.delays["/contingency-infos/export"] = 1.0
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))
        await wait_for(lambda: runtime.worker.coordinator.get(result_uuid) is not None)

        await runtime.analysis.stop(result_uuid, RECEIVER, USER)

        cancel_failed = await wait_for(lambda: payloads(runtime, runtime.notifications.topics.cancel_failed))
        assert cancel_failed[0]["resultUuid"] == str(result_uuid)
        assert cancel_failed[0]["message"] == CANCEL_FAILED_MESSAGE
        assert await runtime.results.find_status(result_uuid) is ResultStatus.RUNNING

        # Once assembly is over the run is abandoned instead of staying RUNNING
        assert await wait_final_status(runtime, result_uuid) is ResultStatus.NOT_DONE
        assert provider.calls == []
        assert payloads(runtime, runtime.notifications.topics.stopped) == []
        assert working_dirs(runtime) == []

    async def test_stop_lately(self, runtime, parameters_uuid):
        """Stop after completion: the result stands and cancel failure is still reported."""
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))
        await wait_for(lambda: payloads(runtime, runtime.notifications.topics.result))
        await wait_final_status(runtime, result_uuid)

        await runtime.analysis.stop(result_uuid, RECEIVER, USER)

        await wait_for(lambda: payloads(runtime, runtime.notifications.topics.cancel_failed))
        assert await runtime.results.find_status(result_uuid) is ResultStatus.SUCCEED
        assert payloads(runtime, runtime.notifications.topics.stopped) == []

    async def test_stop_while_engine_running(self, runtime, parameters_uuid, provider):
        """Once the engine started the stop fails and the run completes normally."""
        provider.gate = threading.Event()
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))
        await wait_for(provider.executed.is_set)

        await runtime.analysis.stop(result_uuid, RECEIVER, USER)

        await wait_for(lambda: payloads(runtime, runtime.notifications.topics.cancel_failed))
        provider.gate.set()
        assert await wait_final_status(runtime, result_uuid) is ResultStatus.SUCCEED
        assert payloads(runtime, runtime.notifications.topics.stopped) == []

    async def test_stop_unknown_result(self, runtime):
        await runtime.analysis.stop(uuid4(), RECEIVER, USER)

        await wait_for(lambda: payloads(runtime, runtime.notifications.topics.cancel_failed))


class TestShutdown:
    async def test_pending_run_is_not_left_running(self, runtime, parameters_uuid, provider):
        provider.delay = 1.0
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))
        await wait_for(
            lambda: (job := runtime.worker.coordinator.get(result_uuid)) is not None
            and job.state is JobState.RUNNING
        )

        await runtime.worker.stop()

        assert await runtime.results.find_status(result_uuid) is ResultStatus.NOT_DONE
        assert runtime.worker.coordinator.get(result_uuid) is None
        assert payloads(runtime, runtime.notifications.topics.stopped) == []
        assert working_dirs(runtime) == []

    async def test_running_engine_is_not_left_running(self, runtime, parameters_uuid, provider):
        provider.gate = threading.Event()
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))
        await wait_for(provider.executed.is_set)

        try:
            await runtime.worker.stop()
        finally:
            provider.gate.set()

        assert await runtime.results.find_status(result_uuid) is ResultStatus.NOT_DONE
        assert payloads(runtime, runtime.notifications.topics.result) == []


class TestDebugFiles:
    async def test_debug_archive_recorded(self, runtime, parameters_uuid):
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid, debug=True))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.SUCCEED
        path = await runtime.analysis.get_debug_file(result_uuid)
        assert path is not None and path.suffix == ".zip"
        assert await runtime.results.find_status(result_uuid) is ResultStatus.SUCCEED

    async def test_no_debug_archive_by_default(self, runtime, parameters_uuid):
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        await wait_final_status(runtime, result_uuid)
        assert await runtime.analysis.get_debug_file(result_uuid) is None


class TestConsumerGroup:
    @pytest.fixture
    def settings(self, settings):
        return settings.model_copy(update={"run_consumer_group": "dsaGroup"})

    async def test_run_completes(self, runtime, parameters_uuid):
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))

        assert await wait_final_status(runtime, result_uuid) is ResultStatus.SUCCEED

    async def test_stop_of_job_held_elsewhere_is_ignored(self, runtime):
        result_uuid = uuid4()
        await runtime.results.insert_status([result_uuid], ResultStatus.RUNNING)

        outcome = await runtime.worker.cancel(CancelContext(result_uuid, RECEIVER, USER))

        assert outcome is StopOutcome.NO_JOB
        assert payloads(runtime, runtime.notifications.topics.cancel_failed) == []
        assert runtime.worker.coordinator.get(result_uuid) is None

    async def test_owner_still_cancels(self, runtime, parameters_uuid, provider):
        provider.delay = 1.0
        result_uuid = await runtime.analysis.run(make_request(parameters_uuid))
        await wait_for(
            lambda: (job := runtime.worker.coordinator.get(result_uuid)) is not None
            and job.state is JobState.RUNNING
        )

        outcome = await runtime.worker.cancel(CancelContext(result_uuid, RECEIVER, USER))

        assert outcome is StopOutcome.CANCELLED
        assert await runtime.results.find_status(result_uuid) is None
