# tests/core/broker/test_broker.py
from __future__ import annotations

import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from gridsuite.dsa.contracts.broker import BrokerMessage, ReceivedMessage
from gridsuite.dsa.core.broker import InMemoryBroker, MqttBroker, NotificationService, Topics, create_broker
from gridsuite.dsa.core.broker.mqtt import (
    decode_payload,
    encode_payload,
    full_topic,
    subscription_filter,
    topic_matches,
)
from gridsuite.dsa.core.broker.notification import CANCEL_FAILED_MESSAGE, FAIL_MESSAGE
from gridsuite.dsa.core.config import Settings
from tests.helpers.fakes import wait_for


class TestTopicHelpers:
    @pytest.mark.parametrize(
        "prefix, topic, expected",
        [
            ("", "dsa/run", "dsa/run"),
            ("gridsuite", "dsa/run", "gridsuite/dsa/run"),
            ("gridsuite/", "/dsa/run", "gridsuite/dsa/run"),
        ],
    )
    def test_full_topic(self, prefix, topic, expected):
        assert full_topic(prefix, topic) == expected

    def test_shared_subscription_filter(self):
        assert subscription_filter("dsa/run", "dsaGroup") == "$share/dsaGroup/dsa/run"
        assert subscription_filter("dsa/run") == "dsa/run"

    @pytest.mark.parametrize(
        "topic, patterns, expected",
        [
            ("dsa/run", ["dsa/run"], True),
            ("dsa/run", ["dsa/+"], True),
            ("dsa/result", ["dsa/#"], True),
            ("dsa/run", ["dsa/cancel"], False),
        ],
    )
    def test_topic_matches(self, topic, patterns, expected):
        assert topic_matches(topic, patterns) is expected


class TestPayloadCodec:
    def test_encode_stamps_timestamp(self):
        stamp = datetime(2026, 1, 1, tzinfo=timezone.utc)

        raw = encode_payload(BrokerMessage(topic="t", payload={"resultUuid": "x"}, timestamp=stamp))

        assert json.loads(raw) == {"resultUuid": "x", "_timestamp": stamp.isoformat()}

    def test_decode_json_object(self):
        assert decode_payload(b'{"resultUuid": "x"}') == {"resultUuid": "x"}

    def test_decode_non_object(self):
        assert decode_payload(b"[1, 2]") == {"_raw": [1, 2]}
        assert decode_payload(b"not json") == {"_raw": "not json"}


class TestInMemoryBroker:
    async def test_publish_requires_connection(self):
        result = await InMemoryBroker().publish(BrokerMessage(topic="t", payload={}))

        assert not result.success

    async def test_every_plain_subscriber_receives(self):
        received: dict[str, list[ReceivedMessage]] = {"a": [], "b": []}

        async with InMemoryBroker() as broker:
            await broker.subscribe(["dsa/cancel"], lambda m: _record(received["a"], m))
            await broker.subscribe(["dsa/#"], lambda m: _record(received["b"], m))

            await broker.publish(BrokerMessage(topic="dsa/cancel", payload={"resultUuid": "1"}))

            await wait_for(lambda: received["a"] and received["b"])
        assert received["a"][0].payload == {"resultUuid": "1"}

    async def test_group_members_take_turns(self):
        received: dict[str, list[ReceivedMessage]] = {"a": [], "b": []}

        async with InMemoryBroker() as broker:
            await broker.subscribe(["dsa/run"], lambda m: _record(received["a"], m), group="workers")
            await broker.subscribe(["dsa/run"], lambda m: _record(received["b"], m), group="workers")

            for i in range(4):
                await broker.publish(BrokerMessage(topic="dsa/run", payload={"n": i}))

            await wait_for(lambda: len(received["a"]) + len(received["b"]) == 4)
        assert len(received["a"]) == len(received["b"]) == 2

    async def test_unsubscribed_handler_not_called(self):
        received: list[ReceivedMessage] = []

        async with InMemoryBroker(record=True) as broker:
            sub = await broker.subscribe(["dsa/run"], lambda m: _record(received, m))
            assert await broker.unsubscribe(sub.subscription_id)
            assert not await broker.unsubscribe(sub.subscription_id)

            await broker.publish(BrokerMessage(topic="dsa/run", payload={}))

        assert received == []
        assert len(broker.messages_on("dsa/run")) == 1

    async def test_published_messages_not_kept_by_default(self):
        received: list[ReceivedMessage] = []

        async with InMemoryBroker() as broker:
            await broker.subscribe(["dsa/result"], lambda m: _record(received, m))
            for i in range(100):
                await broker.publish(BrokerMessage(topic="dsa/result", payload={"n": i}))

            await wait_for(lambda: len(received) == 100)
        assert broker.published == []

    async def test_default_broker_does_not_record(self):
        async with create_broker(Settings(mqtt_host="")) as broker:
            await broker.publish(BrokerMessage(topic="dsa/run", payload={}))

        assert broker.messages_on("dsa/run") == []


class TestCreateBroker:
    def test_in_memory_without_host(self):
        assert isinstance(create_broker(Settings(mqtt_host="")), InMemoryBroker)

    def test_mqtt_with_host(self):
        broker = create_broker(Settings(mqtt_host="mosquitto", mqtt_port=1884, mqtt_topic_prefix="gs"))

        assert isinstance(broker, MqttBroker)
        assert broker.config.host == "mosquitto"
        assert broker.config.port == 1884
        assert broker.config.topic_prefix == "gs"
        assert not broker.is_connected


class TestNotificationService:
    async def test_outcome_payloads(self):
        async with InMemoryBroker(record=True) as broker:
            notifications = NotificationService(broker, Topics())
            result_uuid = uuid4()

            await notifications.publish_result(result_uuid, "r", "u")
            await notifications.publish_cancel_failed(result_uuid, "r", None)
            await notifications.publish_fail(result_uuid, "r", "u")

        assert broker.messages_on("dsa/result")[0].payload == {
            "resultUuid": str(result_uuid),
            "receiver": "r",
            "userId": "u",
        }
        assert broker.messages_on("dsa/cancelfailed")[0].payload["message"] == CANCEL_FAILED_MESSAGE
        assert broker.messages_on("dsa/failed")[0].payload["message"] == FAIL_MESSAGE

    async def test_intake_publish_failure_raises(self):
        notifications = NotificationService(InMemoryBroker())

        with pytest.raises(RuntimeError):
            await notifications.send_cancel_message(uuid4(), None, None)

    async def test_outcome_publish_failure_is_logged(self, caplog):
        notifications = NotificationService(InMemoryBroker())

        await notifications.publish_result(uuid4(), None, None)

        assert "Could not publish" in caplog.text

    def test_topics_from_settings(self):
        topics = Topics.from_settings(Settings(run_topic="a/run", run_consumer_group="g"))

        assert topics.run == "a/run"
        assert topics.run_group == "g"


async def _record(sink: list[ReceivedMessage], message: ReceivedMessage) -> None:
    sink.append(message)
