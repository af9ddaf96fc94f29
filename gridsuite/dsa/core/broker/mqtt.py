# gridsuite/dsa/core/broker/mqtt.py
"""
MQTT transport on top of aiomqtt.

Payloads are JSON objects. One listener task reads the client's message
stream and awaits the matching handlers in order, so handlers must hand long
work off to their own tasks.
"""
from __future__ import annotations

import asyncio
import json
import logging
import ssl
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import uuid4

import aiomqtt

from gridsuite.dsa.contracts.broker import (
    BrokerBase,
    BrokerMessage,
    MessageHandler,
    PublishResult,
    QoS,
    ReceivedMessage,
    SubscribeResult,
)

logger = logging.getLogger(__name__)


@dataclass
class MqttConfig:
    """
    Connection settings.

    Attributes:
        host: Broker hostname.
        port: Broker port (1883, or 8883 for TLS).
        client_id: Client identifier, generated when missing.
        username: Optional authentication username.
        password: Optional authentication password.
        use_tls: Whether to use TLS.
        ca_certs: CA bundle for TLS.
        keepalive: Keepalive interval in seconds.
        clean_session: Start without persisted session state.
        topic_prefix: Prefix applied to every topic.
    """

    host: str = "localhost"
    port: int = 1883
    client_id: str | None = None
    username: str | None = None
    password: str | None = None
    use_tls: bool = False
    ca_certs: str | None = None
    keepalive: int = 60
    clean_session: bool = True
    topic_prefix: str = ""

    def __post_init__(self):
        if self.client_id is None:
            self.client_id = f"dsa-{uuid4().hex[:8]}"


@dataclass
class Subscription:
    id: str
    topics: list[str]
    handler: MessageHandler
    qos: QoS
    group: str | None = None


def full_topic(prefix: str, topic: str) -> str:
    if prefix:
        return f"{prefix.rstrip('/')}/{topic.lstrip('/')}"
    return topic


def subscription_filter(topic: str, group: str | None = None) -> str:
    """MQTT filter for ``topic``, as a shared subscription when ``group`` is set."""
    return f"$share/{group}/{topic}" if group else topic


def topic_matches(topic: str, patterns: list[str]) -> bool:
    return any(aiomqtt.Topic(topic).matches(pattern) for pattern in patterns)


def decode_payload(raw_payload: bytes) -> dict:
    try:
        payload = json.loads(raw_payload.decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"_raw": raw_payload.decode("utf-8", errors="replace")}
    return payload if isinstance(payload, dict) else {"_raw": payload}


def encode_payload(message: BrokerMessage) -> bytes:
    payload = dict(message.payload)
    timestamp = message.timestamp or datetime.now(timezone.utc)
    payload.setdefault("_timestamp", timestamp.isoformat())
    return json.dumps(payload, default=str).encode("utf-8")


class MqttBroker(BrokerBase):
    def __init__(self, config: MqttConfig | None = None) -> None:
        self._config = config or MqttConfig()

        self._client: aiomqtt.Client | None = None
        self._connected = False
        self._lock = asyncio.Lock()

        self._subscriptions: dict[str, Subscription] = {}
        self._listener_task: asyncio.Task | None = None

    @property
    def config(self) -> MqttConfig:
        return self._config

    @property
    def is_connected(self) -> bool:
        return self._connected and self._client is not None

    def _build_tls_context(self) -> ssl.SSLContext | None:
        if not self._config.use_tls:
            return None
        context = ssl.create_default_context()
        if self._config.ca_certs:
            context.load_verify_locations(self._config.ca_certs)
        return context

    def _full_topic(self, topic: str) -> str:
        return full_topic(self._config.topic_prefix, topic)

    async def connect(self) -> None:
        async with self._lock:
            if self._connected:
                return

            logger.info("Connecting to MQTT broker at %s:%d", self._config.host, self._config.port)
            client = aiomqtt.Client(
                hostname=self._config.host,
                port=self._config.port,
                identifier=self._config.client_id,
                username=self._config.username,
                password=self._config.password,
                tls_context=self._build_tls_context(),
                keepalive=self._config.keepalive,
                clean_session=self._config.clean_session,
            )
            try:
                await client.__aenter__()
            except Exception as exc:
                logger.error("Failed to connect to MQTT broker: %s", exc)
                raise
            self._client = client
            self._connected = True
            logger.info("Connected to MQTT broker as %s", self._config.client_id)

    async def disconnect(self) -> None:
        async with self._lock:
            self._subscriptions.clear()

            if self._listener_task:
                self._listener_task.cancel()
                try:
                    await self._listener_task
                except asyncio.CancelledError:
                    pass
                self._listener_task = None

            if self._client is not None:
                try:
                    await self._client.__aexit__(None, None, None)
                except Exception as exc:
                    logger.warning("Error during MQTT disconnect: %s", exc)
                finally:
                    self._client = None
                    self._connected = False
                    logger.info("Disconnected from MQTT broker")

    async def publish(self, message: BrokerMessage) -> PublishResult:
        if not self.is_connected or self._client is None:
            return PublishResult(success=False, error="Not connected to MQTT broker")

        topic = self._full_topic(message.topic)
        try:
            payload_bytes = encode_payload(message)
        except (TypeError, ValueError) as exc:
            return PublishResult(success=False, error=f"Failed to serialize: {exc}")

        try:
            await self._client.publish(
                topic=topic,
                payload=payload_bytes,
                qos=message.qos.value,
                retain=message.retain,
            )
        except aiomqtt.MqttError as exc:
            logger.error("Failed to publish to %s: %s", topic, exc)
            return PublishResult(success=False, error=str(exc))

        logger.debug("Published to %s (%d bytes)", topic, len(payload_bytes))
        return PublishResult(success=True, message_id=str(uuid4()))

    async def subscribe(
        self,
        topics: list[str],
        handler: MessageHandler,
        qos: QoS = QoS.AT_LEAST_ONCE,
        group: str | None = None,
    ) -> SubscribeResult:
        if not self.is_connected or self._client is None:
            return SubscribeResult(success=False, error="Not connected to MQTT broker")

        subscription_id = f"sub-{uuid4().hex[:8]}"
        try:
            for topic in topics:
                mqtt_filter = subscription_filter(self._full_topic(topic), group)
                await self._client.subscribe(mqtt_filter, qos=qos.value)
                logger.info("Subscribed to: %s", mqtt_filter)
        except aiomqtt.MqttError as exc:
            logger.error("Failed to subscribe: %s", exc)
            return SubscribeResult(success=False, error=str(exc))

        self._subscriptions[subscription_id] = Subscription(
            id=subscription_id, topics=topics, handler=handler, qos=qos, group=group
        )
        self._start_listener()
        return SubscribeResult(success=True, subscription_id=subscription_id)

    async def unsubscribe(self, subscription_id: str) -> bool:
        # MQTT topics stay subscribed, the handler is simply no longer called
        return self._subscriptions.pop(subscription_id, None) is not None

    def _start_listener(self) -> None:
        if self._listener_task is None or self._listener_task.done():
            self._listener_task = asyncio.create_task(self._listen_loop(), name="mqtt-broker-listener")

    async def _listen_loop(self) -> None:
        if self._client is None:
            return
        try:
            async for message in self._client.messages:
                await self._dispatch_message(message)
        except asyncio.CancelledError:
            logger.debug("Listener loop cancelled")
            raise
        except aiomqtt.MqttError as exc:
            logger.error("Listener error: %s", exc)

    async def _dispatch_message(self, message: aiomqtt.Message) -> None:
        topic = str(message.topic)
        raw_payload = message.payload if isinstance(message.payload, bytes) else b""
        received = ReceivedMessage(
            topic=topic,
            payload=decode_payload(raw_payload),
            raw_payload=raw_payload,
            qos=QoS(message.qos) if message.qos in (0, 1, 2) else QoS.AT_LEAST_ONCE,
            timestamp=datetime.now(timezone.utc),
        )

        for sub in list(self._subscriptions.values()):
            if topic_matches(topic, [self._full_topic(t) for t in sub.topics]):
                try:
                    await sub.handler(received)
                except Exception:
                    logger.exception("Handler error for subscription %s", sub.id)
