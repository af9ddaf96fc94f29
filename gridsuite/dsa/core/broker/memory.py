# gridsuite/dsa/core/broker/memory.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from uuid import uuid4

from gridsuite.dsa.contracts.broker import (
    BrokerBase,
    BrokerMessage,
    MessageHandler,
    PublishResult,
    QoS,
    ReceivedMessage,
    SubscribeResult,
)
from gridsuite.dsa.core.broker.mqtt import Subscription, encode_payload, topic_matches

logger = logging.getLogger(__name__)


class InMemoryBroker(BrokerBase):
    """
    Single-process transport for development and tests.

    Published messages are kept in ``published`` only with ``record`` set.
    Delivery runs each matching handler in its own task, as a remote broker
    would, so a publisher never waits for a consumer. Subscriptions sharing a group take turns.
    """

    def __init__(self, *, record: bool = False) -> None:
        self._connected = False
        self._subscriptions: dict[str, Subscription] = {}
        self._tasks: set[asyncio.Task] = set()
        self._turns: dict[str, int] = {}
        self._record = record
        self.published: list[BrokerMessage] = []

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        self._connected = True

    async def disconnect(self) -> None:
        self._subscriptions.clear()
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._connected = False

    async def publish(self, message: BrokerMessage) -> PublishResult:
        if not self._connected:
            return PublishResult(success=False, error="Broker not connected")

        if self._record:
            self.published.append(message)
        raw = encode_payload(message)
        received = ReceivedMessage(
            topic=message.topic,
            payload=dict(message.payload),
            raw_payload=raw,
            qos=message.qos,
            timestamp=datetime.now(timezone.utc),
        )
        for sub in self._recipients(message.topic):
            task = asyncio.create_task(self._deliver(sub, received))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return PublishResult(success=True, message_id=str(uuid4()))

    def _recipients(self, topic: str) -> list[Subscription]:
        matching = [s for s in self._subscriptions.values() if topic_matches(topic, s.topics)]
        recipients = [s for s in matching if s.group is None]

        groups: dict[str, list[Subscription]] = {}
        for sub in matching:
            if sub.group is not None:
                groups.setdefault(sub.group, []).append(sub)
        for group, members in groups.items():
            turn = self._turns.get(group, 0)
            recipients.append(members[turn % len(members)])
            self._turns[group] = turn + 1
        return recipients

    async def _deliver(self, sub: Subscription, message: ReceivedMessage) -> None:
        try:
            await sub.handler(message)
        except Exception:
            logger.exception("Handler error for subscription %s", sub.id)

    async def subscribe(
        self,
        topics: list[str],
        handler: MessageHandler,
        qos: QoS = QoS.AT_LEAST_ONCE,
        group: str | None = None,
    ) -> SubscribeResult:
        subscription_id = f"sub-{uuid4().hex[:8]}"
        self._subscriptions[subscription_id] = Subscription(
            id=subscription_id, topics=list(topics), handler=handler, qos=qos, group=group
        )
        return SubscribeResult(success=True, subscription_id=subscription_id)

    async def unsubscribe(self, subscription_id: str) -> bool:
        return self._subscriptions.pop(subscription_id, None) is not None

    def messages_on(self, topic: str) -> list[BrokerMessage]:
        return [m for m in self.published if m.topic == topic]
