# gridsuite/dsa/contracts/broker.py
"""
Message transport contract.

Run and cancel requests travel from the API process to the workers over the
broker, and job outcomes (result available, stopped, cancel failed, failed) are
published back on it. Payloads are JSON objects; transports only differ in how
they move them.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable


class QoS(int, Enum):
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


@dataclass(frozen=True)
class BrokerMessage:
    """
    Outgoing message.

    Attributes:
        topic: Destination topic, without the transport prefix.
        payload: JSON-serializable body.
        qos: Delivery guarantee requested from the transport.
        retain: Whether the transport keeps the last message on the topic.
        timestamp: Creation time, stamped by the transport when missing.
    """

    topic: str
    payload: dict[str, Any]
    qos: QoS = QoS.AT_LEAST_ONCE
    retain: bool = False
    timestamp: datetime | None = None


@dataclass
class PublishResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass
class SubscribeResult:
    success: bool
    subscription_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class ReceivedMessage:
    """
    Incoming message handed to subscription handlers.

    Attributes:
        topic: Full topic the message arrived on.
        payload: Decoded JSON body (``{"_raw": ...}`` when not JSON).
        raw_payload: Bytes as received.
        qos: Delivery level of the message.
        timestamp: Reception time.
    """

    topic: str
    payload: dict[str, Any]
    raw_payload: bytes = b""
    qos: QoS = QoS.AT_LEAST_ONCE
    timestamp: datetime | None = None


MessageHandler = Callable[[ReceivedMessage], Awaitable[None]]


class BrokerBase(ABC):
    """Base class for transports. Usable as an async context manager."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection. Calling it twice is a no-op."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Close the connection and stop delivering to handlers."""

    @abstractmethod
    async def publish(self, message: BrokerMessage) -> PublishResult:
        """Send one message. Failures are reported, not raised."""

    @abstractmethod
    async def subscribe(
        self,
        topics: list[str],
        handler: MessageHandler,
        qos: QoS = QoS.AT_LEAST_ONCE,
        group: str | None = None,
    ) -> SubscribeResult:
        """
        Register ``handler`` for topic patterns (``+`` and ``#`` wildcards).

        Subscribers sharing a ``group`` split the messages between them; without
        a group every subscriber receives every message.
        """

    @abstractmethod
    async def unsubscribe(self, subscription_id: str) -> bool:
        """Drop a subscription. Returns False if it was unknown."""

    @property
    @abstractmethod
    def is_connected(self) -> bool: ...

    async def __aenter__(self) -> "BrokerBase":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.disconnect()
