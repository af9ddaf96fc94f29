# gridsuite/dsa/core/broker/notification.py
"""
Messages exchanged over the broker.

Intake: ``run`` (a serialized result context) and ``cancel`` (a stop request).
Outcomes: ``result``, ``stopped``, ``cancel failed`` and ``failed``. Outcome
events carry the job id and echo the caller's receiver token.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from gridsuite.dsa.contracts.broker import BrokerBase, BrokerMessage
from gridsuite.dsa.contracts.run import COMPUTATION_TYPE, ResultContext
from gridsuite.dsa.core.config import Settings

logger = logging.getLogger(__name__)

CANCEL_MESSAGE = f"{COMPUTATION_TYPE} was canceled"
CANCEL_FAILED_MESSAGE = f"{COMPUTATION_TYPE} could not be cancelled"
FAIL_MESSAGE = f"{COMPUTATION_TYPE} has failed"


@dataclass(frozen=True)
class Topics:
    run: str = "dsa/run"
    cancel: str = "dsa/cancel"
    result: str = "dsa/result"
    stopped: str = "dsa/stopped"
    cancel_failed: str = "dsa/cancelfailed"
    failed: str = "dsa/failed"
    run_group: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "Topics":
        return cls(
            run=settings.run_topic,
            cancel=settings.cancel_topic,
            result=settings.result_topic,
            stopped=settings.stopped_topic,
            cancel_failed=settings.cancel_failed_topic,
            failed=settings.failed_topic,
            run_group=settings.run_consumer_group,
        )


class NotificationService:
    def __init__(self, broker: BrokerBase, topics: Optional[Topics] = None) -> None:
        self._broker = broker
        self.topics = topics or Topics()

    @property
    def broker(self) -> BrokerBase:
        return self._broker

    # ---- intake --------------------------------------------------

    async def send_run_message(self, result_context: ResultContext) -> None:
        await self._send_required(self.topics.run, result_context.to_payload())

    async def send_cancel_message(
        self, result_uuid: UUID, receiver: Optional[str], user_id: Optional[str]
    ) -> None:
        await self._send_required(self.topics.cancel, _headers(result_uuid, receiver, user_id))

    # ---- outcomes ------------------------------------------------

    async def publish_result(
        self, result_uuid: UUID, receiver: Optional[str], user_id: Optional[str]
    ) -> None:
        await self._send(self.topics.result, _headers(result_uuid, receiver, user_id))

    async def publish_stop(
        self, result_uuid: UUID, receiver: Optional[str], user_id: Optional[str]
    ) -> None:
        await self._send(
            self.topics.stopped,
            _headers(result_uuid, receiver, user_id, message=CANCEL_MESSAGE),
        )

    async def publish_cancel_failed(
        self, result_uuid: UUID, receiver: Optional[str], user_id: Optional[str]
    ) -> None:
        await self._send(
            self.topics.cancel_failed,
            _headers(result_uuid, receiver, user_id, message=CANCEL_FAILED_MESSAGE),
        )

    async def publish_fail(
        self,
        result_uuid: UUID,
        receiver: Optional[str],
        user_id: Optional[str],
        message: Optional[str] = None,
    ) -> None:
        await self._send(
            self.topics.failed,
            _headers(result_uuid, receiver, user_id, message=message or FAIL_MESSAGE),
        )

    # ---- transport -----------------------------------------------

    async def _send_required(self, topic: str, payload: dict[str, Any]) -> None:
        result = await self._broker.publish(BrokerMessage(topic=topic, payload=payload))
        if not result.success:
            raise RuntimeError(f"Could not publish on {topic}: {result.error}")
        logger.debug("Sent %s message for %s", topic, payload.get("resultUuid"))

    async def _send(self, topic: str, payload: dict[str, Any]) -> None:
        result = await self._broker.publish(BrokerMessage(topic=topic, payload=payload))
        if not result.success:
            logger.error("Could not publish on %s for %s: %s", topic, payload.get("resultUuid"), result.error)


def _headers(
    result_uuid: UUID,
    receiver: Optional[str],
    user_id: Optional[str],
    message: Optional[str] = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "resultUuid": str(result_uuid),
        "receiver": receiver,
        "userId": user_id,
    }
    if message is not None:
        payload["message"] = message
    return payload
