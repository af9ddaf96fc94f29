"""
Broker infrastructure: transports and the analysis notification layer.

    broker = create_broker(settings)
    async with broker:
        notifications = NotificationService(broker, Topics.from_settings(settings))
        await notifications.publish_result(result_uuid, receiver, user_id)
"""
from gridsuite.dsa.contracts.broker import (
    BrokerBase,
    BrokerMessage,
    PublishResult,
    QoS,
    ReceivedMessage,
)
from gridsuite.dsa.core.broker.memory import InMemoryBroker
from gridsuite.dsa.core.broker.mqtt import MqttBroker, MqttConfig
from gridsuite.dsa.core.broker.notification import NotificationService, Topics
from gridsuite.dsa.core.config import Settings


def create_broker(settings: Settings) -> BrokerBase:
    """MQTT when a host is configured, in-process otherwise."""
    if not settings.mqtt_host:
        return InMemoryBroker()
    return MqttBroker(
        MqttConfig(
            host=settings.mqtt_host,
            port=settings.mqtt_port,
            username=settings.mqtt_username,
            password=settings.mqtt_password,
            topic_prefix=settings.mqtt_topic_prefix,
        )
    )


__all__ = [
    "BrokerBase",
    "BrokerMessage",
    "PublishResult",
    "QoS",
    "ReceivedMessage",
    "InMemoryBroker",
    "MqttBroker",
    "MqttConfig",
    "NotificationService",
    "Topics",
    "create_broker",
]
