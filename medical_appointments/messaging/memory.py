"""In-memory topic and queue with the same routing as the Redis ones."""

from collections.abc import Mapping

from medical_appointments.messaging.bus import (
    QueueMessage,
    Subscription,
    delivery_body,
    new_message_id,
)


class InMemoryQueue:
    """Queue holding sent messages until they are taken for processing."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._messages: list[QueueMessage] = []

    async def send(self, body: str) -> str:
        message_id = new_message_id()
        self._messages.append(QueueMessage(message_id=message_id, body=body))
        return message_id

    def take(self) -> list[QueueMessage]:
        """Remove and return every waiting message in send order."""
        messages, self._messages = self._messages, []
        return messages

    def __len__(self) -> int:
        return len(self._messages)


class InMemoryTopic:
    """Topic delivering synchronously into subscribed in-memory queues."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: dict[str, tuple[Subscription, InMemoryQueue]] = {}

    def subscribe(self, subscription: Subscription, queue: InMemoryQueue) -> None:
        self._subscriptions[subscription.queue_name] = (subscription, queue)

    async def publish(self, payload: str, attributes: Mapping[str, str] | None = None) -> list[str]:
        attributes = dict(attributes or {})
        delivered = []
        for subscription, queue in self._subscriptions.values():
            if subscription.matches(attributes):
                await queue.send(delivery_body(self.name, subscription, payload, attributes))
                delivered.append(subscription.queue_name)
        return delivered
