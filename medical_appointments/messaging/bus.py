"""
Event bus primitives.

A topic fans a published payload out to every subscription whose filter
policy matches the message attributes. Each subscription feeds one
point-to-point queue. In production every queue is an arq job queue whose
messages are retried a bounded number of times.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol
from uuid import uuid4

FilterPolicy = Mapping[str, list[str]]


@dataclass(frozen=True)
class Subscription:
    """Binding of a queue to a topic.

    Attributes:
        queue_name: Queue receiving matching messages
        filter_policy: Attribute name to allowed values; every key must match
        raw_delivery: Deliver the payload as-is instead of inside a notification
    """

    queue_name: str
    filter_policy: dict[str, list[str]] = field(default_factory=dict)
    raw_delivery: bool = False

    def matches(self, attributes: Mapping[str, str]) -> bool:
        """Check whether a message with ``attributes`` is delivered here."""
        return matches_filter_policy(self.filter_policy, attributes)

    def to_json(self) -> str:
        return json.dumps(
            {
                "queue_name": self.queue_name,
                "filter_policy": self.filter_policy,
                "raw_delivery": self.raw_delivery,
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "Subscription":
        data = json.loads(raw)
        return cls(
            queue_name=data["queue_name"],
            filter_policy=data.get("filter_policy") or {},
            raw_delivery=bool(data.get("raw_delivery", False)),
        )


@dataclass(frozen=True)
class QueueMessage:
    """A message received from a queue."""

    message_id: str
    body: str
    receive_count: int = 1


class MessageOutcome(str, Enum):
    """What a consumer does with a handled message."""

    ACK = "ack"
    DROP = "drop"
    RETRY = "retry"


class Topic(Protocol):
    """Broadcast channel with filtered subscriptions."""

    name: str

    async def publish(self, payload: str, attributes: Mapping[str, str] | None = None) -> list[str]: ...


class MessageQueue(Protocol):
    """Point-to-point queue a topic subscription delivers into."""

    name: str

    async def send(self, body: str) -> str: ...


def matches_filter_policy(policy: FilterPolicy, attributes: Mapping[str, str]) -> bool:
    """
    Exact-match filter used by subscriptions.

    Args:
        policy: Attribute name to allowed values; empty matches everything
        attributes: Message attributes

    Returns:
        True if every policy key is present with an allowed value
    """
    return all(attributes.get(key) in allowed for key, allowed in policy.items())


def new_message_id() -> str:
    return str(uuid4())


def build_notification(
    topic_name: str,
    payload: str,
    attributes: Mapping[str, str],
    message_id: str | None = None,
) -> str:
    """
    Wrap a payload in the notification envelope delivered to subscribers.

    The payload stays a serialized string inside ``Message`` so consumers
    unwrap exactly one level.
    """
    return json.dumps(
        {
            "Type": "Notification",
            "MessageId": message_id or new_message_id(),
            "Topic": topic_name,
            "Message": payload,
            "MessageAttributes": {
                key: {"Type": "String", "Value": value} for key, value in attributes.items()
            },
            "Timestamp": datetime.now(UTC).isoformat(),
        }
    )


def delivery_body(
    topic_name: str,
    subscription: Subscription,
    payload: str,
    attributes: Mapping[str, str],
) -> str:
    """Body written to a subscription's queue."""
    if subscription.raw_delivery:
        return payload
    return build_notification(topic_name, payload, attributes)
