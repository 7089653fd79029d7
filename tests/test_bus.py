"""Tests for topics, subscriptions and in-memory queues."""

import json
import pytest

from medical_appointments.config import settings
from medical_appointments.messaging.bus import (
    Subscription,
    matches_filter_policy,
)
from medical_appointments.messaging.memory import InMemoryQueue, InMemoryTopic
from medical_appointments.messaging.topology import completion_subscription, request_subscriptions


def test_filter_policy_matching() -> None:
    policy = {"countryCode": ["PE"]}

    assert matches_filter_policy(policy, {"countryCode": "PE"})
    assert not matches_filter_policy(policy, {"countryCode": "CL"})
    assert not matches_filter_policy(policy, {})
    assert matches_filter_policy({}, {"countryCode": "MX"})


def test_subscription_serialization() -> None:
    subscription = Subscription("q", {"source": ["appointment.service"]}, raw_delivery=True)

    assert Subscription.from_json(subscription.to_json()) == subscription


def test_request_subscriptions_cover_every_country() -> None:
    subscriptions = {sub.queue_name: sub for sub in request_subscriptions(settings)}

    assert subscriptions[settings.queue_name_pe].matches({"countryCode": "PE"})
    assert not subscriptions[settings.queue_name_pe].matches({"countryCode": "CL"})
    assert subscriptions[settings.queue_name_cl].matches({"countryCode": "CL"})
    assert not any(sub.raw_delivery for sub in subscriptions.values())


def test_completion_subscription_filters_on_source_and_type() -> None:
    subscription = completion_subscription(settings)

    assert subscription.raw_delivery
    assert subscription.matches({"source": settings.event_source, "detailType": "AppointmentCompleted"})
    assert not subscription.matches({"source": "billing.service", "detailType": "AppointmentCompleted"})


@pytest.mark.asyncio
async def test_topic_routes_by_attribute(
    request_topic: InMemoryTopic,
    pe_queue: InMemoryQueue,
    cl_queue: InMemoryQueue,
) -> None:
    """Test a message reaches exactly the queues whose filter matches."""
    delivered = await request_topic.publish('{"appointmentId": "A1"}', {"countryCode": "CL"})

    assert delivered == [settings.queue_name_cl]
    assert len(pe_queue) == 0
    [message] = cl_queue.take()
    notification = json.loads(message.body)
    assert notification["Type"] == "Notification"
    assert notification["Message"] == '{"appointmentId": "A1"}'
    assert notification["MessageAttributes"]["countryCode"] == {"Type": "String", "Value": "CL"}


@pytest.mark.asyncio
async def test_topic_without_matching_subscription(request_topic: InMemoryTopic) -> None:
    assert await request_topic.publish("{}", {"countryCode": "MX"}) == []


@pytest.mark.asyncio
async def test_raw_delivery(events_topic: InMemoryTopic, confirmation_queue: InMemoryQueue) -> None:
    attributes = {"source": settings.event_source, "detailType": "AppointmentCompleted"}

    await events_topic.publish('{"detail": {}}', attributes)

    [message] = confirmation_queue.take()
    assert message.body == '{"detail": {}}'


@pytest.mark.asyncio
async def test_queue_take_empties_in_send_order() -> None:
    queue = InMemoryQueue("q")
    first_id = await queue.send("first")
    await queue.send("second")

    messages = queue.take()

    assert [message.body for message in messages] == ["first", "second"]
    assert messages[0].message_id == first_id
    assert messages[0].receive_count == 1
    assert len(queue) == 0
    assert queue.take() == []
