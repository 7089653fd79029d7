"""Tests for the Redis-backed topic and arq queues, run against fakeredis."""

import json
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from arq import ArqRedis
from arq.jobs import Job, JobStatus
from fakeredis import FakeAsyncRedis, FakeServer

from medical_appointments.config import settings
from medical_appointments.core.exceptions import PublishError
from medical_appointments.messaging.bus import MessageOutcome, Subscription
from medical_appointments.messaging.redis_bus import PROCESS_MESSAGE_JOB, ArqQueue, RedisTopic
from medical_appointments.messaging.topology import (
    build_queue,
    build_request_topic,
    declare_topology,
    request_subscriptions,
)
from medical_appointments.workers.jobs import build_worker

# Retries run immediately so burst workers finish quickly
fast_settings = settings.model_copy(update={"worker_retry_delay_seconds": 0})


@pytest.fixture
def fake_server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def arq_redis(fake_server: FakeServer) -> AsyncGenerator[ArqRedis, None]:
    """arq client on an in-process fake Redis server."""
    redis = ArqRedis(FakeAsyncRedis(server=fake_server).connection_pool)
    yield redis
    await redis.aclose()


@pytest.fixture(autouse=True)
def skip_redis_info(monkeypatch: pytest.MonkeyPatch) -> None:
    # fakeredis does not implement INFO, which arq logs on worker startup
    monkeypatch.setattr("arq.worker.log_redis_info", AsyncMock())


async def run_burst(arq_redis: ArqRedis, queue_name: str, handler) -> None:
    """Run a worker on ``queue_name`` until its queue is empty."""

    async def startup(ctx: dict) -> None:
        ctx["handler"] = handler

    worker = build_worker(
        queue_name,
        startup,
        fast_settings,
        redis_pool=arq_redis,
        burst=True,
        handle_signals=False,
        poll_delay=0.01,
    )
    await worker.main()


@pytest.mark.asyncio
async def test_topic_publish_routes_to_matching_queue(arq_redis: ArqRedis) -> None:
    """Test publish enqueues a job only on queues whose filter matches."""
    await declare_topology(arq_redis, settings)
    topic = build_request_topic(arq_redis, settings)

    delivered = await topic.publish('{"appointmentId": "A1"}', {"countryCode": "PE"})

    assert delivered == [settings.queue_name_pe]
    assert await arq_redis.queued_jobs(queue_name=settings.queue_name_cl) == []
    [job] = await arq_redis.queued_jobs(queue_name=settings.queue_name_pe)
    assert job.function == PROCESS_MESSAGE_JOB
    notification = json.loads(job.args[0])
    assert notification["Type"] == "Notification"
    assert notification["Message"] == '{"appointmentId": "A1"}'
    assert notification["MessageAttributes"]["countryCode"]["Value"] == "PE"


@pytest.mark.asyncio
async def test_topic_publish_unrouted(arq_redis: ArqRedis) -> None:
    await declare_topology(arq_redis, settings)
    topic = build_request_topic(arq_redis, settings)

    assert await topic.publish("{}", {"countryCode": "MX"}) == []
    for queue_name in settings.regional_queue_names.values():
        assert await arq_redis.queued_jobs(queue_name=queue_name) == []


@pytest.mark.asyncio
async def test_topic_publish_redis_failure(arq_redis: ArqRedis, fake_server: FakeServer) -> None:
    topic = RedisTopic(arq_redis, "appointment-requested")
    fake_server.connected = False

    with pytest.raises(PublishError, match="appointment-requested"):
        await topic.publish("{}", {"countryCode": "CL"})


@pytest.mark.asyncio
async def test_topic_subscribe_is_idempotent(arq_redis: ArqRedis) -> None:
    topic = RedisTopic(arq_redis, "appointment-events", key_prefix="test")
    subscription = Subscription("appointments-confirmation-queue", raw_delivery=True)

    await topic.subscribe(subscription)
    await topic.subscribe(subscription)

    assert await topic.subscriptions() == [subscription]
    assert await arq_redis.hlen("test:topic:appointment-events:subscriptions") == 1


@pytest.mark.asyncio
async def test_declare_topology_registers_every_subscription(arq_redis: ArqRedis) -> None:
    await declare_topology(arq_redis, settings)

    topic = build_request_topic(arq_redis, settings)
    stored = sorted(await topic.subscriptions(), key=lambda sub: sub.queue_name)
    expected = sorted(request_subscriptions(settings), key=lambda sub: sub.queue_name)
    assert stored == expected


@pytest.mark.asyncio
async def test_queue_send_enqueues_job(arq_redis: ArqRedis) -> None:
    queue = build_queue(arq_redis, "q")

    job_id = await queue.send("body")

    assert await Job(job_id, arq_redis, _queue_name="q").status() == JobStatus.queued
    [job] = await arq_redis.queued_jobs(queue_name="q")
    assert job.args == ("body",)


@pytest.mark.asyncio
async def test_failing_message_is_retried_then_kept_as_failed(arq_redis: ArqRedis) -> None:
    """Test a message whose handler keeps failing ends up as a dead letter."""
    queue = ArqQueue(arq_redis, settings.queue_name_pe)
    await queue.send("body")
    handler = AsyncMock(side_effect=ConnectionError("regional database unavailable"))

    await run_burst(arq_redis, queue.name, handler)

    assert handler.await_count == settings.queue_max_receive_count
    assert await arq_redis.queued_jobs(queue_name=queue.name) == []
    [dead] = await queue.dead_letters()
    assert dead.body == "body"
    assert dead.receive_count >= settings.queue_max_receive_count


@pytest.mark.asyncio
async def test_recovered_message_is_not_a_dead_letter(arq_redis: ArqRedis) -> None:
    queue = ArqQueue(arq_redis, settings.queue_name_pe)
    await queue.send("body")
    handler = AsyncMock(side_effect=[ConnectionError("flaky"), MessageOutcome.ACK])

    await run_burst(arq_redis, queue.name, handler)

    assert handler.await_count == 2
    assert handler.await_args.args[0].receive_count == 2
    assert await queue.dead_letters() == []


@pytest.mark.asyncio
async def test_dead_letters_are_per_queue(arq_redis: ArqRedis) -> None:
    pe_queue = ArqQueue(arq_redis, settings.queue_name_pe)
    cl_queue = ArqQueue(arq_redis, settings.queue_name_cl)
    await pe_queue.send("pe-body")
    await cl_queue.send("cl-body")

    await run_burst(arq_redis, pe_queue.name, AsyncMock(return_value=MessageOutcome.RETRY))

    [dead] = await pe_queue.dead_letters()
    assert dead.body == "pe-body"
    assert await cl_queue.dead_letters() == []
    assert len(await arq_redis.queued_jobs(queue_name=cl_queue.name)) == 1
