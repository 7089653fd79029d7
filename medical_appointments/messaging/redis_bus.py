"""
Redis-backed topic and arq job queues.

A topic keeps its subscriptions in a Redis hash so every process routes the
same way. Each delivery becomes one arq job on the subscription's queue,
processed by the ``process_message`` job of the worker listening on that
queue. Jobs that exhausted their tries stay readable as failed job results.
"""

from collections.abc import Mapping

import structlog
from arq import ArqRedis
from arq.constants import result_key_prefix
from arq.jobs import Job

from medical_appointments.core.exceptions import PublishError
from medical_appointments.messaging.bus import QueueMessage, Subscription, delivery_body

logger = structlog.get_logger(__name__)

PROCESS_MESSAGE_JOB = "process_message"


class ArqQueue:
    """Queue whose messages are arq jobs on the queue ``name``."""

    def __init__(self, redis: ArqRedis, name: str):
        """Initialize queue handle; no Redis call is made here."""
        self.redis = redis
        self.name = name

    async def send(self, body: str) -> str:
        """
        Enqueue a message body for the worker of this queue.

        Returns:
            arq job id of the message
        """
        job = await self.redis.enqueue_job(PROCESS_MESSAGE_JOB, body, _queue_name=self.name)
        if job is None:
            raise PublishError(self.name, "job was not enqueued")
        return job.job_id

    async def dead_letters(self) -> list[QueueMessage]:
        """
        Messages whose job failed for good, oldest first.

        A job fails for good once its tries are exhausted or it timed out.
        """
        failed = []
        async for key in self.redis.scan_iter(match=f"{result_key_prefix}*"):
            job_id = _text(key)[len(result_key_prefix) :]
            info = await Job(job_id, self.redis, _queue_name=self.name).result_info()
            if info is None or info.success or info.queue_name != self.name:
                continue
            failed.append((info.enqueue_time, QueueMessage(job_id, info.args[0], info.job_try)))

        return [message for _, message in sorted(failed, key=lambda item: item[0])]


class RedisTopic:
    """Topic fanning out to arq queues with filtered subscriptions."""

    def __init__(self, redis: ArqRedis, name: str, *, key_prefix: str = "appointments"):
        """Initialize topic handle."""
        self.redis = redis
        self.name = name
        self.subscriptions_key = f"{key_prefix}:topic:{name}:subscriptions"

    async def subscribe(self, subscription: Subscription) -> None:
        """Register or replace a subscription. Safe to repeat."""
        await self.redis.hset(self.subscriptions_key, subscription.queue_name, subscription.to_json())

    async def subscriptions(self) -> list[Subscription]:
        """All registered subscriptions."""
        raw = await self.redis.hgetall(self.subscriptions_key)
        return [Subscription.from_json(value) for value in raw.values()]

    async def publish(self, payload: str, attributes: Mapping[str, str] | None = None) -> list[str]:
        """
        Enqueue ``payload`` on every queue whose subscription matches.

        Args:
            payload: Serialized event
            attributes: Message attributes matched against filter policies

        Returns:
            Names of the queues the message was delivered to

        Raises:
            PublishError: If Redis rejects a write
        """
        attributes = dict(attributes or {})
        try:
            matching = [sub for sub in await self.subscriptions() if sub.matches(attributes)]
            if not matching:
                logger.warning("topic_message_unrouted", topic=self.name, attributes=attributes)
                return []

            # Sends are not atomic across queues; a failure leaves earlier queues delivered
            for subscription in matching:
                queue = ArqQueue(self.redis, subscription.queue_name)
                await queue.send(delivery_body(self.name, subscription, payload, attributes))
        except PublishError:
            raise
        except Exception as e:
            raise PublishError(self.name, str(e)) from e

        delivered = [sub.queue_name for sub in matching]
        logger.debug("topic_message_published", topic=self.name, queues=delivered)
        return delivered


def _text(value: str | bytes) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return value
