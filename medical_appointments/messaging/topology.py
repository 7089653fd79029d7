"""Topics, subscriptions and queues of the appointment choreography."""

import structlog
from arq import ArqRedis

from medical_appointments.config import Settings
from medical_appointments.messaging.bus import Subscription
from medical_appointments.messaging.publishers import COUNTRY_CODE_ATTRIBUTE
from medical_appointments.messaging.redis_bus import ArqQueue, RedisTopic
from medical_appointments.schemas.appointments import CountryCode
from medical_appointments.schemas.events import APPOINTMENT_COMPLETED_DETAIL_TYPE

logger = structlog.get_logger(__name__)


def request_subscriptions(settings: Settings) -> list[Subscription]:
    """One subscription per country, filtered on the country attribute."""
    return [
        Subscription(
            queue_name=settings.regional_queue_names[country.value],
            filter_policy={COUNTRY_CODE_ATTRIBUTE: [country.value]},
        )
        for country in CountryCode
    ]


def completion_subscription(settings: Settings) -> Subscription:
    """Raw subscription feeding relay events to the confirmation queue."""
    return Subscription(
        queue_name=settings.confirmation_queue_name,
        filter_policy={
            "source": [settings.event_source],
            "detailType": [APPOINTMENT_COMPLETED_DETAIL_TYPE],
        },
        raw_delivery=True,
    )


def build_request_topic(redis: ArqRedis, settings: Settings) -> RedisTopic:
    return RedisTopic(redis, settings.request_topic_name, key_prefix=settings.redis_key_prefix)


def build_events_topic(redis: ArqRedis, settings: Settings) -> RedisTopic:
    return RedisTopic(redis, settings.events_topic_name, key_prefix=settings.redis_key_prefix)


def build_queue(redis: ArqRedis, name: str) -> ArqQueue:
    return ArqQueue(redis, name)


async def declare_topology(redis: ArqRedis, settings: Settings) -> None:
    """Register every subscription. Safe to run from each process on startup."""
    request_topic = build_request_topic(redis, settings)
    for subscription in request_subscriptions(settings):
        await request_topic.subscribe(subscription)

    events_topic = build_events_topic(redis, settings)
    await events_topic.subscribe(completion_subscription(settings))

    logger.info(
        "topology_declared",
        request_topic=request_topic.name,
        events_topic=events_topic.name,
    )
