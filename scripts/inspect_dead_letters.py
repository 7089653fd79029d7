#!/usr/bin/env python3
"""
Print failed jobs of a queue for manual inspection.

Usage:
    python scripts/inspect_dead_letters.py appointments-pe-queue
"""

import argparse
import asyncio
import json
import sys

from medical_appointments.core.redis_client import close_redis_connection, get_redis_pool
from medical_appointments.messaging.topology import build_queue


async def inspect(queue_name: str) -> int:
    """Print the dead letters of ``queue_name`` and return how many there are."""
    try:
        queue = build_queue(await get_redis_pool(), queue_name)
        messages = await queue.dead_letters()
    finally:
        await close_redis_connection()

    for message in messages:
        print(
            json.dumps(
                {
                    "message_id": message.message_id,
                    "receive_count": message.receive_count,
                    "body": message.body,
                },
                indent=2,
            )
        )
    print(f"{len(messages)} failed message(s) in {queue_name}", file=sys.stderr)
    return len(messages)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Inspect failed jobs of a queue")
    parser.add_argument("queue", help="Queue name, e.g. appointments-pe-queue")
    asyncio.run(inspect(parser.parse_args().queue))
