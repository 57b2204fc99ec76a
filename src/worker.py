"""Notification worker for DishDash.

Drains the notification queue: sends chat and SMS messages, retries failures
with exponential backoff and dead-letters jobs that run out of attempts.

Usage:
    python src/worker.py
    python src/worker.py --concurrency 10 --poll-interval 0.5
"""

import argparse
import asyncio
import signal

import structlog

from marketplace.domain import marketplace
from marketplace.notification.worker import NotificationWorkerPool
from marketplace.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


async def run(concurrency=None, poll_interval=1.0):
    pool = NotificationWorkerPool(concurrency=concurrency)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    await pool.run(stop_event, poll_interval=poll_interval)


def main():
    parser = argparse.ArgumentParser(description="DishDash notification worker")
    parser.add_argument("--concurrency", type=int, help="Maximum sends in flight (default: from settings)")
    parser.add_argument("--poll-interval", type=float, default=1.0, help="Seconds between queue polls")
    args = parser.parse_args()

    configure_logging()
    marketplace.init()
    with marketplace.domain_context():
        asyncio.run(run(concurrency=args.concurrency, poll_interval=args.poll_interval))


if __name__ == "__main__":
    main()
