"""
Callback queue entry point.

Loads the durable callback store, starts the wait-time ticker and keeps
the queue service running until interrupted. An offline console demo
is available for walkthroughs.

Usage:
    Queue service: python main.py serve
    Console mode:  python main.py console
"""

import asyncio
import logging
import sys

from callback_queue.config import settings

logger = logging.getLogger(__name__)


async def _serve() -> None:
    """Run the queue service with the JSON file store until cancelled."""
    from callback_queue.queue import CallbackQueueService, WaitTimeTicker
    from callback_queue.tools.agent_directory import InMemoryAgentDirectory
    from callback_queue.tools.clock import SystemClock
    from callback_queue.tools.seed import build_demo_callbacks
    from callback_queue.tools.store import JsonFileCallbackStore

    clock = SystemClock()
    store = JsonFileCallbackStore(settings.store.path)
    service = CallbackQueueService(store, clock=clock, agent_directory=InMemoryAgentDirectory())

    if await service.load() == 0:
        logger.info("Empty store at %s, seeding demo callbacks", settings.store.path)
        await store.save_all(build_demo_callbacks(clock.now()))
        await service.load()

    ticker = WaitTimeTicker(service)
    await ticker.start()
    logger.info("Callback queue '%s' running: %s", settings.queue_name, service.get_stats())
    try:
        await asyncio.Event().wait()
    finally:
        await ticker.stop()
        logger.info("Callback queue '%s' shut down", settings.queue_name)


def _run_serve_mode() -> None:
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        pass


def _run_console_mode() -> None:
    """Start the offline console demo (no store file, no network)."""
    from console_demo import ConsoleSession

    session = ConsoleSession()
    session.run()


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "console":
        _run_console_mode()
    else:
        _run_serve_mode()
