"""Entry point for the rugscope trending refresher."""

import asyncio
import signal

from loguru import logger

from config.settings import settings
from rugscope.parsers.aggregator import build_aggregator
from rugscope.parsers.refresher import TrendingRefresher
from rugscope.utils.logger import setup_logger


async def main() -> None:
    setup_logger(json_logs=settings.json_logs, level=settings.log_level)
    logger.info("Starting rugscope...")

    # Graceful shutdown on SIGINT/SIGTERM
    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def _signal_handler() -> None:
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _signal_handler)

    aggregator = build_aggregator(settings)
    refresher = TrendingRefresher(
        aggregator,
        interval_sec=settings.refresh_interval_sec,
        limit=settings.refresh_trending_limit,
    )
    refresher.start()

    await shutdown_event.wait()

    await refresher.stop()
    await aggregator.close()
    logger.info("Shutdown complete")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
