"""Standalone Queue Worker — drains queued_jobs outside the API process.

Usage:
    RUN_EMBEDDED_WORKER=false uvicorn toolfinder.main:app   # API only
    python -m toolfinder.worker_main                       # one or more workers

Invariants:
    - Several workers may run at once: claims are leased, never shared
    - SIGINT/SIGTERM stop polling, in-flight jobs finish before exit
"""

import asyncio
import logging
import signal

from toolfinder.config import get_settings
from toolfinder.infrastructure import database
from toolfinder.infrastructure.observability import setup_logging
from toolfinder.services import service_factory

logger = logging.getLogger("toolfinder.worker")


async def run_worker() -> None:
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    notifier = service_factory.build_notifier(settings)
    fetcher = service_factory.build_page_fetcher(settings)
    worker = service_factory.build_worker(
        settings,
        database.get_db_manager().session,
        service_factory.build_completion(settings),
        notifier,
        fetcher,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, worker.stop)
        except NotImplementedError:
            logger.warning(f"Signal handlers unsupported, {sig.name} not trapped")

    try:
        await worker.run()
    finally:
        await notifier.aclose()
        await fetcher.aclose()
        await database.get_db_manager().dispose()


def main() -> None:
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
