"""
Metrics Worker Entrypoint
- Invoked periodically by an external scheduler (cron/timer); one invocation is one run.
- Reads aggregates from the read-only replica and upserts current metric values on the primary.
- Exits non-zero when any metric task failed so the scheduler can alert or retry.
"""
# main.py
import asyncio
import logging
import signal
import sys
from logging import getLogger

from metrics_worker.application.update_metrics import MetricsCollectionJob
from metrics_worker.infrastructure.di import make_metrics_repo, make_read_source, shutdown_repo
from metrics_worker.settings import Settings

logger = getLogger('MetricsWorker')


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname).1s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Tone down noisy third‑party loggers
    for noisy in ("asyncpg", "asyncio"):
        logging.getLogger(noisy).setLevel(settings.NOISY_LEVEL)


async def run_once(settings: Settings) -> int:
    """
    Run a single metrics collection.
    - Opens both Postgres pools, runs the job, and always closes the pools.
    - Returns the process exit code (0 on success, 1 if any metric failed).
    """
    read = await make_read_source(settings)
    try:
        publisher = await make_metrics_repo(settings)
    except BaseException:
        await shutdown_repo(read)
        raise

    job = MetricsCollectionJob(
        read=read,
        publisher=publisher,
        concurrency=settings.MAX_CONCURRENT_QUERIES,
        upload_types=settings.UPLOAD_TYPES,
        pin_statuses=settings.PIN_STATUSES,
    )
    try:
        await job.run()
        return 0
    except Exception as e:
        # per-task errors were already logged by the job; this is the terminal one
        logger.error("Metrics run failed: %s", e)
        return 1
    finally:
        await shutdown_repo(read)
        await shutdown_repo(publisher)


async def main() -> int:
    settings = Settings()
    configure_logging(settings)
    logger.info("🏁 Metrics run started (concurrency=%d)", settings.MAX_CONCURRENT_QUERIES)

    task = asyncio.current_task()
    # 🛑 SIGINT/SIGTERM cancel the run; pools are still closed on the way out
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, task.cancel)

    try:
        return await run_once(settings)
    except asyncio.CancelledError:
        logger.warning("🧹 Metrics run cancelled")
        return 130


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
