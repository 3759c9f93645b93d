"""Process entry point.

Runs one export immediately, then keeps exporting on the configured cron
schedule until interrupted. Exits with status 1 on configuration or startup
failure and 0 on a graceful shutdown.
"""

import argparse
import asyncio
import signal
import sys

from pydantic import ValidationError

from sql_backup.config.settings import LoggingConfig, load_settings
from sql_backup.models.errors import BackupError, describe_error
from sql_backup.observability.logging import configure_logging, get_logger
from sql_backup.services.backup_service import BackupService
from sql_backup.services.scheduler import BackupScheduler

logger = get_logger("sql_backup")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sql-backup",
        description="Scheduled SQL script backups for MySQL, PostgreSQL and SQL Server.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="run a single export and exit instead of starting the scheduler",
    )
    return parser.parse_args(argv)


def _fallback_logging_config() -> LoggingConfig:
    try:
        return LoggingConfig()
    except ValidationError:
        return LoggingConfig.model_construct()


async def run(once: bool = False) -> int:
    """Run the service.

    Args:
        once: Export once and return instead of scheduling.

    Returns:
        Process exit status.
    """
    try:
        settings = load_settings()
    except BackupError as e:
        configure_logging(_fallback_logging_config())
        logger.critical("fatal_error", error=e.message)
        return 1

    configure_logging(settings.logging)
    logger.info(
        "application_started",
        engine=settings.database.type.value,
        database=settings.database.name,
    )

    try:
        service = BackupService.from_settings(settings)
        scheduler = BackupScheduler(settings.backup.schedule, service)
        if once:
            result = await scheduler.run_now()
            return 0 if result.success else 1

        await scheduler.run_now()
        scheduler.start()
    except Exception as e:
        logger.critical("fatal_error", error=describe_error(e), error_type=type(e).__name__)
        return 1

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info("backup_service_running", schedule=settings.backup.schedule)
    await stop_event.wait()

    logger.info("shutting_down")
    scheduler.stop()
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    sys.exit(asyncio.run(run(once=args.once)))


if __name__ == "__main__":
    main()
