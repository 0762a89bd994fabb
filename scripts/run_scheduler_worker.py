#!/usr/bin/env python3
"""
Run the dispatch scheduler without the HTTP API.

Usage:
    python -m scripts.run_scheduler_worker          # run until Ctrl+C
    python -m scripts.run_scheduler_worker --once   # process one batch and exit
"""
import argparse
import signal
import threading

from app.core.config import settings
from app.core.container import build_container
from app.core.logging_config import configure_logging, get_logger
from app.db import create_db_and_tables, engine

logger = get_logger("scheduler_worker")


def main():
    parser = argparse.ArgumentParser(description="Dedicated message dispatch worker")
    parser.add_argument("--once", action="store_true", help="Process a single batch and exit")
    args = parser.parse_args()

    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    create_db_and_tables()
    container = build_container(settings, engine)

    if args.once:
        try:
            container.scheduler.run_once()
        finally:
            container.webhook_client.close()
        return

    shutdown = threading.Event()
    signal.signal(signal.SIGINT, lambda *_: shutdown.set())
    signal.signal(signal.SIGTERM, lambda *_: shutdown.set())

    logger.info("Starting dedicated scheduler worker...")
    container.scheduler.start()
    try:
        shutdown.wait()
    finally:
        logger.info("Scheduler worker shutting down.")
        container.shutdown()


if __name__ == "__main__":
    main()
