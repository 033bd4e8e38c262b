#!/usr/bin/env python
"""
Worker Startup Script

Run the mailbox poller without the API server.

Usage:
    python -m workers.startup
"""

import asyncio
import signal

from config.settings import settings
from config.logging_config import setup_logging
from database.connection import init_db, close_db
from workers.email_poller import create_poller


async def run():
    logger = setup_logging(log_level=settings.log_level, log_to_file=settings.log_to_file)

    if not settings.email_configured:
        logger.error("Mailbox credentials missing (EMAIL_USER, EMAIL_PASSWORD)")
        return

    await init_db()
    poller = create_poller()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info("Starting mailbox worker...")
    await poller.start()
    try:
        await stop_event.wait()
    finally:
        await poller.stop()
        await close_db()


def main():
    """Start the mailbox worker."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
