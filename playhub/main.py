#!/usr/bin/env python3
"""
PLAYHUB - Main Entry Point
==========================

Serves the PLAYHUB API with uvicorn.

Usage:
    python -m playhub.main
    python -m playhub.main --port 8080 --log-level DEBUG
    python -m playhub.main --init-db
"""

import argparse
import asyncio
import logging
import sys

import uvicorn

from playhub.api.config import settings


def setup_logging(level: str = "INFO") -> None:
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="PLAYHUB - Playlist sharing platform API",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help=f"Bind address (default: {settings.HOST})",
    )

    parser.add_argument(
        "-p", "--port",
        type=int,
        default=settings.PORT,
        help=f"Port to listen on (default: {settings.PORT})",
    )

    parser.add_argument(
        "-l", "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=settings.LOG_LEVEL.upper(),
        help="Logging level (default: LOG_LEVEL setting)",
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Reload on code changes (development)",
    )

    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create tables and seed default data, then exit",
    )

    return parser.parse_args(argv)


async def initialize_database() -> None:
    from playhub.api.db.session import close_db, init_db

    try:
        await init_db()
    finally:
        await close_db()


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger("PLAYHUB_MAIN")

    if args.init_db:
        logger.info("Initializing database: %s", settings.DATABASE_URL)
        asyncio.run(initialize_database())
        logger.info("Database initialized")
        return 0

    logger.info("=" * 60)
    logger.info("%s %s on %s:%s", settings.APP_NAME, settings.APP_VERSION, args.host, args.port)
    logger.info("=" * 60)

    uvicorn.run(
        "playhub.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=args.log_level.lower(),
    )
    return 0


def run() -> None:
    """Synchronous entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(0)


if __name__ == "__main__":
    run()
