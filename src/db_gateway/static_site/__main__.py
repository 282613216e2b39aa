"""
db_gateway.static_site.__main__

CLI entry point for the static-site build.

Usage:
    python -m db_gateway.static_site
    python -m db_gateway.static_site --output-dir public --pages 20 --limit 5
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from dotenv import load_dotenv

from db_gateway.db.manager import DatabaseManager
from db_gateway.errors import GatewayError
from db_gateway.observability.logging import configure_logging, get_logger
from db_gateway.settings import get_settings
from db_gateway.static_site.generator import StaticPageGenerator

log = get_logger(__name__)


async def _build(manager: DatabaseManager, args: argparse.Namespace) -> int:
    generator = StaticPageGenerator(
        manager,
        args.output_dir,
        pages_per_database=args.pages,
        limit=args.limit,
    )
    try:
        report = await generator.generate_all()
    finally:
        await manager.close_all()
    log.info("build_finished", pages=report.pages_written, failures=len(report.failures))
    return 0


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    settings = get_settings()
    configure_logging(
        service_name=f"{settings.service_name}-static",
        level=settings.log_level,
        json_logs=settings.env != "dev",
    )

    parser = argparse.ArgumentParser(description="Pre-render sampled database pages as HTML")
    parser.add_argument("--output-dir", default=settings.static_output_dir)
    parser.add_argument("--pages", type=int, default=settings.static_pages_per_database)
    parser.add_argument("--limit", type=int, default=settings.sample_limit)
    args = parser.parse_args(argv)

    try:
        manager = DatabaseManager.from_settings(settings)
        return asyncio.run(_build(manager, args))
    except (GatewayError, OSError) as e:
        log.error("build_failed", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
