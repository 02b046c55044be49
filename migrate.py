#!/usr/bin/env python3
"""
Database maintenance commands: schema creation, reset and the legacy address backfill.
"""

import asyncio
import argparse
import json
import logging

from listing_api.config import Settings, get_settings
from listing_api.database import Database
from listing_api.services.flat import FlatService
from listing_api.services.storage import build_image_storage
from listing_api.utils.file_utils import FileValidator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class MigrationManager:
    """Runs maintenance tasks against the configured database."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.database = Database(settings)

    async def create_tables(self) -> None:
        try:
            await self.database.create_tables()
        finally:
            await self.database.dispose()

    async def reset_database(self) -> None:
        """Drop and recreate every table."""
        if self.settings.is_production:
            raise RuntimeError("Refusing to reset a production database")
        try:
            await self.database.drop_tables()
            await self.database.create_tables()
            logger.info("Database reset completed")
        finally:
            await self.database.dispose()

    async def backfill_addresses(self, dry_run: bool = False, sample_size: int = 5) -> dict:
        """Move legacy location strings into the structured street field."""
        try:
            async for session in self.database.session():
                service = FlatService(
                    session,
                    build_image_storage(self.settings),
                    FileValidator(self.settings.max_upload_size),
                )
                return await service.backfill_legacy_addresses(dry_run=dry_run, sample_size=sample_size)
        finally:
            await self.database.dispose()


def main():
    """Main CLI interface for database maintenance."""
    parser = argparse.ArgumentParser(description="Database maintenance for the Flat Listing API")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create-tables", help="Create all tables")

    reset_parser = subparsers.add_parser("reset", help="Drop and recreate all tables (not in production)")
    reset_parser.add_argument("--confirm", action="store_true", help="Confirm database reset")

    backfill_parser = subparsers.add_parser(
        "backfill-addresses",
        help="Copy legacy location text into address.street and clear location"
    )
    backfill_parser.add_argument("--dry-run", action="store_true", help="Report planned changes without writing")
    backfill_parser.add_argument("--sample", type=int, default=5, help="Number of planned changes to show")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 1

    manager = MigrationManager(get_settings())

    try:
        if args.command == "create-tables":
            asyncio.run(manager.create_tables())

        elif args.command == "reset":
            if not args.confirm:
                print("Database reset requires --confirm flag")
                return 1
            asyncio.run(manager.reset_database())

        elif args.command == "backfill-addresses":
            report = asyncio.run(manager.backfill_addresses(dry_run=args.dry_run, sample_size=args.sample))
            print(json.dumps(report, indent=2))

    except Exception as e:
        logger.error(f"Command failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
