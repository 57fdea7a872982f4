#!/usr/bin/env python3
"""
Copy every record of the embedded database into the remote backend.

Records already present remotely (same uuid) are skipped, so the script can be
run again after a partial failure.

Usage:
    promptvault-migrate
    promptvault-migrate --database ~/.local/share/promptvault/prompts.db --verbose
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from ..core.config import settings
from ..core.exceptions import PromptVaultError
from ..core.remote_config import load_remote_config
from ..schemas.migration import MigrationResult
from ..services.migration_service import MigrationRunner
from ..services.remote_store import RemoteRecordStore
from ..services.sqlite_store import SQLiteRecordStore

logger = logging.getLogger(__name__)


async def run_migration(database: Path) -> MigrationResult:
    """Open both stores, run the migration and close them again."""
    source = await SQLiteRecordStore.open(database)
    try:
        target = RemoteRecordStore.from_config(load_remote_config(settings))
        try:
            return await MigrationRunner(source, target).run()
        finally:
            await target.close()
    finally:
        await source.close()


def print_summary(result: MigrationResult) -> None:
    logger.info(f"{'=' * 60}")
    logger.info("MIGRATION SUMMARY")
    logger.info(f"{'=' * 60}")
    logger.info(f"Prompts:            {result.prompts}")
    logger.info(f"Categories:         {result.categories}")
    logger.info(f"Groups:             {result.groups}")
    logger.info(f"Management prompts: {result.management_prompts}")
    logger.info(f"Prompt results:     {result.prompt_results}")
    if result.errors:
        logger.warning(f"{len(result.errors)} record(s) failed:")
        for error in result.errors:
            logger.warning(f"  - {error}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the migration script."""
    parser = argparse.ArgumentParser(
        description="Migrate the local PromptVault database to the remote backend",
    )
    parser.add_argument(
        "--database",
        type=Path,
        default=settings.database_path,
        help=f"SQLite database to read (default: {settings.database_path})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log every skipped record",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    database = args.database.expanduser()
    if not database.exists():
        logger.error(f"SQLite database not found: {database}")
        return 1

    try:
        result = asyncio.run(run_migration(database))
    except PromptVaultError as e:
        logger.error(f"Migration failed: {e}")
        return 1

    print_summary(result)
    return 0 if not result.errors else 1


if __name__ == "__main__":
    sys.exit(main())
