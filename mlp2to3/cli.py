"""Command-line interface for the MLP2 to MLP3 migrator."""

import argparse
import sys
from pathlib import Path

from mlp2to3.config.loader import load_config
from mlp2to3.config.schema import Entity
from mlp2to3.core.context import MigrationContext
from mlp2to3.core.exceptions import ConfigError, MigratorError
from mlp2to3.core.migrator import run_migration
from mlp2to3.core.state import RunState
from mlp2to3.database.store import Database
from mlp2to3.utils.logging import setup_logging


def main(args: list[str] = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not hasattr(parsed, "command") or parsed.command is None:
        parser.print_help()
        return 0

    try:
        if parsed.command == "migrate":
            return cmd_migrate(parsed)
        else:
            parser.print_help()
            return 0

    except MigratorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="mlp2to3",
        description="Migrate MultilingualPress 2 data to MultilingualPress 3",
    )

    subparsers = parser.add_subparsers(dest="command", title="Commands")

    migrate_parser = subparsers.add_parser(
        "migrate",
        help="Run the migration process",
    )
    migrate_parser.add_argument(
        "--config", "-c",
        type=Path,
        required=True,
        help="Path to YAML configuration file",
    )
    migrate_parser.add_argument(
        "--only",
        action="append",
        choices=[e.value for e in Entity],
        help="Migrate only this entity (repeatable; default: all configured)",
    )
    migrate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the migration and roll back all changes",
    )
    migrate_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with an error if any item failed to migrate",
    )
    migrate_parser.add_argument(
        "--report",
        type=Path,
        help="Write the run summary as JSON to this file",
    )

    return parser


def cmd_migrate(args: argparse.Namespace) -> int:
    """Execute the migrate command.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    logger = setup_logging(
        log_file=config.logging.file,
        backup_count=config.logging.backup_count,
        level=config.logging.level,
        console_level=config.logging.console_level,
    )

    logger.info("")
    logger.info("Starting MultilingualPress 2 to 3 migration")

    db = Database.open(
        config.database.path,
        prefix=config.database.table_prefix,
        collation=config.database.collation,
    )

    try:
        ctx = MigrationContext.create(config, db, logger)
        entities = [Entity(name) for name in args.only] if args.only else None
        summary = run_migration(ctx, entities=entities, dry_run=args.dry_run)
    finally:
        db.close()

    if args.report:
        summary.save(args.report)
        logger.info(f"Report written to {args.report}")

    if summary.state is RunState.FAILED:
        return 1
    if summary.errors and (args.strict or config.migration.fail_on_errors):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
