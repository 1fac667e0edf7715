"""Main migration orchestration."""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from tqdm import tqdm

from mlp2to3.config.schema import Entity
from mlp2to3.core.context import MigrationContext
from mlp2to3.core.exceptions import (
    MigrationItemError,
    MigratorError,
    PersistError,
    StoreConnectionError,
)
from mlp2to3.core.state import EntityResult, MigrationSummary, RunState
from mlp2to3.migrators.base import AggregateMigrator, RecordMigrator
from mlp2to3.migrators.languages import LanguageRepositoryMigrator
from mlp2to3.migrators.modules import ModulesMigrator
from mlp2to3.migrators.redirects import RedirectionsMigrator
from mlp2to3.migrators.relationships import ContentRelationshipMigrator
from mlp2to3.utils.logging import get_logger


@dataclass
class MigrationStep:
    """An entity migrator registered with the orchestrator."""
    entity: Entity
    migrator: Union[RecordMigrator, AggregateMigrator]


def build_steps(
    ctx: MigrationContext,
    entities: Optional[Sequence[Entity]] = None,
) -> List[MigrationStep]:
    """Create the migrators for the selected entities, in run order.

    Args:
        ctx: Migration context
        entities: Entities to migrate (defaults to the configured ones)

    Returns:
        Steps in the fixed order of the Entity enum
    """
    selected = set(entities if entities is not None else ctx.config.migration.entities)
    tables = ctx.config.tables
    show_progress = ctx.config.migration.show_progress

    factories = {
        Entity.MODULES: lambda: ModulesMigrator(ctx.network, ctx.translator),
        Entity.RELATIONSHIPS: lambda: ContentRelationshipMigrator(
            ctx.db, ctx.network, ctx.translator, tables, show_progress
        ),
        Entity.REDIRECTS: lambda: RedirectionsMigrator(
            ctx.db, ctx.network, ctx.translator, tables
        ),
        Entity.LANGUAGES: lambda: LanguageRepositoryMigrator(
            ctx.db, ctx.network, ctx.translator, tables, show_progress
        ),
    }

    return [
        MigrationStep(entity, factories[entity]())
        for entity in Entity
        if entity in selected
    ]


class MigrationOrchestrator:
    """Runs entity migrators in order and collects their results.

    An error in one entity is recorded and the next entity runs. A lost
    store connection fails the whole run immediately.

    Args:
        ctx: Migration context
        steps: Migrators to run, in order
    """

    def __init__(self, ctx: MigrationContext, steps: Sequence[MigrationStep]):
        self.ctx = ctx
        self.steps = list(steps)
        self.check_legacy = ctx.config.migration.check_legacy
        self.summary = MigrationSummary(dry_run=ctx.db.is_dry_run)

    def run(self) -> MigrationSummary:
        """Run all steps.

        Returns:
            The run summary, in state COMPLETED or FAILED
        """
        logger = get_logger()
        self.summary.transition(RunState.RUNNING)

        for step in self.steps:
            name = step.entity.value
            result = self.summary.result_for(name)

            try:
                if self.check_legacy and not step.migrator.has_legacy_source():
                    logger.info(f"No legacy {name} found. Skipping.")
                    result.source_missing = True
                    continue

                logger.info(f">>> Migrating {name}...")
                if isinstance(step.migrator, RecordMigrator):
                    self._migrate_records(step.migrator, result)
                else:
                    step.migrator.migrate_all(result)

            except StoreConnectionError as e:
                logger.error(f"Fatal error while migrating {name}: {e}")
                result.record_abort(str(e))
                self.summary.transition(RunState.FAILED)
                return self.summary

            except MigratorError as e:
                logger.error(f"Migration of {name} stopped: {e}")
                result.record_abort(str(e))
                continue

            except Exception as e:
                logger.exception(f"Unexpected error while migrating {name}")
                result.record_abort(f"{type(e).__name__}: {e}")
                self.summary.transition(RunState.FAILED)
                raise

            logger.info(
                f"{name}: {result.migrated} migrated, {result.skipped} skipped, "
                f"{result.failed} failed"
            )

        self.summary.transition(RunState.COMPLETED)
        return self.summary

    def _migrate_records(self, migrator: RecordMigrator, result: EntityResult) -> None:
        """Feed a record migrator its legacy records one at a time."""
        logger = get_logger()
        records = list(migrator.legacy_records())
        show_progress = self.ctx.config.migration.show_progress

        for record in tqdm(records, desc=migrator.entity, disable=not show_progress):
            try:
                changed = migrator.migrate(record)
            except (MigrationItemError, PersistError) as e:
                logger.warning(f"Failed to migrate {migrator.entity} item {record}: {e}")
                result.record_failure(str(e))
                continue

            if changed:
                result.migrated += 1
            else:
                result.skipped += 1


def log_summary(summary: MigrationSummary) -> None:
    """Log per-entity counts and every recorded error."""
    logger = get_logger()

    logger.info("-" * 48)
    for result in summary.results.values():
        if result.source_missing:
            logger.info(f"{result.entity:<14} no legacy data")
            continue
        line = (
            f"{result.entity:<14} migrated: {result.migrated:<6} "
            f"skipped: {result.skipped:<6} failed: {result.failed}"
        )
        if result.aborted:
            line += " (aborted)"
        logger.info(line)
    logger.info("-" * 48)

    for entity, message in summary.errors:
        logger.error(f"[{entity}] {message}")


def run_migration(
    ctx: MigrationContext,
    entities: Optional[Sequence[Entity]] = None,
    dry_run: bool = False,
) -> MigrationSummary:
    """Run the complete migration process.

    This is the main entry point for the migration. Safe to re-run: rows
    migrated before are detected and skipped.

    Args:
        ctx: Migration context
        entities: Entities to migrate (defaults to the configured ones)
        dry_run: Roll back every change once the run is over

    Returns:
        The run summary
    """
    logger = get_logger()
    steps = build_steps(ctx, entities)

    if dry_run:
        logger.info("Dry run: all changes will be rolled back.")
        with ctx.db.dry_run():
            summary = MigrationOrchestrator(ctx, steps).run()
    else:
        summary = MigrationOrchestrator(ctx, steps).run()

    log_summary(summary)

    if summary.state is RunState.FAILED:
        logger.error("Migration failed.")
    elif summary.errors:
        logger.warning(f"Migration complete with {len(summary.errors)} errors.")
    else:
        logger.info("Migration complete.")

    return summary
