"""Migration context - the collaborators shared by one migration run."""

import logging
from dataclasses import dataclass

from mlp2to3.config.schema import MigrationConfig
from mlp2to3.database.network import Network
from mlp2to3.database.store import Database
from mlp2to3.utils.i18n import Translator


@dataclass
class MigrationContext:
    """Encapsulates the collaborators needed during migration.

    Passed explicitly through the call chain. The database handle belongs to
    whoever created the context.
    """
    config: MigrationConfig
    db: Database
    network: Network
    translator: Translator
    logger: logging.Logger

    @classmethod
    def create(
        cls,
        config: MigrationConfig,
        db: Database,
        logger: logging.Logger,
        translator: Translator = None,
    ) -> "MigrationContext":
        """Build a context with a network bound to the given database."""
        return cls(
            config=config,
            db=db,
            network=Network(db, main_site_id=config.database.main_site_id),
            translator=translator or Translator(),
            logger=logger,
        )
