"""Migrates MLP2 content links to MLP3 content relations."""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional

from tqdm import tqdm

from mlp2to3.config.schema import TableNames
from mlp2to3.core.exceptions import InvalidValueError
from mlp2to3.core.state import EntityResult
from mlp2to3.database.network import Network
from mlp2to3.database.store import Database
from mlp2to3.utils.i18n import Translator
from mlp2to3.utils.logging import get_logger

# Legacy column -> v3 column. ``ml_id`` has no counterpart.
COLUMN_MAP = {
    "ml_source_blogid": "source_site_id",
    "ml_source_elementid": "source_content_id",
    "ml_blogid": "target_site_id",
    "ml_elementid": "target_content_id",
}


@dataclass(frozen=True)
class ContentRelationship:
    """A content relation in the v3 layout."""
    source_site_id: int
    source_content_id: int
    target_site_id: int
    target_content_id: int
    type: Optional[str] = None

    @property
    def natural_key(self) -> Dict[str, int]:
        return {
            "source_site_id": self.source_site_id,
            "source_content_id": self.source_content_id,
            "target_site_id": self.target_site_id,
            "target_content_id": self.target_content_id,
        }

    @property
    def is_self_link(self) -> bool:
        return self.source_site_id == self.target_site_id


def transform_relationship(row: Mapping[str, Any]) -> ContentRelationship:
    """Convert a legacy ``multilingual_linked`` row.

    Raises:
        InvalidValueError: If an ID column is missing or not an integer
    """
    values = {}
    for legacy, column in COLUMN_MAP.items():
        value = row.get(legacy)
        try:
            values[column] = int(value)
        except (TypeError, ValueError):
            raise InvalidValueError(legacy, value) from None

    content_type = row.get("ml_type")
    return ContentRelationship(type=str(content_type) if content_type else None, **values)


class ContentRelationshipMigrator:
    """Copies legacy content links of every site into the v3 relations table.

    Args:
        db: Store access
        network: Site listing
        translator: Message translator
        tables: Logical table names
        show_progress: Whether to show progress bars
    """

    entity = "relationships"

    def __init__(
        self,
        db: Database,
        network: Network,
        translator: Translator,
        tables: TableNames,
        show_progress: bool = False,
    ):
        self.db = db
        self.network = network
        self.translator = translator
        self.legacy_table = db.table(tables.legacy_relationships)
        self.target_table = db.table(tables.relationships)
        self.show_progress = show_progress

    def has_legacy_source(self) -> bool:
        return self.db.table_exists(self.legacy_table)

    def migrate_all(self, result: Optional[EntityResult] = None) -> EntityResult:
        """Migrate the legacy links of all sites.

        Links already present in the v3 table are left untouched.

        Args:
            result: Result to accumulate into (a new one if omitted)

        Returns:
            The accumulated result
        """
        logger = get_logger()
        result = result or EntityResult(self.entity)

        for site_id in self.network.site_ids():
            rows = self.db.select(
                f"SELECT * FROM `{self.legacy_table}` WHERE ml_source_blogid = ? ORDER BY ml_id",
                (site_id,),
            )
            logger.info(f"Site {site_id}: {len(rows)} legacy relationships")

            desc = f"Relationships of site {site_id}"
            for row in tqdm(rows, desc=desc, disable=not self.show_progress):
                self._migrate_row(row, result)

        return result

    def _migrate_row(self, row: Mapping[str, Any], result: EntityResult) -> None:
        logger = get_logger()

        try:
            relationship = transform_relationship(row)
        except InvalidValueError as e:
            result.record_failure(
                self.translator("Relationship {0}: {1}", row.get("ml_id"), e)
            )
            return

        if relationship.is_self_link:
            result.skipped += 1
            return

        if self.db.exists(self.target_table, relationship.natural_key):
            logger.debug(f"Relationship {relationship.natural_key} already migrated")
            result.skipped += 1
            return

        self.db.insert(self.target_table, asdict(relationship))
        result.migrated += 1
