"""Migrates per-site MLP2 redirect settings to the MLP3 redirects table.

Every site keeps its redirect settings as an option in its own options
table. The values are first gathered into a temporary aggregation table so
that a single query can reduce them to the distinct configurations. The
temporary table is always dropped afterwards.
"""

import json
from typing import Any, Dict, Mapping, Optional

from mlp2to3.config.schema import TableNames
from mlp2to3.core.exceptions import InvalidValueError
from mlp2to3.core.state import EntityResult
from mlp2to3.database.network import Network
from mlp2to3.database.schema import FieldDescriptor
from mlp2to3.database.store import Database
from mlp2to3.utils.i18n import Translator
from mlp2to3.utils.logging import get_logger

LEGACY_OPTION = "inpsyde_multilingual_redirect"
TEMP_TABLE = "mlp2to3_redirects_tmp"

# Scalar legacy values are stored under this setting
SCALAR_SETTING = "redirect"

TEMP_FIELDS = {
    "site_id": FieldDescriptor("bigint", typemod="unsigned", nullable=False),
    "option_value": FieldDescriptor("longtext"),
    "normalized": FieldDescriptor("longtext"),
}


def decode_settings(raw: Any) -> Dict[str, Any]:
    """Decode a legacy redirect option value into a settings map.

    Raises:
        InvalidValueError: If the value is not valid JSON
    """
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        raise InvalidValueError(LEGACY_OPTION, raw) from None

    if isinstance(value, dict):
        return value
    return {SCALAR_SETTING: value}


def normalize_value(raw: Any) -> Any:
    """Canonical form of a stored option value, independent of formatting and key order.

    Values that are not JSON are returned unchanged.
    """
    try:
        value = json.loads(raw)
    except (TypeError, ValueError):
        return raw
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


class RedirectionsMigrator:
    """Unions the redirect settings of all sites into the v3 redirects table.

    Args:
        db: Store access
        network: Site listing
        translator: Message translator
        tables: Logical table names
    """

    entity = "redirects"

    # Distinct configurations, each credited to the lowest site that has it.
    # Grouped on the normalized form, so formatting and key order do not count.
    combine_query = (
        "SELECT MIN(site_id) AS site_id, MIN(option_value) AS option_value "
        "FROM `{table}` "
        "GROUP BY normalized "
        "ORDER BY site_id"
    )

    def __init__(
        self,
        db: Database,
        network: Network,
        translator: Translator,
        tables: TableNames,
    ):
        self.db = db
        self.network = network
        self.translator = translator
        self.target_table = db.table(tables.redirects)
        self.temp_table = db.table(TEMP_TABLE)

    def has_legacy_source(self) -> bool:
        for site_id in self.network.site_ids():
            if self.network.get_site_option(site_id, LEGACY_OPTION) is not None:
                return True
        return False

    def migrate_all(self, result: Optional[EntityResult] = None) -> EntityResult:
        """Migrate the redirect settings of all sites.

        Args:
            result: Result to accumulate into (a new one if omitted)

        Returns:
            The accumulated result
        """
        logger = get_logger()
        result = result or EntityResult(self.entity)

        # A table left over from an interrupted run would hold stale values
        self.db.drop_table(self.temp_table)
        self.db.create_table(self.temp_table, TEMP_FIELDS, ["site_id"])

        try:
            for site_id in self.network.site_ids():
                self._collect_site(site_id)
            self._normalize_values()

            rows = self.db.select(self.combine_query.format(table=self.temp_table))
            logger.info(f"Found {len(rows)} distinct redirect configurations")

            for row in rows:
                self._migrate_configuration(row, result)
        finally:
            self.db.drop_table(self.temp_table)

        return result

    def _collect_site(self, site_id: int) -> None:
        options_table = self.network.site_options_table(site_id)
        if not self.db.table_exists(options_table):
            return

        self.db.execute(
            f"INSERT INTO `{self.temp_table}` (site_id, option_value) "
            f"SELECT ?, option_value FROM `{options_table}` WHERE option_name = ? LIMIT 1",
            (site_id, LEGACY_OPTION),
        )

    def _normalize_values(self) -> None:
        for row in self.db.select(f"SELECT site_id, option_value FROM `{self.temp_table}`"):
            self.db.execute(
                f"UPDATE `{self.temp_table}` SET normalized = ? WHERE site_id = ?",
                (normalize_value(row["option_value"]), row["site_id"]),
            )

    def _migrate_configuration(self, row: Mapping[str, Any], result: EntityResult) -> None:
        site_id = int(row["site_id"])

        try:
            settings = decode_settings(row["option_value"])
        except InvalidValueError as e:
            result.record_failure(self.translator("Redirect settings of site {0}: {1}", site_id, e))
            return

        for setting, value in settings.items():
            key = {"site_id": site_id, "setting": str(setting)}
            if self.db.exists(self.target_table, key):
                result.skipped += 1
                continue

            self.db.insert(self.target_table, {**key, "value": json.dumps(value)})
            result.migrated += 1
