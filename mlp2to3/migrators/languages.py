"""Migrates customized MLP2 languages into the MLP3 language repository.

MLP3 ships its own language table. A legacy language is migrated when it
looks customized, i.e. any compared field differs from the MLP3 row with the
same code. The comparison is done on the raw stored values, so legacy rows
whose fields are merely stored differently (text vs. integer flags, empty
string vs. NULL) count as customized too. This over-selects: most legacy
rows end up migrated, not only the edited ones.
"""

from typing import Any, Dict, Mapping, Optional

from tqdm import tqdm

from mlp2to3.config.schema import TableNames
from mlp2to3.core.exceptions import InvalidValueError
from mlp2to3.core.state import EntityResult
from mlp2to3.database.network import Network
from mlp2to3.database.store import Database
from mlp2to3.utils.i18n import Translator
from mlp2to3.utils.logging import get_logger

# Legacy column -> v3 column
FIELD_MAP = {
    "english_name": "english_name",
    "native_name": "native_name",
    "custom_name": "custom_name",
    "is_rtl": "is_rtl",
    "iso_639_1": "iso_639_1",
    "iso_639_2": "iso_639_2",
    "wp_locale": "locale",
    "http_name": "bcp47",
    "priority": "priority",
}

CODE_FIELD = "bcp47"

COMPARED_FIELDS = tuple(f for f in FIELD_MAP.values() if f != CODE_FIELD)


def transform_language(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a legacy language row to v3 column names.

    Raises:
        InvalidValueError: If the row has no language code
    """
    language = {column: row.get(legacy) for legacy, column in FIELD_MAP.items()}

    code = language[CODE_FIELD]
    if not code or not str(code).strip():
        raise InvalidValueError("http_name", code)

    language[CODE_FIELD] = str(code).strip()
    return language


def is_customized(language: Mapping[str, Any], default: Optional[Mapping[str, Any]]) -> bool:
    """Tell whether a legacy language differs from the v3 default."""
    if default is None:
        return True
    return any(language.get(f) != default.get(f) for f in COMPARED_FIELDS)


class LanguageRepositoryMigrator:
    """Writes customized legacy languages over the v3 language table.

    Args:
        db: Store access
        network: Provides the v3 default language table
        translator: Message translator
        tables: Logical table names
        show_progress: Whether to show a progress bar
    """

    entity = "languages"

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
        self.legacy_table = db.table(tables.legacy_languages)
        self.target_table = db.table(tables.languages)
        self.show_progress = show_progress

    def has_legacy_source(self) -> bool:
        return self.db.table_exists(self.legacy_table)

    def migrate_all(self, result: Optional[EntityResult] = None) -> EntityResult:
        """Migrate all legacy languages that differ from the v3 defaults.

        Args:
            result: Result to accumulate into (a new one if omitted)

        Returns:
            The accumulated result
        """
        logger = get_logger()
        result = result or EntityResult(self.entity)

        # Read once, so rows written below do not affect later comparisons
        defaults = self.network.default_languages(self.target_table)
        rows = self.db.select(f"SELECT * FROM `{self.legacy_table}` ORDER BY ID")
        logger.info(f"Comparing {len(rows)} legacy languages with {len(defaults)} defaults")

        for row in tqdm(rows, desc="Languages", disable=not self.show_progress):
            try:
                language = transform_language(row)
            except InvalidValueError as e:
                result.record_failure(self.translator("Language {0}: {1}", row.get("ID"), e))
                continue

            default = defaults.get(language[CODE_FIELD])
            if not is_customized(language, default):
                result.skipped += 1
                continue

            self._save(language)
            result.migrated += 1

        return result

    def _save(self, language: Dict[str, Any]) -> None:
        code = language[CODE_FIELD]

        if not self.db.exists(self.target_table, {CODE_FIELD: code}):
            self.db.insert(self.target_table, language)
            return

        assignments = ", ".join(f"`{f}` = ?" for f in COMPARED_FIELDS)
        self.db.execute(
            f"UPDATE `{self.target_table}` SET {assignments} WHERE `{CODE_FIELD}` = ?",
            [language[f] for f in COMPARED_FIELDS] + [code],
        )
