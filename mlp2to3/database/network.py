"""Multisite network access: sites, network options and site options.

Option values are stored as JSON text. Values that are not valid JSON are
returned as the raw string.
"""

import json
from typing import Any, Dict, List

from mlp2to3.database.store import Database


def decode_option(raw: Any) -> Any:
    """Decode a stored option value."""
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


def encode_option(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


class Network:
    """Network-level collaborators of the migration.

    Args:
        db: Store access
        main_site_id: ID of the site whose options table is unnumbered
        network_id: ID of the network in the sitemeta table
    """

    def __init__(self, db: Database, main_site_id: int = 1, network_id: int = 1):
        self.db = db
        self.main_site_id = main_site_id
        self.network_id = network_id

    def site_ids(self) -> List[int]:
        """Get the IDs of all live sites, in ascending order."""
        blogs = self.db.table("blogs")
        if not self.db.table_exists(blogs):
            return [self.main_site_id]

        rows = self.db.select(
            f"SELECT blog_id FROM `{blogs}` WHERE deleted = 0 ORDER BY blog_id"
        )
        return [int(row["blog_id"]) for row in rows]

    def site_options_table(self, site_id: int) -> str:
        """Get the options table name of a site."""
        if site_id == self.main_site_id:
            return self.db.table("options")
        return self.db.table(f"{site_id}_options")

    def get_network_option(self, name: str, default: Any = None) -> Any:
        """Get a network option value, or the default if it is not set."""
        rows = self.db.select(
            f"SELECT meta_value FROM `{self.db.table('sitemeta')}` "
            f"WHERE meta_key = ? AND site_id = ? ORDER BY meta_id LIMIT 1",
            (name, self.network_id),
        )
        if not rows:
            return default
        return decode_option(rows[0]["meta_value"])

    def has_network_option(self, name: str) -> bool:
        return self.db.exists(
            self.db.table("sitemeta"),
            {"meta_key": name, "site_id": self.network_id},
        )

    def update_network_option(self, name: str, value: Any) -> bool:
        """Set a network option.

        Returns:
            True if the stored value changed, False otherwise
        """
        table = self.db.table("sitemeta")
        encoded = encode_option(value)

        rows = self.db.select(
            f"SELECT meta_id, meta_value FROM `{table}` "
            f"WHERE meta_key = ? AND site_id = ? ORDER BY meta_id LIMIT 1",
            (name, self.network_id),
        )
        if not rows:
            self.db.insert(table, {
                "site_id": self.network_id,
                "meta_key": name,
                "meta_value": encoded,
            })
            return True

        if rows[0]["meta_value"] == encoded:
            return False

        updated = self.db.execute(
            f"UPDATE `{table}` SET meta_value = ? WHERE meta_id = ?",
            (encoded, rows[0]["meta_id"]),
        )
        return updated > 0

    def get_site_option(self, site_id: int, name: str, default: Any = None) -> Any:
        """Get an option of a single site, or the default if it is not set."""
        table = self.site_options_table(site_id)
        if not self.db.table_exists(table):
            return default

        rows = self.db.select(
            f"SELECT option_value FROM `{table}` WHERE option_name = ? LIMIT 1",
            (name,),
        )
        if not rows:
            return default
        return decode_option(rows[0]["option_value"])

    def default_languages(self, table: str) -> Dict[str, Dict[str, Any]]:
        """Get the v3 language table keyed by language code.

        Args:
            table: Full name of the v3 languages table

        Returns:
            Dict mapping BCP 47 code to the language row
        """
        rows = self.db.select(f"SELECT * FROM `{table}` ORDER BY ID")
        return {row["bcp47"]: row for row in rows if row.get("bcp47")}
