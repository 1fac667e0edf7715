"""Shared fixtures: a small multisite network in a temporary SQLite file."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Any

import pytest

from mlp2to3.config.schema import (
    DatabaseConfig,
    LoggingConfig,
    MigrationConfig,
    MigrationOptions,
    TableNames,
)
from mlp2to3.core.context import MigrationContext
from mlp2to3.database.network import Network
from mlp2to3.database.store import Database
from mlp2to3.utils.i18n import Translator
from mlp2to3.utils.logging import get_logger

SITE_IDS = (1, 2, 3)

SCHEMA = [
    "CREATE TABLE wp_blogs (blog_id INTEGER PRIMARY KEY AUTOINCREMENT, domain TEXT, "
    "path TEXT, deleted INTEGER NOT NULL DEFAULT 0)",
    "CREATE TABLE wp_sitemeta (meta_id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "site_id INTEGER NOT NULL DEFAULT 0, meta_key TEXT, meta_value TEXT)",
    "CREATE TABLE wp_multilingual_linked (ml_id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "ml_source_blogid INTEGER, ml_source_elementid INTEGER, ml_blogid INTEGER, "
    "ml_elementid INTEGER, ml_type TEXT)",
    "CREATE TABLE wp_mlp_languages (ID INTEGER PRIMARY KEY AUTOINCREMENT, english_name TEXT, "
    "native_name TEXT, custom_name TEXT, is_rtl TEXT, iso_639_1 TEXT, iso_639_2 TEXT, "
    "wp_locale TEXT, http_name TEXT, priority TEXT)",
    "CREATE TABLE wp_mlp3_content_relations (id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "source_site_id INTEGER, source_content_id INTEGER, target_site_id INTEGER, "
    "target_content_id INTEGER, type TEXT)",
    "CREATE TABLE wp_mlp3_redirects (id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "site_id INTEGER NOT NULL, setting TEXT NOT NULL, value TEXT)",
    "CREATE TABLE wp_mlp3_languages (ID INTEGER PRIMARY KEY AUTOINCREMENT, english_name TEXT, "
    "native_name TEXT, custom_name TEXT, is_rtl INTEGER, iso_639_1 TEXT, iso_639_2 TEXT, "
    "locale TEXT, bcp47 TEXT, priority INTEGER)",
]

OPTIONS_TABLE = (
    "CREATE TABLE {name} (option_id INTEGER PRIMARY KEY AUTOINCREMENT, "
    "option_name TEXT UNIQUE, option_value TEXT, autoload TEXT DEFAULT 'yes')"
)


def options_table(site_id: int) -> str:
    return "wp_options" if site_id == 1 else f"wp_{site_id}_options"


class Seeder:
    """Writes fixture rows straight through sqlite3."""

    def __init__(self, path: Path):
        self.path = path

    def _execute(self, query: str, params: tuple = ()) -> None:
        con = sqlite3.connect(self.path)
        try:
            con.execute(query, params)
            con.commit()
        finally:
            con.close()

    def rows(self, table: str, order_by: str = "rowid") -> list[dict[str, Any]]:
        con = sqlite3.connect(self.path)
        con.row_factory = sqlite3.Row
        try:
            return [dict(r) for r in con.execute(f"SELECT * FROM {table} ORDER BY {order_by}")]
        finally:
            con.close()

    def table_exists(self, table: str) -> bool:
        con = sqlite3.connect(self.path)
        try:
            found = con.execute(
                "SELECT 1 FROM sqlite_master WHERE type='table' AND name = ?", (table,)
            ).fetchall()
        finally:
            con.close()
        return bool(found)

    def network_option(self, name: str, value: Any) -> None:
        self._execute(
            "INSERT INTO wp_sitemeta (site_id, meta_key, meta_value) VALUES (1, ?, ?)",
            (name, json.dumps(value)),
        )

    def site_option(self, site_id: int, name: str, raw_value: str) -> None:
        self._execute(
            f"INSERT INTO {options_table(site_id)} (option_name, option_value) VALUES (?, ?)",
            (name, raw_value),
        )

    def link(self, source_site: int, source_id: int, target_site: int, target_id: int,
             content_type: str = "post") -> None:
        self._execute(
            "INSERT INTO wp_multilingual_linked "
            "(ml_source_blogid, ml_source_elementid, ml_blogid, ml_elementid, ml_type) "
            "VALUES (?, ?, ?, ?, ?)",
            (source_site, source_id, target_site, target_id, content_type),
        )

    def legacy_language(self, **values: Any) -> None:
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        self._execute(
            f"INSERT INTO wp_mlp_languages ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )

    def v3_language(self, **values: Any) -> None:
        columns = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        self._execute(
            f"INSERT INTO wp_mlp3_languages ({columns}) VALUES ({placeholders})",
            tuple(values.values()),
        )


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logger = get_logger()
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    path = tmp_path / "wordpress.db"
    con = sqlite3.connect(path)
    try:
        for statement in SCHEMA:
            con.execute(statement)
        for site_id in SITE_IDS:
            con.execute(OPTIONS_TABLE.format(name=options_table(site_id)))
            con.execute(
                "INSERT INTO wp_blogs (blog_id, domain, path) VALUES (?, 'example.org', ?)",
                (site_id, f"/site-{site_id}/"),
            )
        con.commit()
    finally:
        con.close()
    return path


@pytest.fixture()
def seed(db_path: Path) -> Seeder:
    return Seeder(db_path)


@pytest.fixture()
def db(db_path: Path):
    database = Database.open(db_path, prefix="wp_", collation="BINARY")
    yield database
    database.close()


@pytest.fixture()
def network(db: Database) -> Network:
    return Network(db)


@pytest.fixture()
def translator() -> Translator:
    return Translator()


@pytest.fixture()
def tables() -> TableNames:
    return TableNames()


@pytest.fixture()
def config(tmp_path: Path, db_path: Path) -> MigrationConfig:
    return MigrationConfig(
        database=DatabaseConfig(path=db_path),
        logging=LoggingConfig(file=tmp_path / "logs" / "mlp2to3.log"),
        migration=MigrationOptions(show_progress=False),
    )


@pytest.fixture()
def ctx(config: MigrationConfig, db: Database) -> MigrationContext:
    return MigrationContext.create(config, db, get_logger())
