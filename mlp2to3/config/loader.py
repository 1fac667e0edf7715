"""YAML configuration loader for the MLP2 to MLP3 migrator."""

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, List

import yaml

from mlp2to3.config.schema import (
    DatabaseConfig,
    Entity,
    LoggingConfig,
    MigrationConfig,
    MigrationOptions,
    TableNames,
)
from mlp2to3.core.exceptions import ConfigFileNotFoundError, ConfigValidationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def load_config(config_path: Path) -> MigrationConfig:
    """Load and parse a YAML configuration file.

    Relative paths in the file are resolved against the file's directory.

    Args:
        config_path: Path to the YAML config file

    Returns:
        Parsed MigrationConfig object

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist
        ConfigValidationError: If config is invalid
    """
    if not config_path.exists():
        raise ConfigFileNotFoundError(config_path)

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError([f"Invalid YAML: {e}"]) from e

    return parse_config(raw_config or {}, config_path.parent)


def parse_config(raw: Dict[str, Any], base_path: Path) -> MigrationConfig:
    """Parse raw YAML dict into MigrationConfig."""
    errors: List[str] = []

    if not isinstance(raw, dict):
        raise ConfigValidationError(["Top level must be a mapping"])

    # Database
    if "database" not in raw or not isinstance(raw["database"], dict):
        errors.append("Missing 'database' section")
        database = DatabaseConfig(path=Path("wordpress.db"))
    else:
        database = _parse_database(raw["database"], base_path, errors)

    # Logging
    logging_config = _parse_logging(raw.get("logging") or {}, base_path, errors)

    migration = _parse_migration(raw.get("migration") or {}, errors)
    tables = _parse_tables(raw.get("tables") or {}, errors)

    if errors:
        raise ConfigValidationError(errors)

    return MigrationConfig(
        database=database,
        logging=logging_config,
        migration=migration,
        tables=tables,
    )


def _resolve(path: str, base_path: Path) -> Path:
    resolved = Path(path)
    if not resolved.is_absolute():
        resolved = base_path / resolved
    return resolved


def _parse_database(raw: Dict[str, Any], base_path: Path, errors: List[str]) -> DatabaseConfig:
    """Parse database section."""
    if not raw.get("path"):
        errors.append("Missing 'database.path'")

    main_site_id = raw.get("main_site_id", 1)
    if not isinstance(main_site_id, int) or main_site_id < 1:
        errors.append(f"Invalid 'database.main_site_id': {main_site_id!r}")
        main_site_id = 1

    return DatabaseConfig(
        path=_resolve(raw.get("path") or "wordpress.db", base_path),
        table_prefix=str(raw.get("table_prefix", "wp_")),
        collation=str(raw.get("collation", "BINARY")),
        main_site_id=main_site_id,
    )


def _parse_logging(raw: Dict[str, Any], base_path: Path, errors: List[str]) -> LoggingConfig:
    """Parse logging section."""
    levels = {}
    for key in ("level", "console_level"):
        value = str(raw.get(key, "INFO")).upper()
        if value not in LOG_LEVELS:
            errors.append(f"Invalid log level for logging.{key}: {raw.get(key)}")
        levels[key] = value

    return LoggingConfig(
        file=_resolve(raw.get("file", "logs/mlp2to3.log"), base_path),
        backup_count=raw.get("backup_count", 20),
        **levels,
    )


def _parse_migration(raw: Dict[str, Any], errors: List[str]) -> MigrationOptions:
    """Parse migration section."""
    options = MigrationOptions(
        check_legacy=bool(raw.get("check_legacy", True)),
        fail_on_errors=bool(raw.get("fail_on_errors", False)),
        show_progress=bool(raw.get("show_progress", True)),
    )

    if "entities" in raw:
        entities = []
        for name in raw["entities"] or []:
            try:
                entities.append(Entity.from_string(str(name)))
            except ValueError as e:
                errors.append(str(e))
        options.entities = entities

    return options


def _parse_tables(raw: Dict[str, Any], errors: List[str]) -> TableNames:
    """Parse tables section."""
    known = {f.name for f in fields(TableNames)}
    for key in raw:
        if key not in known:
            errors.append(f"Unknown table key 'tables.{key}'")

    return TableNames(**{k: str(v) for k, v in raw.items() if k in known})
