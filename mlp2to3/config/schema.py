"""Configuration dataclasses for the MLP2 to MLP3 migrator."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List


class Entity(Enum):
    """Migratable entity types, in their default run order."""
    MODULES = "modules"
    RELATIONSHIPS = "relationships"
    REDIRECTS = "redirects"
    LANGUAGES = "languages"

    @classmethod
    def from_string(cls, s: str) -> "Entity":
        """Create from string value."""
        try:
            return cls(s.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid entity: {s}") from None


@dataclass
class DatabaseConfig:
    """Location and conventions of the store being migrated."""
    path: Path
    table_prefix: str = "wp_"
    collation: str = "BINARY"
    main_site_id: int = 1

    def __post_init__(self):
        if isinstance(self.path, str):
            self.path = Path(self.path)


@dataclass
class LoggingConfig:
    """Logging configuration."""
    file: Path
    backup_count: int = 20
    level: str = "INFO"
    console_level: str = "INFO"

    def __post_init__(self):
        if isinstance(self.file, str):
            self.file = Path(self.file)


@dataclass
class TableNames:
    """Logical (unprefixed) names of the legacy and v3 tables."""
    legacy_relationships: str = "multilingual_linked"
    legacy_languages: str = "mlp_languages"
    relationships: str = "mlp3_content_relations"
    redirects: str = "mlp3_redirects"
    languages: str = "mlp3_languages"


@dataclass
class MigrationOptions:
    """Run behavior."""
    entities: List[Entity] = field(default_factory=lambda: list(Entity))
    check_legacy: bool = True
    fail_on_errors: bool = False
    show_progress: bool = True


@dataclass
class MigrationConfig:
    """Complete migration configuration."""
    database: DatabaseConfig
    logging: LoggingConfig
    migration: MigrationOptions = field(default_factory=MigrationOptions)
    tables: TableNames = field(default_factory=TableNames)
