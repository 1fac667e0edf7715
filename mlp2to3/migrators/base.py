"""Interfaces the orchestrator expects from entity migrators.

Record migrators hand out their legacy records and migrate them one at a
time, leaving iteration and per-record error handling to the orchestrator.
Aggregate migrators need to see all legacy data at once and run themselves.
"""

from typing import Any, Iterable, Optional, Protocol, runtime_checkable

from mlp2to3.core.state import EntityResult


@runtime_checkable
class RecordMigrator(Protocol):
    entity: str

    def has_legacy_source(self) -> bool: ...

    def legacy_records(self) -> Iterable[Any]: ...

    def migrate(self, record: Any) -> bool: ...


@runtime_checkable
class AggregateMigrator(Protocol):
    entity: str

    def has_legacy_source(self) -> bool: ...

    def migrate_all(self, result: Optional[EntityResult] = None) -> EntityResult: ...
