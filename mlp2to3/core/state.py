"""Run state and result bookkeeping for a migration run."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


class RunState(Enum):
    """Lifecycle of a migration run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS = {
    RunState.PENDING: {RunState.RUNNING},
    RunState.RUNNING: {RunState.COMPLETED, RunState.FAILED},
    RunState.COMPLETED: set(),
    RunState.FAILED: set(),
}


@dataclass
class EntityResult:
    """Counts and errors for one migrated entity type."""
    entity: str
    migrated: int = 0
    skipped: int = 0
    failed: int = 0
    errors: List[str] = field(default_factory=list)
    aborted: bool = False
    source_missing: bool = False

    def record_failure(self, message: str) -> None:
        """Record a single item that could not be migrated."""
        self.failed += 1
        self.errors.append(message)

    def record_abort(self, message: str) -> None:
        """Record an error that stopped the whole entity."""
        self.aborted = True
        self.errors.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity": self.entity,
            "migrated": self.migrated,
            "skipped": self.skipped,
            "failed": self.failed,
            "aborted": self.aborted,
            "source_missing": self.source_missing,
            "errors": list(self.errors),
        }


@dataclass
class MigrationSummary:
    """Outcome of a migration run."""
    state: RunState = RunState.PENDING
    dry_run: bool = False
    results: Dict[str, EntityResult] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def transition(self, state: RunState) -> None:
        """Move to a new state.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Invalid run state transition: {self.state.value} -> {state.value}")

        self.state = state
        if state is RunState.RUNNING:
            self.started_at = datetime.now(timezone.utc)
        else:
            self.completed_at = datetime.now(timezone.utc)

    def result_for(self, entity: str) -> EntityResult:
        if entity not in self.results:
            self.results[entity] = EntityResult(entity)
        return self.results[entity]

    @property
    def errors(self) -> List[Tuple[str, str]]:
        """All recorded errors as (entity, message) pairs, in run order."""
        return [
            (name, message)
            for name, result in self.results.items()
            for message in result.errors
        ]

    @property
    def succeeded(self) -> bool:
        """True if the run completed and nothing failed."""
        return self.state is RunState.COMPLETED and not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "dry_run": self.dry_run,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "entities": [r.to_dict() for r in self.results.values()],
            "errors": [{"entity": e, "message": m} for e, m in self.errors],
        }

    def save(self, path: Path) -> None:
        """Write the summary to a JSON report file.

        Args:
            path: Path to report file
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
