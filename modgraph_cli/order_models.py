"""Data models for load-order analysis, suggestions and snapshot history."""

from __future__ import annotations

import hashlib
import re
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Deque, Dict, Iterable, List, Optional, Tuple


_ISO_FRACTION = re.compile(r"(\.\d{1,6})\d*")


def _short_id() -> str:
    return uuid.uuid4().hex[:8]


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a ``Z`` suffix and 7-digit fractions.

    Naive values are taken as UTC.
    """
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _ISO_FRACTION.sub(lambda m: m.group(1).ljust(7, "0"), text, count=1)
    created = datetime.fromisoformat(text)
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return created


class SuggestionType(str, Enum):
    MOVE_UP = "MoveUp"
    MOVE_DOWN = "MoveDown"
    MOVE_BEFORE = "MoveBefore"
    MOVE_AFTER = "MoveAfter"
    ENABLE = "Enable"
    DISABLE = "Disable"
    RESOLVE_CONFLICT = "ResolveConflict"


class SuggestionConfidence(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    REQUIRED = "Required"


class SuggestionReason(str, Enum):
    DEPENDENCY_ORDER = "DependencyOrder"
    LOAD_BEFORE_DEPENDENCY = "LoadBeforeDependency"
    LOAD_AFTER_DEPENDENCY = "LoadAfterDependency"
    CONFLICT_RESOLUTION = "ConflictResolution"
    COMMON_PATTERN = "CommonPattern"
    PERFORMANCE_OPTIMIZATION = "PerformanceOptimization"
    COMPATIBILITY_FIX = "CompatibilityFix"


class CyclePolicy(str, Enum):
    """What the order synthesizer does when it walks into a cycle."""
    LENIENT = "lenient"
    REPORT = "report"
    STRICT = "strict"


@dataclass
class OptimizationSuggestion:
    module_id: str
    module_name: str
    type: SuggestionType
    current_position: int
    suggested_position: int
    confidence: SuggestionConfidence
    reason: SuggestionReason
    explanation: str
    priority: int
    target_module_id: Optional[str] = None
    id: str = ""

    def __post_init__(self):
        # Stable across runs, so an id printed by one analysis can be applied by the next.
        if not self.id:
            key = f"{self.module_id}|{self.type.value}|{self.target_module_id}|{self.reason.value}"
            self.id = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]


@dataclass
class OptimizationOptions:
    enabled_only: bool = True
    include_native: bool = False
    generate_optimized_order: bool = True
    cycle_policy: CyclePolicy = CyclePolicy.LENIENT


@dataclass
class OptimizationResult:
    has_issues: bool = False
    critical_issues: int = 0
    warnings: int = 0
    health_score: int = 100
    suggestions: List[OptimizationSuggestion] = field(default_factory=list)
    optimized_order: Optional[List[str]] = None
    summary: str = ""
    cycle_breaks: List[Tuple[str, str]] = field(default_factory=list)


@dataclass
class LoadOrderEntry:
    """One row of a load order handed to whatever applies it."""
    id: str
    name: str
    is_selected: bool
    index: int


@dataclass(frozen=True)
class LoadOrderSnapshot:
    module_order: Tuple[str, ...]
    enabled_state: Dict[str, bool]
    description: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: str = field(default_factory=_short_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "createdAt": self.created_at.isoformat(),
            "description": self.description,
            "moduleOrder": list(self.module_order),
            "enabledState": dict(self.enabled_state),
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "LoadOrderSnapshot":
        return cls(
            id=str(payload["id"]),
            created_at=parse_timestamp(payload["createdAt"]),
            description=payload.get("description"),
            module_order=tuple(str(m) for m in payload.get("moduleOrder", [])),
            enabled_state={str(k): bool(v) for k, v in payload.get("enabledState", {}).items()},
        )


class LoadOrderHistory:
    """Bounded FIFO of snapshots; the oldest is evicted first."""

    VERSION = 1

    def __init__(self, max_snapshots: int = 20, snapshots: Iterable[LoadOrderSnapshot] = ()):
        if max_snapshots < 1:
            raise ValueError("max_snapshots must be at least 1")
        self.max_snapshots = max_snapshots
        self.version = self.VERSION
        self.snapshots: Deque[LoadOrderSnapshot] = deque(snapshots, maxlen=max_snapshots)

    def __len__(self) -> int:
        return len(self.snapshots)

    def append(self, snapshot: LoadOrderSnapshot) -> None:
        self.snapshots.append(snapshot)

    def find(self, snapshot_id: str) -> Optional[LoadOrderSnapshot]:
        for snapshot in self.snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        return None

    def remove(self, snapshot_id: str) -> bool:
        snapshot = self.find(snapshot_id)
        if snapshot is None:
            return False
        self.snapshots.remove(snapshot)
        return True

    def to_dict(self) -> dict:
        return {
            "maxSnapshots": self.max_snapshots,
            "version": self.version,
            "snapshots": [s.to_dict() for s in self.snapshots],
        }


@dataclass
class PositionChange:
    module_id: str
    old_position: int
    new_position: int


@dataclass
class StateChange:
    module_id: str
    was_enabled: bool
    is_enabled: bool


@dataclass
class LoadOrderComparison:
    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    position_changes: List[PositionChange] = field(default_factory=list)
    state_changes: List[StateChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.position_changes or self.state_changes)
