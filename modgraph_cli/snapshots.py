"""Load-order snapshot history backed by a JSON file.

Every mutating call is a load → mutate → persist transaction under an
exclusive lock on a sidecar ``.lock`` file, so separate processes and
separate stores on the same file take turns. The history file is replaced
atomically and readers never take the lock. Snapshots are immutable once
written.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

try:
    import fcntl  # POSIX

    HAVE_FCNTL = True
except ImportError:
    HAVE_FCNTL = False

try:
    import msvcrt  # Windows

    HAVE_MSVCRT = True
except ImportError:
    HAVE_MSVCRT = False

from .config import DEFAULT_MAX_SNAPSHOTS
from .models import Module
from .optimizer import to_load_order
from .order_models import (
    LoadOrderComparison,
    LoadOrderEntry,
    LoadOrderHistory,
    LoadOrderSnapshot,
    PositionChange,
    StateChange,
)

logger = logging.getLogger(__name__)


def compare_orders(
    old_order: Sequence[str],
    old_enabled: Mapping[str, bool],
    new_order: Sequence[str],
    new_enabled: Mapping[str, bool],
) -> LoadOrderComparison:
    """Diff two load orders. Missing enabled flags read as disabled."""
    old_positions = {module_id: i for i, module_id in enumerate(old_order)}
    new_positions = {module_id: i for i, module_id in enumerate(new_order)}
    comparison = LoadOrderComparison(
        added=[m for m in new_order if m not in old_positions],
        removed=[m for m in old_order if m not in new_positions],
    )

    for module_id in new_order:
        if module_id not in old_positions:
            continue
        old_pos, new_pos = old_positions[module_id], new_positions[module_id]
        if old_pos != new_pos:
            comparison.position_changes.append(PositionChange(module_id, old_pos, new_pos))
        was_enabled = bool(old_enabled.get(module_id, False))
        is_enabled = bool(new_enabled.get(module_id, False))
        if was_enabled != is_enabled:
            comparison.state_changes.append(StateChange(module_id, was_enabled, is_enabled))

    return comparison


class _FileLock:
    """Exclusive advisory lock on ``.<name>.lock`` beside the guarded file."""

    def __init__(self, file_path: Path):
        self.lock_path = file_path.parent / f".{file_path.name}.lock"
        self._handle = None

    def __enter__(self) -> "_FileLock":
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = open(self.lock_path, "a+")
        if HAVE_FCNTL:
            fcntl.flock(self._handle.fileno(), fcntl.LOCK_EX)
        elif HAVE_MSVCRT:
            self._handle.seek(0)
            msvcrt.locking(self._handle.fileno(), msvcrt.LK_LOCK, 1)
        else:
            logger.warning("File locking is not available; history writes are not serialized")
        return self

    def __exit__(self, _exc_type, _exc_val, _exc_tb) -> None:
        # The lock file is left in place so waiters always lock the same inode.
        if self._handle is None:
            return
        try:
            if HAVE_FCNTL:
                fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
            elif HAVE_MSVCRT:
                self._handle.seek(0)
                msvcrt.locking(self._handle.fileno(), msvcrt.LK_UNLCK, 1)
        finally:
            self._handle.close()
            self._handle = None


class SnapshotStore:
    """Bounded snapshot history persisted as camelCase JSON.

    The bound passed here wins over the ``maxSnapshots`` recorded in the
    file: loading keeps the newest ``max_snapshots`` entries and the next
    write records the new bound.
    """

    def __init__(self, history_file: Path, max_snapshots: int = DEFAULT_MAX_SNAPSHOTS):
        if max_snapshots < 1:
            raise ValueError("max_snapshots must be at least 1")
        self.history_file = Path(history_file)
        self.max_snapshots = max_snapshots

    @property
    def backup_file(self) -> Path:
        return self.history_file.with_name(self.history_file.name + ".bak")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _read(self) -> Tuple[LoadOrderHistory, bool]:
        """Load the history. The flag is False when anything on disk was skipped."""
        if not self.history_file.exists():
            return LoadOrderHistory(self.max_snapshots), True
        try:
            payload = json.loads(self.history_file.read_text(encoding="utf-8"))
            entries = payload.get("snapshots", [])
            if not isinstance(entries, list):
                raise TypeError("'snapshots' is not a list")
        except (OSError, json.JSONDecodeError, TypeError, AttributeError) as exc:
            logger.warning("Starting fresh history; could not read %s: %s", self.history_file, exc)
            return LoadOrderHistory(self.max_snapshots), False

        snapshots = []
        clean = True
        for position, entry in enumerate(entries):
            try:
                snapshots.append(LoadOrderSnapshot.from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping snapshot #%d in %s: %s", position, self.history_file, exc)
                clean = False

        stored_bound = payload.get("maxSnapshots")
        if stored_bound not in (None, self.max_snapshots):
            logger.debug(
                "History file bound %s replaced by configured %d", stored_bound, self.max_snapshots
            )
        return LoadOrderHistory(self.max_snapshots, snapshots), clean

    def _load(self) -> LoadOrderHistory:
        history, _ = self._read()
        return history

    def _back_up(self) -> None:
        shutil.copy2(self.history_file, self.backup_file)
        logger.warning("Kept a copy of the unreadable history at %s", self.backup_file)

    def _save(self, history: LoadOrderHistory) -> None:
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            dir=self.history_file.parent, prefix=f".{self.history_file.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(history.to_dict(), handle, indent=2)
            os.replace(temp_name, self.history_file)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def _load_for_write(self) -> LoadOrderHistory:
        """Load under the lock, keeping a backup when the rewrite would drop data."""
        history, clean = self._read()
        if not clean:
            self._back_up()
        return history

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def save_snapshot(
        self,
        module_order: Sequence[str],
        enabled_state: Mapping[str, bool],
        description: Optional[str] = None,
    ) -> LoadOrderSnapshot:
        snapshot = LoadOrderSnapshot(
            module_order=tuple(module_order),
            enabled_state=dict(enabled_state),
            description=description,
        )
        with _FileLock(self.history_file):
            history = self._load_for_write()
            history.append(snapshot)
            self._save(history)
        logger.debug("Saved snapshot %s (%d modules)", snapshot.id, len(snapshot.module_order))
        return snapshot

    def list_snapshots(self) -> List[LoadOrderSnapshot]:
        """All stored snapshots, newest first."""
        ordered = sorted(self._load().snapshots, key=lambda s: s.created_at)
        return ordered[::-1]

    def get_snapshot(self, snapshot_id: str) -> Optional[LoadOrderSnapshot]:
        return self._load().find(snapshot_id)

    def delete_snapshot(self, snapshot_id: str) -> bool:
        with _FileLock(self.history_file):
            history, clean = self._read()
            if not history.remove(snapshot_id):
                return False
            if not clean:
                self._back_up()
            self._save(history)
        return True

    def clear(self) -> int:
        """Remove every snapshot. Returns how many were removed."""
        with _FileLock(self.history_file):
            history = self._load_for_write()
            removed = len(history)
            self._save(LoadOrderHistory(self.max_snapshots))
        return removed

    def compare(
        self,
        snapshot_id: str,
        current_order: Sequence[str],
        current_enabled: Mapping[str, bool],
    ) -> Optional[LoadOrderComparison]:
        """Diff a stored snapshot against the current state; None if not found."""
        snapshot = self.get_snapshot(snapshot_id)
        if snapshot is None:
            return None
        return compare_orders(
            snapshot.module_order, snapshot.enabled_state, current_order, current_enabled
        )

    def restore_snapshot(
        self,
        snapshot_id: str,
        current_order: Sequence[str],
        current_enabled: Mapping[str, bool],
        modules: Sequence[Module],
    ) -> Optional[List[LoadOrderEntry]]:
        """Produce the load order stored in a snapshot.

        The current state is saved as a new snapshot first, so a restore can
        itself be undone. Modules no longer in the catalog are skipped.
        """
        snapshot = self.get_snapshot(snapshot_id)
        if snapshot is None:
            return None
        stamp = snapshot.created_at.strftime("%Y-%m-%d %H:%M")
        self.save_snapshot(current_order, current_enabled, f"Before restoring snapshot from {stamp}")
        return to_load_order(snapshot.module_order, modules, snapshot.enabled_state)

