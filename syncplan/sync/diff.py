"""
Diff detection for the sync engine.

Compares change events and Sync Map snapshots to determine which files
can be copied into the running container and when a rebuild is needed.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterable, Optional

from ..storage.models import SyncMap


class SyncDecision(Enum):
    """Outcome of evaluating a change event."""

    # A build definition changed - rebuild, no sync
    BUILD_FILE_CHANGED = auto()

    # Files were deleted - not supported, rebuild, no sync
    DELETIONS_UNSUPPORTED = auto()

    # Only known direct files changed - copy them, no rebuild
    DIRECT_SYNC = auto()

    # Sync map was recomputed - copy whatever changed
    RECOMPUTED = auto()


@dataclass(frozen=True)
class ChangeEvent:
    """
    Changed files reported by the file watcher.

    Paths may be relative; they are resolved against the working directory.
    """
    modified: frozenset[str] = frozenset()
    added: frozenset[str] = frozenset()
    deleted: frozenset[str] = frozenset()

    @classmethod
    def of(
        cls,
        modified: Iterable[str] = (),
        added: Iterable[str] = (),
        deleted: Iterable[str] = (),
    ) -> "ChangeEvent":
        """Create an event from any iterables of paths."""
        return cls(
            modified=frozenset(modified),
            added=frozenset(added),
            deleted=frozenset(deleted),
        )

    @property
    def has_structural_changes(self) -> bool:
        """Check if files were added or deleted."""
        return bool(self.added or self.deleted)


@dataclass
class DiffResult:
    """
    Result of evaluating a change event.

    Attributes:
        decision: How the event was resolved
        to_copy: Source path -> container destinations, None if no sync
        to_delete: Source path -> container destinations, None if no sync
    """
    decision: SyncDecision
    to_copy: Optional[dict[str, list[str]]] = field(default_factory=dict)
    to_delete: Optional[dict[str, list[str]]] = field(default_factory=dict)

    @classmethod
    def rebuild(cls, decision: SyncDecision) -> "DiffResult":
        """Result telling the caller to rebuild without syncing anything."""
        return cls(decision=decision, to_copy=None, to_delete=None)

    @property
    def requires_rebuild(self) -> bool:
        """Check if the caller must do a normal rebuild instead of syncing."""
        return self.to_copy is None and self.to_delete is None

    def __repr__(self) -> str:
        copies = "None" if self.to_copy is None else len(self.to_copy)
        return f"DiffResult(decision={self.decision.name}, to_copy={copies})"


def find_build_file_changes(paths: Iterable[str], build_files: Iterable[str]) -> set[str]:
    """
    Find the paths that are build definition files.

    Both sides must already be absolute, normalized paths.
    """
    return set(paths) & set(build_files)


def match_direct_files(sync_map: SyncMap, paths: Iterable[str]) -> Optional[dict[str, list[str]]]:
    """
    Look up paths that are all expected to be direct entries.

    Args:
        sync_map: Current snapshot
        paths: Absolute paths of modified files

    Returns:
        Path -> destinations for every path, or None as soon as one path
        is unknown or generated
    """
    matches: dict[str, list[str]] = {}
    for path in paths:
        entry = sync_map.get(path)
        if entry is None or not entry.is_direct:
            return None
        matches[path] = list(entry.destinations)
    return matches


def compute_copy_set(old: SyncMap, new: SyncMap) -> dict[str, list[str]]:
    """
    Compute the files to copy after a sync map recomputation.

    A path is copied when it is new or its modification time changed.
    Paths that disappeared from the new map are not reported.

    Args:
        old: Snapshot before the recomputation
        new: Freshly computed snapshot

    Returns:
        Source path -> container destinations
    """
    to_copy: dict[str, list[str]] = {}
    for path, entry in new.items():
        current = old.get(path)
        if current is None or current.mod_time != entry.mod_time:
            to_copy[path] = list(entry.destinations)
    return to_copy
