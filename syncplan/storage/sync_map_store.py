"""
In-memory sync map store.

Holds the latest Sync Map per project. The store is owned by the caller
(typically one per build session) and is never persisted.
"""

import logging
from typing import Mapping

from .models import ProjectKey, SyncMap

logger = logging.getLogger(__name__)


class SyncMapStore:
    """
    Latest Sync Map snapshot per ProjectKey.

    Snapshots are created by initialize() and overwritten on every full
    recomputation; they live as long as the store does.

    Not safe for concurrent diffs against the same project key: callers
    must serialize read-recompute-write sequences per key.

    Usage:
        store = SyncMapStore()
        store.initialize(key, sync_map)

        baseline = store.get(key)
    """

    def __init__(self):
        self._maps: dict[ProjectKey, SyncMap] = {}

    def initialize(self, project_key: ProjectKey, sync_map: SyncMap) -> None:
        """
        Store (or overwrite) the snapshot for a project.

        Args:
            project_key: Project the snapshot belongs to
            sync_map: New baseline snapshot
        """
        previous = self._maps.get(project_key)
        self._maps[project_key] = dict(sync_map)

        logger.debug(
            f"Stored sync map for {project_key}: {len(sync_map)} entries "
            f"(previously {len(previous) if previous is not None else 'none'})"
        )

    def get(self, project_key: ProjectKey) -> SyncMap:
        """
        Get the current snapshot for a project.

        Returns:
            The stored Sync Map, or an empty one if none exists yet
        """
        return self._maps.get(project_key, {})

    def refresh_mod_times(self, project_key: ProjectKey, mod_times: Mapping[str, int]) -> None:
        """
        Replace the modification times of entries in a stored snapshot.

        Paths that are not tracked for the project are ignored.

        Args:
            project_key: Project whose snapshot is updated
            mod_times: Source path -> new modification time
        """
        sync_map = self._maps.get(project_key)
        if sync_map is None:
            return

        for path, mod_time in mod_times.items():
            entry = sync_map.get(path)
            if entry is not None:
                sync_map[path] = entry.with_mod_time(mod_time)

    def __contains__(self, project_key: object) -> bool:
        return project_key in self._maps

    def __len__(self) -> int:
        return len(self._maps)
