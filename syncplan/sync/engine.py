"""
Incremental sync engine.

Decides whether a change event can be satisfied by copying files into
the running container or whether a rebuild is required, keeping the
per-project Sync Map snapshot in the store up to date.
"""

import logging
from typing import Callable, Optional, Sequence

from ..files import file_mod_time, to_abs
from ..jib.client import SyncMapClient
from ..jib.models import JibArtifact
from ..storage.models import ProjectKey, SyncMap
from ..storage.sync_map_store import SyncMapStore
from .diff import (
    ChangeEvent,
    DiffResult,
    SyncDecision,
    compute_copy_set,
    find_build_file_changes,
    match_direct_files,
)

logger = logging.getLogger(__name__)

BuildDefinitionLookup = Callable[[str, JibArtifact], Sequence[str]]
SyncMapProvider = Callable[[str, JibArtifact], SyncMap]


class SyncDiffEngine:
    """
    Computes incremental sync plans for Jib artifacts.

    Decision order for a change event:
    1. A modified build definition file forces a rebuild
    2. Any deletion forces a rebuild
    3. If only known direct files were modified, copy them without a build
    4. Otherwise recompute the sync map and copy whatever changed

    Hard errors (path resolution, stat, recomputation) propagate and leave
    the stored snapshot untouched.

    Usage:
        engine = SyncDiffEngine(store=SyncMapStore(), client=SyncMapClient())
        engine.init_sync(workspace, artifact)

        result = engine.get_sync_diff(workspace, artifact, event)
        if result.requires_rebuild:
            ...
    """

    def __init__(
        self,
        store: SyncMapStore,
        client: Optional[SyncMapClient] = None,
        list_build_definitions: Optional[BuildDefinitionLookup] = None,
        compute_sync_map: Optional[SyncMapProvider] = None,
        mod_time: Optional[Callable[[str], int]] = None,
    ):
        """
        Initialize sync engine.

        Args:
            store: Snapshot store shared by the build session
            client: Sync map client supplying the default collaborators
            list_build_definitions: Build definition lookup (overrides client)
            compute_sync_map: Sync map computation (overrides client)
            mod_time: Modification time lookup for source files (default: os.stat)
        """
        if client is None and (list_build_definitions is None or compute_sync_map is None):
            client = SyncMapClient()

        self.store = store
        self._list_build_definitions = list_build_definitions or client.list_build_definitions
        self._compute_sync_map = compute_sync_map or client.compute_sync_map
        self._mod_time = mod_time or file_mod_time

    def init_sync(self, workspace: str, artifact: JibArtifact) -> SyncMap:
        """
        Compute the baseline sync map for an artifact and store it.

        Returns:
            The stored baseline

        Raises:
            RecomputationError: If the sync map cannot be computed
            StatError: If a source file cannot be stat'ed
        """
        key = ProjectKey.for_artifact(workspace, artifact)
        sync_map = self._compute_sync_map(workspace, artifact)
        self.store.initialize(key, sync_map)

        logger.info(f"Initialized sync for {key}: {len(sync_map)} files tracked")
        return sync_map

    def get_sync_diff(
        self,
        workspace: str,
        artifact: JibArtifact,
        event: ChangeEvent,
    ) -> DiffResult:
        """
        Evaluate a change event for an artifact.

        Args:
            workspace: Workspace directory of the artifact
            artifact: Artifact build configuration
            event: Changed files reported by the watcher

        Returns:
            DiffResult; requires_rebuild is set when nothing should be synced

        Raises:
            PathResolutionError: If a modified path cannot be resolved
            StatError: If a source file cannot be stat'ed
            RecomputationError: If the sync map cannot be recomputed
        """
        key = ProjectKey.for_artifact(workspace, artifact)
        modified = [to_abs(f) for f in sorted(event.modified)]

        build_files = [to_abs(f) for f in self._list_build_definitions(workspace, artifact)]
        changed_build_files = find_build_file_changes(modified, build_files)
        if changed_build_files:
            logger.info(
                f"Build definition changed for {key} ({', '.join(sorted(changed_build_files))}), "
                f"rebuild required"
            )
            return DiffResult.rebuild(SyncDecision.BUILD_FILE_CHANGED)

        if event.deleted:
            logger.warning("Deletions are not supported by Jib auto sync at the moment")
            return DiffResult.rebuild(SyncDecision.DELETIONS_UNSUPPORTED)

        current = self.store.get(key)

        # deletions were rejected above, so only additions can block the fast path
        if not event.has_structural_changes:
            matches = self._sync_direct_files(key, current, modified)
            if matches is not None:
                logger.info(f"Syncing {len(matches)} direct files for {key} without a build")
                return DiffResult(decision=SyncDecision.DIRECT_SYNC, to_copy=matches, to_delete={})

        return self._recompute(key, workspace, artifact, current)

    def _sync_direct_files(
        self,
        key: ProjectKey,
        current: SyncMap,
        modified: Sequence[str],
    ) -> Optional[dict[str, list[str]]]:
        """
        Try to satisfy the event from direct entries only.

        Refreshed modification times are committed to the store only when
        every modified file is direct, so a later recomputation still sees
        the old times for a batch that fell through.
        """
        matches = match_direct_files(current, modified)
        if matches is None:
            return None

        mod_times = {path: self._mod_time(path) for path in matches}
        self.store.refresh_mod_times(key, mod_times)
        return matches

    def _recompute(
        self,
        key: ProjectKey,
        workspace: str,
        artifact: JibArtifact,
        current: SyncMap,
    ) -> DiffResult:
        # keep the old baseline intact until the new map is in the store
        previous = dict(current)
        next_map = self._compute_sync_map(workspace, artifact)
        self.store.initialize(key, next_map)

        logger.debug(f"Previous sync map for {key}: {len(previous)} entries")
        logger.debug(f"Next sync map for {key}: {len(next_map)} entries")

        to_copy = compute_copy_set(previous, next_map)
        logger.info(f"Recomputed sync map for {key}: {len(to_copy)} files to sync")
        return DiffResult(decision=SyncDecision.RECOMPUTED, to_copy=to_copy, to_delete={})
