"""
Pytest configuration and shared fixtures.

Provides fake collaborators, sample sync maps and temporary workspaces.
"""

import os
from pathlib import Path
from typing import Callable, Optional

import pytest

from syncplan.jib.models import JibArtifact
from syncplan.storage.models import ProjectKey, SyncEntry, SyncMap
from syncplan.storage.sync_map_store import SyncMapStore
from syncplan.sync.engine import SyncDiffEngine


# ============================================================================
# Fake Collaborators
# ============================================================================

class FakeBuildTool:
    """
    Stands in for the Jib plugin: serves queued sync maps and a fixed list
    of build definition files, recording every call.
    """

    def __init__(self, build_files: Optional[list[str]] = None):
        self.build_files = list(build_files or [])
        self.next_maps: list[SyncMap] = []
        self.error: Optional[Exception] = None
        self.compute_calls = 0

    def list_build_definitions(self, workspace: str, artifact: JibArtifact) -> list[str]:
        return list(self.build_files)

    def compute_sync_map(self, workspace: str, artifact: JibArtifact) -> SyncMap:
        self.compute_calls += 1
        if self.error is not None:
            raise self.error
        if len(self.next_maps) > 1:
            return self.next_maps.pop(0)
        return dict(self.next_maps[0])


class FakeClock:
    """Modification times keyed by path, standing in for os.stat()."""

    def __init__(self, times: Optional[dict[str, int]] = None):
        self.times = dict(times or {})
        self.calls: list[str] = []

    def __call__(self, path: str) -> int:
        self.calls.append(path)
        return self.times[path]


def direct(dest: str, mod_time: int = 1) -> SyncEntry:
    return SyncEntry(destinations=(dest,), mod_time=mod_time, is_direct=True)


def generated(dest: str, mod_time: int = 1) -> SyncEntry:
    return SyncEntry(destinations=(dest,), mod_time=mod_time, is_direct=False)


# ============================================================================
# Engine Fixtures
# ============================================================================

WORKSPACE = "/w"


@pytest.fixture
def artifact() -> JibArtifact:
    """Root project artifact."""
    return JibArtifact()


@pytest.fixture
def project_key(artifact: JibArtifact) -> ProjectKey:
    return ProjectKey.for_artifact(WORKSPACE, artifact)


@pytest.fixture
def baseline() -> SyncMap:
    """Baseline with one direct resource and one generated class."""
    return {
        "/w/A.txt": direct("/c/A.txt", mod_time=100),
        "/w/B.java": generated("/c/B.class", mod_time=200),
    }


@pytest.fixture
def build_tool() -> FakeBuildTool:
    return FakeBuildTool(build_files=["/w/pom.xml"])


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock({"/w/A.txt": 150, "/w/C.txt": 300})


@pytest.fixture
def store() -> SyncMapStore:
    """Create a fresh, empty store."""
    return SyncMapStore()


@pytest.fixture
def engine(store: SyncMapStore, build_tool: FakeBuildTool, clock: FakeClock) -> SyncDiffEngine:
    """Engine wired to the fake build tool and clock."""
    return SyncDiffEngine(
        store=store,
        list_build_definitions=build_tool.list_build_definitions,
        compute_sync_map=build_tool.compute_sync_map,
        mod_time=clock,
    )


@pytest.fixture
def initialized_engine(
    engine: SyncDiffEngine,
    store: SyncMapStore,
    project_key: ProjectKey,
    baseline: SyncMap,
) -> SyncDiffEngine:
    """Engine whose store already holds the baseline."""
    store.initialize(project_key, baseline)
    return engine


# ============================================================================
# Filesystem Fixtures
# ============================================================================

@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    """Create a file under tmp_path with a fixed modification time (seconds)."""

    def _make(relative: str, content: str = "", mtime: Optional[int] = None) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        if mtime is not None:
            os.utime(path, ns=(mtime * 1_000_000_000, mtime * 1_000_000_000))
        return path

    return _make


@pytest.fixture
def maven_workspace(make_file) -> Path:
    """Workspace containing a pom.xml."""
    return make_file("pom.xml", "<project/>").parent


@pytest.fixture
def gradle_workspace(make_file) -> Path:
    """Workspace containing Gradle build files."""
    make_file("settings.gradle", "rootProject.name = 'app'")
    return make_file("build.gradle", "plugins { id 'com.google.cloud.tools.jib' }").parent
