"""
Sync map data models.

A Sync Map is a snapshot of what would be synced into the container
right now for one project: absolute source path -> SyncEntry.
"""

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ..files import to_abs

if TYPE_CHECKING:
    from ..jib.models import JibArtifact


@dataclass(frozen=True)
class ProjectKey:
    """
    Identifies one sync session: a workspace plus the artifact built from it.

    Attributes:
        workspace: Absolute, normalized workspace directory
        project: Module / sub-project of the artifact ("" for the root project)
    """
    workspace: str
    project: str = ""

    @classmethod
    def for_artifact(cls, workspace: str, artifact: "JibArtifact") -> "ProjectKey":
        """Derive the key for a workspace and its artifact configuration."""
        return cls(workspace=to_abs(workspace), project=artifact.project)

    def __str__(self) -> str:
        return f"jib-{self.workspace}-{self.project}"


@dataclass(frozen=True)
class SyncEntry:
    """
    One tracked source file.

    Attributes:
        destinations: Container paths the file is copied to (never empty)
        mod_time: Source modification time when captured, in nanoseconds
        is_direct: True if copied verbatim, False if produced by the build
    """
    destinations: tuple[str, ...]
    mod_time: int
    is_direct: bool

    def __post_init__(self):
        if not self.destinations:
            raise ValueError("SyncEntry requires at least one destination")
        object.__setattr__(self, "destinations", tuple(self.destinations))

    def with_mod_time(self, mod_time: int) -> "SyncEntry":
        """Return a copy of this entry carrying a new modification time."""
        return replace(self, mod_time=mod_time)

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary."""
        return {
            "destinations": list(self.destinations),
            "mod_time": self.mod_time,
            "is_direct": self.is_direct,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SyncEntry":
        """Create from dictionary."""
        return cls(
            destinations=tuple(data["destinations"]),
            mod_time=int(data["mod_time"]),
            is_direct=bool(data.get("is_direct", False)),
        )


# Absolute source path -> entry
SyncMap = dict[str, SyncEntry]


def sync_map_to_dict(sync_map: SyncMap) -> dict:
    """Render a Sync Map as a JSON-friendly dictionary, sorted by path."""
    return {path: sync_map[path].to_dict() for path in sorted(sync_map)}


def sync_map_from_dict(data: dict) -> SyncMap:
    """
    Rebuild a Sync Map from the output of sync_map_to_dict().

    Raises:
        ValueError: If the data is not a mapping of path to entry
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return {path: SyncEntry.from_dict(entry) for path, entry in data.items()}
    except (KeyError, TypeError) as e:
        raise ValueError(f"invalid sync map entry: {e}") from e
