"""
Jib artifact and sync map payload models.

The payload models mirror the JSON object the Jib plugins print after
the "BEGIN JIB JSON" marker:

    {"direct": [{"src": ..., "dest": ...}], "generated": [...]}
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class BuilderType(Enum):
    """Build tool that drives the Jib plugin for a workspace."""

    MAVEN = "maven"
    GRADLE = "gradle"


@dataclass(frozen=True)
class JibArtifact:
    """
    Build configuration identity of a Jib artifact.

    Attributes:
        project: Maven module or Gradle sub-project ("" for the root project)
        flags: Extra arguments passed to the build tool
        builder_type: Explicit builder, None to detect from the workspace
    """
    project: str = ""
    flags: tuple[str, ...] = field(default_factory=tuple)
    builder_type: Optional[BuilderType] = None

    def __post_init__(self):
        object.__setattr__(self, "flags", tuple(self.flags))


@dataclass(frozen=True)
class JSONSyncEntry:
    """A single src -> dest pair reported by the plugin."""
    src: str
    dest: str

    @classmethod
    def from_payload(cls, data: dict) -> "JSONSyncEntry":
        """Create from one element of the "direct" or "generated" list."""
        return cls(src=str(data["src"]), dest=str(data["dest"]))


@dataclass(frozen=True)
class JSONSyncMap:
    """
    Sync map payload as printed by the plugin.

    Attributes:
        direct: Files copied verbatim into the container
        generated: Files whose container content is produced by the build
    """
    direct: tuple[JSONSyncEntry, ...] = ()
    generated: tuple[JSONSyncEntry, ...] = ()

    @classmethod
    def from_payload(cls, data: dict) -> "JSONSyncMap":
        """Create from the decoded JSON object."""
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        return cls(
            direct=tuple(JSONSyncEntry.from_payload(e) for e in data.get("direct") or ()),
            generated=tuple(JSONSyncEntry.from_payload(e) for e in data.get("generated") or ()),
        )
