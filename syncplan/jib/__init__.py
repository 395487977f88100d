"""Jib plugin sync map module."""

from .client import SyncMapClient, RecomputationError, ProcessError, ParseError
from .models import BuilderType, JibArtifact

__all__ = [
    "SyncMapClient",
    "RecomputationError",
    "ProcessError",
    "ParseError",
    "BuilderType",
    "JibArtifact",
]
