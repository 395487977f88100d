"""Incremental sync planning module."""

from .engine import SyncDiffEngine
from .diff import ChangeEvent, DiffResult, SyncDecision

__all__ = ["SyncDiffEngine", "ChangeEvent", "DiffResult", "SyncDecision"]
