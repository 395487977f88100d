"""In-memory sync map storage module."""

from .sync_map_store import SyncMapStore
from .models import ProjectKey, SyncEntry, SyncMap

__all__ = ["SyncMapStore", "ProjectKey", "SyncEntry", "SyncMap"]
