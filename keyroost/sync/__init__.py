"""Sync — merge a local vault with a copy held by a remote blob store."""

from .merge import ConflictReport, MergeResult, merge, pick_winner
from .remote import FolderRemote, RemoteStorage
from .client import SyncResult, synchronize

__all__ = [
    "ConflictReport",
    "MergeResult",
    "merge",
    "pick_winner",
    "FolderRemote",
    "RemoteStorage",
    "SyncResult",
    "synchronize",
]
