"""File watcher infrastructure for continuous incremental indexing."""

from pindex.index._internal.watcher.watcher import FileChangeEvent, FileChangeKind, FileWatcher

__all__ = [
    "FileChangeEvent",
    "FileChangeKind",
    "FileWatcher",
]
