"""Config module exports."""

from pindex.config.loader import PindexSettings, get_index_path, load_config
from pindex.config.models import (
    DatabaseConfig,
    IndexConfig,
    LoggingConfig,
    PindexConfig,
    SessionConfig,
    WatcherConfig,
)

__all__ = [
    "load_config",
    "get_index_path",
    "PindexConfig",
    "PindexSettings",
    "IndexConfig",
    "LoggingConfig",
    "WatcherConfig",
    "DatabaseConfig",
    "SessionConfig",
]
