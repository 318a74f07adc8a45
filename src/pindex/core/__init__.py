"""Core module exports."""

from pindex.core.errors import (
    ConfigError,
    ErrorCode,
    IndexingError,
    InternalError,
    PindexError,
)
from pindex.core.logging import (
    clear_session_id,
    configure_logging,
    get_logger,
    get_session_id,
    set_session_id,
)

__all__ = [
    # Errors
    "PindexError",
    "ConfigError",
    "ErrorCode",
    "IndexingError",
    "InternalError",
    # Logging
    "clear_session_id",
    "configure_logging",
    "get_logger",
    "get_session_id",
    "set_session_id",
]
