"""pindex error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Indexing
- 9xxx: Internal
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Indexing (3xxx)
    INDEX_ROOT_NOT_FOUND = 3001
    INDEX_ROOT_UNREADABLE = 3002
    INDEX_PATH_OUTSIDE_ROOT = 3003

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class PindexError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(PindexError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class IndexingError(PindexError):
    """Fatal indexing errors. Per-file failures are reported, not raised."""

    @classmethod
    def root_not_found(cls, root: str) -> "IndexingError":
        return cls(
            code=ErrorCode.INDEX_ROOT_NOT_FOUND,
            message=f"Project root does not exist: {root}",
            details={"root": root},
        )

    @classmethod
    def root_unreadable(cls, root: str, reason: str) -> "IndexingError":
        return cls(
            code=ErrorCode.INDEX_ROOT_UNREADABLE,
            message=f"Project root is not readable: {root}: {reason}",
            details={"root": root, "reason": reason},
        )

    @classmethod
    def outside_root(cls, path: str, root: str) -> "IndexingError":
        return cls(
            code=ErrorCode.INDEX_PATH_OUTSIDE_ROOT,
            message=f"Path {path} is outside project root {root}",
            details={"path": path, "root": root},
        )


class InternalError(PindexError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )
