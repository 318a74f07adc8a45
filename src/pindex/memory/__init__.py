"""Session memory: observer, anti-pattern detection and reporting."""

from pindex.memory.anti_patterns import AntiPatternDetector
from pindex.memory.observer import SessionObserver
from pindex.memory.report import SessionMemoryReport, get_session_memory
from pindex.memory.state import SessionState

__all__ = [
    "AntiPatternDetector",
    "SessionMemoryReport",
    "SessionObserver",
    "SessionState",
    "get_session_memory",
]
