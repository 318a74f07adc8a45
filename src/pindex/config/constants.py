"""Configuration constants.

This module contains truly constant values that should NOT be user-configurable.
Anti-pattern thresholds fire on exact counts, so changing them at runtime would
re-fire or skip detections already recorded in a session.

For configurable values, see models.py.
"""

# =============================================================================
# Anti-pattern thresholds
# =============================================================================

REDUNDANT_ACCESS_THRESHOLD = 5
"""Access count at which a redundant-access observation is emitted (once)."""

FAILED_SEARCH_THRESHOLD = 3
"""Zero-result attempts of one query at which the repeated-search observation fires."""

TOOL_ERROR_THRESHOLD = 3
"""Failures of one (tool, file) pair at which the tool-error-loop observation fires."""

THRASH_MIN_CHANGES = 4
"""Change events on one file inside the thrash window that count as thrashing."""

THRASH_WINDOW_SEC = 300
"""Trailing thrash window, also the re-arm delay after a thrash emission."""

# =============================================================================
# Indexing
# =============================================================================

DOC_CHUNK_LINES = 50
"""Line window for chunking non-markdown documents."""

MARKDOWN_HEADING_MAX_LEVEL = 3
"""Deepest markdown heading that starts a new chunk."""

CHARS_PER_TOKEN = 4
"""Characters per token for the raw token estimate."""

RESOLVE_MAX_PASSES = 3
"""Resolve passes re-run when single-file indexing raced a resolve."""

SEARCH_DEFAULT_LIMIT = 20
SEARCH_MAX_LIMIT = 100
"""Full-text search result limits."""
