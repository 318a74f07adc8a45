"""Additional indexes and full-text tables.

These complement the basic indexes defined in SQLModel Field() declarations:
expression and composite indexes that cannot be expressed via
Field(index=True), plus FTS5 external-content tables with the triggers that
keep them in sync with their content tables.

Called by Database.create_all().
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy import Engine


ADDITIONAL_INDEXES = [
    # One edge per (from, to, symbol) with NULL symbol treated as a value,
    # so INSERT OR IGNORE is idempotent
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_dependencies_unique "
    "ON dependencies(from_file, to_file, IFNULL(symbol_name, ''))",
    "CREATE INDEX IF NOT EXISTS idx_symbols_file_name ON symbols(file_id, name)",
    "CREATE INDEX IF NOT EXISTS idx_documents_file_chunk ON documents(file_id, chunk_index)",
    "CREATE INDEX IF NOT EXISTS idx_events_session_type ON session_events(session_id, event_type)",
    "CREATE INDEX IF NOT EXISTS idx_events_file_type_ts "
    "ON session_events(file_path, event_type, timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_observations_file_symbol "
    "ON session_observations(file_path, symbol_name)",
]

FTS_STATEMENTS = [
    # Symbols
    "CREATE VIRTUAL TABLE IF NOT EXISTS symbols_fts "
    "USING fts5(name, signature, summary, content='symbols', content_rowid='id')",
    """CREATE TRIGGER IF NOT EXISTS symbols_fts_ai AFTER INSERT ON symbols BEGIN
        INSERT INTO symbols_fts(rowid, name, signature, summary)
        VALUES (new.id, new.name, new.signature, new.summary);
    END""",
    """CREATE TRIGGER IF NOT EXISTS symbols_fts_ad AFTER DELETE ON symbols BEGIN
        INSERT INTO symbols_fts(symbols_fts, rowid, name, signature, summary)
        VALUES ('delete', old.id, old.name, old.signature, old.summary);
    END""",
    """CREATE TRIGGER IF NOT EXISTS symbols_fts_au AFTER UPDATE ON symbols BEGIN
        INSERT INTO symbols_fts(symbols_fts, rowid, name, signature, summary)
        VALUES ('delete', old.id, old.name, old.signature, old.summary);
        INSERT INTO symbols_fts(rowid, name, signature, summary)
        VALUES (new.id, new.name, new.signature, new.summary);
    END""",
    # Documents
    "CREATE VIRTUAL TABLE IF NOT EXISTS documents_fts "
    "USING fts5(heading, content, content='documents', content_rowid='id')",
    """CREATE TRIGGER IF NOT EXISTS documents_fts_ai AFTER INSERT ON documents BEGIN
        INSERT INTO documents_fts(rowid, heading, content)
        VALUES (new.id, new.heading, new.content);
    END""",
    """CREATE TRIGGER IF NOT EXISTS documents_fts_ad AFTER DELETE ON documents BEGIN
        INSERT INTO documents_fts(documents_fts, rowid, heading, content)
        VALUES ('delete', old.id, old.heading, old.content);
    END""",
    """CREATE TRIGGER IF NOT EXISTS documents_fts_au AFTER UPDATE ON documents BEGIN
        INSERT INTO documents_fts(documents_fts, rowid, heading, content)
        VALUES ('delete', old.id, old.heading, old.content);
        INSERT INTO documents_fts(rowid, heading, content)
        VALUES (new.id, new.heading, new.content);
    END""",
]


def create_additional_indexes(engine: Engine) -> None:
    """Create expression indexes, FTS5 tables and their sync triggers."""
    with engine.connect() as conn:
        for sql in ADDITIONAL_INDEXES:
            conn.execute(text(sql))
        for sql in FTS_STATEMENTS:
            conn.execute(text(sql))
        conn.commit()

