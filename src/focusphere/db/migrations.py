"""Database migrations module for Focusphere."""

import logging
from pathlib import Path

import duckdb

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "sql"


def run_migrations(
    conn: duckdb.DuckDBPyConnection | str, migrations_dir: Path | None = None
) -> list[str]:
    """Run all pending database migrations.

    Args:
        conn: DuckDB connection or database path string.
        migrations_dir: Directory of ``NNN_name.sql`` files (default: bundled ``sql/``).

    Returns:
        Versions applied by this call, in order.
    """
    if isinstance(conn, str):
        conn = duckdb.connect(conn)

    migrations_dir = migrations_dir or MIGRATIONS_DIR
    if not migrations_dir.exists():
        raise FileNotFoundError(f"Migrations directory not found: {migrations_dir}")

    migration_files = sorted(migrations_dir.glob("*.sql"))
    if not migration_files:
        return []

    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version TEXT PRIMARY KEY,
            applied_at TIMESTAMP NOT NULL DEFAULT current_timestamp
        )
    """)

    applied = {row[0] for row in conn.execute("SELECT version FROM schema_migrations").fetchall()}

    newly_applied = []
    for migration_file in migration_files:
        version = migration_file.stem  # e.g., "001_tasks_goals"
        if version in applied:
            continue

        conn.execute(migration_file.read_text())
        conn.execute("INSERT INTO schema_migrations (version) VALUES (?)", [version])
        newly_applied.append(version)
        logger.info("Applied migration: %s", version)

    return newly_applied
